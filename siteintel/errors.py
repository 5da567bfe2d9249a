"""Exception hierarchy for the crawl pipeline.

Individual page fetch failures and per-stage heuristic failures are *not*
exceptions at the pipeline boundary: they are recorded and the session keeps
going.  The types below are the ones that end a session.
"""

from __future__ import annotations


class SiteIntelError(Exception):
    """Base class for all pipeline errors."""


class TotalFetchFailure(SiteIntelError):
    """Raised when a crawl retrieved zero pages."""

    def __init__(self, entry_url: str, attempts: int = 0) -> None:
        self.entry_url = entry_url
        self.attempts = attempts
        super().__init__(
            f"No pages could be retrieved from {entry_url} "
            f"({attempts} fetch attempt(s) failed)"
        )


class PersistenceError(SiteIntelError):
    """Raised when the artifact store or the canonical registry rejects a write."""


class CrawlCancelled(SiteIntelError):
    """Raised when a session is aborted by its caller."""


class CollaboratorError(SiteIntelError):
    """Raised by an optional external collaborator (OCR, enrichment)."""


class SessionClosed(PersistenceError):
    """Raised when a write targets a session that already finished."""

    def __init__(self, session_id: str, status: str) -> None:
        self.session_id = session_id
        self.status = status
        super().__init__(f"Session {session_id} is already {status}")
