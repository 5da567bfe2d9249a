"""Data models for the crawler stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int
    screenshot: Optional[bytes] = None


@dataclass
class PageSnapshot:
    """One retrieved page of a crawl session.

    ``url`` is always canonical (see :func:`siteintel.crawler.urls.canonicalize`).
    ``html`` holds the full markup while the session runs; the DB layer
    truncates it to ``settings.snapshot_max_bytes`` on write.
    """

    url: str
    status_code: int
    html: str
    text: str = ""
    title: str = ""
    depth: int = 0
    screenshot: Optional[bytes] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "status_code": self.status_code,
            "title": self.title,
            "depth": self.depth,
            "text": self.text,
        }


@dataclass
class FetchError:
    """A page that could not be retrieved.  Recorded, never raised."""

    url: str
    reason: str
    status_code: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "reason": self.reason, "status_code": self.status_code}


@dataclass
class CrawlResult:
    pages: list[PageSnapshot] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def attempts(self) -> int:
        return len(self.pages) + len(self.errors)
