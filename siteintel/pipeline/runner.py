"""High-level runner for crawl sessions.

``CrawlPipeline`` wires together the DB layer, the compiled LangGraph and a
progress reporter so the CLI and the API can drive a crawl and consume its
progress in real time.

A session is created with :meth:`CrawlPipeline.start` and driven to a
terminal status with :meth:`CrawlPipeline.execute`; :meth:`CrawlPipeline.run`
does both.  :func:`cancel_session` flags a running session from any thread.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from siteintel.config import settings
from siteintel.crawler.fetcher import fetch_url
from siteintel.crawler.frontier import FetchFn
from siteintel.crawler.urls import normalize_entry_url
from siteintel.db import get_connection, init_db
from siteintel.db.artifacts import retain_partial_results
from siteintel.db.models import FAILED
from siteintel.db.sessions import create_session, finish_session
from siteintel.errors import (
    CrawlCancelled,
    PersistenceError,
    SessionClosed,
    SiteIntelError,
    TotalFetchFailure,
)
from siteintel.parser.ocr import HttpOcrClient, OcrClient
from siteintel.parser.platforms import SUPPORTED_PLATFORMS
from siteintel.pipeline.enrichment import Enricher, LLMEnricher
from siteintel.pipeline.graph import build_pipeline
from siteintel.pipeline.nodes import StageContext, collect_data_sources, session_artifacts
from siteintel.pipeline.progress import ProgressCallback, ProgressReporter
from siteintel.pipeline.state import PipelineState

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "cancelled"

# Cancel flags of the sessions currently executing in this process.
_ACTIVE: dict[str, threading.Event] = {}
_ACTIVE_LOCK = threading.Lock()


def cancel_session(session_id: str) -> bool:
    """Flag a running session for cancellation.

    Returns:
        ``True`` if the session is executing in this process.
    """
    with _ACTIVE_LOCK:
        event = _ACTIVE.get(session_id)
    if event is None:
        return False
    event.set()
    logger.info("Cancellation requested for session %s", session_id)
    return True


def _register(session_id: str) -> threading.Event:
    with _ACTIVE_LOCK:
        return _ACTIVE.setdefault(session_id, threading.Event())


def _unregister(session_id: str) -> None:
    with _ACTIVE_LOCK:
        _ACTIVE.pop(session_id, None)


# ---------------------------------------------------------------------------
# Request / outcome
# ---------------------------------------------------------------------------

@dataclass
class CrawlRequest:
    entry_url: str
    platform_urls: dict[str, str] = field(default_factory=dict)
    company_id: Optional[str] = None
    page_budget: Optional[int] = None

    def validated(self) -> "CrawlRequest":
        """Return a copy with a normalized URL, a clamped budget and known platforms only.

        Raises:
            ValueError: If ``entry_url`` is blank.
        """
        if not self.entry_url or not self.entry_url.strip():
            raise ValueError("entry_url must not be empty")
        budget = settings.default_page_budget if self.page_budget is None else int(self.page_budget)
        budget = min(max(budget, 1), settings.max_page_budget)

        platforms: dict[str, str] = {}
        for platform, url in (self.platform_urls or {}).items():
            key = platform.strip().lower()
            if key not in SUPPORTED_PLATFORMS:
                logger.warning("Ignoring unsupported platform %r", platform)
                continue
            if url and url.strip():
                platforms[key] = url.strip()

        return CrawlRequest(
            entry_url=normalize_entry_url(self.entry_url),
            platform_urls=platforms,
            company_id=self.company_id,
            page_budget=budget,
        )


@dataclass
class CrawlOutcome:
    success: bool
    session_id: str
    quality_score: Optional[int] = None
    data_sources: list[str] = field(default_factory=list)
    canonical_company_id: Optional[str] = None
    knowledge_graph_version: Optional[int] = None
    error: Optional[str] = None
    artifacts: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, include_artifacts: bool = False) -> dict[str, Any]:
        if self.success:
            data: dict[str, Any] = {
                "success": True,
                "session_id": self.session_id,
                "quality_score": self.quality_score,
                "data_sources": self.data_sources,
                "canonical_company_id": self.canonical_company_id,
                "knowledge_graph_version": self.knowledge_graph_version,
            }
        else:
            data = {"success": False, "session_id": self.session_id, "error": self.error}
        if include_artifacts:
            data["artifacts"] = self.artifacts
        return data


def _outcome_artifacts(state: PipelineState) -> dict[str, Any]:
    artifacts = session_artifacts(state)
    merged = state.get("merged")
    graph = state.get("knowledge_graph")
    artifacts["merged"] = merged.to_dict() if merged else {}
    artifacts["knowledge_graph"] = graph.to_dict() if graph else {}
    artifacts["score_breakdown"] = dict(state.get("score_breakdown", {}))
    return artifacts


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class CrawlPipeline:
    """Drives crawl sessions through the stage graph.

    Args:
        conn: Shared connection.  When ``None`` each call opens (and closes)
            its own connection to *db_path*.
        db_path: Database file used when *conn* is ``None``.
        fetch: Page fetch function handed to the crawler.
        ocr: OCR collaborator.  Defaults to :class:`HttpOcrClient` when
            ``settings.ocr_service_url`` is set.
        enricher: Enrichment collaborator.  Defaults to :class:`LLMEnricher`
            when ``settings.enrichment_enabled`` is true.
    """

    def __init__(
        self,
        conn: Optional[sqlite3.Connection] = None,
        db_path: Optional[Path] = None,
        *,
        fetch: FetchFn = fetch_url,
        ocr: Optional[OcrClient] = None,
        enricher: Optional[Enricher] = None,
    ) -> None:
        self._conn = conn
        self._db_path = db_path
        self._fetch = fetch
        self._ocr = ocr if ocr is not None else (HttpOcrClient() if settings.ocr_service_url else None)
        self._enricher = enricher if enricher is not None else (
            LLMEnricher() if settings.enrichment_enabled else None
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _open(self) -> tuple[sqlite3.Connection, bool]:
        if self._conn is not None:
            return self._conn, False
        if self._db_path is None:
            settings.ensure_workspace()
        conn = get_connection(self._db_path)
        init_db(conn)
        return conn, True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self, request: CrawlRequest) -> str:
        """Validate *request*, create a ``running`` session and return its id."""
        valid = request.validated()
        conn, owned = self._open()
        try:
            session = create_session(
                conn,
                valid.entry_url,
                valid.page_budget,  # type: ignore[arg-type]
                platform_urls=valid.platform_urls,
                company_id=valid.company_id,
            )
        finally:
            if owned:
                conn.close()
        _register(session.id)
        logger.info("Session %s started for %s", session.id, valid.entry_url)
        return session.id

    def cancel(self, session_id: str) -> bool:
        return cancel_session(session_id)

    def run(self, request: CrawlRequest, on_progress: Optional[ProgressCallback] = None) -> CrawlOutcome:
        """Start a session and drive it to completion."""
        session_id = self.start(request)
        return self.execute(session_id, request, on_progress)

    def execute(
        self,
        session_id: str,
        request: CrawlRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CrawlOutcome:
        """Run every stage for an already-started session.

        Never raises for pipeline failures: the session is moved to
        ``failed`` and an unsuccessful :class:`CrawlOutcome` is returned.
        """
        valid = request.validated()
        cancel = _register(session_id)
        reporter = ProgressReporter(on_progress, total_pages=valid.page_budget or 0)
        conn, owned = self._open()
        state: PipelineState = {"session_id": session_id, "entry_url": valid.entry_url}

        try:
            ctx = StageContext(
                conn=conn,
                session_id=session_id,
                entry_url=valid.entry_url,
                page_budget=valid.page_budget or settings.default_page_budget,
                reporter=reporter,
                platform_urls=valid.platform_urls,
                cancel=cancel,
                fetch=self._fetch,
                ocr=self._ocr,
                enricher=self._enricher,
            )
            pipeline = build_pipeline(ctx)

            # event: {node_name: state_update_dict}
            for event in pipeline.stream(dict(state)):
                for update in event.values():
                    if update:
                        state.update(update)  # type: ignore[typeddict-item]

            if not state.get("pages"):
                raise TotalFetchFailure(valid.entry_url, len(state.get("fetch_errors", [])))

        except CrawlCancelled:
            return self._fail(conn, session_id, reporter, state, CANCELLED_MESSAGE)
        except PersistenceError as exc:
            logger.error("Session %s failed: %s", session_id, exc)
            if not isinstance(exc, SessionClosed):
                self._retain(conn, session_id, state)
            return self._fail(conn, session_id, reporter, state, str(exc))
        except SiteIntelError as exc:
            logger.error("Session %s failed: %s", session_id, exc)
            return self._fail(conn, session_id, reporter, state, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Session %s failed: %s", session_id, exc)
            return self._fail(conn, session_id, reporter, state, str(exc))
        finally:
            _unregister(session_id)
            if owned:
                conn.close()

        reporter.emit("complete", f"Crawl complete: quality score {state.get('quality_score', 0)}/100")
        return CrawlOutcome(
            success=True,
            session_id=session_id,
            quality_score=state.get("quality_score", 0),
            data_sources=list(state.get("data_sources", [])),
            canonical_company_id=state.get("canonical_company_id"),
            knowledge_graph_version=state.get("knowledge_graph_version"),
            artifacts=_outcome_artifacts(state),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _retain(self, conn: sqlite3.Connection, session_id: str, state: PipelineState) -> None:
        """Store the pages and artifacts computed before the merge failed."""
        try:
            retain_partial_results(
                conn,
                session_id,
                pages=state.get("pages", []),
                artifacts=session_artifacts(state),
            )
        except sqlite3.Error as exc:
            logger.error("Could not retain results of session %s: %s", session_id, exc)

    def _fail(
        self,
        conn: sqlite3.Connection,
        session_id: str,
        reporter: ProgressReporter,
        state: PipelineState,
        message: str,
    ) -> CrawlOutcome:
        try:
            finish_session(conn, session_id, FAILED, error=message)
        except SessionClosed as exc:
            logger.warning("Could not mark session failed: %s", exc)
        except sqlite3.Error as exc:
            logger.error("Could not mark session %s failed: %s", session_id, exc)
        reporter.emit("failed", message)
        return CrawlOutcome(
            success=False,
            session_id=session_id,
            quality_score=state.get("quality_score"),
            data_sources=collect_data_sources(state),
            error=message,
            artifacts=_outcome_artifacts(state),
        )
