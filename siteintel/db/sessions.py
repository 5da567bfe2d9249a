"""CRUD operations for ``crawl_sessions`` and ``page_snapshots``.

A session is mutable only while ``running``; once it is ``completed`` or
``failed`` every update is refused with :class:`~siteintel.errors.SessionClosed`.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from time import time
from typing import Any, Iterable, Optional

from siteintel.config import settings
from siteintel.crawler.models import PageSnapshot
from siteintel.db.models import FINISHED_STATUSES, RUNNING, CrawlSession, StoredPage
from siteintel.errors import SessionClosed

_JSON_FIELDS = {"platform_urls", "data_sources"}
_UPDATABLE = {
    "status",
    "ended_at",
    "pages_crawled",
    "quality_score",
    "data_sources",
    "error",
    "canonical_company_id",
    "graph_version",
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_session(row: sqlite3.Row) -> CrawlSession:
    return CrawlSession(
        id=row["id"],
        entry_url=row["entry_url"],
        page_budget=row["page_budget"],
        status=row["status"],
        started_at=row["started_at"],
        platform_urls=json.loads(row["platform_urls"] or "{}"),
        company_id=row["company_id"],
        ended_at=row["ended_at"],
        pages_crawled=row["pages_crawled"],
        quality_score=row["quality_score"],
        data_sources=json.loads(row["data_sources"] or "[]"),
        error=row["error"],
        canonical_company_id=row["canonical_company_id"],
        graph_version=row["graph_version"],
    )


def _row_to_page(row: sqlite3.Row) -> StoredPage:
    return StoredPage(
        session_id=row["session_id"],
        position=row["position"],
        url=row["url"],
        status_code=row["status_code"],
        title=row["title"],
        depth=row["depth"],
        html=row["html"],
        text=row["text"],
    )


def truncate_markup(html: str, max_bytes: Optional[int] = None) -> str:
    """Cut *html* to at most *max_bytes* UTF-8 bytes without splitting a character."""
    limit = settings.snapshot_max_bytes if max_bytes is None else max_bytes
    encoded = html.encode("utf-8")
    if len(encoded) <= limit:
        return html
    return encoded[:limit].decode("utf-8", errors="ignore")


def _update(conn: sqlite3.Connection, session_id: str, fields: dict[str, Any]) -> None:
    row = conn.execute("SELECT status FROM crawl_sessions WHERE id = ?", (session_id,)).fetchone()
    if row is None:
        raise ValueError(f"Session not found: {session_id!r}")
    if row["status"] in FINISHED_STATUSES:
        raise SessionClosed(session_id, row["status"])

    updates: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in _UPDATABLE:
            raise ValueError(f"Cannot update field {key!r}")
        updates[key] = json.dumps(value) if key in _JSON_FIELDS else value
    if not updates:
        return
    set_clause = ", ".join(f"{col} = ?" for col in updates)
    conn.execute(
        f"UPDATE crawl_sessions SET {set_clause} WHERE id = ?",  # noqa: S608
        [*updates.values(), session_id],
    )


def _insert_pages(conn: sqlite3.Connection, session_id: str, pages: Iterable[PageSnapshot]) -> int:
    count = 0
    for position, page in enumerate(pages):
        conn.execute(
            """
            INSERT INTO page_snapshots
                (session_id, position, url, status_code, title, depth, html, text)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                position,
                page.url,
                page.status_code,
                page.title,
                page.depth,
                truncate_markup(page.html),
                page.text,
            ),
        )
        count += 1
    return count


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_session(
    conn: sqlite3.Connection,
    entry_url: str,
    page_budget: int,
    platform_urls: Optional[dict[str, str]] = None,
    company_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> CrawlSession:
    """Insert a new ``running`` session and return it."""
    sid = session_id or str(uuid.uuid4())
    with conn:
        conn.execute(
            """
            INSERT INTO crawl_sessions
                (id, entry_url, platform_urls, company_id, page_budget, status, started_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (sid, entry_url, json.dumps(platform_urls or {}), company_id, page_budget, RUNNING, int(time())),
        )
    return get_session(conn, sid)  # type: ignore[return-value]


def get_session(conn: sqlite3.Connection, session_id: str) -> Optional[CrawlSession]:
    row = conn.execute("SELECT * FROM crawl_sessions WHERE id = ?", (session_id,)).fetchone()
    return _row_to_session(row) if row else None


def list_sessions(conn: sqlite3.Connection, limit: int = 50) -> list[CrawlSession]:
    """Most recent sessions first."""
    rows = conn.execute(
        "SELECT * FROM crawl_sessions ORDER BY started_at DESC, rowid DESC LIMIT ?", (limit,)
    ).fetchall()
    return [_row_to_session(r) for r in rows]


def update_session(conn: sqlite3.Connection, session_id: str, **fields: Any) -> CrawlSession:
    """Update a running session.

    Raises:
        ValueError: If the session does not exist or a field is not updatable.
        SessionClosed: If the session already finished.
    """
    with conn:
        _update(conn, session_id, fields)
    return get_session(conn, session_id)  # type: ignore[return-value]


def finish_session(
    conn: sqlite3.Connection,
    session_id: str,
    status: str,
    **fields: Any,
) -> CrawlSession:
    """Move a running session to its terminal *status* and stamp ``ended_at``."""
    if status not in FINISHED_STATUSES:
        raise ValueError(f"Not a terminal status: {status!r}")
    return update_session(conn, session_id, status=status, ended_at=int(time()), **fields)


def save_pages(conn: sqlite3.Connection, session_id: str, pages: Iterable[PageSnapshot]) -> int:
    """Persist page snapshots (markup truncated to ``settings.snapshot_max_bytes``)."""
    with conn:
        return _insert_pages(conn, session_id, pages)


def list_pages(conn: sqlite3.Connection, session_id: str) -> list[StoredPage]:
    rows = conn.execute(
        "SELECT * FROM page_snapshots WHERE session_id = ? ORDER BY position", (session_id,)
    ).fetchall()
    return [_row_to_page(r) for r in rows]
