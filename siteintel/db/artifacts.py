"""Session artifacts and the persistence of a finished crawl.

``persist_results`` writes everything a successful session produced in one
transaction.  When that write fails, ``retain_partial_results`` keeps the
page snapshots and artifacts so the failed session still carries its work.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from time import time
from typing import Any, Iterable, Optional

from siteintel.crawler.models import PageSnapshot
from siteintel.db import sessions
from siteintel.db.companies import _insert_graph, _upsert
from siteintel.db.connection import registry_transaction
from siteintel.db.models import COMPLETED, CanonicalCompanyRecord
from siteintel.graph.models import KnowledgeGraph
from siteintel.registry.merge import MergedCompany

logger = logging.getLogger(__name__)

ARTIFACT_KINDS = (
    "signals",
    "forms",
    "lead_flow",
    "structure",
    "platforms",
    "fetch_errors",
    "stage_errors",
)


def _insert_artifact(conn: sqlite3.Connection, session_id: str, kind: str, payload: Any) -> None:
    conn.execute(
        """
        INSERT INTO session_artifacts (session_id, kind, payload, created_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (session_id, kind) DO UPDATE SET payload = excluded.payload,
                                                   created_at = excluded.created_at
        """,
        (session_id, kind, json.dumps(payload), int(time())),
    )


def save_artifact(conn: sqlite3.Connection, session_id: str, kind: str, payload: Any) -> None:
    """Store (or replace) one artifact of *kind* for a session."""
    if kind not in ARTIFACT_KINDS:
        raise ValueError(f"Unknown artifact kind: {kind!r}")
    with conn:
        _insert_artifact(conn, session_id, kind, payload)


def get_artifacts(conn: sqlite3.Connection, session_id: str) -> dict[str, Any]:
    rows = conn.execute(
        "SELECT kind, payload FROM session_artifacts WHERE session_id = ?", (session_id,)
    ).fetchall()
    return {r["kind"]: json.loads(r["payload"]) for r in rows}


def persist_results(
    conn: sqlite3.Connection,
    session_id: str,
    *,
    pages: Iterable[PageSnapshot],
    artifacts: dict[str, Any],
    merged: MergedCompany,
    graph: KnowledgeGraph,
    quality_score: int,
    data_sources: list[str],
    profile_extra: Optional[dict[str, Any]] = None,
) -> tuple[CanonicalCompanyRecord, int]:
    """Write everything a successful crawl produced in one transaction.

    Page snapshots, session artifacts, the registry upsert, the new graph
    version and the session's ``completed`` status either all land or none
    do.  Holds the registry lock for the duration.

    Returns:
        The canonical record and the new knowledge-graph version.

    Raises:
        sqlite3.Error: On any write failure (the transaction is rolled back).
        SessionClosed: If the session already finished.
    """
    page_list = list(pages)
    with registry_transaction(conn):
        sessions._insert_pages(conn, session_id, page_list)
        for kind, payload in artifacts.items():
            _insert_artifact(conn, session_id, kind, payload)
        record = _upsert(
            conn,
            merged,
            session_id=session_id,
            quality_score=quality_score,
            profile_extra=profile_extra,
        )
        version = _insert_graph(conn, record.id, graph, session_id)
        sessions._update(
            conn,
            session_id,
            {
                "status": COMPLETED,
                "ended_at": int(time()),
                "pages_crawled": len(page_list),
                "quality_score": quality_score,
                "data_sources": data_sources,
                "canonical_company_id": record.id,
                "graph_version": version,
            },
        )
    logger.info(
        "[MERGE] Session %s persisted: company=%s graph v%d", session_id, record.id, version
    )
    return record, version


def retain_partial_results(
    conn: sqlite3.Connection,
    session_id: str,
    *,
    pages: Iterable[PageSnapshot],
    artifacts: dict[str, Any],
) -> None:
    """Keep what a session computed before its final write failed.

    Page snapshots and session artifacts are written in their own
    transaction.  The registry and the session status are left untouched.
    """
    page_list = list(pages)
    with conn:
        sessions._insert_pages(conn, session_id, page_list)
        for kind, payload in artifacts.items():
            _insert_artifact(conn, session_id, kind, payload)
    logger.info(
        "Session %s: retained %d page(s) and %d artifact(s) after a failed merge",
        session_id,
        len(page_list),
        len(artifacts),
    )
