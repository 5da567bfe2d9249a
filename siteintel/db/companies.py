"""Canonical company registry and versioned knowledge graphs.

Lookup order for an observed company name: the normalized name, then its
legal-suffix-stripped form.  Each key is tried against
``companies.normalized_name`` first and ``company_aliases`` second.

Every write runs inside :func:`~siteintel.db.connection.registry_transaction`.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from time import time
from typing import Any, Optional

from siteintel.db.connection import registry_transaction
from siteintel.db.models import CanonicalCompanyRecord, GraphVersion
from siteintel.graph.models import GraphNode, KnowledgeGraph
from siteintel.registry.merge import MergedCompany
from siteintel.registry.names import generate_aliases, lookup_keys

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _aliases_of(conn: sqlite3.Connection, company_id: str) -> list[str]:
    rows = conn.execute(
        "SELECT alias FROM company_aliases WHERE company_id = ? ORDER BY rowid", (company_id,)
    ).fetchall()
    return [r["alias"] for r in rows]


def _row_to_company(conn: sqlite3.Connection, row: sqlite3.Row) -> CanonicalCompanyRecord:
    return CanonicalCompanyRecord(
        id=row["id"],
        normalized_name=row["normalized_name"],
        display_name=row["display_name"],
        platform_urls=json.loads(row["platform_urls"] or "{}"),
        profile=json.loads(row["profile"] or "{}"),
        data_sources=json.loads(row["data_sources"] or "[]"),
        provenance=json.loads(row["provenance"] or "[]"),
        quality_score=row["quality_score"],
        aliases=_aliases_of(conn, row["id"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _add_aliases(conn: sqlite3.Connection, company_id: str, aliases: list[str], now: int) -> None:
    # UNIQUE(alias): an alias already claimed by any company is left alone.
    for alias in aliases:
        conn.execute(
            "INSERT OR IGNORE INTO company_aliases (alias, company_id, created_at) VALUES (?, ?, ?)",
            (alias, company_id, now),
        )


def _merge_ordered(existing: list[str], new: list[str]) -> list[str]:
    return existing + [item for item in new if item not in existing]


def _upsert(
    conn: sqlite3.Connection,
    merged: MergedCompany,
    *,
    session_id: Optional[str],
    quality_score: int,
    profile_extra: Optional[dict[str, Any]] = None,
) -> CanonicalCompanyRecord:
    now = int(time())
    profile = merged.to_dict()
    profile.update(profile_extra or {})
    platforms = list(merged.data_sources)
    entry = {
        "session_id": session_id,
        "platforms": platforms,
        "observed_name": merged.company_name,
        "timestamp": now,
    }
    platform_urls = {k: v for k, v in merged.channels.items() if v}

    existing = find_company(conn, merged.company_name)
    if existing is None:
        company_id = str(uuid.uuid4())
        conn.execute(
            """
            INSERT INTO companies
                (id, normalized_name, display_name, platform_urls, profile,
                 data_sources, provenance, quality_score, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                company_id,
                merged.normalized_name,
                merged.display_name,
                json.dumps(platform_urls),
                json.dumps(profile),
                json.dumps(platforms),
                json.dumps([entry]),
                quality_score,
                now,
                now,
            ),
        )
        _add_aliases(conn, company_id, generate_aliases(merged.company_name), now)
        logger.info("[MERGE] Created company %s (%s)", merged.display_name, company_id)
    else:
        company_id = existing.id
        # One provenance entry per crawl; re-merging the same session replaces it.
        provenance = [p for p in existing.provenance if session_id is None or p.get("session_id") != session_id]
        provenance.append(entry)
        conn.execute(
            """
            UPDATE companies
            SET display_name = ?, platform_urls = ?, profile = ?, data_sources = ?,
                provenance = ?, quality_score = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                merged.display_name,
                json.dumps({**existing.platform_urls, **platform_urls}),
                json.dumps(profile),
                json.dumps(_merge_ordered(existing.data_sources, platforms)),
                json.dumps(provenance),
                quality_score,
                now,
                company_id,
            ),
        )
        observed = [merged.normalized_name] if merged.normalized_name != existing.normalized_name else []
        _add_aliases(conn, company_id, observed + generate_aliases(merged.company_name), now)
        logger.info("[MERGE] Updated company %s (%s)", existing.display_name, company_id)

    return get_company(conn, company_id)  # type: ignore[return-value]


def _insert_graph(
    conn: sqlite3.Connection,
    company_id: str,
    graph: KnowledgeGraph,
    session_id: Optional[str],
) -> int:
    row = conn.execute(
        "SELECT COALESCE(MAX(version), 0) FROM knowledge_graphs WHERE company_id = ?", (company_id,)
    ).fetchone()
    version = row[0] + 1
    data = graph.to_dict()
    conn.execute(
        """
        INSERT INTO knowledge_graphs (company_id, version, session_id, nodes, edges, insights, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            company_id,
            version,
            session_id,
            json.dumps(data["nodes"]),
            json.dumps(data["edges"]),
            json.dumps(data["insights"]),
            int(time()),
        ),
    )
    return version


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def get_company(conn: sqlite3.Connection, company_id: str) -> Optional[CanonicalCompanyRecord]:
    row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
    return _row_to_company(conn, row) if row else None


def find_company(conn: sqlite3.Connection, name: str) -> Optional[CanonicalCompanyRecord]:
    """Resolve *name* to at most one company (exact name first, then aliases)."""
    for key in lookup_keys(name):
        row = conn.execute("SELECT * FROM companies WHERE normalized_name = ?", (key,)).fetchone()
        if row:
            return _row_to_company(conn, row)
        alias = conn.execute(
            "SELECT company_id FROM company_aliases WHERE alias = ?", (key,)
        ).fetchone()
        if alias:
            return get_company(conn, alias["company_id"])
    return None


def list_companies(conn: sqlite3.Connection) -> list[CanonicalCompanyRecord]:
    rows = conn.execute("SELECT * FROM companies ORDER BY updated_at DESC, display_name").fetchall()
    return [_row_to_company(conn, r) for r in rows]


def upsert_company(
    conn: sqlite3.Connection,
    merged: MergedCompany,
    *,
    session_id: Optional[str] = None,
    quality_score: int = 0,
    profile_extra: Optional[dict[str, Any]] = None,
) -> CanonicalCompanyRecord:
    """Create or update the canonical record for *merged*.

    Idempotent: merging identical inputs twice returns the same record id
    and never creates a duplicate.
    """
    with registry_transaction(conn):
        return _upsert(
            conn, merged, session_id=session_id, quality_score=quality_score, profile_extra=profile_extra
        )


def save_graph_version(
    conn: sqlite3.Connection,
    company_id: str,
    graph: KnowledgeGraph,
    session_id: Optional[str] = None,
) -> int:
    """Store *graph* as the next version for *company_id* and return it."""
    with registry_transaction(conn):
        return _insert_graph(conn, company_id, graph, session_id)


def get_graph(
    conn: sqlite3.Connection,
    company_id: str,
    version: Optional[int] = None,
) -> Optional[GraphVersion]:
    """Fetch one graph version (the latest when *version* is ``None``)."""
    if version is None:
        row = conn.execute(
            "SELECT * FROM knowledge_graphs WHERE company_id = ? ORDER BY version DESC LIMIT 1",
            (company_id,),
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT * FROM knowledge_graphs WHERE company_id = ? AND version = ?",
            (company_id, version),
        ).fetchone()
    if row is None:
        return None
    return GraphVersion(
        company_id=row["company_id"],
        version=row["version"],
        session_id=row["session_id"],
        graph={
            "nodes": json.loads(row["nodes"]),
            "edges": json.loads(row["edges"]),
            "insights": json.loads(row["insights"]),
        },
        created_at=row["created_at"],
    )


def list_graph_versions(conn: sqlite3.Connection, company_id: str) -> list[int]:
    rows = conn.execute(
        "SELECT version FROM knowledge_graphs WHERE company_id = ? ORDER BY version", (company_id,)
    ).fetchall()
    return [r["version"] for r in rows]


def search_company_graph(conn: sqlite3.Connection, company_id: str, query: str) -> list[GraphNode]:
    """Search the latest graph version of *company_id* for *query*."""
    stored = get_graph(conn, company_id)
    if stored is None:
        return []
    return KnowledgeGraph.from_dict(stored.graph).search(query)
