"""SQLite connections for the artifact store and the company registry.

One connection may be shared between the API event loop and the crawl
worker threads (``check_same_thread=False``); WAL mode lets readers proceed
while a session persists its results.

Registry writes go through :func:`registry_transaction`, which serialises
writers in this process on :data:`REGISTRY_LOCK` and takes SQLite's write
lock up front with ``BEGIN IMMEDIATE``.  Two sessions merging into the same
company therefore never interleave their field updates.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from siteintel.config import settings

# Seconds a writer waits on a locked database before failing.
BUSY_TIMEOUT = 30.0

REGISTRY_LOCK = threading.RLock()

_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
)


def get_connection(db_path: Optional[Path | str] = None) -> sqlite3.Connection:
    """Open a configured connection to *db_path* (``settings.db_path`` by default).

    Rows come back as :class:`sqlite3.Row`.  ``":memory:"`` is accepted for
    tests and never touches the workspace.
    """
    target = str(db_path or settings.db_path)
    if target != ":memory:":
        Path(target).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(target, check_same_thread=False, timeout=BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    for pragma in _PRAGMAS:
        conn.execute(pragma)
    return conn


@contextmanager
def registry_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Hold the registry lock and one immediate transaction for the block.

    Commits on normal exit, rolls back if the block raises.
    """
    with REGISTRY_LOCK:
        with conn:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
