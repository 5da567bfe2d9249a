"""siteintel.db — SQLite artifact store and canonical company registry.

Quick-start::

    from siteintel.db import get_connection, init_db

    conn = get_connection()
    init_db(conn)
"""

from siteintel.db.connection import get_connection
from siteintel.db.migrations import init_db

__all__ = ["get_connection", "init_db"]
