"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from siteintel.api import app

    uvicorn siteintel.api:app --reload
"""

from siteintel.api.app import app

__all__ = ["app"]
