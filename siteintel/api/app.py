"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
read requests via ``request.app.state.db``) and initialises the schema.
Crawl sessions are driven by ``request.app.state.pipeline``, which opens a
connection of its own per session.  On shutdown the connection is closed.

Routers
-------
    /crawl      — start, stream, inspect and cancel crawl sessions
    /companies  — canonical company registry and knowledge graphs
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from siteintel import __version__
from siteintel.config import configure_logging
from siteintel.db import get_connection, init_db
from siteintel.pipeline import CrawlPipeline

from siteintel.api.routers import companies as companies_router
from siteintel.api.routers import crawl as crawl_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.pipeline = CrawlPipeline()
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="SiteIntel API",
        description=(
            "Crawl a company's web presence, follow progress over Server-Sent "
            "Events, and query the canonical company registry and its "
            "versioned knowledge graphs."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(crawl_router.router, prefix="/crawl", tags=["crawl"])
    app.include_router(companies_router.router, prefix="/companies", tags=["companies"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn siteintel.api.app:app --reload
app = create_app()
