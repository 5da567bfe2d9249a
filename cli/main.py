"""SiteIntel CLI — entry-point for crawl and registry operations.

Usage:
    python cli/main.py --help

Command groups:
    db        → database initialisation
    crawl     → run, list and inspect crawl sessions
    company   → canonical company registry and knowledge graphs
    serve     → run the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from siteintel.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working
# directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from typing import Optional

import typer

from siteintel.config import configure_logging, settings
from siteintel.db import get_connection, init_db
from siteintel.db.migrations import current_version

from cli.commands.company import company_app
from cli.commands.crawl import crawl_app

app = typer.Typer(
    name="siteintel",
    help="SiteIntel company web-presence crawler.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")
app.add_typer(crawl_app, name="crawl")
app.add_typer(company_app, name="company")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    version = current_version(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path} (schema v{version})")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address."),
    port: int = typer.Option(8000, "--port", help="Bind port."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run("siteintel.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
