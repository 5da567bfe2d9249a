"""Commands for running and inspecting crawl sessions."""

from __future__ import annotations

import json
from typing import Optional

import typer

from siteintel.crawler.fetcher import fetch_url
from siteintel.db import get_connection, init_db
from siteintel.db.artifacts import get_artifacts
from siteintel.db.sessions import get_session, list_pages, list_sessions
from siteintel.pipeline import CrawlPipeline, CrawlRequest

from cli.rendering import render_progress

crawl_app = typer.Typer(help="Run and inspect crawl sessions.", no_args_is_help=True)


@crawl_app.command("run")
def crawl_run(
    url: str = typer.Argument(..., help="Entry URL of the company website."),
    facebook: Optional[str] = typer.Option(None, help="Facebook page URL."),
    youtube: Optional[str] = typer.Option(None, help="YouTube channel URL."),
    linkedin: Optional[str] = typer.Option(None, help="LinkedIn company page URL."),
    budget: Optional[int] = typer.Option(None, "--budget", "-b", help="Maximum pages to crawl."),
    company_id: Optional[str] = typer.Option(None, "--company-id", help="Existing company id hint."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide per-stage progress."),
) -> None:
    """Crawl URL (plus optional platform pages) and merge it into the registry."""
    platforms = {
        name: value
        for name, value in (("facebook", facebook), ("youtube", youtube), ("linkedin", linkedin))
        if value
    }
    request = CrawlRequest(entry_url=url, platform_urls=platforms, company_id=company_id, page_budget=budget)

    def _on_progress(event) -> None:
        if not quiet:
            typer.echo(render_progress(event))

    pipeline = CrawlPipeline(fetch=fetch_url)
    try:
        outcome = pipeline.run(request, on_progress=_on_progress)
    except ValueError as exc:
        typer.echo(f"[crawl run] {exc}", err=True)
        raise typer.Exit(2)

    if not outcome.success:
        typer.echo(f"[crawl run] Session {outcome.session_id} failed: {outcome.error}", err=True)
        raise typer.Exit(1)

    typer.echo(f"[crawl run] Session      : {outcome.session_id}")
    typer.echo(f"[crawl run] Quality score: {outcome.quality_score}/100")
    typer.echo(f"[crawl run] Data sources : {', '.join(outcome.data_sources) or '(none)'}")
    typer.echo(f"[crawl run] Company      : {outcome.canonical_company_id}  (graph v{outcome.knowledge_graph_version})")


@crawl_app.command("show")
def crawl_show(
    session_id: str = typer.Argument(..., help="Session id."),
    as_json: bool = typer.Option(False, "--json", help="Print the session and artifacts as JSON."),
) -> None:
    """Show a session's status, counters and pages."""
    conn = get_connection()
    init_db(conn)
    try:
        session = get_session(conn, session_id)
        if session is None:
            typer.echo(f"[crawl show] Session not found: {session_id}", err=True)
            raise typer.Exit(1)
        pages = list_pages(conn, session_id)
        artifacts = get_artifacts(conn, session_id)
    finally:
        conn.close()

    if as_json:
        payload = {**session.to_dict(), "pages": [p.to_dict() for p in pages], "artifacts": artifacts}
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Session  : {session.id}")
    typer.echo(f"Entry URL: {session.entry_url}")
    typer.echo(f"Status   : {session.status}")
    if session.error:
        typer.echo(f"Error    : {session.error}")
    typer.echo(f"Pages    : {session.pages_crawled}/{session.page_budget}")
    if session.quality_score is not None:
        typer.echo(f"Quality  : {session.quality_score}/100")
    if session.data_sources:
        typer.echo(f"Sources  : {', '.join(session.data_sources)}")
    if session.canonical_company_id:
        typer.echo(f"Company  : {session.canonical_company_id}  (graph v{session.graph_version})")
    for page in pages:
        typer.echo(f"  {page.position:3d}  [{page.status_code}]  {page.url}  {page.title!r}")


@crawl_app.command("list")
def crawl_list(limit: int = typer.Option(20, help="Number of sessions to show.")) -> None:
    """List the most recent sessions."""
    conn = get_connection()
    init_db(conn)
    try:
        sessions = list_sessions(conn, limit=limit)
    finally:
        conn.close()
    if not sessions:
        typer.echo("[crawl list] No sessions found.")
        return
    for s in sessions:
        score = "-" if s.quality_score is None else s.quality_score
        typer.echo(f"  {s.id}  [{s.status}]  score={score}  {s.entry_url}")
