"""Commands for browsing the canonical company registry."""

from __future__ import annotations

import json
from typing import Optional

import typer

from siteintel.db import get_connection, init_db
from siteintel.db.companies import find_company, get_company, get_graph, list_companies
from siteintel.db.models import CanonicalCompanyRecord
from siteintel.graph.models import KnowledgeGraph

from cli.rendering import render_insights, render_tree

company_app = typer.Typer(help="Browse canonical companies and their knowledge graphs.", no_args_is_help=True)


def _resolve(conn, ref: str) -> Optional[CanonicalCompanyRecord]:
    """Accept either a company id or a name (resolved through aliases)."""
    return get_company(conn, ref) or find_company(conn, ref)


@company_app.command("list")
def company_list() -> None:
    """List every canonical company."""
    conn = get_connection()
    init_db(conn)
    try:
        companies = list_companies(conn)
    finally:
        conn.close()
    if not companies:
        typer.echo("[company list] No companies found.")
        return
    for c in companies:
        typer.echo(f"  {c.id}  {c.display_name!r}  score={c.quality_score}  sources={','.join(c.data_sources)}")


@company_app.command("show")
def company_show(
    ref: str = typer.Argument(..., help="Company id or name."),
    as_json: bool = typer.Option(False, "--json", help="Print the full record as JSON."),
) -> None:
    """Show one canonical company record."""
    conn = get_connection()
    init_db(conn)
    try:
        record = _resolve(conn, ref)
    finally:
        conn.close()
    if record is None:
        typer.echo(f"[company show] No company matches {ref!r}.", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(record.to_dict(), indent=2))
        return

    typer.echo(f"Company : {record.display_name}  ({record.id})")
    typer.echo(f"Name key: {record.normalized_name}")
    typer.echo(f"Aliases : {', '.join(record.aliases) or '(none)'}")
    typer.echo(f"Sources : {', '.join(record.data_sources) or '(none)'}")
    typer.echo(f"Quality : {record.quality_score}/100")
    typer.echo(f"Sessions: {len(record.provenance)}")
    for platform, url in record.platform_urls.items():
        typer.echo(f"  {platform:<9} {url}")


@company_app.command("graph")
def company_graph(
    ref: str = typer.Argument(..., help="Company id or name."),
    version: Optional[int] = typer.Option(None, "--version", "-v", help="Graph version (default: latest)."),
    format: str = typer.Option("tree", "--format", help="Output format: tree | json"),
) -> None:
    """Display a company's knowledge graph."""
    conn = get_connection()
    init_db(conn)
    try:
        record = _resolve(conn, ref)
        stored = get_graph(conn, record.id, version) if record else None
    finally:
        conn.close()
    if record is None:
        typer.echo(f"[company graph] No company matches {ref!r}.", err=True)
        raise typer.Exit(1)
    if stored is None:
        typer.echo(f"[company graph] No graph stored for {record.display_name!r}.", err=True)
        raise typer.Exit(1)

    if format == "json":
        typer.echo(json.dumps(stored.graph, indent=2))
        return
    if format != "tree":
        typer.echo(f"[company graph] Unknown format {format!r}. Use: tree | json", err=True)
        raise typer.Exit(2)

    graph = KnowledgeGraph.from_dict(stored.graph)
    typer.echo(f"Graph v{stored.version} ({len(graph.nodes)} nodes, {len(graph.edges)} edges)")
    typer.echo(render_tree(graph))
    insights = render_insights(graph)
    if insights:
        typer.echo("")
        typer.echo(insights)
