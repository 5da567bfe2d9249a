"""Utilities for rendering knowledge graphs and sessions in the CLI."""

from __future__ import annotations

from typing import Any

from siteintel.graph.models import ROOT_ID, KnowledgeGraph

_ICONS = {
    "company": "🏢",
    "product": "📦",
    "service": "🛠️",
    "benefit": "✨",
    "pain_point": "⚠️",
    "target_audience": "👥",
    "testimonial": "⭐",
    "call_to_action": "👉",
    "channel": "📡",
}


def _icon(node_type: str) -> str:
    return _ICONS.get(node_type, "•")


def render_tree(graph: KnowledgeGraph, root_id: str = ROOT_ID) -> str:
    """Render a star-shaped knowledge graph as an ASCII tree.

    Children are grouped under the root in edge order, each line carrying
    the relationship label::

        🏢 Acme
        ├── [has_product] 📦 Widget
        └── [targets_audience] 👥 small businesses
    """
    root = graph.node(root_id)
    if root is None:
        return "Root node not found in graph."

    children = [
        (edge.relationship, graph.node(edge.target))
        for edge in graph.edges
        if edge.source == root_id
    ]
    children = [(rel, node) for rel, node in children if node is not None]

    lines = [f"{_icon(root.type)} {root.label}"]
    for i, (relationship, node) in enumerate(children):
        connector = "└── " if i == len(children) - 1 else "├── "
        lines.append(f"{connector}[{relationship}] {_icon(node.type)} {node.label}")
    return "\n".join(lines)


def render_insights(graph: KnowledgeGraph) -> str:
    insights = graph.insights
    lines = []
    if insights.positioning_summary:
        lines.append(f"Positioning : {insights.positioning_summary}")
    for usp in insights.top_unique_selling_points:
        lines.append(f"  USP       : {usp}")
    for objection, answers in insights.objection_map.items():
        lines.append(f"  Objection : {objection} → {len(answers)} answer(s)")
    return "\n".join(lines)


def render_progress(event: Any) -> str:
    """One log line for a progress event."""
    bar_width = 20
    filled = bar_width * event.progress_percent // 100
    bar = "█" * filled + "░" * (bar_width - filled)
    return f"[{event.stage:<9}] {bar} {event.progress_percent:3d}%  {event.message}"
