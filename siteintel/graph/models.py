"""Knowledge-graph data model and read-side helpers."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

ROOT_ID = "company"


@dataclass
class GraphNode:
    id: str
    type: str
    label: str
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    relationship: str


@dataclass
class Insights:
    positioning_summary: str = ""
    top_unique_selling_points: list[str] = field(default_factory=list)
    objection_map: dict[str, list[str]] = field(default_factory=dict)
    benefit_chains: list[dict[str, str]] = field(default_factory=list)


@dataclass
class KnowledgeGraph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    insights: Insights = field(default_factory=Insights)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def node(self, node_id: str) -> GraphNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def nodes_by_type(self, node_type: str) -> list[GraphNode]:
        return [n for n in self.nodes if n.type == node_type]

    def connected_nodes(self, node_id: str) -> list[GraphNode]:
        """Nodes sharing an edge with *node_id*, in node order."""
        neighbours = {
            e.target if e.source == node_id else e.source
            for e in self.edges
            if node_id in (e.source, e.target)
        }
        return [n for n in self.nodes if n.id in neighbours]

    def search(self, query: str) -> list[GraphNode]:
        """Case-insensitive substring search over labels and properties."""
        needle = query.lower()
        return [
            n
            for n in self.nodes
            if needle in n.label.lower() or needle in json.dumps(n.properties).lower()
        ]

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KnowledgeGraph":
        return cls(
            nodes=[GraphNode(**n) for n in data.get("nodes", [])],
            edges=[GraphEdge(**e) for e in data.get("edges", [])],
            insights=Insights(**data.get("insights", {})),
        )
