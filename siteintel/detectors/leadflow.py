"""Session-level lead-flow graph: pages as nodes, in-page links as edges.

The graph may contain cycles (navigation loops are normal); consumers must
not assume a DAG.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

from siteintel.crawler.frontier import extract_links
from siteintel.crawler.models import PageSnapshot
from siteintel.crawler.urls import canonicalize
from siteintel.detectors import rules
from siteintel.detectors.forms import DetectedForm

logger = logging.getLogger(__name__)


@dataclass
class LeadFlowNode:
    page_url: str
    kind: str = "info"
    description: str = ""


@dataclass
class LeadFlowEdge:
    from_url: str
    to_url: str
    link_text: str


@dataclass
class LeadFlowGraph:
    nodes: list[LeadFlowNode] = field(default_factory=list)
    edges: list[LeadFlowEdge] = field(default_factory=list)

    @property
    def entry_points(self) -> list[str]:
        return [n.page_url for n in self.nodes if n.kind == "info"]

    @property
    def conversion_points(self) -> list[str]:
        return [n.page_url for n in self.nodes if n.kind in ("join_form", "checkout")]

    @property
    def complexity_rating(self) -> str:
        count = len(self.nodes)
        if count > 5:
            return "complex"
        if count > 2:
            return "moderate"
        return "simple"

    def node(self, url: str) -> LeadFlowNode | None:
        return next((n for n in self.nodes if n.page_url == url), None)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["entry_points"] = self.entry_points
        data["conversion_points"] = self.conversion_points
        data["complexity_rating"] = self.complexity_rating
        return data


def node_kind(forms: Sequence[DetectedForm]) -> str:
    """The most committed node kind among *forms*, ``info`` when none."""
    kinds = [rules.NODE_KIND_BY_FORM_TYPE.get(f.form_type, "info") for f in forms]
    return max(kinds, key=rules.NODE_KIND_RANK.__getitem__, default="info")


def build_lead_flow(pages: Sequence[PageSnapshot], forms: Sequence[DetectedForm]) -> LeadFlowGraph:
    """Build the lead-flow graph for one session.

    Every page becomes a node, and so does every page that carries a form even
    if it is not among *pages*.  An edge is added for each link with visible
    text whose canonical target is a known node.  Self links are skipped and
    duplicate edges collapsed.
    """
    forms_by_page: dict[str, list[DetectedForm]] = {}
    for form in forms:
        forms_by_page.setdefault(canonicalize(form.page_url), []).append(form)

    graph = LeadFlowGraph()
    known: dict[str, LeadFlowNode] = {}

    def _add_node(url: str, title: str = "") -> None:
        if url in known:
            return
        page_forms = forms_by_page.get(url, [])
        kind = node_kind(page_forms)
        if page_forms:
            description = f"{title or url}: " + ", ".join(f.form_type for f in page_forms)
        else:
            description = title or url
        known[url] = LeadFlowNode(page_url=url, kind=kind, description=description)
        graph.nodes.append(known[url])

    for page in pages:
        _add_node(canonicalize(page.url), page.title)
    for url in forms_by_page:
        _add_node(url)

    seen_edges: set[tuple[str, str]] = set()
    for page in pages:
        source = canonicalize(page.url)
        for target, text in extract_links(page.html, page.url):
            if not text or target == source or target not in known:
                continue
            if (source, target) in seen_edges:
                continue
            seen_edges.add((source, target))
            graph.edges.append(LeadFlowEdge(from_url=source, to_url=target, link_text=text))

    logger.info(
        "[FORMS] Lead flow: %d node(s), %d edge(s), rating=%s",
        len(graph.nodes), len(graph.edges), graph.complexity_rating,
    )
    return graph


def summarize_lead_strategy(forms: Sequence[DetectedForm], graph: LeadFlowGraph) -> str:
    """One-line description of how the site captures leads."""
    if not forms:
        return "No lead capture forms detected. Company may rely on other channels."
    lead_forms = sum(1 for f in forms if f.form_type == "lead_capture")
    avg_barrier = sum(f.barrier_score for f in forms) / len(forms)
    level = "high" if avg_barrier > 60 else "moderate" if avg_barrier > 30 else "low"
    return (
        f"Company uses {lead_forms} lead capture form(s) with {level} barrier to entry. "
        f"{len(graph.nodes)} step funnel."
    )
