"""Deterministic knowledge-graph construction from a :class:`MergedCompany`.

The graph is a star: the ``company`` root is node 0 and every other node has
exactly one edge, from the root.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Sequence

from siteintel.graph.models import ROOT_ID, GraphEdge, GraphNode, Insights, KnowledgeGraph
from siteintel.parser.document import split_sentences
from siteintel.registry.merge import MergedCompany

logger = logging.getLogger(__name__)

MAX_TOP_USPS = 5
MAX_BENEFIT_CHAINS = 3
PROOF_LABEL_CHARS = 50

# (objection key, source list, keyword pattern or None for "all items").
OBJECTION_RULES: list[tuple[str, str, re.Pattern[str] | None]] = [
    ("too_expensive", "usps", re.compile(r"value|affordable|\broi\b|save|saving|price")),
    ("not_sure_if_right_fit", "audiences", None),
    ("need_more_info", "ctas", re.compile(r"learn|discover|info|contact|call|demo|more")),
    ("no_time", "usps", re.compile(r"flexible|easy|minutes|simple|part-time")),
    ("is_it_legit", "usps", re.compile(r"proven|trusted|certified|guarantee|years")),
]


def _star(
    graph: KnowledgeGraph,
    items: Sequence[Any],
    *,
    prefix: str,
    node_type: str,
    relationship: str,
    edge_stem: str,
    label: Callable[[Any], str],
    properties: Callable[[Any], dict[str, Any]] = lambda _item: {},
) -> None:
    for i, item in enumerate(items):
        node_id = f"{prefix}_{i}"
        graph.nodes.append(GraphNode(id=node_id, type=node_type, label=label(item), properties=properties(item)))
        graph.edges.append(
            GraphEdge(id=f"company_{edge_stem}_{i}", source=ROOT_ID, target=node_id, relationship=relationship)
        )


def _first_sentence(text: str) -> str:
    sentences = split_sentences(text or "")
    return sentences[0] if sentences else ""


def build_insights(company: MergedCompany) -> Insights:
    positioning = _first_sentence(company.positioning) or _first_sentence(company.description)
    top_usps = company.unique_selling_points[:MAX_TOP_USPS]

    sources = {"usps": top_usps, "audiences": company.target_audiences, "ctas": company.ctas}
    objection_map = {
        key: [item for item in sources[source] if pattern is None or pattern.search(item.lower())]
        for key, source, pattern in OBJECTION_RULES
    }

    solutions = [
        company.products[i].name if i < len(company.products) else company.services[i].name
        for i in range(max(len(company.products), len(company.services)))
    ]
    chains = [
        {"pain": pain, "solution": solution, "benefit": benefit}
        for pain, solution, benefit in zip(company.pain_points, solutions, company.unique_selling_points)
    ][:MAX_BENEFIT_CHAINS]

    return Insights(
        positioning_summary=positioning,
        top_unique_selling_points=top_usps,
        objection_map=objection_map,
        benefit_chains=chains,
    )


def build_knowledge_graph(company: MergedCompany) -> KnowledgeGraph:
    """Build the star-shaped knowledge graph for *company*."""
    graph = KnowledgeGraph()
    root_properties: dict[str, Any] = {
        "description": company.description,
        "industry": company.industry,
        "mission": company.mission,
        "brand_tone": company.brand_tone,
    }
    if company.summaries:
        root_properties["summaries"] = dict(company.summaries)
    graph.nodes.append(GraphNode(id=ROOT_ID, type="company", label=company.display_name, properties=root_properties))

    _star(
        graph, company.products, prefix="product", node_type="product",
        relationship="has_product", edge_stem="has_product",
        label=lambda p: p.name,
        properties=lambda p: {"description": p.description, "category": p.category, "price": p.price},
    )
    _star(
        graph, company.services, prefix="service", node_type="service",
        relationship="offers_service", edge_stem="offers_service",
        label=lambda s: s.name,
        properties=lambda s: {"description": s.description},
    )
    _star(
        graph, company.unique_selling_points, prefix="usp", node_type="benefit",
        relationship="offers_benefit", edge_stem="offers_benefit", label=str,
    )
    _star(
        graph, company.pain_points, prefix="pain", node_type="pain_point",
        relationship="solves_pain_point", edge_stem="solves_pain", label=str,
    )
    _star(
        graph, company.target_audiences, prefix="audience", node_type="target_audience",
        relationship="targets_audience", edge_stem="targets", label=str,
    )
    _star(
        graph, company.social_proof, prefix="proof", node_type="testimonial",
        relationship="has_social_proof", edge_stem="has_proof",
        label=lambda p: p["text"][:PROOF_LABEL_CHARS],
        properties=lambda p: {"full_text": p["text"], "rating": p.get("rating"), "type": p.get("type")},
    )
    _star(
        graph, company.ctas, prefix="cta", node_type="call_to_action",
        relationship="uses_cta", edge_stem="uses_cta", label=str,
    )

    for platform, url in company.channels.items():
        if not url:
            continue
        node_id = f"channel_{platform}"
        graph.nodes.append(GraphNode(id=node_id, type="channel", label=platform, properties={"url": url}))
        graph.edges.append(
            GraphEdge(
                id=f"company_uses_channel_{platform}",
                source=ROOT_ID,
                target=node_id,
                relationship="uses_channel",
            )
        )

    graph.insights = build_insights(company)
    logger.info("[GRAPH] %s: %d node(s), %d edge(s)", company.display_name, len(graph.nodes), len(graph.edges))
    return graph
