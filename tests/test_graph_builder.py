"""Tests for the star-shaped knowledge graph and its derived insights."""

from __future__ import annotations

import pytest

from siteintel.graph import ROOT_ID, KnowledgeGraph, build_insights, build_knowledge_graph
from siteintel.parser.models import Product, Service
from siteintel.registry.merge import MergedCompany


@pytest.fixture()
def company() -> MergedCompany:
    return MergedCompany(
        company_name="Acme",
        normalized_name="acme",
        description="Acme sells wellness products. Founded long ago.",
        products=[Product("Vita Max", category="Supplements", price=29.0), Product("Glow Serum")],
        services=[Service("Coaching", "One to one sessions")],
        unique_selling_points=["Affordable plans that save you money", "Proven results for 10 years"],
        pain_points=["Low energy"],
        target_audiences=["busy parents"],
        social_proof=[{"type": "website_testimonial", "text": "x" * 80, "author": "Ann", "rating": 5.0}],
        ctas=["Learn more", "Join now"],
        channels={"website": "https://acme.test", "facebook": "https://facebook.com/acme", "youtube": ""},
        positioning="Wellness for everyone. Shipped worldwide.",
    )


# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------

class TestTopology:
    def test_root_is_first_node(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        root = graph.nodes[0]
        assert (root.id, root.type, root.label) == (ROOT_ID, "company", "Acme")
        assert root.properties["description"].startswith("Acme sells")

    def test_star_shape(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)

        # root + 2 products + service + 2 usps + pain + audience + proof + 2 ctas + 2 channels
        assert len(graph.nodes) == 13
        assert len(graph.edges) == len(graph.nodes) - 1
        assert all(e.source == ROOT_ID for e in graph.edges)
        targets = [e.target for e in graph.edges]
        assert sorted(targets) == sorted(n.id for n in graph.nodes[1:])

    def test_ids_are_unique(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        node_ids = [n.id for n in graph.nodes]
        edge_ids = [e.id for e in graph.edges]
        assert len(set(node_ids)) == len(node_ids)
        assert len(set(edge_ids)) == len(edge_ids)

    def test_node_and_edge_naming(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        product = graph.node("product_0")
        assert product is not None
        assert product.properties == {"description": "", "category": "Supplements", "price": 29.0}
        assert graph.edges[0].id == "company_has_product_0"
        assert graph.edges[0].relationship == "has_product"
        assert {n.type for n in graph.nodes} == {
            "company", "product", "service", "benefit", "pain_point",
            "target_audience", "testimonial", "call_to_action", "channel",
        }

    def test_proof_label_is_truncated(self, company: MergedCompany) -> None:
        proof = build_knowledge_graph(company).node("proof_0")
        assert proof is not None
        assert len(proof.label) == 50
        assert proof.properties["full_text"] == "x" * 80

    def test_empty_channels_are_skipped(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        assert [n.id for n in graph.nodes_by_type("channel")] == ["channel_website", "channel_facebook"]

    def test_minimal_company_is_root_only(self) -> None:
        graph = build_knowledge_graph(MergedCompany(company_name="acme.test", normalized_name="acmetest"))
        assert [n.id for n in graph.nodes] == [ROOT_ID]
        assert graph.edges == []

    def test_deterministic(self, company: MergedCompany) -> None:
        assert build_knowledge_graph(company).to_dict() == build_knowledge_graph(company).to_dict()


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

class TestInsights:
    def test_positioning_is_first_sentence(self, company: MergedCompany) -> None:
        assert build_insights(company).positioning_summary == "Wellness for everyone."

    def test_positioning_falls_back_to_description(self, company: MergedCompany) -> None:
        company.positioning = ""
        assert build_insights(company).positioning_summary == "Acme sells wellness products."

    def test_objection_map(self, company: MergedCompany) -> None:
        objections = build_insights(company).objection_map
        assert objections == {
            "too_expensive": ["Affordable plans that save you money"],
            "not_sure_if_right_fit": ["busy parents"],
            "need_more_info": ["Learn more"],
            "no_time": [],
            "is_it_legit": ["Proven results for 10 years"],
        }

    def test_benefit_chains(self, company: MergedCompany) -> None:
        chains = build_insights(company).benefit_chains
        assert chains == [
            {"pain": "Low energy", "solution": "Vita Max", "benefit": "Affordable plans that save you money"}
        ]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestQueries:
    def test_search_labels_and_properties(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        assert [n.id for n in graph.search("VITA")] == ["product_0"]
        assert [n.id for n in graph.search("one to one")] == ["service_0"]

    def test_connected_nodes(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        assert [n.id for n in graph.connected_nodes("product_0")] == [ROOT_ID]
        assert len(graph.connected_nodes(ROOT_ID)) == 12

    def test_from_dict(self, company: MergedCompany) -> None:
        graph = build_knowledge_graph(company)
        assert KnowledgeGraph.from_dict(graph.to_dict()) == graph
