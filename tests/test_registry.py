"""Tests for name normalization, the multi-source merge and the canonical registry.

Registry tests run against an in-memory SQLite database (see ``conn`` in
conftest.py).
"""

from __future__ import annotations

import pytest

from siteintel.db.companies import (
    find_company,
    get_company,
    get_graph,
    list_companies,
    list_graph_versions,
    save_graph_version,
    search_company_graph,
    upsert_company,
)
from siteintel.graph import build_knowledge_graph
from siteintel.parser.models import (
    BrandVoice,
    CallToAction,
    Identity,
    PlatformProfile,
    Service,
    SiteProfile,
)
from siteintel.registry import generate_aliases, merge_sources, normalize_name, strip_legal_suffix
from siteintel.registry.merge import UNKNOWN_COMPANY, MergedCompany
from siteintel.registry.names import lookup_keys


def _merged(name: str, **kwargs) -> MergedCompany:
    return MergedCompany(company_name=name, normalized_name=normalize_name(name), **kwargs)


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

class TestNames:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("  Acme,  Inc. ", "acme inc"),
            ("ACME", "acme"),
            ("Blue-Ocean & Co.", "blueocean co"),
            ("", ""),
        ],
    )
    def test_normalize_name(self, raw: str, expected: str) -> None:
        assert normalize_name(raw) == expected

    def test_strip_legal_suffix(self) -> None:
        assert strip_legal_suffix("acme co ltd") == "acme"
        assert strip_legal_suffix("acme labs") == "acme labs"
        assert strip_legal_suffix("inc") == "inc"

    def test_generate_aliases(self) -> None:
        assert generate_aliases("Acme Inc.") == ["acmeinc", "acme"]
        assert generate_aliases("Blue Ocean Trading Co") == [
            "blueoceantradingco",
            "blue ocean trading",
            "blue",
            "blue ocean",
        ]
        assert generate_aliases("Acme") == []
        assert generate_aliases("...") == []

    def test_lookup_keys(self) -> None:
        assert lookup_keys("Acme Inc.") == ["acme inc", "acme"]
        assert lookup_keys("Acme") == ["acme"]


# ---------------------------------------------------------------------------
# Multi-source merge
# ---------------------------------------------------------------------------

def _website(**identity) -> SiteProfile:
    return SiteProfile(
        entry_url="https://acme.test",
        identity=Identity(**identity),
        services=[Service("Coaching")],
        ctas=[CallToAction("Join Now", "signup")],
        brand_voice=BrandVoice(primary_tone="friendly"),
        social_links={"facebook": "https://facebook.com/acme-footer", "instagram": "https://instagram.com/acme"},
    )


def _platforms() -> dict[str, PlatformProfile]:
    return {
        "facebook": PlatformProfile(
            "facebook", "https://facebook.com/acme", name="Acme Official",
            description="Facebook description.", mission="Feed the world.",
        ),
        "linkedin": PlatformProfile(
            "linkedin", "https://linkedin.com/company/acme", name="Acme Corporation",
            description="Leading wellness brand. Based in Manila.", industry="Wellness",
            services=["coaching", "Consulting"],
        ),
        "youtube": PlatformProfile(
            "youtube", "https://youtube.com/@acme", name="Acme TV", ctas=["Subscribe for recipes"],
        ),
    }


class TestMergeSources:
    def test_website_wins_for_name(self) -> None:
        merged = merge_sources(_website(company_name="Acme Inc."), _platforms())
        assert merged.company_name == "Acme Inc."
        assert merged.normalized_name == "acme inc"

    def test_platform_fills_missing_website_fields(self) -> None:
        merged = merge_sources(_website(), _platforms())
        assert merged.company_name == "Acme Official"
        # description: website, then linkedin before facebook
        assert merged.description == "Leading wellness brand. Based in Manila."
        assert merged.mission == "Feed the world."

    def test_website_description_falls_back_to_about(self) -> None:
        merged = merge_sources(_website(about="About Acme."), _platforms())
        assert merged.description == "About Acme."

    def test_industry_prefers_linkedin(self) -> None:
        assert merge_sources(_website(), _platforms()).industry == "Wellness"
        assert merge_sources(_website(), {}).industry == "friendly"

    def test_positioning(self) -> None:
        assert merge_sources(_website(tagline="Wellness for all"), _platforms()).positioning == "Wellness for all"
        assert merge_sources(_website(), _platforms()).positioning == "Leading wellness brand."
        assert merge_sources(_website(), {}).positioning == ""

    def test_services_and_ctas_concatenate_in_source_order(self) -> None:
        merged = merge_sources(_website(), _platforms())
        assert [s.name for s in merged.services] == ["Coaching", "Consulting"]
        assert merged.ctas == ["Join Now", "Subscribe for recipes"]

    def test_channels_and_data_sources(self) -> None:
        merged = merge_sources(_website(), _platforms())
        assert list(merged.channels) == ["website", "facebook", "youtube", "linkedin", "instagram"]
        assert merged.channels["facebook"] == "https://facebook.com/acme"
        assert merged.data_sources == ["website", "facebook", "youtube", "linkedin"]

    def test_without_website(self) -> None:
        merged = merge_sources(None, {"linkedin": _platforms()["linkedin"]})
        assert merged.company_name == "Acme Corporation"
        assert merged.data_sources == ["linkedin"]
        assert merged.products == []

    def test_name_fallbacks(self) -> None:
        assert merge_sources(SiteProfile(), fallback_name="acme.test").company_name == "acme.test"
        assert merge_sources(SiteProfile()).company_name == UNKNOWN_COMPANY


# ---------------------------------------------------------------------------
# Canonical registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_create_and_find(self, conn) -> None:
        record = upsert_company(conn, _merged("Acme Inc.", data_sources=["website"]), session_id="s1", quality_score=40)

        assert record.display_name == "Acme Inc."
        assert record.normalized_name == "acme inc"
        assert record.aliases == ["acmeinc", "acme"]
        assert record.quality_score == 40
        assert find_company(conn, "ACME, Inc").id == record.id
        assert find_company(conn, "acmeinc").id == record.id
        assert find_company(conn, "Acme Ltd").id == record.id
        assert find_company(conn, "Globex") is None
        assert find_company(conn, "") is None

    def test_acme_inc_then_acme_is_one_company(self, conn) -> None:
        first = upsert_company(conn, _merged("Acme Inc.", data_sources=["website"]), session_id="s1")
        second = upsert_company(
            conn, _merged("Acme", data_sources=["website", "facebook"]), session_id="s2"
        )

        assert second.id == first.id
        assert len(list_companies(conn)) == 1
        assert [p["session_id"] for p in second.provenance] == ["s1", "s2"]
        assert [p["observed_name"] for p in second.provenance] == ["Acme Inc.", "Acme"]
        assert second.data_sources == ["website", "facebook"]
        assert second.display_name == "Acme"

    def test_upsert_is_idempotent(self, conn) -> None:
        merged = _merged("Acme Inc.", data_sources=["website"])
        first = upsert_company(conn, merged, session_id="s1")
        again = upsert_company(conn, merged, session_id="s1")

        assert again.id == first.id
        assert len(list_companies(conn)) == 1
        assert len(again.provenance) == 1
        assert again.aliases == first.aliases

    def test_claimed_alias_keeps_its_owner(self, conn) -> None:
        acme = upsert_company(conn, _merged("Acme Inc."))
        labs = upsert_company(conn, _merged("Acme Labs"))

        assert labs.id != acme.id
        assert "acme" not in labs.aliases
        assert find_company(conn, "Acme").id == acme.id
        assert find_company(conn, "Acme Labs").id == labs.id

    def test_platform_urls_accumulate(self, conn) -> None:
        upsert_company(conn, _merged("Acme", channels={"website": "https://acme.test"}))
        record = upsert_company(conn, _merged("Acme", channels={"facebook": "https://facebook.com/acme"}))
        assert record.platform_urls == {"website": "https://acme.test", "facebook": "https://facebook.com/acme"}

    def test_profile_extra_is_stored(self, conn) -> None:
        record = upsert_company(conn, _merged("Acme"), profile_extra={"structure": {"detected": True}})
        assert get_company(conn, record.id).profile["structure"] == {"detected": True}
        assert record.profile["company_name"] == "Acme"


class TestGraphVersions:
    def test_versions_increase_and_are_retained(self, conn) -> None:
        company = _merged("Acme", products=[])
        record = upsert_company(conn, company)
        graph = build_knowledge_graph(company)

        assert save_graph_version(conn, record.id, graph) == 1
        assert save_graph_version(conn, record.id, graph) == 2
        assert list_graph_versions(conn, record.id) == [1, 2]
        assert get_graph(conn, record.id).version == 2
        assert get_graph(conn, record.id, version=1).graph["nodes"][0]["id"] == "company"
        assert get_graph(conn, record.id, version=3) is None
        assert get_graph(conn, "missing") is None

    def test_search_latest_graph(self, conn) -> None:
        company = _merged("Acme", ctas=["Join the club"])
        record = upsert_company(conn, company)
        save_graph_version(conn, record.id, build_knowledge_graph(company))

        assert [n.id for n in search_company_graph(conn, record.id, "club")] == ["cta_0"]
        assert search_company_graph(conn, "missing", "club") == []
