"""Tests for business-structure detection, form detection and the lead-flow graph."""

from __future__ import annotations

import pytest

from siteintel.config import settings
from siteintel.crawler.models import PageSnapshot
from siteintel.detectors import rules
from siteintel.detectors.forms import (
    DetectedForm,
    FormField,
    barrier_score,
    classify_form,
    complexity_score,
    detect_forms,
)
from siteintel.detectors.leadflow import build_lead_flow, node_kind, summarize_lead_strategy
from siteintel.detectors.structure import BusinessStructure, detect_structure


# ---------------------------------------------------------------------------
# Business structure
# ---------------------------------------------------------------------------

class TestDetectStructure:
    def test_binary_plan_scenario(self) -> None:
        found = detect_structure("Our Binary Compensation Plan pays you on your whole downline.")
        assert found.detected is True
        assert found.plan_type == "binary"
        assert found.confidence >= 20
        assert set(found.matched_keywords) == {"downline", "compensation plan"}

    def test_absent_means_zero_confidence_and_empty_lists(self) -> None:
        found = detect_structure("We sell gold jewelry with a matching bonus and a free cruise.")
        assert found == BusinessStructure()
        assert found.confidence == 0
        assert found.ranks == found.bonuses == found.incentives == []

    def test_unilevel_with_ranks_bonuses_and_incentives(self) -> None:
        text = (
            "Our unilevel pay plan rewards Silver and Gold leaders with a fast start bonus "
            "and a travel incentive every year."
        )
        found = detect_structure(text)
        assert found.plan_type == "unilevel"
        assert found.ranks == ["silver", "gold"]
        assert found.bonuses == ["fast start bonus"]
        assert found.incentives == ["travel incentive"]
        # base 20 + one extra presence 5 + plan type 20 + ranks 10 + bonus 5 + incentive 5
        assert found.confidence == 65

    def test_plan_type_priority(self) -> None:
        assert detect_structure("A hybrid compensation plan.").plan_type == "hybrid"
        assert detect_structure("A forced matrix and a unilevel comp plan.").plan_type == "unilevel"
        assert detect_structure("Grow your downline.").plan_type == "unspecified"

    def test_ranks_are_whole_words(self) -> None:
        found = detect_structure("Join our downline as one of our distributors.")
        assert "distributor" not in found.ranks

    def test_confidence_is_capped(self) -> None:
        text = " ".join(
            rules.PRESENCE_KEYWORDS + rules.RANK_NAMES + rules.BONUS_PHRASES + rules.INCENTIVE_PHRASES
        )
        assert detect_structure(text).confidence == 100

    def test_round_trip(self) -> None:
        found = detect_structure("binary plan downline")
        assert BusinessStructure.from_dict(found.to_dict()) == found


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

_JOIN_FORM = """\
<h2>Join our team</h2>
<form action="/enroll" method="POST" id="signup">
  <label for="fn">First name</label><input id="fn" name="first_name" required>
  <input type="email" name="email" required placeholder="Email">
  <input type="tel" name="phone">
  <select name="country"><option>PH</option></select>
  <input type="hidden" name="token" value="x">
  <button type="submit">Become a Member</button>
</form>
"""


class TestDetectForms:
    def test_join_form_fields_and_scores(self) -> None:
        (form,) = detect_forms(_JOIN_FORM, "https://acme.test/join")

        assert form.form_type == "lead_capture"
        assert form.cta_text == "Become a Member"
        assert form.action == "/enroll"
        assert form.method == "post"
        assert [(f.name, f.kind, f.required) for f in form.fields] == [
            ("first_name", "text", True),
            ("email", "email", True),
            ("phone", "phone", False),
            ("country", "select", False),
        ]
        assert form.fields[0].label == "First name"
        assert form.fields[1].label == "Email"
        # 4 fields x5 + 2 required x5 + select bonus 5
        assert form.complexity_score == 35
        # tier (>3 fields) 15 + required 10 + lead_capture penalty 10
        assert form.barrier_score == 35

    def test_password_means_login(self) -> None:
        html = '<form><input name="user"><input type="password" name="pw" required><input type="submit" value="Log in"></form>'
        (form,) = detect_forms(html, "https://acme.test")
        assert form.form_type == "login"
        assert form.cta_text == "Log in"
        assert form.barrier_score == 5 + 5 + 10

    def test_textarea_means_contact_and_heading_is_cta(self) -> None:
        html = '<h3>Get in touch</h3><form><input name="name"><textarea name="msg"></textarea></form>'
        (form,) = detect_forms(html, "https://acme.test/contact")
        assert form.form_type == "contact"
        assert form.cta_text == "Get in touch"

    def test_checkout_and_newsletter(self) -> None:
        html = (
            '<form><input name="card" required><button>Pay now</button></form>'
            '<form><input type="email" name="email"><button>Subscribe</button></form>'
        )
        checkout, newsletter = detect_forms(html, "https://acme.test/shop")
        assert checkout.form_type == "checkout"
        assert newsletter.form_type == "newsletter"

    def test_cta_defaults_to_submit(self) -> None:
        (form,) = detect_forms('<form><input name="q"></form>', "https://acme.test")
        assert form.cta_text == "Submit"
        assert form.form_type == "other"

    def test_forms_without_fields_are_skipped(self) -> None:
        assert detect_forms('<form><input type="submit" value="Go"></form>', "https://acme.test") == []

    def test_respects_max_forms(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "max_forms", 2)
        html = '<form><input name="a"></form>' * 3
        assert len(detect_forms(html, "https://acme.test")) == 2

    def test_round_trip(self) -> None:
        (form,) = detect_forms(_JOIN_FORM, "https://acme.test/join")
        assert DetectedForm.from_dict(form.to_dict()) == form


class TestScores:
    _FIELDS = [FormField("name", required=True), FormField("email", "email", True), FormField("phone", "phone")]

    def test_barrier_orders_checkout_over_lead_capture(self) -> None:
        checkout = barrier_score(self._FIELDS, "checkout")
        lead = barrier_score(self._FIELDS, "lead_capture")
        other = barrier_score(self._FIELDS, "other")
        assert checkout > lead > other

    def test_long_checkout_is_a_higher_barrier_than_short_newsletter(self) -> None:
        checkout = [FormField(f"field_{i}", required=True) for i in range(12)]
        newsletter = [FormField("name", required=True), FormField("email", "email", True)]
        assert barrier_score(checkout, "checkout") == 90
        assert barrier_score(newsletter, "newsletter") == 15
        assert barrier_score(checkout, "checkout") > barrier_score(newsletter, "newsletter")

    def test_more_fields_never_lower_barrier(self) -> None:
        few = barrier_score(self._FIELDS, "other")
        many = barrier_score(self._FIELDS * 4, "other")
        assert many > few

    def test_scores_are_capped(self) -> None:
        fields = [FormField(f"f{i}", "password", True) for i in range(30)]
        assert complexity_score(fields) == 80
        assert barrier_score(fields, "checkout") == 100

    @pytest.mark.parametrize(
        ("cta", "fields", "expected"),
        [
            ("Sign in", [FormField("u")], "login"),
            ("Enroll today", [FormField("u")], "lead_capture"),
            ("Checkout", [FormField("u")], "checkout"),
            ("Subscribe", [FormField("u"), FormField("v"), FormField("w")], "other"),
            ("Send message", [FormField("u")], "contact"),
        ],
    )
    def test_classify(self, cta: str, fields: list[FormField], expected: str) -> None:
        assert classify_form(cta, fields) == expected


# ---------------------------------------------------------------------------
# Lead flow
# ---------------------------------------------------------------------------

def _snapshot(url: str, html: str, title: str = "") -> PageSnapshot:
    return PageSnapshot(url=url, status_code=200, html=html, title=title)


class TestLeadFlow:
    def _session(self) -> tuple[list[PageSnapshot], list[DetectedForm]]:
        home = _snapshot(
            "https://acme.test",
            '<a href="/join">Join</a><a href="/products">Shop</a><a href="/about"></a>'
            '<a href="https://other.test/join">Partner</a>',
            "Home",
        )
        join = _snapshot("https://acme.test/join", '<a href="/">Home</a>' + _JOIN_FORM, "Join")
        products = _snapshot(
            "https://acme.test/products",
            '<a href="/products">Products</a><form><input name="card"><button>Buy now</button></form>',
            "Products",
        )
        pages = [home, join, products]
        forms = [f for p in pages for f in detect_forms(p.html, p.url)]
        return pages, forms

    def test_nodes_take_most_committed_kind(self) -> None:
        pages, forms = self._session()
        graph = build_lead_flow(pages, forms)

        assert [(n.page_url, n.kind) for n in graph.nodes] == [
            ("https://acme.test", "info"),
            ("https://acme.test/join", "join_form"),
            ("https://acme.test/products", "checkout"),
        ]
        assert graph.entry_points == ["https://acme.test"]
        assert graph.conversion_points == ["https://acme.test/join", "https://acme.test/products"]
        assert graph.complexity_rating == "moderate"

    def test_edges_allow_cycles_and_skip_unknown_and_self_links(self) -> None:
        pages, forms = self._session()
        graph = build_lead_flow(pages, forms)

        assert [(e.from_url, e.to_url, e.link_text) for e in graph.edges] == [
            ("https://acme.test", "https://acme.test/join", "Join"),
            ("https://acme.test", "https://acme.test/products", "Shop"),
            ("https://acme.test/join", "https://acme.test", "Home"),
        ]

    def test_pages_with_forms_are_always_nodes(self) -> None:
        form = DetectedForm(page_url="https://acme.test/contact/", form_type="contact")
        graph = build_lead_flow([], [form])
        assert graph.node("https://acme.test/contact").kind == "lead_form"

    def test_node_kind(self) -> None:
        assert node_kind([]) == "info"
        assert node_kind([DetectedForm("u", "login")]) == "info"
        assert node_kind([DetectedForm("u", "contact"), DetectedForm("u", "lead_capture")]) == "join_form"

    def test_summary(self) -> None:
        pages, forms = self._session()
        graph = build_lead_flow(pages, forms)
        assert summarize_lead_strategy([], graph).startswith("No lead capture forms detected")
        assert "1 lead capture form(s)" in summarize_lead_strategy(forms, graph)
