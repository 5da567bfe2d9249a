"""Tests for the document parser, per-session aggregation and platform pages.

All tests run on inline HTML fixtures; the OCR service is mocked with
``respx`` or replaced by a fake client.
"""

from __future__ import annotations

import httpx
import pytest
import respx

from siteintel.crawler.models import PageSnapshot
from siteintel.errors import CollaboratorError
from siteintel.parser import aggregate_signals, extract_platform_profile, first_non_empty, parse_page
from siteintel.parser import marketing
from siteintel.parser.document import detect_page_type, extract_keywords, find_sentence
from siteintel.parser.models import CallToAction, ExtractedSignals, Identity, Product
from siteintel.parser.ocr import HttpOcrClient, TextBlock, blocks_to_text, ocr_pages

_HOME_HTML = """\
<html><head>
<title>Acme Wellness | Healthy living made simple</title>
<meta name="description" content="Acme Wellness makes premium supplements for busy families.">
<meta property="og:site_name" content="Acme Wellness">
<meta name="keywords" content="supplements, wellness">
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "Product", "name": "Omega Boost",
 "description": "Fish oil capsules", "offers": {"price": "19.99"}}
</script>
<style>.hero { color: #1A2B3C } .btn { background: #ff6600 }</style>
</head><body>
<nav><a href="/about">About</a><a href="/products">Products</a></nav>
<section class="hero">
  <h1>Feel better every day</h1>
  <p class="tagline">Healthy living made simple</p>
  <a class="btn btn-primary" href="/join">Join Now</a>
</section>
<div class="product-card"><h3>Vita Max</h3><p>Daily vitamin blend for energy. $29.99</p></div>
<div class="product-card"><h3>Glow Serum</h3><p>Skin serum for a radiant glow. $45.00</p></div>
<div class="service-item"><h3>Nutrition Coaching</h3><p>One-on-one sessions.</p></div>
<p>Our mission is to help every family live a healthier life through proven nutrition.</p>
<p>Founded in 2009, Acme has grown across the region.</p>
<blockquote>These vitamins changed my mornings completely, I feel great! <cite>Jane D.</cite></blockquote>
<a href="mailto:hello@acme.test">Email us</a> <a href="tel:+1-555-010-9999">Call</a>
<a href="https://facebook.com/acmewellness">Facebook</a>
<iframe src="https://www.youtube.com/embed/dQw4w9WgXcQ"></iframe>
<img src="/img/hero.jpg" alt="Hero">
<a href="/docs/catalog.pdf">Catalog</a>
</body></html>
"""


@pytest.fixture(scope="module")
def home() -> ExtractedSignals:
    return parse_page(_HOME_HTML, "https://acme.test")


# ---------------------------------------------------------------------------
# parse_page
# ---------------------------------------------------------------------------

class TestParsePageIdentity:
    def test_company_name_from_site_name(self, home) -> None:
        assert home.identity.company_name == "Acme Wellness"

    def test_tagline_from_tagline_element(self, home) -> None:
        assert home.identity.tagline == "Healthy living made simple"

    def test_mission_sentence(self, home) -> None:
        assert home.identity.mission == (
            "Our mission is to help every family live a healthier life through proven nutrition."
        )

    def test_founded_year(self, home) -> None:
        assert home.identity.founded_year == 2009

    def test_contact_from_links(self, home) -> None:
        assert home.identity.contact_email == "hello@acme.test"
        assert home.identity.contact_phone == "+1-555-010-9999"

    def test_description_from_meta(self, home) -> None:
        assert home.identity.description == "Acme Wellness makes premium supplements for busy families."


class TestParsePageCatalog:
    def test_product_cards_then_json_ld(self, home) -> None:
        assert [p.name for p in home.products] == ["Vita Max", "Glow Serum", "Omega Boost"]

    def test_product_price_and_category(self, home) -> None:
        vita, serum, omega = home.products
        assert vita.price == 29.99
        assert vita.category == "Health Supplements"
        assert serum.category == "Skin Care"
        assert omega.price == 19.99
        assert omega.category == "General"

    def test_services(self, home) -> None:
        assert [s.name for s in home.services] == ["Nutrition Coaching"]


class TestParsePageSignals:
    def test_page_type(self, home) -> None:
        assert home.page_type == "home"

    def test_ctas_categorized(self, home) -> None:
        assert home.ctas == [CallToAction(text="Join Now", category="signup")]

    def test_nav_links(self, home) -> None:
        assert home.nav_links == ["About", "Products"]

    def test_social_links(self, home) -> None:
        assert home.social_links == {"facebook": "https://facebook.com/acmewellness"}

    def test_testimonial_with_author(self, home) -> None:
        assert len(home.testimonials) == 1
        assert home.testimonials[0].author == "Jane D."
        assert home.testimonials[0].text == "These vitamins changed my mornings completely, I feel great!"

    def test_brand_colors_uppercased(self, home) -> None:
        assert home.brand_colors == ["#1A2B3C", "#FF6600"]

    def test_media(self, home) -> None:
        assert home.media.images == [{"src": "https://acme.test/img/hero.jpg", "alt": "Hero"}]
        assert home.media.videos[0]["platform"] == "youtube"
        assert home.media.videos[0]["id"] == "dQw4w9WgXcQ"
        assert home.media.documents == ["https://acme.test/docs/catalog.pdf"]

    def test_seo(self, home) -> None:
        assert home.seo.h1s == ["Feel better every day"]
        assert home.seo.meta_keywords == ["supplements", "wellness"]

    def test_scripts_are_not_text(self, home) -> None:
        assert "schema.org" not in home.text
        assert "Feel better every day" in home.text


class TestParsePageRobustness:
    def test_title_prefix_when_no_site_name(self) -> None:
        signals = parse_page("<html><head><title>Beta Corp - Home</title></head></html>", "https://beta.test")
        assert signals.identity.company_name == "Beta Corp"

    def test_h1_when_no_title(self) -> None:
        signals = parse_page("<html><body><h1>Gamma Labs</h1></body></html>", "https://gamma.test")
        assert signals.identity.company_name == "Gamma Labs"

    def test_empty_markup(self) -> None:
        signals = parse_page("", "https://empty.test/about")
        assert signals.page_type == "about"
        assert signals.products == []
        assert signals.identity.company_name is None

    def test_unexpected_error_yields_empty_signals(self, monkeypatch) -> None:
        def _boom(html, url):
            raise RuntimeError("broken parser")

        monkeypatch.setattr("siteintel.parser.document._parse", _boom)
        signals = parse_page(_HOME_HTML, "https://acme.test/products")
        assert signals == ExtractedSignals(url="https://acme.test/products", page_type="products")

    def test_implausible_founded_year_is_ignored(self) -> None:
        signals = parse_page("<p>Founded in 3021 by time travellers.</p>", "https://x.test")
        assert signals.identity.founded_year is None


class TestHelpers:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://acme.test", "home"),
            ("https://acme.test/products/vita-max", "products"),
            ("https://acme.test/about-us", "about"),
            ("https://acme.test/compensation-plan", "compensation"),
            ("https://acme.test/join-now", "opportunity"),
            ("https://acme.test/faq", "other"),
        ],
    )
    def test_detect_page_type(self, url: str, expected: str) -> None:
        assert detect_page_type(url) == expected

    def test_find_sentence_respects_length_window(self) -> None:
        text = "Our mission. Our mission is to make healthy food affordable for everyone."
        assert find_sentence(text, ("mission",)) == "Our mission is to make healthy food affordable for everyone."

    def test_keywords_skip_short_words(self) -> None:
        assert extract_keywords("the widget widget widget is a great tool tools", limit=2) == ["widget", "great"]

    def test_first_non_empty(self) -> None:
        assert first_non_empty([None, "", [], "Acme", "Other"]) == "Acme"
        assert first_non_empty([None, ""]) is None


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

class TestAggregateSignals:
    def _pages(self) -> list[ExtractedSignals]:
        first = ExtractedSignals(
            url="https://acme.test",
            text="Welcome to Acme. We sell widgets.",
            identity=Identity(company_name=None, description="First description"),
            products=[Product(name="Widget")],
            social_links={"facebook": "https://facebook.com/acme"},
        )
        second = ExtractedSignals(
            url="https://acme.test/about",
            text="Acme was founded by makers.",
            identity=Identity(company_name="Acme", description="Second description"),
            products=[Product(name="widget "), Product(name="Gadget")],
            social_links={"facebook": "https://facebook.com/other", "youtube": "https://youtube.com/acme"},
        )
        return [first, second]

    def test_first_non_empty_wins_in_discovery_order(self) -> None:
        profile = aggregate_signals(self._pages(), entry_url="https://acme.test")
        assert profile.identity.company_name == "Acme"
        assert profile.identity.description == "First description"
        assert profile.urls == ["https://acme.test", "https://acme.test/about"]

    def test_products_deduplicated_by_name(self) -> None:
        profile = aggregate_signals(self._pages())
        assert [p.name for p in profile.products] == ["Widget", "Gadget"]

    def test_social_links_first_page_wins(self) -> None:
        profile = aggregate_signals(self._pages())
        assert profile.social_links == {
            "facebook": "https://facebook.com/acme",
            "youtube": "https://youtube.com/acme",
        }

    def test_ocr_text_feeds_marketing_but_not_keywords(self) -> None:
        profile = aggregate_signals(self._pages(), ocr_text="Enjoy a free starter kit with every order.")
        assert "Enjoy a free starter kit with every order." in profile.value_propositions
        assert profile.ocr_text.startswith("Enjoy")
        assert "starter" not in profile.keywords

    def test_no_pages_gives_empty_profile(self) -> None:
        profile = aggregate_signals([])
        assert profile.products == []
        assert profile.identity.company_name is None
        assert profile.target_audiences == []
        assert profile.brand_voice.primary_tone == ""


class TestMarketing:
    def test_value_propositions_are_short_sentences(self) -> None:
        long_sentence = "This proven formula " + "really " * 30 + "works."
        text = f"Our results are proven. {long_sentence} Nothing else here."
        assert marketing.value_propositions(text) == ["Our results are proven."]

    def test_pain_points(self) -> None:
        text = "Tired of the struggle to eat well? We can help."
        assert marketing.pain_points(text) == ["Tired of the struggle to eat well?"]

    def test_target_audiences_in_table_order(self) -> None:
        text = "Perfect for stay-at-home parents and aspiring entrepreneurs."
        assert marketing.target_audiences(text) == ["Aspiring Entrepreneurs", "Stay-at-home Parents"]

    def test_no_default_audiences(self) -> None:
        assert marketing.target_audiences("We make chairs.") == []

    def test_primary_tone(self) -> None:
        assert marketing.primary_tone("A trusted, reliable and secure partner.") == "trustworthy"
        assert marketing.primary_tone("We make chairs.") == ""

    def test_brand_voice_tones_and_themes(self) -> None:
        voice = marketing.brand_voice("Join our community and achieve financial freedom today.")
        assert "Aspirational" in voice.tones
        assert "Community-focused" in voice.tones
        assert "Urgency-driven" in voice.tones
        assert voice.themes == ["Financial Freedom", "Community Building"]


# ---------------------------------------------------------------------------
# Platform pages
# ---------------------------------------------------------------------------

class TestPlatformProfiles:
    def test_facebook_about(self) -> None:
        html = (
            '<html><head><meta property="og:title" content="Acme Wellness"></head>'
            "<body><div>About: We help families eat better. Follow us.</div></body></html>"
        )
        profile = extract_platform_profile("facebook", html, "https://facebook.com/acme")
        assert profile.name == "Acme Wellness"
        assert profile.description == "We help families eat better."
        assert profile.mission == "We help families eat better."

    def test_linkedin_industry_and_specialties(self) -> None:
        html = (
            "<html><head><title>Acme Wellness | LinkedIn</title>"
            '<meta property="og:description" content="Acme Wellness is a nutrition company."></head>'
            "<body><dl><dt>Industry</dt><dd>Health, Wellness and Fitness</dd>"
            "<dt>Company size</dt><dd>51-200</dd></dl>"
            "<p>Specialties: supplements, coaching and meal plans.</p></body></html>"
        )
        profile = extract_platform_profile("linkedin", html, "https://linkedin.com/company/acme")
        assert profile.name == "Acme Wellness"
        assert profile.description == "Acme Wellness is a nutrition company."
        assert profile.industry == "Health, Wellness and Fitness"
        assert profile.services == ["supplements", "coaching", "meal plans"]

    def test_youtube_name_and_ctas(self) -> None:
        html = (
            "<html><head><title>Acme Wellness - YouTube</title></head>"
            "<body><p>Subscribe for weekly recipes. We post on Mondays.</p></body></html>"
        )
        profile = extract_platform_profile("youtube", html, "https://youtube.com/@acme")
        assert profile.name == "Acme Wellness"
        assert profile.ctas == ["subscribe for weekly recipes."]

    def test_unsupported_platform(self) -> None:
        with pytest.raises(ValueError):
            extract_platform_profile("myspace", "<html></html>", "https://myspace.com/acme")


# ---------------------------------------------------------------------------
# OCR collaborator
# ---------------------------------------------------------------------------

class _FakeOcr:
    def __init__(self, blocks: list[TextBlock]) -> None:
        self.blocks = blocks
        self.calls: list[str] = []

    def extract_blocks(self, image_bytes: bytes, page_url: str) -> list[TextBlock]:
        self.calls.append(page_url)
        return self.blocks


class _BrokenOcr:
    def extract_blocks(self, image_bytes: bytes, page_url: str) -> list[TextBlock]:
        raise RuntimeError("service exploded")


def _snapshot(url: str, screenshot: bytes | None) -> PageSnapshot:
    return PageSnapshot(url=url, status_code=200, html="<html></html>", screenshot=screenshot)


class TestOcr:
    def test_only_pages_with_screenshots_and_confident_blocks(self) -> None:
        client = _FakeOcr([TextBlock("Free shipping", 0.9), TextBlock("blurry", 0.3), TextBlock("  ", 0.99)])
        pages = [_snapshot("https://a.test", b"png"), _snapshot("https://a.test/about", None)]

        blocks = ocr_pages(client, pages)

        assert client.calls == ["https://a.test"]
        assert blocks_to_text(blocks) == "Free shipping"

    def test_client_failure_becomes_collaborator_error(self) -> None:
        with pytest.raises(CollaboratorError):
            ocr_pages(_BrokenOcr(), [_snapshot("https://a.test", b"png")])

    def test_http_client_parses_text_blocks(self) -> None:
        with respx.mock:
            respx.post("https://ocr.test/extract").mock(
                return_value=httpx.Response(
                    200, json={"textBlocks": [{"text": "Hello", "confidence": 0.8, "type": "heading"}]}
                )
            )
            blocks = HttpOcrClient("https://ocr.test/extract").extract_blocks(b"png", "https://a.test")
        assert blocks == [TextBlock(text="Hello", confidence=0.8, type="heading")]

    def test_http_client_error(self) -> None:
        with respx.mock:
            respx.post("https://ocr.test/extract").mock(return_value=httpx.Response(500))
            with pytest.raises(CollaboratorError):
                HttpOcrClient("https://ocr.test/extract").extract_blocks(b"png", "https://a.test")

    def test_http_client_requires_url(self) -> None:
        with pytest.raises(CollaboratorError):
            HttpOcrClient()
