"""Rule-based document parser: turns one page's markup into :class:`ExtractedSignals`.

Every extractor is a small function over a BeautifulSoup tree or the page's
visible text.  ``parse_page`` never raises: a page that cannot be parsed
yields a mostly-empty signal set and a warning in the log.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from datetime import date
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

import trafilatura
from bs4 import BeautifulSoup, Tag

from siteintel.config import settings
from siteintel.parser.models import (
    CallToAction,
    ExtractedSignals,
    Identity,
    MediaRefs,
    Product,
    SeoSignals,
    Service,
    Testimonial,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

# (page_type, url fragments): first match wins.
PAGE_TYPE_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("products", ("/product", "/shop", "/store")),
    ("about", ("/about", "/company", "/story")),
    ("compensation", ("/compensation", "/plan", "/pay-plan")),
    ("opportunity", ("/opportunity", "/join", "/business")),
    ("contact", ("/contact",)),
    ("pricing", ("/pricing", "/price")),
    ("testimonials", ("/testimonial", "/success", "/review")),
]

# (category, keywords): first match wins, fallback "General".
PRODUCT_CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Health Supplements", ("supplement", "vitamin", "mineral", "nutrient", "protein")),
    ("Skin Care", ("skin", "beauty", "cream", "serum", "lotion")),
    ("Insurance", ("insurance", "coverage", "policy")),
    ("Membership Package", ("membership", "package", "kit", "starter")),
    ("Training", ("training", "course", "program", "education", "coaching")),
    ("Digital Product", ("digital", "ebook", "software", "app", "subscription")),
]

CTA_CATEGORY_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("signup", re.compile(r"join|sign\s*up|register|enroll|become")),
    ("purchase", re.compile(r"buy|purchase|shop|order|add to cart")),
    ("learn_more", re.compile(r"learn|discover|explore|see|read more|watch")),
    ("contact", re.compile(r"contact|call|email|talk to|book")),
    ("download", re.compile(r"download|get|claim")),
]

SOCIAL_PLATFORMS: dict[str, re.Pattern[str]] = {
    "facebook": re.compile(r"facebook\.com|fb\.com", re.IGNORECASE),
    "twitter": re.compile(r"twitter\.com|//x\.com", re.IGNORECASE),
    "linkedin": re.compile(r"linkedin\.com", re.IGNORECASE),
    "instagram": re.compile(r"instagram\.com", re.IGNORECASE),
    "youtube": re.compile(r"youtube\.com|youtu\.be", re.IGNORECASE),
    "tiktok": re.compile(r"tiktok\.com", re.IGNORECASE),
}

MISSION_KEYWORDS = ("mission", "purpose")
VISION_KEYWORDS = ("vision",)
ABOUT_KEYWORDS = ("about us", "who we are", "our story", "we are a ", "we are an ")

# Keyword-anchored sentence windows (characters).
SENTENCE_MIN, SENTENCE_MAX = 20, 500
ABOUT_MAX = 500

MAX_CTAS = 20
MAX_SERVICES = 20
MAX_IMAGES = 50
MAX_VIDEOS = 10
MAX_DOCUMENTS = 20
MAX_TESTIMONIALS = 10

_TITLE_SEPARATORS = re.compile(r"\s+[|\-–—:·]\s+|\|")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_PHONE_RE = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_PRICE_RE = re.compile(r"[$€£]\s*(\d[\d,]*(?:\.\d{1,2})?)")
_YEAR_RE = re.compile(r"(?:founded|established|since|started)\s+(?:in\s+)?(\d{4})", re.IGNORECASE)
_HEX_COLOR_RE = re.compile(r"#(?:[A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})\b")
_TAGLINE_RE = re.compile(r"(?:tagline|slogan)[^:]*:?\s*([^.!?\n]{10,100}[.!?])", re.IGNORECASE)
_VIDEO_RE = re.compile(r"youtube\.com/embed/|youtu\.be/|player\.vimeo\.com|wistia", re.IGNORECASE)
_YOUTUBE_ID_RE = re.compile(r"(?:youtube\.com/embed/|youtu\.be/)([A-Za-z0-9_-]{11})")
_WORD_RE = re.compile(r"[a-z][a-z'-]+")

_PRODUCT_CLASS = re.compile(r"product", re.IGNORECASE)
_SERVICE_CLASS = re.compile(r"service", re.IGNORECASE)
_CTA_CLASS = re.compile(r"btn|cta|button", re.IGNORECASE)
_TESTIMONIAL_CLASS = re.compile(r"testimonial|review|quote", re.IGNORECASE)
_TAGLINE_CLASS = re.compile(r"tagline|slogan|subtitle|hero-sub", re.IGNORECASE)
_CONTAINER_TAGS = ["div", "li", "article", "section"]


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def visible_text(html: str) -> str:
    """Return the human-visible body text of *html* (title, scripts and styles removed)."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["title", "script", "style", "noscript", "template"]):
        tag.decompose()
    return _clean(soup.get_text(separator=" "))


def _bs4_fallback(html: str) -> str:
    """Extract readable text using ``<main>``/``<article>`` heuristics."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "nav", "footer", "header", "noscript"]):
        tag.decompose()
    container = soup.find("main") or soup.find("article") or soup.body
    if container is None:
        return _clean(soup.get_text(separator=" "))
    return _clean(container.get_text(separator=" "))


def readable_text(html: str, url: str = "") -> str:
    """Readable main-content text for a PageSnapshot.

    Tries ``trafilatura`` first and falls back to a BeautifulSoup heuristic
    when it returns nothing (tiny or highly dynamic pages).
    """
    text: Optional[str] = None
    try:
        text = trafilatura.extract(
            html,
            include_links=False,
            include_images=False,
            include_tables=True,
            no_fallback=False,
            url=url or None,
        )
    except Exception as exc:  # noqa: BLE001
        logger.debug("[PARSE] trafilatura failed on %s: %s", url, exc)
    if not text:
        text = _bs4_fallback(html)
    return text or ""


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text or "") if s.strip()]


def find_sentence(
    text: str,
    keywords: tuple[str, ...],
    min_len: int = SENTENCE_MIN,
    max_len: int = SENTENCE_MAX,
) -> Optional[str]:
    """First sentence containing any of *keywords* within the length window."""
    for sentence in split_sentences(text):
        lower = sentence.lower()
        if min_len <= len(sentence) <= max_len and any(kw in lower for kw in keywords):
            return sentence
    return None


def extract_keywords(text: str, limit: Optional[int] = None) -> list[str]:
    """Top terms by frequency over words longer than 4 characters."""
    cap = settings.max_keywords if limit is None else limit
    words = [w.strip("'-") for w in _WORD_RE.findall((text or "").lower())]
    counts = Counter(w for w in words if len(w) > 4)
    return [word for word, _ in counts.most_common(cap)]


# ---------------------------------------------------------------------------
# Markup extractors
# ---------------------------------------------------------------------------

def meta_content(soup: BeautifulSoup, *, name: str | None = None, prop: str | None = None) -> Optional[str]:
    attrs = {"name": name} if name else {"property": prop}
    tag = soup.find("meta", attrs=attrs)
    if tag is None and name:
        tag = soup.find("meta", attrs={"name": re.compile(f"^{re.escape(name)}$", re.I)})
    if isinstance(tag, Tag):
        content = _clean(tag.get("content", ""))
        return content or None
    return None


def _headings(soup: BeautifulSoup, level: str) -> list[str]:
    return [t for t in (_clean(h.get_text(" ")) for h in soup.find_all(level)) if t]


def _title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title and soup.title.get_text():
        return _clean(soup.title.get_text()) or None
    return None


def extract_company_name(soup: BeautifulSoup) -> Optional[str]:
    """og:site_name → ``<title>`` prefix → first h1.  First hit wins."""
    site_name = meta_content(soup, prop="og:site_name")
    if site_name:
        return site_name
    title = _title(soup)
    if title:
        head = _TITLE_SEPARATORS.split(title)[0].strip()
        if head:
            return head
    h1s = _headings(soup, "h1")
    return h1s[0] if h1s else None


def extract_tagline(soup: BeautifulSoup, text: str) -> Optional[str]:
    tag = soup.find(class_=_TAGLINE_CLASS)
    if isinstance(tag, Tag):
        candidate = _clean(tag.get_text(" "))
        if 5 <= len(candidate) <= 150:
            return candidate
    match = _TAGLINE_RE.search(text)
    return match.group(1).strip() if match else None


def extract_founded_year(text: str) -> Optional[int]:
    match = _YEAR_RE.search(text)
    if match:
        year = int(match.group(1))
        if 1800 < year <= date.today().year:
            return year
    return None


def extract_about(text: str) -> Optional[str]:
    sentence = find_sentence(text, ABOUT_KEYWORDS, min_len=40, max_len=1000)
    return sentence[:ABOUT_MAX] if sentence else None


def extract_contact(soup: BeautifulSoup, text: str) -> tuple[Optional[str], Optional[str]]:
    email = phone = None
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not email and href.lower().startswith("mailto:"):
            email = href[7:].split("?")[0] or None
        elif not phone and href.lower().startswith("tel:"):
            phone = href[4:].strip() or None
    if not email:
        match = _EMAIL_RE.search(text)
        email = match.group(0) if match else None
    if not phone:
        match = _PHONE_RE.search(text)
        phone = match.group(0).strip() if match else None
    return email, phone


def guess_product_category(name: str, description: str) -> str:
    haystack = f"{name} {description}".lower()
    for category, keywords in PRODUCT_CATEGORY_RULES:
        if any(kw in haystack for kw in keywords):
            return category
    return "General"


def _parse_price(text: str) -> Optional[float]:
    match = _PRICE_RE.search(text)
    if not match:
        return None
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        return None


def _leaf_containers(soup: BeautifulSoup, pattern: re.Pattern[str]) -> list[Tag]:
    """Containers whose class matches *pattern* and that hold no nested match."""
    containers = soup.find_all(_CONTAINER_TAGS, class_=pattern)
    return [c for c in containers if c.find(_CONTAINER_TAGS, class_=pattern) is None]


def _container_name(container: Tag) -> Optional[str]:
    named = container.find(["h2", "h3", "h4", "h5", "strong"]) or container.find(
        class_=re.compile(r"name|title", re.IGNORECASE)
    )
    if isinstance(named, Tag):
        name = _clean(named.get_text(" "))
        return name or None
    return None


def extract_products(soup: BeautifulSoup, structured: list[Any]) -> list[Product]:
    """Product cards plus JSON-LD ``Product`` objects, capped at ``settings.max_products``."""
    products: list[Product] = []
    seen: set[str] = set()

    def _add(name: str, description: str, price: Optional[float]) -> None:
        key = name.lower()
        if key in seen or len(products) >= settings.max_products:
            return
        seen.add(key)
        products.append(
            Product(
                name=name,
                description=description[:200],
                category=guess_product_category(name, description),
                price=price,
            )
        )

    for container in _leaf_containers(soup, _PRODUCT_CLASS):
        name = _container_name(container)
        if not name or len(name) > 120:
            continue
        body = _clean(container.get_text(" "))
        description = _clean(body.replace(name, "", 1))
        _add(name, description, _parse_price(body))
        if len(products) >= settings.max_products:
            return products

    for item in _iter_ld_items(structured):
        if not _ld_type_is(item, "Product"):
            continue
        name = _clean(str(item.get("name", "")))
        if not name:
            continue
        offers = item.get("offers")
        if isinstance(offers, list):
            offers = offers[0] if offers else None
        price = None
        if isinstance(offers, dict) and offers.get("price") not in (None, ""):
            try:
                price = float(str(offers["price"]).replace(",", ""))
            except ValueError:
                price = None
        _add(name, _clean(str(item.get("description", ""))), price)

    return products


def extract_services(soup: BeautifulSoup) -> list[Service]:
    services: list[Service] = []
    seen: set[str] = set()
    for container in _leaf_containers(soup, _SERVICE_CLASS):
        name = _container_name(container)
        if not name or name.lower() in seen or len(name) > 120:
            continue
        seen.add(name.lower())
        body = _clean(container.get_text(" "))
        services.append(Service(name=name, description=_clean(body.replace(name, "", 1))[:200]))
        if len(services) >= MAX_SERVICES:
            break
    return services


def categorize_cta(text: str) -> str:
    lower = text.lower()
    for category, pattern in CTA_CATEGORY_RULES:
        if pattern.search(lower):
            return category
    return "other"


def extract_ctas(soup: BeautifulSoup) -> list[CallToAction]:
    ctas: list[CallToAction] = []
    for element in soup.find_all(["button", "a"]):
        marker = " ".join(element.get("class", [])) + " " + (element.get("id") or "")
        if element.name == "a" and not _CTA_CLASS.search(marker):
            continue
        text = _clean(element.get_text(" "))
        if 0 < len(text) < 100:
            ctas.append(CallToAction(text=text, category=categorize_cta(text)))
        if len(ctas) >= MAX_CTAS:
            break
    return ctas


def extract_nav_links(soup: BeautifulSoup) -> list[str]:
    links: list[str] = []
    for nav in soup.find_all("nav"):
        for anchor in nav.find_all("a", href=True):
            text = _clean(anchor.get_text(" "))
            if text and text not in links:
                links.append(text)
    return links


def extract_media(soup: BeautifulSoup, base_url: str) -> MediaRefs:
    media = MediaRefs()
    for img in soup.find_all("img", src=True):
        if len(media.images) >= MAX_IMAGES:
            break
        media.images.append({"src": urljoin(base_url, img["src"]), "alt": _clean(img.get("alt", ""))})

    for element in soup.find_all(["iframe", "embed", "video", "source"], src=True):
        if len(media.videos) >= MAX_VIDEOS:
            break
        src = element["src"]
        if element.name in ("video", "source") or _VIDEO_RE.search(src):
            yt = _YOUTUBE_ID_RE.search(src)
            platform = "youtube" if yt else ("vimeo" if "vimeo" in src else "html5")
            media.videos.append({"platform": platform, "id": yt.group(1) if yt else "", "src": src})

    for anchor in soup.find_all("a", href=True):
        if len(media.documents) >= MAX_DOCUMENTS:
            break
        href = anchor["href"]
        if urlsplit(href).path.lower().endswith(".pdf"):
            doc = urljoin(base_url, href)
            if doc not in media.documents:
                media.documents.append(doc)
    return media


def extract_social_links(soup: BeautifulSoup) -> dict[str, str]:
    social: dict[str, str] = {}
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        for platform, pattern in SOCIAL_PLATFORMS.items():
            if platform not in social and pattern.search(href):
                social[platform] = href
    return social


def extract_testimonials(soup: BeautifulSoup) -> list[Testimonial]:
    testimonials: list[Testimonial] = []
    seen: set[str] = set()
    candidates = _leaf_containers(soup, _TESTIMONIAL_CLASS) + soup.find_all("blockquote")
    for element in candidates:
        author_tag = element.find("cite") or element.find(class_=re.compile(r"author|name", re.I))
        author = _clean(author_tag.get_text(" ")) if isinstance(author_tag, Tag) else ""
        text = _clean(element.get_text(" "))
        if author:
            text = _clean(text.replace(author, ""))
        if not (20 <= len(text) <= 500) or text in seen:
            continue
        seen.add(text)
        testimonials.append(Testimonial(text=text, author=author))
        if len(testimonials) >= MAX_TESTIMONIALS:
            break
    return testimonials


def extract_brand_colors(html: str) -> list[str]:
    colors: list[str] = []
    for match in _HEX_COLOR_RE.findall(html or "")[:10]:
        color = match.upper()
        if color not in colors:
            colors.append(color)
    return colors[:5]


def extract_structured_data(soup: BeautifulSoup) -> list[Any]:
    data: list[Any] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        try:
            data.append(json.loads(raw))
        except (json.JSONDecodeError, TypeError):
            continue
    return data


def _iter_ld_items(structured: list[Any]):
    stack = list(structured)
    while stack:
        item = stack.pop(0)
        if isinstance(item, list):
            stack.extend(item)
        elif isinstance(item, dict):
            yield item
            graph = item.get("@graph")
            if isinstance(graph, list):
                stack.extend(graph)


def _ld_type_is(item: dict[str, Any], wanted: str) -> bool:
    kind = item.get("@type")
    if isinstance(kind, list):
        return wanted in kind
    return kind == wanted


def detect_page_type(url: str) -> str:
    parts = urlsplit(url)
    path = parts.path.lower()
    for page_type, fragments in PAGE_TYPE_RULES:
        if any(fragment in path for fragment in fragments):
            return page_type
    if path.strip("/") == "":
        return "home"
    return "other"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_page(html: str, url: str) -> ExtractedSignals:
    """Extract :class:`ExtractedSignals` from one page.

    Never raises.  Any unexpected parse failure is logged and an empty
    signal set (URL and page type only) is returned for the page.
    """
    try:
        return _parse(html or "", url)
    except Exception as exc:  # noqa: BLE001
        logger.warning("[PARSE] %s could not be parsed: %s", url, exc)
        return ExtractedSignals(url=url, page_type=detect_page_type(url))


def _parse(html: str, url: str) -> ExtractedSignals:
    soup = BeautifulSoup(html, "html.parser")
    text = visible_text(html)
    structured = extract_structured_data(soup)
    email, phone = extract_contact(soup, text)

    description = meta_content(soup, name="description") or meta_content(soup, prop="og:description")
    identity = Identity(
        company_name=extract_company_name(soup),
        tagline=extract_tagline(soup, text),
        mission=find_sentence(text, MISSION_KEYWORDS),
        vision=find_sentence(text, VISION_KEYWORDS),
        about=extract_about(text),
        description=description,
        founded_year=extract_founded_year(text),
        contact_email=email,
        contact_phone=phone,
    )

    title = _title(soup) or meta_content(soup, prop="og:title")
    meta_keywords = [k.strip() for k in (meta_content(soup, name="keywords") or "").split(",") if k.strip()]
    seo = SeoSignals(
        titles=[title] if title else [],
        descriptions=[description] if description else [],
        h1s=_headings(soup, "h1"),
        h2s=_headings(soup, "h2"),
        meta_keywords=meta_keywords,
    )

    return ExtractedSignals(
        url=url,
        page_type=detect_page_type(url),
        text=text,
        identity=identity,
        products=extract_products(soup, structured),
        services=extract_services(soup),
        seo=seo,
        media=extract_media(soup, url),
        nav_links=extract_nav_links(soup),
        ctas=extract_ctas(soup),
        social_links=extract_social_links(soup),
        testimonials=extract_testimonials(soup),
        brand_colors=extract_brand_colors(html),
        structured_data=structured,
        keywords=extract_keywords(text),
    )
