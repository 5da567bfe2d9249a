"""Ordered-priority merge of per-page signals into one :class:`SiteProfile`.

Pages are merged in crawl discovery order, so for every single-valued field
the first page that has a value wins.  List fields are concatenated and
deduplicated in order.  OCR text is appended to the aggregate text only: it
feeds marketing derivation and structure detection but never overrides a
field taken from page markup.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from siteintel.parser import marketing
from siteintel.parser.document import extract_keywords
from siteintel.parser.models import (
    ExtractedSignals,
    Identity,
    MediaRefs,
    Product,
    SeoSignals,
    SiteProfile,
)

T = TypeVar("T")


def first_non_empty(values: Iterable[Optional[T]]) -> Optional[T]:
    """Return the first value that is neither ``None`` nor empty.

    >>> first_non_empty([None, "", "Acme", "Other"])
    'Acme'
    """
    for value in values:
        if value is None:
            continue
        if isinstance(value, (str, list, dict, tuple)) and not value:
            continue
        return value
    return None


def dedupe(items: Iterable[T], key: Callable[[T], Any] = lambda item: item) -> list[T]:
    """Order-preserving deduplication by *key*."""
    seen: set[Any] = set()
    out: list[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        out.append(item)
    return out


def merge_identity(identities: Sequence[Identity]) -> Identity:
    merged = Identity()
    for f in fields(Identity):
        setattr(merged, f.name, first_non_empty(getattr(i, f.name) for i in identities))
    return merged


def merge_products(pages: Sequence[ExtractedSignals]) -> list[Product]:
    return dedupe((p for page in pages for p in page.products), key=lambda p: p.name.strip().lower())


def aggregate_signals(
    pages: Sequence[ExtractedSignals],
    ocr_text: str = "",
    entry_url: str = "",
) -> SiteProfile:
    """Merge every page's signals (discovery order) into a :class:`SiteProfile`.

    Args:
        pages: Parsed pages in crawl discovery order.
        ocr_text: Additional text recognised from page screenshots.
        entry_url: The session's entry URL, recorded on the profile.
    """
    markup_text = " ".join(page.text for page in pages if page.text)
    text = f"{markup_text} {ocr_text}".strip() if ocr_text else markup_text

    social: dict[str, str] = {}
    for page in pages:
        for platform, url in page.social_links.items():
            social.setdefault(platform, url)

    profile = SiteProfile(
        entry_url=entry_url,
        urls=[page.url for page in pages],
        text=text,
        identity=merge_identity([page.identity for page in pages]),
        products=merge_products(pages),
        services=dedupe((s for page in pages for s in page.services), key=lambda s: s.name.lower()),
        seo=SeoSignals(
            titles=dedupe(t for page in pages for t in page.seo.titles),
            descriptions=dedupe(d for page in pages for d in page.seo.descriptions),
            h1s=dedupe(h for page in pages for h in page.seo.h1s),
            h2s=dedupe(h for page in pages for h in page.seo.h2s),
            meta_keywords=dedupe(k for page in pages for k in page.seo.meta_keywords),
        ),
        media=MediaRefs(
            images=dedupe((i for page in pages for i in page.media.images), key=lambda i: i["src"]),
            videos=dedupe((v for page in pages for v in page.media.videos), key=lambda v: v["src"]),
            documents=dedupe(d for page in pages for d in page.media.documents),
        ),
        nav_links=dedupe(n for page in pages for n in page.nav_links),
        ctas=dedupe((c for page in pages for c in page.ctas), key=lambda c: c.text.lower()),
        social_links=social,
        testimonials=dedupe((t for page in pages for t in page.testimonials), key=lambda t: t.text),
        brand_colors=dedupe(c for page in pages for c in page.brand_colors)[:5],
        keywords=extract_keywords(markup_text),
        ocr_text=ocr_text,
    )

    profile.value_propositions = marketing.value_propositions(text)
    profile.pain_points = marketing.pain_points(text)
    profile.target_audiences = marketing.target_audiences(text)
    profile.brand_voice = marketing.brand_voice(text)
    return profile
