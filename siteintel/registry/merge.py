"""Field-priority merge of the website profile and platform profiles.

Every field has an explicit, ordered source list.  The first source that
has a non-empty value wins; nothing is averaged or concatenated unless the
table says so.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional

from siteintel.parser.aggregate import dedupe, first_non_empty
from siteintel.parser.document import split_sentences
from siteintel.parser.models import PlatformProfile, Product, Service, SiteProfile
from siteintel.registry.names import normalize_name

# Field → ordered sources.  "website" is the crawled SiteProfile.
NAME_PRIORITY = ("website", "facebook", "youtube", "linkedin")
DESCRIPTION_PRIORITY = ("website", "linkedin", "facebook", "youtube")
MISSION_PRIORITY = ("website", "facebook")
SERVICE_SOURCES = ("website", "linkedin")
CTA_SOURCES = ("website", "youtube")
INDUSTRY_PRIORITY = ("linkedin", "website")

PLATFORM_ORDER = ("facebook", "youtube", "linkedin")
UNKNOWN_COMPANY = "Unknown Company"
MAX_USPS = 5


@dataclass
class MergedCompany:
    """One company as seen across all sources of a crawl session."""

    company_name: str
    normalized_name: str
    description: str = ""
    industry: str = ""
    mission: str = ""
    tagline: str = ""
    founded_year: Optional[int] = None
    contact_email: str = ""
    contact_phone: str = ""
    products: list[Product] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    brand_tone: str = ""
    keywords: list[str] = field(default_factory=list)
    brand_colors: list[str] = field(default_factory=list)
    target_audiences: list[str] = field(default_factory=list)
    pain_points: list[str] = field(default_factory=list)
    ctas: list[str] = field(default_factory=list)
    social_proof: list[dict[str, Any]] = field(default_factory=list)
    positioning: str = ""
    unique_selling_points: list[str] = field(default_factory=list)
    channels: dict[str, str] = field(default_factory=dict)
    data_sources: list[str] = field(default_factory=list)
    summaries: dict[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.company_name

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _website_value(website: SiteProfile, key: str) -> Any:
    identity = website.identity
    return {
        "name": identity.company_name,
        "description": identity.description or identity.about,
        "mission": identity.mission,
        "industry": website.brand_voice.primary_tone,
    }[key]


def _platform_value(profile: PlatformProfile, key: str) -> Any:
    return {
        "name": profile.name,
        "description": profile.description,
        "mission": profile.mission,
        "industry": profile.industry,
    }[key]


def _pick(
    key: str,
    priority: tuple[str, ...],
    website: Optional[SiteProfile],
    platforms: Mapping[str, PlatformProfile],
) -> Any:
    values = []
    for source in priority:
        if source == "website":
            values.append(_website_value(website, key) if website else None)
        elif source in platforms:
            values.append(_platform_value(platforms[source], key))
    return first_non_empty(values)


def _first_sentence(text: str) -> str:
    sentences = split_sentences(text)
    return sentences[0] if sentences else ""


def merge_sources(
    website: Optional[SiteProfile],
    platforms: Mapping[str, PlatformProfile] | None = None,
    fallback_name: str = "",
) -> MergedCompany:
    """Merge the website aggregate and platform profiles into one company.

    Args:
        website: The crawled site's aggregate, or ``None`` when only platform
            pages were available.
        platforms: Successfully extracted platform profiles keyed by platform.
        fallback_name: Used as the company name when no source names it
            (usually the site's host name).
    """
    platforms = dict(platforms or {})
    name = _pick("name", NAME_PRIORITY, website, platforms) or fallback_name or UNKNOWN_COMPANY
    description = _pick("description", DESCRIPTION_PRIORITY, website, platforms) or ""

    services: list[Service] = []
    for source in SERVICE_SOURCES:
        if source == "website" and website:
            services.extend(website.services)
        elif source in platforms:
            services.extend(Service(name=s) for s in platforms[source].services)

    ctas: list[str] = []
    for source in CTA_SOURCES:
        if source == "website" and website:
            ctas.extend(c.text for c in website.ctas)
        elif source in platforms:
            ctas.extend(platforms[source].ctas)

    linkedin = platforms.get("linkedin")
    positioning = first_non_empty(
        [
            website.identity.tagline if website else None,
            _first_sentence(linkedin.description) if linkedin else None,
        ]
    ) or ""

    channels: dict[str, str] = {}
    if website and website.entry_url:
        channels["website"] = website.entry_url
    for platform in PLATFORM_ORDER:
        if platform in platforms:
            channels[platform] = platforms[platform].url
    if website:
        for platform, url in website.social_links.items():
            channels.setdefault(platform, url)

    data_sources = (["website"] if website else []) + [p for p in PLATFORM_ORDER if p in platforms]

    merged = MergedCompany(
        company_name=name,
        normalized_name=normalize_name(name),
        description=description,
        industry=_pick("industry", INDUSTRY_PRIORITY, website, platforms) or "",
        mission=_pick("mission", MISSION_PRIORITY, website, platforms) or "",
        services=dedupe(services, key=lambda s: s.name.lower()),
        ctas=dedupe(ctas, key=str.lower),
        positioning=positioning,
        channels=channels,
        data_sources=data_sources,
    )

    if website:
        identity = website.identity
        merged.tagline = identity.tagline or ""
        merged.founded_year = identity.founded_year
        merged.contact_email = identity.contact_email or ""
        merged.contact_phone = identity.contact_phone or ""
        merged.products = list(website.products)
        merged.brand_tone = website.brand_voice.primary_tone
        merged.keywords = list(website.keywords)
        merged.brand_colors = list(website.brand_colors)
        merged.target_audiences = list(website.target_audiences)
        merged.pain_points = list(website.pain_points)
        merged.unique_selling_points = website.value_propositions[:MAX_USPS]
        merged.summaries = dict(website.summaries)
        merged.social_proof = [
            {"type": f"{t.source}_testimonial", "text": t.text, "author": t.author, "rating": t.rating}
            for t in website.testimonials
        ]
    return merged
