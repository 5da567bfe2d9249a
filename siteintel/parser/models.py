"""Data models for parsed page signals and their per-session aggregate."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class Product:
    name: str
    description: str = ""
    category: str = "General"
    price: Optional[float] = None


@dataclass
class Service:
    name: str
    description: str = ""


@dataclass
class CallToAction:
    text: str
    category: str = "other"


@dataclass
class Testimonial:
    text: str
    author: str = ""
    rating: Optional[float] = None
    source: str = "website"


@dataclass
class Identity:
    company_name: Optional[str] = None
    tagline: Optional[str] = None
    mission: Optional[str] = None
    vision: Optional[str] = None
    about: Optional[str] = None
    description: Optional[str] = None
    founded_year: Optional[int] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    def filled_fields(self) -> list[str]:
        return [k for k, v in asdict(self).items() if v not in (None, "")]


@dataclass
class SeoSignals:
    titles: list[str] = field(default_factory=list)
    descriptions: list[str] = field(default_factory=list)
    h1s: list[str] = field(default_factory=list)
    h2s: list[str] = field(default_factory=list)
    meta_keywords: list[str] = field(default_factory=list)

    @property
    def headings(self) -> list[str]:
        return self.h1s + self.h2s


@dataclass
class MediaRefs:
    images: list[dict[str, str]] = field(default_factory=list)
    videos: list[dict[str, str]] = field(default_factory=list)
    documents: list[str] = field(default_factory=list)


@dataclass
class ExtractedSignals:
    """Everything the parser pulls out of one page."""

    url: str
    page_type: str = "other"
    text: str = ""
    identity: Identity = field(default_factory=Identity)
    products: list[Product] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    seo: SeoSignals = field(default_factory=SeoSignals)
    media: MediaRefs = field(default_factory=MediaRefs)
    nav_links: list[str] = field(default_factory=list)
    ctas: list[CallToAction] = field(default_factory=list)
    social_links: dict[str, str] = field(default_factory=dict)
    testimonials: list[Testimonial] = field(default_factory=list)
    brand_colors: list[str] = field(default_factory=list)
    structured_data: list[Any] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BrandVoice:
    primary_tone: str = ""
    tones: list[str] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)


@dataclass
class SiteProfile:
    """The per-session aggregate of every retrieved page's signals."""

    entry_url: str = ""
    urls: list[str] = field(default_factory=list)
    text: str = ""
    identity: Identity = field(default_factory=Identity)
    products: list[Product] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)
    seo: SeoSignals = field(default_factory=SeoSignals)
    media: MediaRefs = field(default_factory=MediaRefs)
    nav_links: list[str] = field(default_factory=list)
    ctas: list[CallToAction] = field(default_factory=list)
    social_links: dict[str, str] = field(default_factory=dict)
    testimonials: list[Testimonial] = field(default_factory=list)
    brand_colors: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    value_propositions: list[str] = field(default_factory=list)
    pain_points: list[str] = field(default_factory=list)
    target_audiences: list[str] = field(default_factory=list)
    brand_voice: BrandVoice = field(default_factory=BrandVoice)
    ocr_text: str = ""
    summaries: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        # The aggregate text is persisted with the page snapshots already.
        data.pop("text", None)
        return data


@dataclass
class PlatformProfile:
    """Signals extracted from one social or professional-network page."""

    platform: str
    url: str
    name: str = ""
    description: str = ""
    mission: str = ""
    industry: str = ""
    services: list[str] = field(default_factory=list)
    ctas: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
