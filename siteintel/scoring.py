"""Extraction-completeness quality score (0–100).

Five buckets of at most 20 points each; every bucket is capped on its own
before the sum, and each point rule only ever adds, so supplying a
previously missing signal can never lower the score.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from siteintel.detectors.structure import BusinessStructure
from siteintel.parser.models import PlatformProfile, SiteProfile

BUCKET_CAP = 20

POINTS_PER_PAGE = 4
POINTS_PER_PRODUCT = 4
IDENTITY_POINTS = {"name": 8, "description": 4, "mission": 4, "tagline": 2, "founded_year": 2}
STRUCTURE_DETECTED_POINTS = 10
SEO_POINTS = {"titles": 5, "descriptions": 5, "headings": 4, "brand_tone": 3, "keywords": 3}


@dataclass
class QualityInputs:
    pages: int = 0
    profile: SiteProfile = field(default_factory=SiteProfile)
    structure: Optional[BusinessStructure] = None
    platforms: dict[str, PlatformProfile] = field(default_factory=dict)


def _identity_points(profile: SiteProfile, platforms: Iterable[PlatformProfile] = ()) -> int:
    """Identity fields count whether the website or any platform page supplied them."""
    identity = profile.identity
    present = {
        "name": bool(identity.company_name),
        "description": bool(identity.description or identity.about),
        "mission": bool(identity.mission),
        "tagline": bool(identity.tagline),
        "founded_year": identity.founded_year is not None,
    }
    for platform in platforms:
        present["name"] = present["name"] or bool(platform.name)
        present["description"] = present["description"] or bool(platform.description)
        present["mission"] = present["mission"] or bool(platform.mission)
    return sum(points for key, points in IDENTITY_POINTS.items() if present[key])


def _seo_points(profile: SiteProfile) -> int:
    present = {
        "titles": bool(profile.seo.titles),
        "descriptions": bool(profile.seo.descriptions),
        "headings": bool(profile.seo.headings),
        "brand_tone": bool(profile.brand_voice.primary_tone),
        "keywords": bool(profile.keywords),
    }
    return sum(points for key, points in SEO_POINTS.items() if present[key])


def _structure_points(structure: Optional[BusinessStructure]) -> int:
    if structure is None or not structure.detected:
        return 0
    return STRUCTURE_DETECTED_POINTS + structure.confidence // 10


def score_breakdown(inputs: QualityInputs) -> dict[str, int]:
    """Per-bucket points, each already capped at :data:`BUCKET_CAP`."""
    raw = {
        "pages": POINTS_PER_PAGE * max(inputs.pages, 0),
        "identity": _identity_points(inputs.profile, inputs.platforms.values()),
        "products": POINTS_PER_PRODUCT * len(inputs.profile.products),
        "structure": _structure_points(inputs.structure),
        "seo": _seo_points(inputs.profile),
    }
    return {bucket: min(points, BUCKET_CAP) for bucket, points in raw.items()}


def score_quality(inputs: QualityInputs) -> int:
    return min(sum(score_breakdown(inputs).values()), 100)
