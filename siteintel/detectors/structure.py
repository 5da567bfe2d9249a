"""Business-structure (compensation / referral plan) detection."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from siteintel.detectors import rules

logger = logging.getLogger(__name__)


@dataclass
class BusinessStructure:
    detected: bool = False
    plan_type: str = "unspecified"
    ranks: list[str] = field(default_factory=list)
    bonuses: list[str] = field(default_factory=list)
    incentives: list[str] = field(default_factory=list)
    confidence: int = 0
    matched_keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BusinessStructure":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def _matches(text: str, phrases: tuple[str, ...]) -> list[str]:
    return [p for p in phrases if rules.phrase_pattern(p).search(text)]


def _capped(hits: int, points_and_cap: tuple[int, int]) -> int:
    points, cap = points_and_cap
    return min(hits * points, cap)


def detect_plan_type(text: str) -> str:
    for plan_type, keywords in rules.PLAN_TYPE_RULES:
        if _matches(text, keywords):
            return plan_type
    return "unspecified"


def detect_structure(text: str) -> BusinessStructure:
    """Detect a compensation/referral plan in *text*.

    When no presence keyword occurs the result is ``detected=False`` with zero
    confidence and empty lists, whatever else the text contains.
    """
    lower = (text or "").lower()
    presence = _matches(lower, rules.PRESENCE_KEYWORDS)
    if not presence:
        return BusinessStructure()

    plan_type = detect_plan_type(lower)
    ranks = _matches(lower, rules.RANK_NAMES)
    bonuses = _matches(lower, rules.BONUS_PHRASES)
    incentives = _matches(lower, rules.INCENTIVE_PHRASES)

    confidence = rules.CONFIDENCE_PRESENCE_BASE
    confidence += _capped(len(presence) - 1, rules.CONFIDENCE_EXTRA_PRESENCE)
    if plan_type != "unspecified":
        confidence += rules.CONFIDENCE_PLAN_TYPE
    confidence += _capped(len(ranks), rules.CONFIDENCE_RANKS)
    confidence += _capped(len(bonuses), rules.CONFIDENCE_BONUSES)
    confidence += _capped(len(incentives), rules.CONFIDENCE_INCENTIVES)

    structure = BusinessStructure(
        detected=True,
        plan_type=plan_type,
        ranks=ranks,
        bonuses=bonuses,
        incentives=incentives,
        confidence=min(confidence, 100),
        matched_keywords=presence,
    )
    logger.info(
        "[STRUCTURE] %s plan detected (confidence=%d, ranks=%d, bonuses=%d)",
        plan_type, structure.confidence, len(ranks), len(bonuses),
    )
    return structure
