"""Keyword tables for the business-structure and form detectors.

Kept as plain ordered data so that classification stays auditable: the
detectors only walk these tables, they never hard-code a keyword.
"""

from __future__ import annotations

import re
from functools import lru_cache

# ---------------------------------------------------------------------------
# Business structure
# ---------------------------------------------------------------------------

# Any of these in the aggregate text means a referral/compensation plan exists.
PRESENCE_KEYWORDS: tuple[str, ...] = (
    "downline",
    "upline",
    "binary plan",
    "compensation plan",
    "comp plan",
    "pay plan",
    "network marketing",
    "multi-level marketing",
    "mlm",
    "unilevel",
    "matrix plan",
    "rank advancement",
    "sponsor bonus",
)

# Plan type, first match wins.
PLAN_TYPE_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("binary", ("binary plan", "binary compensation", "binary system", "binary", "left leg", "right leg")),
    ("unilevel", ("unilevel", "uni-level")),
    ("matrix", ("matrix plan", "matrix compensation", "forced matrix", "matrix")),
    ("hybrid", ("hybrid plan", "hybrid compensation", "hybrid")),
]

# Ordered from entry level upward.
RANK_NAMES: tuple[str, ...] = (
    "distributor",
    "associate",
    "consultant",
    "manager",
    "supervisor",
    "bronze",
    "silver",
    "gold",
    "platinum",
    "ruby",
    "sapphire",
    "emerald",
    "diamond",
    "double diamond",
    "triple diamond",
    "crown",
    "royal crown",
    "director",
    "executive",
    "ambassador",
    "president",
)

BONUS_PHRASES: tuple[str, ...] = (
    "sponsor bonus",
    "referral bonus",
    "fast start bonus",
    "matching bonus",
    "leadership bonus",
    "pairing bonus",
    "binary bonus",
    "unilevel bonus",
    "rank advancement bonus",
    "car bonus",
    "retail profit",
    "team commission",
    "pool bonus",
    "generation bonus",
)

INCENTIVE_PHRASES: tuple[str, ...] = (
    "travel incentive",
    "incentive trip",
    "car program",
    "car fund",
    "vacation",
    "cruise",
    "awards",
    "recognition",
    "luxury trip",
    "home fund",
)

# Confidence tally: (points per hit, cap for the category).
CONFIDENCE_PRESENCE_BASE = 20
CONFIDENCE_EXTRA_PRESENCE = (5, 10)
CONFIDENCE_PLAN_TYPE = 20
CONFIDENCE_RANKS = (5, 20)
CONFIDENCE_BONUSES = (5, 20)
CONFIDENCE_INCENTIVES = (5, 10)


@lru_cache(maxsize=None)
def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Word-bounded, case-insensitive pattern for *phrase*."""
    return re.compile(r"\b" + re.escape(phrase) + r"\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

LOGIN_WORDS = re.compile(r"\blog\s?in\b|\bsign\s?in\b|\bpassword\b")
LEAD_CAPTURE_WORDS = re.compile(r"\bjoin\b|\bregister\b|\benroll\b|\bsign\s?up\b|\bbecome\b")
CHECKOUT_WORDS = re.compile(r"\bbuy\b|\bcheckout\b|\bcheck out\b|\bpay\b|\border\b|\bbilling\b|\bpurchase\b")
NEWSLETTER_WORDS = re.compile(r"\bsubscribe\b|\bnewsletter\b")
CONTACT_WORDS = re.compile(r"\bcontact\b|\bsend\b|\bmessage\b|\binquir")

NEWSLETTER_MAX_FIELDS = 2

# Field-count tier: (more than N fields, points).  First match wins.
BARRIER_FIELD_TIERS: list[tuple[int, int]] = [(10, 40), (5, 25), (3, 15)]
BARRIER_BASE_TIER = 5
BARRIER_TYPE_PENALTY: dict[str, int] = {"checkout": 20, "lead_capture": 10}
BARRIER_PASSWORD_PENALTY = 10
REQUIRED_POINTS = (5, 30)

COMPLEXITY_FIELD_POINTS = (5, 40)
COMPLEXITY_KIND_BONUS: dict[str, int] = {"password": 10, "select": 5, "textarea": 5}

# Input types that never count as fields.
SKIPPED_INPUT_TYPES = frozenset({"hidden", "submit", "button", "reset", "image", "file"})
FIELD_KIND_BY_INPUT_TYPE: dict[str, str] = {
    "email": "email",
    "tel": "phone",
    "password": "password",
    "checkbox": "checkbox",
    "radio": "checkbox",
}

# Lead-flow node kind by form type, and how committed each kind is.
NODE_KIND_BY_FORM_TYPE: dict[str, str] = {
    "checkout": "checkout",
    "lead_capture": "join_form",
    "contact": "lead_form",
    "newsletter": "lead_form",
}
NODE_KIND_RANK: dict[str, int] = {"info": 0, "lead_form": 1, "join_form": 2, "checkout": 3}
