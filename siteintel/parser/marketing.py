"""Marketing-signal derivation over a site's aggregate text.

All rules are ordered keyword tables; nothing here is statistical.  When no
rule fires the corresponding list stays empty (there are no canned defaults).
"""

from __future__ import annotations

import re

from siteintel.parser.document import split_sentences
from siteintel.parser.models import BrandVoice

VALUE_KEYWORDS = ("benefit", "advantage", "unique", "exclusive", "proven", "guarantee", "free", "bonus")
PAIN_KEYWORDS = ("problem", "challenge", "struggle", "difficult", "pain")

MAX_VALUE_PROPOSITIONS = 10
MAX_PAIN_POINTS = 5
VALUE_SENTENCE_MAX = 150
PAIN_SENTENCE_MAX = 300

# (audience label, pattern); every matching row contributes, in table order.
AUDIENCE_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("Aspiring Entrepreneurs", re.compile(r"entrepreneur|business owner|self-employed")),
    ("Stay-at-home Parents", re.compile(r"stay-at-home|work from home|flexible schedule")),
    ("Health-conscious Individuals", re.compile(r"health conscious|wellness|fitness")),
    ("Pre-retirement Professionals", re.compile(r"retire|pension|financial security")),
    ("Young Professionals", re.compile(r"millennial|young|student")),
    ("Overseas Workers", re.compile(r"\bofw\b|overseas|expatriate")),
]

# Primary tone: the category with the most keyword hits, ties resolved by
# table order.
PRIMARY_TONE_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("professional", ("professional", "enterprise", "business", "corporate", "solution")),
    ("friendly", ("friendly", "welcome", "easy", "simple", "fun", "love")),
    ("innovative", ("innovative", "cutting-edge", "revolutionary", "advanced", "leading")),
    ("trustworthy", ("trusted", "reliable", "secure", "proven", "certified")),
]

TONE_RULES: list[tuple[str, re.Pattern[str]]] = [
    ("Aspirational", re.compile(r"dream|achieve|success|freedom|lifestyle")),
    ("Scientific", re.compile(r"science|research|study|clinical|proven")),
    ("Luxury", re.compile(r"luxury|premium|exclusive|elite")),
    ("Community-focused", re.compile(r"community|family|together|team")),
    ("Inspirational", re.compile(r"empower|transform|change|impact")),
    ("Urgency-driven", re.compile(r"limited|\bnow\b|today|urgent|don't miss")),
]

THEME_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Financial Freedom", ("financial freedom", "passive income")),
    ("Health & Wellness", ("health", "wellness")),
    ("Entrepreneurship", ("entrepreneurship", "business owner")),
    ("Lifestyle Flexibility", ("time freedom", "work from home")),
    ("Community Building", ("community", "network")),
]


def _keyword_sentences(text: str, keywords: tuple[str, ...], max_len: int, limit: int) -> list[str]:
    found: list[str] = []
    for sentence in split_sentences(text):
        if len(sentence) >= max_len or sentence in found:
            continue
        if any(kw in sentence.lower() for kw in keywords):
            found.append(sentence)
            if len(found) >= limit:
                break
    return found


def value_propositions(text: str) -> list[str]:
    """Short sentences carrying a value indicator (benefit, guarantee, …)."""
    return _keyword_sentences(text, VALUE_KEYWORDS, VALUE_SENTENCE_MAX, MAX_VALUE_PROPOSITIONS)


def pain_points(text: str) -> list[str]:
    return _keyword_sentences(text, PAIN_KEYWORDS, PAIN_SENTENCE_MAX, MAX_PAIN_POINTS)


def target_audiences(text: str) -> list[str]:
    lower = (text or "").lower()
    return [label for label, pattern in AUDIENCE_RULES if pattern.search(lower)]


def primary_tone(text: str) -> str:
    """Dominant tone category, or ``""`` when no tone keyword occurs at all."""
    lower = (text or "").lower()
    best, best_hits = "", 0
    for tone, keywords in PRIMARY_TONE_RULES:
        hits = sum(1 for kw in keywords if kw in lower)
        if hits > best_hits:
            best, best_hits = tone, hits
    return best


def brand_voice(text: str) -> BrandVoice:
    lower = (text or "").lower()
    return BrandVoice(
        primary_tone=primary_tone(lower),
        tones=[label for label, pattern in TONE_RULES if pattern.search(lower)],
        themes=[label for label, keywords in THEME_RULES if any(kw in lower for kw in keywords)],
    )
