"""Single-page extraction for social and professional-network pages."""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from siteintel.parser.document import meta_content, split_sentences, visible_text
from siteintel.parser.models import PlatformProfile

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("facebook", "youtube", "linkedin")

PLATFORM_CTA_KEYWORDS = ("subscribe", "join", "buy", "get started", "sign up", "learn more", "download")
MAX_PLATFORM_CTAS = 5

_ABOUT_RE = re.compile(r"About[:\s]+([^.]+\.)", re.IGNORECASE)
_INDUSTRY_RE = re.compile(r"Industry\s*:?\s*([A-Z][\w&,/ -]{2,60}?)(?:\s{2,}|\.|\n|$| Company size)")
_SPECIALTIES_RE = re.compile(r"Specialties\s*:?\s*([^.\n]{3,300})", re.IGNORECASE)
_LINE_SPLIT = re.compile(r"\s*\n\s*|(?<=[.!?])\s+")


def _page_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.get_text():
        return soup.title.get_text().strip()
    return ""


def _facebook(soup: BeautifulSoup, text: str, profile: PlatformProfile) -> None:
    profile.name = meta_content(soup, prop="og:title") or _page_title(soup).split("|")[0].strip()
    match = _ABOUT_RE.search(text)
    about = match.group(1).strip() if match else ""
    profile.description = about or (meta_content(soup, prop="og:description") or "")
    profile.mission = about


def _youtube(soup: BeautifulSoup, text: str, profile: PlatformProfile) -> None:
    title = meta_content(soup, prop="og:title") or _page_title(soup)
    profile.name = title.replace("- YouTube", "").strip()
    about = next((line for line in _LINE_SPLIT.split(text) if 100 < len(line) < 500), "")
    profile.description = about or (meta_content(soup, prop="og:description") or "")
    ctas: list[str] = []
    for sentence in split_sentences(text.lower()):
        if any(kw in sentence for kw in PLATFORM_CTA_KEYWORDS) and sentence not in ctas:
            ctas.append(sentence)
            if len(ctas) >= MAX_PLATFORM_CTAS:
                break
    profile.ctas = ctas


def _linkedin(soup: BeautifulSoup, text: str, profile: PlatformProfile) -> None:
    title = meta_content(soup, prop="og:title") or _page_title(soup)
    profile.name = title.split("|")[0].strip()
    description = meta_content(soup, prop="og:description") or meta_content(soup, name="description")
    if not description:
        description = next((line for line in _LINE_SPLIT.split(text) if len(line) > 50), "")
    profile.description = description
    industry = _INDUSTRY_RE.search(text)
    profile.industry = industry.group(1).strip() if industry else ""
    specialties = _SPECIALTIES_RE.search(text)
    if specialties:
        items = re.split(r",|\band\b", specialties.group(1))
        profile.services = [item.strip() for item in items if item.strip()]


_EXTRACTORS = {
    "facebook": _facebook,
    "youtube": _youtube,
    "linkedin": _linkedin,
}


def extract_platform_profile(platform: str, html: str, url: str) -> PlatformProfile:
    """Extract a :class:`PlatformProfile` from one platform page.

    Raises:
        ValueError: If *platform* is not one of :data:`SUPPORTED_PLATFORMS`.
    """
    if platform not in _EXTRACTORS:
        raise ValueError(f"Unsupported platform: {platform!r}")
    soup = BeautifulSoup(html or "", "html.parser")
    profile = PlatformProfile(platform=platform, url=url)
    _EXTRACTORS[platform](soup, visible_text(html or ""), profile)
    logger.debug("[PARSE] %s profile for %s: name=%r", platform, url, profile.name)
    return profile
