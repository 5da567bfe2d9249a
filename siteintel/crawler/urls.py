"""URL canonicalization and frontier filtering rules."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

# Path segments worth crawling for business signals.
RELEVANT_PATH_KEYWORDS: tuple[str, ...] = (
    "product",
    "shop",
    "store",
    "about",
    "pricing",
    "price",
    "contact",
    "company",
    "team",
    "opportunity",
    "join",
    "compensation",
    "plan",
    "business",
    "service",
    "solution",
    "mission",
    "story",
    "faq",
    "testimonial",
    "success",
)

DENIED_EXTENSIONS: tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico", ".bmp",
    ".css", ".js", ".json", ".xml", ".pdf", ".zip", ".gz", ".rar",
    ".mp3", ".mp4", ".mov", ".avi", ".webm", ".woff", ".woff2", ".ttf", ".eot",
)

DENIED_PATH_SEGMENTS: tuple[str, ...] = (
    "blog",
    "news",
    "press",
    "tag",
    "tags",
    "category",
    "author",
    "wp-admin",
    "wp-content",
    "wp-json",
    "feed",
    "cart",
    "login",
    "signin",
    "account",
    "privacy",
    "terms",
    "cookie",
)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_entry_url(url: str) -> str:
    """Add a scheme when missing and canonicalize.

    >>> normalize_entry_url("Example.com/About/")
    'https://example.com/About'
    """
    raw = url.strip()
    if not _SCHEME_RE.match(raw):
        raw = "https://" + raw
    return canonicalize(raw)


def canonicalize(url: str) -> str:
    """Return the dedup key for *url*.

    Lowercases scheme and host, drops the fragment and a trailing slash, and
    sorts query parameters.  The root path canonicalizes to ``scheme://host``.
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()
    path = parts.path.rstrip("/")
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((scheme, netloc, path, query, ""))


def resolve_link(base_url: str, href: str) -> str | None:
    """Resolve *href* against *base_url* and canonicalize.

    Returns ``None`` for non-HTTP schemes (mailto:, tel:, javascript:) and
    fragment-only links.
    """
    href = (href or "").strip()
    if not href or href.startswith("#"):
        return None
    absolute = urljoin(base_url, href)
    if urlsplit(absolute).scheme not in ("http", "https"):
        return None
    return canonicalize(absolute)


def host_of(url: str) -> str:
    host = urlsplit(url).netloc.lower()
    return host[4:] if host.startswith("www.") else host


def same_host(url: str, other: str) -> bool:
    """True when both URLs share a host, ignoring a leading ``www.``."""
    return host_of(url) == host_of(other)


def site_root(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), "", "", ""))


def is_root(url: str) -> bool:
    parts = urlsplit(url)
    return parts.path.strip("/") == "" and not parts.query


def is_denied(url: str) -> bool:
    path = urlsplit(url).path.lower()
    if path.endswith(DENIED_EXTENSIONS):
        return True
    segments = [s for s in path.split("/") if s]
    return any(seg in DENIED_PATH_SEGMENTS for seg in segments)


def is_relevant(url: str) -> bool:
    """Allow-list check: the root path or a business-relevant path segment."""
    if is_root(url):
        return True
    path = urlsplit(url).path.lower()
    return any(keyword in path for keyword in RELEVANT_PATH_KEYWORDS)


def should_enqueue(url: str, entry_url: str) -> bool:
    """Combined frontier filter: same host, not denied, relevant."""
    return same_host(url, entry_url) and not is_denied(url) and is_relevant(url)
