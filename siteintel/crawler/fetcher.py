"""HTTP fetcher with retry and an optional Playwright fallback for JS-rendered pages."""

from __future__ import annotations

import logging
import re
import time

import httpx

from siteintel.config import settings
from siteintel.crawler.models import RawPage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SPA / JS-rendered page detection heuristics
# ---------------------------------------------------------------------------
_SPA_PATTERNS = [
    re.compile(r'<div[^>]+id=["\'](?:root|app|__next)["\']\s*>\s*</div>', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
]


def _headers() -> dict[str, str]:
    return {"User-Agent": settings.user_agent, "Accept": "text/html,application/xhtml+xml"}


def _is_spa(html: str) -> bool:
    """Return ``True`` if *html* looks like a JavaScript SPA that needs rendering."""
    for pattern in _SPA_PATTERNS:
        if pattern.search(html):
            return True
    # Very little visible text relative to total HTML size.  Script and style
    # bodies are removed first so their source does not count as text.
    no_scripts = re.sub(
        r"<(script|style)[^>]*>.*?</(script|style)>", "", html, flags=re.IGNORECASE | re.DOTALL
    )
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    return len(html) > 2000 and len(stripped) < 200


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return False


def _fetch_with_playwright(url: str) -> RawPage:
    """Render *url* with a headless Chromium browser and return its HTML.

    Playwright is imported lazily so the crawler runs without a browser
    install when the fallback is never triggered.
    """
    from playwright.sync_api import sync_playwright  # noqa: PLC0415

    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=True)
        page = browser.new_page(user_agent=settings.user_agent)
        page.goto(
            url,
            timeout=int(settings.request_timeout * 1000),
            wait_until="networkidle",
        )
        html = page.content()
        screenshot = page.screenshot(full_page=True) if settings.capture_screenshots else None
        browser.close()

    return RawPage(url=url, html=html, status_code=200, screenshot=screenshot)


def _get(url: str) -> httpx.Response:
    with httpx.Client(
        headers=_headers(),
        timeout=settings.request_timeout,
        follow_redirects=True,
    ) as client:
        response = client.get(url)
        response.raise_for_status()
        return response


def fetch_url(url: str) -> RawPage:
    """Fetch *url* and return a :class:`RawPage`.

    Transport errors, 429 and 5xx responses are retried up to
    ``settings.fetch_retries`` times with exponential backoff.  When the body
    looks like a JavaScript SPA and ``settings.browser_fallback`` is on, the
    page is re-rendered with Playwright.

    Raises:
        httpx.HTTPStatusError: If the server returns a non-retryable 4xx, or
            a 5xx on the last attempt.
        httpx.TransportError: If the host stays unreachable.
    """
    max_retries = max(settings.fetch_retries, 0)
    response: httpx.Response | None = None

    for attempt in range(max_retries + 1):
        try:
            response = _get(url)
            break
        except (httpx.TransportError, httpx.HTTPStatusError) as exc:
            if attempt < max_retries and _is_retryable(exc):
                delay = settings.retry_backoff * (2 ** attempt)
                logger.info(
                    "[FETCH] %s failed (attempt %d/%d): %s; retrying in %.1fs",
                    url, attempt + 1, max_retries + 1, exc, delay,
                )
                time.sleep(delay)
                continue
            raise

    assert response is not None
    raw = RawPage(url=str(response.url), html=response.text, status_code=response.status_code)

    if settings.browser_fallback and _is_spa(raw.html):
        logger.info("[FETCH] %s looks like a SPA; rendering with Playwright", url)
        raw = _fetch_with_playwright(url)

    return raw
