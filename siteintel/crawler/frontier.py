"""Bounded breadth-first crawl frontier.

``crawl_site`` drives a same-domain BFS from an entry URL:

    entry → fetch batch (worker pool) → extract links → filter → enqueue → …

Each BFS batch is fetched on a small ``ThreadPoolExecutor``; the batch never
holds more URLs than the remaining page budget, so the number of retrieved
pages can never exceed it.  Results are collected in discovery order, which
makes "first non-empty wins" aggregation downstream reproducible.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import httpx
from bs4 import BeautifulSoup

from siteintel.config import settings
from siteintel.crawler.fetcher import fetch_url
from siteintel.crawler.models import CrawlResult, FetchError, PageSnapshot, RawPage
from siteintel.crawler.urls import (
    canonicalize,
    is_root,
    normalize_entry_url,
    resolve_link,
    should_enqueue,
    site_root,
)
from siteintel.parser.document import readable_text

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], RawPage]
PageCallback = Callable[[PageSnapshot, int], None]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def extract_links(html: str, base_url: str) -> list[tuple[str, str]]:
    """Return ``(canonical_url, link_text)`` pairs for every ``<a href>``.

    Order follows the document; duplicates (same URL) keep the first text.
    """
    soup = BeautifulSoup(html, "html.parser")
    seen: set[str] = set()
    links: list[tuple[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        target = resolve_link(base_url, anchor["href"])
        if target is None or target in seen:
            continue
        seen.add(target)
        links.append((target, anchor.get_text(" ", strip=True)))
    return links


def _title_of(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def _describe_error(exc: Exception) -> tuple[str, Optional[int]]:
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return f"HTTP {code}", code
    if isinstance(exc, httpx.TransportError):
        return f"network error: {exc.__class__.__name__}: {exc}", None
    return f"{exc.__class__.__name__}: {exc}", None


class _PoliteFetcher:
    """Wraps a fetch function with a per-worker politeness delay.

    Every request issued by a worker thread after its first one waits
    ``delay`` seconds, so one worker never hits the host back-to-back.
    """

    def __init__(self, fetch: FetchFn, delay: float) -> None:
        self._fetch = fetch
        self._delay = delay
        self._local = threading.local()

    def __call__(self, url: str) -> RawPage | Exception:
        if getattr(self._local, "fetched", False) and self._delay > 0:
            time.sleep(self._delay)
        self._local.fetched = True
        try:
            return self._fetch(url)
        except Exception as exc:  # noqa: BLE001
            return exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def crawl_site(
    entry_url: str,
    page_budget: int,
    *,
    fetch: FetchFn = fetch_url,
    cancel: Optional[threading.Event] = None,
    on_page: Optional[PageCallback] = None,
    workers: Optional[int] = None,
    delay: Optional[float] = None,
) -> CrawlResult:
    """Crawl up to *page_budget* same-domain pages starting at *entry_url*.

    Never raises for individual page failures: they are returned in
    ``CrawlResult.errors``.  If the entry URL fails and is not the site root,
    the root is tried as a fallback entry.

    Args:
        entry_url: Where the BFS starts.  A scheme is added when missing.
        page_budget: Maximum number of pages to retrieve.
        fetch: Fetch function, ``fetch_url`` by default.
        cancel: When set, no further batches are started.
        on_page: Called with ``(snapshot, pages_so_far)`` after every
            successful page, in discovery order.
        workers: Pool size override (``settings.crawl_workers``).
        delay: Politeness delay override (``settings.crawl_delay``).
    """
    start = normalize_entry_url(entry_url)
    budget = max(int(page_budget), 0)
    pool_size = max(workers or settings.crawl_workers, 1)
    polite = _PoliteFetcher(fetch, settings.crawl_delay if delay is None else delay)

    result = CrawlResult()
    queue: deque[tuple[str, int]] = deque([(start, 0)])
    visited: set[str] = {start}
    retrieved: set[str] = set()
    root_fallback_used = is_root(start)

    logger.info("[FETCH] Crawling %s (budget=%d, workers=%d)", start, budget, pool_size)

    with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="fetch") as pool:
        while queue and len(result.pages) < budget:
            if cancel is not None and cancel.is_set():
                logger.info("[FETCH] Cancelled after %d page(s)", len(result.pages))
                result.cancelled = True
                break

            remaining = budget - len(result.pages)
            batch = [queue.popleft() for _ in range(min(pool_size, remaining, len(queue)))]
            outcomes = list(pool.map(polite, [url for url, _ in batch]))

            for (url, depth), outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    reason, code = _describe_error(outcome)
                    logger.warning("[FETCH] ✗ %s: %s", url, reason)
                    result.errors.append(FetchError(url=url, reason=reason, status_code=code))
                    if depth == 0 and not root_fallback_used:
                        root_fallback_used = True
                        root = site_root(url)
                        if root not in visited:
                            visited.add(root)
                            queue.append((root, 0))
                    continue

                final_url = canonicalize(outcome.url) if outcome.url else url
                if final_url != url and final_url in retrieved:
                    logger.debug("[FETCH] %s redirected to already-retrieved %s", url, final_url)
                    continue

                snapshot = PageSnapshot(
                    url=url,
                    status_code=outcome.status_code,
                    html=outcome.html,
                    text=readable_text(outcome.html, url),
                    title=_title_of(outcome.html),
                    depth=depth,
                    screenshot=outcome.screenshot,
                )
                result.pages.append(snapshot)
                retrieved.update({url, final_url})
                visited.add(final_url)
                logger.info("[FETCH] ✓ %s (%d/%d)", url, len(result.pages), budget)
                if on_page is not None:
                    on_page(snapshot, len(result.pages))

                for link, _text in extract_links(outcome.html, url):
                    if link in visited or not should_enqueue(link, start):
                        continue
                    visited.add(link)
                    queue.append((link, depth + 1))

    logger.info(
        "[FETCH] Done: %d page(s), %d error(s)", len(result.pages), len(result.errors)
    )
    return result
