"""In-process stand-ins for the network: a canned site and its pages."""

from __future__ import annotations

from typing import Optional

import httpx

from siteintel.crawler.models import RawPage


class FakeSite:
    """A fetch function serving canned HTML; unknown URLs answer 404.

    ``down`` lists URLs that fail at the transport level instead.
    """

    def __init__(self, pages: dict[str, str], down: Optional[set[str]] = None) -> None:
        self.pages = pages
        self.down = down or set()
        self.requested: list[str] = []

    def __call__(self, url: str) -> RawPage:
        self.requested.append(url)
        if url in self.down:
            raise httpx.ConnectError(f"unreachable: {url}")
        if url not in self.pages:
            request = httpx.Request("GET", url)
            raise httpx.HTTPStatusError(
                "404 Not Found", request=request, response=httpx.Response(404, request=request)
            )
        return RawPage(url=url, html=self.pages[url], status_code=200)


# ---------------------------------------------------------------------------
# A small company site shared by the pipeline, API and CLI tests
# ---------------------------------------------------------------------------

ENTRY_URL = "https://acme.test/start"
FACEBOOK_URL = "https://facebook.com/acme"

ACME_PAGES: dict[str, str] = {
    "https://acme.test": """\
<html><head><title>Acme Wellness | Home</title>
<meta name="description" content="Acme makes natural wellness products."></head>
<body>
  <h1>Welcome to Acme</h1>
  <p>Our binary compensation plan rewards your whole downline.</p>
  <a href="/about">About us</a> <a href="/products">Products</a> <a href="/blog/news">Blog</a>
</body></html>""",
    "https://acme.test/about": """\
<html><head><title>About | Acme Wellness</title></head>
<body><h1>About Acme</h1><p>Founded in 2001 in Manila.</p><a href="/">Home</a></body></html>""",
    "https://acme.test/products": """\
<html><head><title>Products | Acme Wellness</title></head>
<body>
  <div class="product"><h3>Vita Max</h3><p>Daily vitamin blend. $29.00</p></div>
  <h2>Join our team</h2>
  <form action="/join"><input type="email" name="email" required><button>Join now</button></form>
</body></html>""",
    FACEBOOK_URL: """\
<html><head><title>Acme Wellness | Facebook</title></head>
<body><p>About: Natural wellness for busy families.</p></body></html>""",
}


def acme_site() -> FakeSite:
    """The Acme site; the entry URL is unreachable so a crawl falls back to the root."""
    return FakeSite(ACME_PAGES, down={ENTRY_URL})
