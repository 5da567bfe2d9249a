"""Company registry API router tests.

Companies are created by running the real pipeline against the canned
``FakeSite`` into an in-memory DB, which the TestClient then serves.
"""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from fakes import ENTRY_URL, FACEBOOK_URL
from siteintel.api.app import create_app
from siteintel.pipeline import CrawlPipeline, CrawlRequest


@pytest.fixture()
def client(conn) -> Generator[TestClient, None, None]:
    app = create_app()
    with TestClient(app) as c:
        c.app.state.db = conn
        yield c


@pytest.fixture()
def company_id(conn, acme_site) -> str:
    """Crawl the Acme site twice so the company has two graph versions."""
    pipeline = CrawlPipeline(conn=conn, fetch=acme_site)
    request = CrawlRequest(ENTRY_URL, platform_urls={"facebook": FACEBOOK_URL}, page_budget=5)
    pipeline.run(request)
    outcome = pipeline.run(request)
    assert outcome.success, outcome.error
    return outcome.canonical_company_id


class TestCompanies:
    def test_list(self, client: TestClient, company_id: str) -> None:
        companies = client.get("/companies").json()
        assert [c["id"] for c in companies] == [company_id]

    def test_get(self, client: TestClient, company_id: str) -> None:
        record = client.get(f"/companies/{company_id}").json()
        assert record["display_name"] == "Acme Wellness"
        assert record["normalized_name"] == "acme wellness"
        assert len(record["provenance"]) == 2
        assert "acmewellness" in record["aliases"]

    def test_lookup(self, client: TestClient, company_id: str) -> None:
        assert client.get("/companies/lookup", params={"name": "ACME Wellness, Inc."}).json()["id"] == company_id
        assert client.get("/companies/lookup", params={"name": "acmewellness"}).json()["id"] == company_id
        assert client.get("/companies/lookup", params={"name": "Globex"}).status_code == 404
        assert client.get("/companies/lookup", params={"name": ""}).status_code == 422

    def test_unknown_company(self, client: TestClient) -> None:
        assert client.get("/companies/nope").status_code == 404
        assert client.get("/companies/nope/graph").status_code == 404
        assert client.get("/companies/nope/graph/versions").status_code == 404
        assert client.get("/companies/nope/graph/search", params={"q": "x"}).status_code == 404


class TestGraphs:
    def test_latest_graph(self, client: TestClient, company_id: str) -> None:
        stored = client.get(f"/companies/{company_id}/graph").json()
        assert stored["version"] == 2
        assert stored["company_id"] == company_id
        assert stored["graph"]["nodes"][0]["id"] == "company"
        assert {"nodes", "edges", "insights"} <= set(stored["graph"])

    def test_specific_version(self, client: TestClient, company_id: str) -> None:
        assert client.get(f"/companies/{company_id}/graph", params={"version": 1}).json()["version"] == 1
        assert client.get(f"/companies/{company_id}/graph", params={"version": 9}).status_code == 404
        assert client.get(f"/companies/{company_id}/graph", params={"version": 0}).status_code == 422

    def test_versions(self, client: TestClient, company_id: str) -> None:
        assert client.get(f"/companies/{company_id}/graph/versions").json() == [1, 2]

    def test_search(self, client: TestClient, company_id: str) -> None:
        hits = client.get(f"/companies/{company_id}/graph/search", params={"q": "vita max"}).json()
        assert [h["id"] for h in hits] == ["product_0"]
        assert hits[0]["type"] == "product"
