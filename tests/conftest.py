"""Shared fixtures: an isolated workspace, fast crawler settings and a fake site."""

from __future__ import annotations

import pytest

from fakes import FakeSite, acme_site as _acme_site
from siteintel.config import settings
from siteintel.db import get_connection, init_db


@pytest.fixture(autouse=True)
def fast_settings(tmp_path, monkeypatch):
    """No politeness delay, no retry backoff, no browser, no collaborators."""
    monkeypatch.setattr(settings, "workspace_dir", tmp_path)
    monkeypatch.setattr(settings, "crawl_delay", 0.0)
    monkeypatch.setattr(settings, "retry_backoff", 0.0)
    monkeypatch.setattr(settings, "browser_fallback", False)
    monkeypatch.setattr(settings, "ocr_service_url", "")
    monkeypatch.setattr(settings, "enrichment_enabled", False)
    return tmp_path


@pytest.fixture()
def conn():
    """In-memory SQLite connection with the full schema."""
    connection = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def fake_site() -> type[FakeSite]:
    return FakeSite


@pytest.fixture()
def acme_site() -> FakeSite:
    return _acme_site()
