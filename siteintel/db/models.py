"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"
FINISHED_STATUSES = frozenset({COMPLETED, FAILED})


@dataclass
class CrawlSession:
    id: str
    entry_url: str
    page_budget: int
    status: str
    started_at: int
    platform_urls: dict[str, str] = field(default_factory=dict)
    company_id: Optional[str] = None
    ended_at: Optional[int] = None
    pages_crawled: int = 0
    quality_score: Optional[int] = None
    data_sources: list[str] = field(default_factory=list)
    error: Optional[str] = None
    canonical_company_id: Optional[str] = None
    graph_version: Optional[int] = None

    @property
    def finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StoredPage:
    session_id: str
    position: int
    url: str
    status_code: int
    title: str
    depth: int
    html: str
    text: str

    def to_dict(self, include_html: bool = False) -> dict[str, Any]:
        data = asdict(self)
        if not include_html:
            data.pop("html")
        return data


@dataclass
class CanonicalCompanyRecord:
    id: str
    normalized_name: str
    display_name: str
    platform_urls: dict[str, str] = field(default_factory=dict)
    profile: dict[str, Any] = field(default_factory=dict)
    data_sources: list[str] = field(default_factory=list)
    provenance: list[dict[str, Any]] = field(default_factory=list)
    quality_score: int = 0
    aliases: list[str] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GraphVersion:
    company_id: str
    version: int
    session_id: Optional[str]
    graph: dict[str, Any]
    created_at: int
