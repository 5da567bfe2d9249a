"""LangGraph state bag for one crawl session."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from siteintel.crawler.models import FetchError, PageSnapshot
from siteintel.detectors.forms import DetectedForm
from siteintel.detectors.leadflow import LeadFlowGraph
from siteintel.detectors.structure import BusinessStructure
from siteintel.graph.models import KnowledgeGraph
from siteintel.parser.models import ExtractedSignals, PlatformProfile, SiteProfile
from siteintel.registry.merge import MergedCompany


class PipelineState(TypedDict, total=False):
    session_id: str
    entry_url: str

    # fetch
    pages: list[PageSnapshot]
    fetch_errors: list[FetchError]
    platforms: dict[str, PlatformProfile]
    platform_errors: dict[str, str]

    # parse
    signals: list[ExtractedSignals]
    profile: SiteProfile
    ocr_used: bool

    # detectors
    business_structure: BusinessStructure
    detected_forms: list[DetectedForm]
    lead_flow: LeadFlowGraph

    # graph / score
    merged: MergedCompany
    enrichment_used: bool
    knowledge_graph: KnowledgeGraph
    quality_score: int
    score_breakdown: dict[str, int]
    data_sources: list[str]

    # merge
    canonical_company_id: Optional[str]
    knowledge_graph_version: Optional[int]

    stage_errors: list[dict[str, Any]]
