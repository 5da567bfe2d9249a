"""LangGraph node functions for the crawl pipeline.

Each public symbol is a *factory* that accepts a :class:`StageContext` and
returns a callable ``(PipelineState) -> dict`` suitable for use as a
LangGraph node.  The context (DB connection, collaborators, cancel flag,
progress reporter) lives in the closure, never in the state bag.

Public factories
----------------
``make_fetch``     — site crawl plus platform pages, **concurrently**.
``make_parse``     — per-page parsing **in parallel**, OCR, aggregation.
``make_structure`` — compensation/referral plan detection.
``make_forms``     — form detection and the lead-flow graph.
``make_graph``     — multi-source merge, enrichment, knowledge graph.
``make_score``     — extraction-quality score.
``make_merge``     — registry upsert and artifact persistence.

Every stage except fetch and merge is isolated: an unexpected exception is
logged, recorded under ``stage_errors`` and replaced by the stage's empty
default so the session keeps going.
"""

from __future__ import annotations

import functools
import logging
import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from siteintel.config import settings
from siteintel.crawler.fetcher import fetch_url
from siteintel.crawler.frontier import FetchFn, crawl_site
from siteintel.crawler.urls import host_of, normalize_entry_url
from siteintel.db.artifacts import persist_results
from siteintel.detectors.forms import detect_forms
from siteintel.detectors.leadflow import LeadFlowGraph, build_lead_flow, summarize_lead_strategy
from siteintel.detectors.structure import BusinessStructure, detect_structure
from siteintel.errors import CollaboratorError, CrawlCancelled, PersistenceError
from siteintel.graph.builder import build_knowledge_graph
from siteintel.parser.aggregate import aggregate_signals
from siteintel.parser.document import parse_page
from siteintel.parser.models import PlatformProfile, SiteProfile
from siteintel.parser.ocr import OcrClient, blocks_to_text, ocr_pages
from siteintel.parser.platforms import extract_platform_profile
from siteintel.pipeline.enrichment import Enricher, build_facts
from siteintel.pipeline.progress import ProgressReporter
from siteintel.pipeline.state import PipelineState
from siteintel.registry.merge import MergedCompany, merge_sources
from siteintel.registry.names import normalize_name
from siteintel.scoring import QualityInputs, score_breakdown, score_quality

logger = logging.getLogger(__name__)

Node = Callable[[PipelineState], dict]


@dataclass
class StageContext:
    """Everything a node needs besides the state bag."""

    conn: sqlite3.Connection
    session_id: str
    entry_url: str
    page_budget: int
    reporter: ProgressReporter
    platform_urls: dict[str, str] = field(default_factory=dict)
    cancel: threading.Event = field(default_factory=threading.Event)
    fetch: FetchFn = fetch_url
    ocr: Optional[OcrClient] = None
    enricher: Optional[Enricher] = None

    def check_cancelled(self, stage: str) -> None:
        if self.cancel.is_set():
            logger.info("[%s] Session %s cancelled", stage.upper(), self.session_id)
            raise CrawlCancelled(f"Session {self.session_id} was cancelled")


def _isolated(ctx: StageContext, stage: str, default: Callable[[PipelineState], dict]) -> Callable[[Node], Node]:
    """Run a node with cancellation checks and failure isolation."""

    def decorator(fn: Node) -> Node:
        @functools.wraps(fn)
        def wrapper(state: PipelineState) -> dict:
            ctx.check_cancelled(stage)
            try:
                return fn(state)
            except (CrawlCancelled, PersistenceError):
                raise
            except Exception as exc:  # noqa: BLE001
                logger.exception("[%s] Stage failed, using defaults: %s", stage.upper(), exc)
                update = default(state)
                update["stage_errors"] = [
                    *state.get("stage_errors", []),
                    {"stage": stage, "error": f"{exc.__class__.__name__}: {exc}"},
                ]
                ctx.reporter.emit(stage, f"{stage} failed ({exc}); continuing with defaults")
                return update

        return wrapper

    return decorator


def _fallback_name(ctx: StageContext) -> str:
    return host_of(normalize_entry_url(ctx.entry_url))


# ---------------------------------------------------------------------------
# Node factories
# ---------------------------------------------------------------------------

def make_fetch(ctx: StageContext) -> Node:
    """Return the *fetch* node: site crawl plus platform pages."""

    def _fetch_platform(platform: str, url: str) -> PlatformProfile:
        raw = ctx.fetch(url)
        return extract_platform_profile(platform, raw.html, url)

    def fetch(state: PipelineState) -> dict:
        ctx.check_cancelled("fetch")
        ctx.reporter.emit("fetch", f"Crawling {ctx.entry_url}", percent=1)

        with ThreadPoolExecutor(max_workers=max(len(ctx.platform_urls), 1), thread_name_prefix="platform") as pool:
            futures = {
                platform: pool.submit(_fetch_platform, platform, url)
                for platform, url in ctx.platform_urls.items()
            }
            result = crawl_site(
                ctx.entry_url,
                ctx.page_budget,
                fetch=ctx.fetch,
                cancel=ctx.cancel,
                on_page=lambda page, count: ctx.reporter.fetch_progress(count, f"Fetched {page.url}"),
            )
            platforms: dict[str, PlatformProfile] = {}
            platform_errors: dict[str, str] = {}
            for platform, future in futures.items():
                try:
                    platforms[platform] = future.result()
                except Exception as exc:  # noqa: BLE001
                    logger.warning("[FETCH] %s page %s failed: %s", platform, ctx.platform_urls[platform], exc)
                    platform_errors[platform] = f"{exc.__class__.__name__}: {exc}"

        if result.cancelled:
            ctx.check_cancelled("fetch")

        ctx.reporter.emit(
            "fetch",
            f"Retrieved {len(result.pages)} page(s), {len(result.errors)} failed, "
            f"{len(platforms)} platform page(s)",
            pages_processed=len(result.pages),
        )
        return {
            "pages": result.pages,
            "fetch_errors": result.errors,
            "platforms": platforms,
            "platform_errors": platform_errors,
        }

    return fetch


def make_parse(ctx: StageContext) -> Node:
    """Return the *parse* node: parse every page, OCR screenshots, aggregate."""

    def _default(state: PipelineState) -> dict:
        return {"signals": [], "profile": SiteProfile(entry_url=ctx.entry_url), "ocr_used": False}

    @_isolated(ctx, "parse", _default)
    def parse(state: PipelineState) -> dict:
        pages = state.get("pages", [])
        with ThreadPoolExecutor(max_workers=max(settings.crawl_workers, 1), thread_name_prefix="parse") as pool:
            signals = list(pool.map(lambda p: parse_page(p.html, p.url), pages))

        ocr_text, ocr_used = "", False
        if ctx.ocr is not None and any(p.screenshot for p in pages):
            try:
                ocr_text = blocks_to_text(ocr_pages(ctx.ocr, pages))
                ocr_used = bool(ocr_text)
            except CollaboratorError as exc:
                logger.warning("[PARSE] OCR unavailable, continuing without it: %s", exc)

        profile = aggregate_signals(signals, ocr_text=ocr_text, entry_url=normalize_entry_url(ctx.entry_url))
        ctx.reporter.emit(
            "parse",
            f"Parsed {len(signals)} page(s): {len(profile.products)} product(s), "
            f"name={profile.identity.company_name or '?'}",
        )
        return {"signals": signals, "profile": profile, "ocr_used": ocr_used}

    return parse


def make_structure(ctx: StageContext) -> Node:
    """Return the *structure* node."""

    @_isolated(ctx, "structure", lambda _s: {"business_structure": BusinessStructure()})
    def structure(state: PipelineState) -> dict:
        profile = state.get("profile") or SiteProfile()
        found = detect_structure(profile.text)
        message = (
            f"{found.plan_type} plan detected (confidence {found.confidence})"
            if found.detected
            else "No compensation plan detected"
        )
        ctx.reporter.emit("structure", message)
        return {"business_structure": found}

    return structure


def make_forms(ctx: StageContext) -> Node:
    """Return the *forms* node: per-page forms, then the session lead flow."""

    @_isolated(ctx, "forms", lambda _s: {"detected_forms": [], "lead_flow": LeadFlowGraph()})
    def forms(state: PipelineState) -> dict:
        pages = state.get("pages", [])
        detected = [form for page in pages for form in detect_forms(page.html, page.url)]
        flow = build_lead_flow(pages, detected)
        ctx.reporter.emit("forms", f"{len(detected)} form(s); {summarize_lead_strategy(detected, flow)}")
        return {"detected_forms": detected, "lead_flow": flow}

    return forms


def make_graph(ctx: StageContext) -> Node:
    """Return the *graph* node: merge sources, enrich, build the knowledge graph."""

    def _default(state: PipelineState) -> dict:
        name = _fallback_name(ctx)
        merged = MergedCompany(company_name=name, normalized_name=normalize_name(name))
        return {
            "merged": merged,
            "knowledge_graph": build_knowledge_graph(merged),
            "enrichment_used": False,
        }

    @_isolated(ctx, "graph", _default)
    def graph(state: PipelineState) -> dict:
        profile = state.get("profile") or SiteProfile(entry_url=ctx.entry_url)
        merged = merge_sources(profile, state.get("platforms", {}), fallback_name=_fallback_name(ctx))

        enrichment_used = False
        if ctx.enricher is not None:
            try:
                facts = build_facts(profile, state.get("business_structure"), merged.company_name)
                summaries = ctx.enricher.summarize(facts)
            except Exception as exc:  # noqa: BLE001
                logger.warning("[GRAPH] Enrichment unavailable, continuing without it: %s", exc)
            else:
                if summaries:
                    profile.summaries = dict(summaries)
                    merged.summaries = dict(summaries)
                    enrichment_used = True

        built = build_knowledge_graph(merged)
        ctx.reporter.emit("graph", f"Knowledge graph: {len(built.nodes)} node(s), {len(built.edges)} edge(s)")
        return {"merged": merged, "knowledge_graph": built, "enrichment_used": enrichment_used}

    return graph


def make_score(ctx: StageContext) -> Node:
    """Return the *score* node."""

    @_isolated(ctx, "score", lambda _s: {"quality_score": 0, "score_breakdown": {}})
    def score(state: PipelineState) -> dict:
        inputs = QualityInputs(
            pages=len(state.get("pages", [])),
            profile=state.get("profile") or SiteProfile(),
            structure=state.get("business_structure"),
            platforms=state.get("platforms", {}),
        )
        value = score_quality(inputs)
        ctx.reporter.emit("score", f"Quality score {value}/100")
        return {"quality_score": value, "score_breakdown": score_breakdown(inputs)}

    return score


def collect_data_sources(state: PipelineState) -> list[str]:
    """Sources that actually contributed: website, platforms, then collaborators."""
    sources = ["website"] if state.get("pages") else []
    sources += [p for p in ("facebook", "youtube", "linkedin") if p in state.get("platforms", {})]
    if state.get("ocr_used"):
        sources.append("ocr")
    if state.get("enrichment_used"):
        sources.append("enrichment")
    return sources


def session_artifacts(state: PipelineState) -> dict[str, Any]:
    """JSON-ready artifacts of a session, keyed by artifact kind."""
    profile = state.get("profile")
    structure = state.get("business_structure")
    flow = state.get("lead_flow")
    return {
        "signals": profile.to_dict() if profile else {},
        "forms": [f.to_dict() for f in state.get("detected_forms", [])],
        "lead_flow": flow.to_dict() if flow else {},
        "structure": structure.to_dict() if structure else {},
        "platforms": {k: v.to_dict() for k, v in state.get("platforms", {}).items()},
        "fetch_errors": [e.to_dict() for e in state.get("fetch_errors", [])],
        "stage_errors": list(state.get("stage_errors", [])),
    }


def make_merge(ctx: StageContext) -> Node:
    """Return the *merge* node: one transaction for registry and artifacts.

    Not isolated: a persistence failure fails the session.
    """

    def merge(state: PipelineState) -> dict:
        ctx.check_cancelled("merge")
        data_sources = collect_data_sources(state)
        structure = state.get("business_structure")
        try:
            record, version = persist_results(
                ctx.conn,
                ctx.session_id,
                pages=state.get("pages", []),
                artifacts=session_artifacts(state),
                merged=state["merged"],
                graph=state["knowledge_graph"],
                quality_score=state.get("quality_score", 0),
                data_sources=data_sources,
                profile_extra={"structure": structure.to_dict() if structure else None},
            )
        except PersistenceError:
            raise
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not persist session {ctx.session_id}: {exc}") from exc

        ctx.reporter.emit("merge", f"Merged into {record.display_name} (graph v{version})")
        return {
            "data_sources": data_sources,
            "canonical_company_id": record.id,
            "knowledge_graph_version": version,
        }

    return merge
