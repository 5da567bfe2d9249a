"""Optional narrative enrichment of a crawled company.

The pipeline depends only on the :class:`Enricher` protocol.  ``LLMEnricher``
is the bundled implementation and talks to a LangChain chat model; any
failure surfaces as :class:`~siteintel.errors.CollaboratorError` and the
crawl carries on without summaries.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from siteintel.config import settings
from siteintel.detectors.structure import BusinessStructure
from siteintel.errors import CollaboratorError
from siteintel.parser.models import SiteProfile

logger = logging.getLogger(__name__)


class Enricher(Protocol):
    def summarize(self, facts: dict[str, Any]) -> dict[str, str]:
        ...


def summarize_products(profile: SiteProfile) -> str:
    if not profile.products:
        return "No products detected."
    categories = list(dict.fromkeys(p.category for p in profile.products))
    return f"{len(profile.products)} products across {len(categories)} categories: {', '.join(categories)}"


def summarize_opportunity(structure: Optional[BusinessStructure]) -> Optional[str]:
    if structure is None or not structure.detected:
        return None
    summary = f"{structure.plan_type} compensation plan"
    if structure.bonuses:
        summary += f" with {len(structure.bonuses)} bonus types"
    if structure.ranks:
        summary += f" and {len(structure.ranks)} rank levels"
    return summary


def build_facts(
    profile: SiteProfile,
    structure: Optional[BusinessStructure],
    company_name: str = "",
) -> dict[str, Any]:
    """Compact, JSON-friendly fact sheet handed to an :class:`Enricher`."""
    identity = profile.identity
    return {
        "company_name": company_name or identity.company_name or "",
        "tagline": identity.tagline or "",
        "description": identity.description or identity.about or "",
        "mission": identity.mission or "",
        "products": [p.name for p in profile.products[:10]],
        "product_summary": summarize_products(profile),
        "opportunity_summary": summarize_opportunity(structure) or "",
        "value_propositions": profile.value_propositions[:5],
        "target_audiences": profile.target_audiences,
        "brand_tone": profile.brand_voice.primary_tone,
    }


# ---------------------------------------------------------------------------
# LLM-backed implementation
# ---------------------------------------------------------------------------

def _get_llm() -> Any:
    """Return a configured LangChain chat model based on ``settings``."""
    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(model=settings.openai_chat_model, temperature=0)

    from langchain_ollama import ChatOllama

    return ChatOllama(model=settings.ollama_chat_model, temperature=0)


_PROMPTS: dict[str, str] = {
    "overview": (
        "Write a neutral two-sentence overview of the company described by these "
        "facts. Use only the facts given.\n\n{facts}\n\nOverview:"
    ),
    "pitch": (
        "In one sentence, state who this company serves and what it offers them. "
        "Use only the facts given.\n\n{facts}\n\nSentence:"
    ),
}


def _format_facts(facts: dict[str, Any]) -> str:
    lines = []
    for key, value in facts.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        if value:
            lines.append(f"- {key.replace('_', ' ')}: {value}")
    return "\n".join(lines)


class LLMEnricher:
    """Summaries from the configured chat model (Ollama or OpenAI)."""

    def __init__(self, llm: Any = None) -> None:
        self._llm = llm

    @property
    def llm(self) -> Any:
        if self._llm is None:
            self._llm = _get_llm()
        return self._llm

    def summarize(self, facts: dict[str, Any]) -> dict[str, str]:
        rendered = _format_facts(facts)
        summaries: dict[str, str] = {}
        try:
            for key, template in _PROMPTS.items():
                response = self.llm.invoke(template.format(facts=rendered))
                text = response.content if hasattr(response, "content") else str(response)
                if text and text.strip():
                    summaries[key] = text.strip()
        except Exception as exc:  # noqa: BLE001
            raise CollaboratorError(f"Enrichment failed: {exc}") from exc
        logger.info("[GRAPH] Enrichment produced %d summary(ies)", len(summaries))
        return summaries
