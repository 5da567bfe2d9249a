"""Form detection, classification and friction scoring."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

from siteintel.config import settings
from siteintel.detectors import rules

logger = logging.getLogger(__name__)

_HEADINGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


@dataclass
class FormField:
    name: str
    kind: str = "text"
    required: bool = False
    label: str = ""


@dataclass
class DetectedForm:
    page_url: str
    form_type: str = "other"
    fields: list[FormField] = field(default_factory=list)
    cta_text: str = "Submit"
    action: str = ""
    method: str = "get"
    complexity_score: int = 0
    barrier_score: int = 0

    @property
    def required_count(self) -> int:
        return sum(1 for f in self.fields if f.required)

    def has_kind(self, kind: str) -> bool:
        return any(f.kind == kind for f in self.fields)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DetectedForm":
        values = dict(data)
        values["fields"] = [FormField(**f) for f in values.get("fields", [])]
        return cls(**values)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _is_required(element: Tag) -> bool:
    return element.has_attr("required") or element.get("aria-required") == "true"


def _label_for(element: Tag, form: Tag) -> str:
    element_id = element.get("id")
    if element_id:
        label = form.find("label", attrs={"for": element_id})
        if isinstance(label, Tag):
            return _clean(label.get_text(" "))
    parent_label = element.find_parent("label")
    if isinstance(parent_label, Tag):
        return _clean(parent_label.get_text(" "))
    return _clean(element.get("placeholder") or element.get("aria-label") or "")


def _field_kind(element: Tag) -> Optional[str]:
    if element.name == "select":
        return "select"
    if element.name == "textarea":
        return "textarea"
    input_type = (element.get("type") or "text").lower()
    if input_type in rules.SKIPPED_INPUT_TYPES:
        return None
    return rules.FIELD_KIND_BY_INPUT_TYPE.get(input_type, "text")


def extract_fields(form: Tag) -> list[FormField]:
    fields: list[FormField] = []
    for element in form.find_all(["input", "select", "textarea"]):
        kind = _field_kind(element)
        if kind is None:
            continue
        label = _label_for(element, form)
        name = element.get("name") or element.get("id") or label or kind
        fields.append(FormField(name=name, kind=kind, required=_is_required(element), label=label))
    return fields


def _nearest_heading(form: Tag) -> str:
    heading = form.find(_HEADINGS) or form.find_previous(_HEADINGS)
    return _clean(heading.get_text(" ")) if isinstance(heading, Tag) else ""


def extract_cta(form: Tag) -> str:
    """Submit-control text, else the nearest preceding heading, else "Submit"."""
    for button in form.find_all("button"):
        if (button.get("type") or "submit").lower() == "submit":
            text = _clean(button.get_text(" "))
            if text:
                return text
    submit = form.find("input", attrs={"type": re.compile(r"^submit$", re.I)})
    if isinstance(submit, Tag) and _clean(submit.get("value", "")):
        return _clean(submit["value"])
    return _nearest_heading(form) or "Submit"


def classify_form(cta_text: str, fields: list[FormField], context: str = "") -> str:
    """Priority-ordered classification over CTA wording and field shape."""
    wording = f"{cta_text} {context}".lower()
    kinds = {f.kind for f in fields}
    if "password" in kinds or rules.LOGIN_WORDS.search(wording):
        return "login"
    if "textarea" in kinds:
        return "contact"
    if rules.LEAD_CAPTURE_WORDS.search(wording):
        return "lead_capture"
    if rules.CHECKOUT_WORDS.search(wording):
        return "checkout"
    if rules.NEWSLETTER_WORDS.search(wording) and len(fields) <= rules.NEWSLETTER_MAX_FIELDS:
        return "newsletter"
    if rules.CONTACT_WORDS.search(wording):
        return "contact"
    return "other"


def complexity_score(fields: list[FormField]) -> int:
    points, cap = rules.COMPLEXITY_FIELD_POINTS
    required_points, required_cap = rules.REQUIRED_POINTS
    score = min(points * len(fields), cap)
    score += min(required_points * sum(1 for f in fields if f.required), required_cap)
    kinds = {f.kind for f in fields}
    score += sum(bonus for kind, bonus in rules.COMPLEXITY_KIND_BONUS.items() if kind in kinds)
    return min(score, 100)


def barrier_score(fields: list[FormField], form_type: str) -> int:
    count = len(fields)
    score = next(
        (points for threshold, points in rules.BARRIER_FIELD_TIERS if count > threshold),
        rules.BARRIER_BASE_TIER,
    )
    required_points, required_cap = rules.REQUIRED_POINTS
    score += min(required_points * sum(1 for f in fields if f.required), required_cap)
    score += rules.BARRIER_TYPE_PENALTY.get(form_type, 0)
    if any(f.kind == "password" for f in fields):
        score += rules.BARRIER_PASSWORD_PENALTY
    return min(score, 100)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_forms(html: str, url: str) -> list[DetectedForm]:
    """Detect and score every ``<form>`` on one page (max ``settings.max_forms``)."""
    soup = BeautifulSoup(html or "", "html.parser")
    detected: list[DetectedForm] = []
    for form in soup.find_all("form"):
        if len(detected) >= settings.max_forms:
            break
        fields = extract_fields(form)
        if not fields:
            continue
        cta = extract_cta(form)
        context = " ".join(
            [_nearest_heading(form), " ".join(form.get("class", [])), form.get("id") or ""]
        )
        form_type = classify_form(cta, fields, context)
        detected.append(
            DetectedForm(
                page_url=url,
                form_type=form_type,
                fields=fields,
                cta_text=cta,
                action=form.get("action") or "",
                method=(form.get("method") or "get").lower(),
                complexity_score=complexity_score(fields),
                barrier_score=barrier_score(fields, form_type),
            )
        )
    if detected:
        logger.info("[FORMS] %s: %d form(s) %s", url, len(detected), [f.form_type for f in detected])
    return detected
