"""
Response Parser — turns free-form model text into canonical records.

  - extract_json_object()   → dict or None (never raises)
  - normalize_fields()      → alias whitelist resolved into canonical keys
  - classify_status()       → the one loose-string → ValidationStatus mapping
  - citations_from_grounding() → Gemini grounding chunks → Citation list

Loose status strings never travel past this module.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from rto_validation.errors import ResponseParseError
from rto_validation.models.enums import ValidationStatus
from rto_validation.models.schemas import Citation, ValidationOutcome
from rto_validation.utils.logger import truncate

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
_EMBEDDED_RE = re.compile(r"\{[\s\S]*\}")

# Canonical field → accepted source keys, in priority order.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "status": ("status", "validation_status"),
    "reasoning": ("reasoning", "justification", "explanation", "rationale"),
    "mapped_content": ("mapped_content", "mapped_questions", "evidence_found"),
    "citations": ("citations", "doc_references"),
    "unmapped_content": ("unmapped_content", "gaps", "recommendations"),
    "remediation": (
        "practical_workplace_task",
        "practical_task",
        "smart_task",
        "smart_question",
        "suggested_question",
        "question",
        "task",
        "tasks",
    ),
    "benchmark_answer": ("benchmark_answer", "model_answer", "expected_behavior", "answer"),
}

# Keys inside a structured remediation object
_TASK_TEXT_KEYS = ("task_text", "text", "question", "task")
_TASK_ANSWER_KEYS = ("benchmark_answer", "answer", "model_answer")

PLACEHOLDER_VALUES = frozenset({"", "n/a", "na", "none", "null", "undefined"})

_MET_FORMS = frozenset({
    "met",
    "requirementmet",
    "fullymet",
    "pass",
    "passed",
    "compliant",
    "satisfied",
    "fullysatisfied",
    "yes",
})


# ── JSON extraction ──────────────────────────────────────


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """
    Pull one JSON object out of model output.

    Tries each markdown code fence, then the raw text, then the outermost
    {...} span embedded in prose. Returns None for anything unparseable.
    """
    if not text or not text.strip():
        return None

    for fence in _FENCE_RE.finditer(text):
        data = _loads_object(fence.group(1))
        if data is not None:
            return data

    data = _loads_object(text.strip())
    if data is not None:
        return data

    embedded = _EMBEDDED_RE.search(text)
    if embedded:
        data = _loads_object(embedded.group(0))
        if data is not None:
            return data

    logger.warning(f"[Parser] No JSON object found in response: {truncate(text, 200)}")
    return None


def parse_json_response(text: str | None) -> dict[str, Any]:
    """Like extract_json_object() but raises ResponseParseError with a cause."""
    data = extract_json_object(text)
    if data is None:
        if not text or not text.strip():
            raise ResponseParseError("AI returned an empty response")
        raise ResponseParseError("AI returned invalid JSON")
    return data


# ── Field normalization ──────────────────────────────────


def normalize_key(key: str) -> str:
    """'Mapped Content' / 'mapped-content' / 'MAPPED_CONTENT' → 'mapped_content'."""
    return re.sub(r"[\s\-]+", "_", str(key).strip().lower())


def normalize_fields(data: dict[str, Any]) -> dict[str, Any]:
    """
    Resolve known aliases into canonical keys.

    Only whitelisted aliases are consulted; the first present, non-empty
    alias wins. Canonical keys with no matching alias are absent.
    """
    keyed = {normalize_key(k): v for k, v in data.items()}
    resolved: dict[str, Any] = {}
    for canonical, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            value = keyed.get(alias)
            if value is None or value == "" or value == []:
                continue
            resolved[canonical] = value
            break
    return resolved


def flatten_text(value: Any) -> str:
    """Coerce a string / object / list field into display text."""
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for key in ("text", "content", "question"):
            if isinstance(value.get(key), str) and value[key]:
                return value[key]
        return json.dumps(value)
    if isinstance(value, list):
        return "\n".join(
            item if isinstance(item, str) else json.dumps(item) for item in value
        )
    return str(value)


def is_placeholder(value: str | None) -> bool:
    return value is None or value.strip().lower() in PLACEHOLDER_VALUES


# ── Status ───────────────────────────────────────────────


def classify_status(raw: Any) -> ValidationStatus:
    """
    Map any model phrasing onto the tri-state status.

    Case, whitespace and punctuation are ignored. Unknown values are
    treated as Not Met.
    """
    if isinstance(raw, ValidationStatus):
        return raw
    compact = re.sub(r"[^a-z]", "", str(raw or "").lower())
    if compact in _MET_FORMS:
        return ValidationStatus.MET
    if "partial" in compact:
        return ValidationStatus.PARTIALLY_MET
    if compact and compact not in ("notmet", "fail", "failed", "noncompliant", "notcompliant", "unknown"):
        logger.warning(f"[Parser] Unknown status value {raw!r}, treating as Not Met")
    return ValidationStatus.NOT_MET


# ── Remediation fields ───────────────────────────────────


def extract_remediation(fields: dict[str, Any]) -> tuple[str, str]:
    """Return (task_text, benchmark_answer) from normalized fields."""
    task_text = ""
    benchmark = ""

    task_field = fields.get("remediation")
    if isinstance(task_field, dict):
        task_text = next(
            (str(task_field[k]) for k in _TASK_TEXT_KEYS if task_field.get(k)), ""
        )
        benchmark = next(
            (str(task_field[k]) for k in _TASK_ANSWER_KEYS if task_field.get(k)), ""
        )
    elif isinstance(task_field, list):
        task_text = "\n".join(
            t if isinstance(t, str)
            else str(next((t[k] for k in _TASK_TEXT_KEYS if isinstance(t, dict) and t.get(k)), json.dumps(t)))
            for t in task_field
        )
    elif task_field:
        task_text = str(task_field)

    if not benchmark:
        benchmark = flatten_text(fields.get("benchmark_answer"))

    return task_text, benchmark


# ── Outcome building ─────────────────────────────────────


def _citation_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [c if isinstance(c, str) else json.dumps(c) for c in value]
    return [json.dumps(value)]


def build_outcome(data: dict[str, Any]) -> ValidationOutcome:
    """Normalize a parsed Phase 1 response into a ValidationOutcome."""
    fields = normalize_fields(data)

    mapped = fields.get("mapped_content", "")
    citations = fields.get("citations")
    # Some templates put the citation list in mapped_content
    if isinstance(mapped, list) and not citations:
        citations = mapped
        mapped = ""

    task_text, benchmark = extract_remediation(fields)

    return ValidationOutcome(
        status=classify_status(fields.get("status")),
        reasoning=flatten_text(fields.get("reasoning")),
        mapped_content=flatten_text(mapped),
        citations=_citation_list(citations),
        unmapped_content=flatten_text(fields.get("unmapped_content")),
        remediation=task_text,
        benchmark_answer=benchmark,
    )


# ── Grounding citations ──────────────────────────────────


def _get(obj: Any, *names: str) -> Any:
    """Read a field from a dict or an SDK object under any of the names."""
    for name in names:
        if isinstance(obj, dict):
            if obj.get(name) is not None:
                return obj[name]
        elif getattr(obj, name, None) is not None:
            return getattr(obj, name)
    return None


def citations_from_grounding(chunks: list[Any] | None) -> list[Citation]:
    """Convert Gemini grounding chunks (dicts or SDK objects) into Citations."""
    citations: list[Citation] = []
    for chunk in chunks or []:
        file_chunk = _get(chunk, "file_search_chunk", "fileSearchChunk")
        retrieved = _get(chunk, "retrieved_context", "retrievedContext")
        web = _get(chunk, "web")

        name = (
            _get(file_chunk, "document_name", "documentName", "display_name", "displayName")
            or _get(retrieved, "title", "uri")
            or _get(web, "uri")
            or "Unknown"
        )
        pages = _get(file_chunk, "page_numbers", "pageNumbers") or []
        text = (
            _get(file_chunk, "content", "chunk_text", "chunkText")
            or _get(retrieved, "text")
            or ""
        )
        citations.append(
            Citation(document_name=str(name), page_numbers=list(pages), chunk_text=str(text))
        )
    logger.debug(f"[Parser] Extracted {len(citations)} grounding citations")
    return citations


def merge_grounding_citations(
    outcome: ValidationOutcome, citations: list[Citation]
) -> ValidationOutcome:
    """Fill an outcome's citations from grounding metadata when the model gave none."""
    if outcome.citations or not citations:
        return outcome
    labels: list[str] = []
    for citation in citations:
        label = citation.label()
        if label not in labels:
            labels.append(label)
    return outcome.model_copy(update={"citations": labels})
