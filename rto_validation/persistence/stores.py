"""
Store interfaces and their in-memory implementations.

Each store is a Protocol so the resolver, validator and orchestrator can
take either the in-memory variant (tests, local dev) or the MongoDB
variant in mongo_stores.py without caring which.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Optional, Protocol

from rto_validation.models.enums import DocumentType, PromptPhase, RequirementType
from rto_validation.models.schemas import (
    DocumentElement,
    PromptTemplate,
    Requirement,
    ValidationResultRecord,
)

logger = logging.getLogger(__name__)


# ── Requirement column mapping ───────────────────────────

# Each requirement table names its "text" and "number" columns differently.
REQUIREMENT_COLUMNS: dict[RequirementType, tuple[str, str]] = {
    RequirementType.KNOWLEDGE_EVIDENCE: ("knowledge_point", "requirement_number"),
    RequirementType.PERFORMANCE_EVIDENCE: ("performance_evidence", "requirement_number"),
    RequirementType.FOUNDATION_SKILLS: ("skill_description", "skill_category"),
    RequirementType.ELEMENTS_PERFORMANCE_CRITERIA: ("performance_criteria", "element_number"),
    RequirementType.ASSESSMENT_CONDITIONS: ("condition_text", "condition_number"),
    RequirementType.ASSESSMENT_INSTRUCTIONS: ("instruction_text", "requirement_number"),
}


def normalize_requirement_row(row: dict[str, Any], requirement_type: RequirementType) -> Requirement:
    """Map one raw requirement row onto the Requirement model."""
    text_col, number_col = REQUIREMENT_COLUMNS[requirement_type]
    text = row.get(text_col) or row.get("requirement_text") or row.get("text") or ""
    number = row.get(number_col) or row.get("number") or ""
    element_text = ""
    if requirement_type == RequirementType.ELEMENTS_PERFORMANCE_CRITERIA:
        element_text = row.get("element") or row.get("element_text") or ""
    return Requirement(
        requirement_id=str(row.get("id") or row.get("_id") or f"{requirement_type.short_code}-{number}"),
        type=requirement_type,
        number=str(number),
        text=str(text),
        element_text=str(element_text),
        unit_code=str(row.get("unit_code") or row.get("unitCode") or ""),
    )


def _template_matches(
    template: PromptTemplate,
    phase: PromptPhase,
    requirement_type: Optional[RequirementType],
    document_type: Optional[DocumentType],
) -> bool:
    return (
        template.is_active
        and template.is_default
        and template.phase == phase
        and template.requirement_type == requirement_type
        and template.document_type == document_type
    )


# ── Protocols ────────────────────────────────────────────


class PromptTemplateStore(Protocol):
    def find(
        self,
        phase: PromptPhase,
        requirement_type: Optional[RequirementType],
        document_type: Optional[DocumentType],
    ) -> Optional[PromptTemplate]: ...


class RequirementStore(Protocol):
    def fetch(
        self, unit_code: str, requirement_type: Optional[RequirementType] = None
    ) -> list[Requirement]: ...

    def fetch_by_type(self, unit_code: str) -> dict[RequirementType, list[Requirement]]: ...


class ElementStore(Protocol):
    def has_elements(self, urls: list[str]) -> bool: ...

    def insert_many(self, elements: list[DocumentElement]) -> int: ...

    def search(self, urls: list[str], needle: str, limit: int) -> list[DocumentElement]: ...

    def by_pages(self, urls: list[str], pages: list[int], limit: int) -> list[DocumentElement]: ...

    def all(self, urls: list[str], limit: int) -> list[DocumentElement]: ...


class ValidationResultRepository(Protocol):
    def insert_many(self, records: list[ValidationResultRecord]) -> int: ...

    def get(self, validation_id: str, requirement_id: str) -> Optional[ValidationResultRecord]: ...

    def merge_remediation(
        self,
        validation_id: str,
        requirement_id: str,
        smart_questions: str,
        benchmark_answer: str,
    ) -> bool: ...


# ── In-memory implementations ────────────────────────────


class InMemoryPromptTemplateStore:
    def __init__(self, templates: list[PromptTemplate] | None = None):
        self._templates: list[PromptTemplate] = list(templates or [])

    def add(self, template: PromptTemplate) -> None:
        self._templates.append(template)

    def find(
        self,
        phase: PromptPhase,
        requirement_type: Optional[RequirementType],
        document_type: Optional[DocumentType],
    ) -> Optional[PromptTemplate]:
        for template in self._templates:
            if _template_matches(template, phase, requirement_type, document_type):
                return template
        return None


class InMemoryRequirementStore:
    """Holds raw rows per requirement type, normalized on fetch."""

    def __init__(self, rows: dict[RequirementType, list[dict[str, Any]]] | None = None):
        self._rows: dict[RequirementType, list[dict[str, Any]]] = {
            k: list(v) for k, v in (rows or {}).items()
        }

    def add_rows(self, requirement_type: RequirementType, rows: list[dict[str, Any]]) -> None:
        self._rows.setdefault(requirement_type, []).extend(rows)

    def fetch(
        self, unit_code: str, requirement_type: Optional[RequirementType] = None
    ) -> list[Requirement]:
        types = [requirement_type] if requirement_type else list(RequirementType)
        results: list[Requirement] = []
        for rtype in types:
            for row in self._rows.get(rtype, []):
                if (row.get("unit_code") or row.get("unitCode")) == unit_code:
                    results.append(normalize_requirement_row(row, rtype))
        return results

    def fetch_by_type(self, unit_code: str) -> dict[RequirementType, list[Requirement]]:
        return {rtype: self.fetch(unit_code, rtype) for rtype in RequirementType}


class InMemoryElementStore:
    def __init__(self):
        self._elements: list[DocumentElement] = []

    def has_elements(self, urls: list[str]) -> bool:
        wanted = set(urls)
        return any(e.url in wanted for e in self._elements)

    def insert_many(self, elements: list[DocumentElement]) -> int:
        self._elements.extend(elements)
        logger.debug(f"[Elements] Stored {len(elements)} elements")
        return len(elements)

    def _for(self, urls: list[str]) -> list[DocumentElement]:
        wanted = set(urls)
        return [e for e in self._elements if e.url in wanted]

    def search(self, urls: list[str], needle: str, limit: int) -> list[DocumentElement]:
        needle = needle.lower()
        hits = [e for e in self._for(urls) if needle in e.text.lower()]
        return hits[:limit]

    def by_pages(self, urls: list[str], pages: list[int], limit: int) -> list[DocumentElement]:
        wanted = set(pages)
        return [e for e in self._for(urls) if e.page_number in wanted][:limit]

    def all(self, urls: list[str], limit: int) -> list[DocumentElement]:
        ordered = sorted(self._for(urls), key=lambda e: (e.page_number, e.order))
        return ordered[:limit]


class InMemoryValidationResultRepository:
    def __init__(self):
        self._records: dict[tuple[str, str], ValidationResultRecord] = {}

    def insert_many(self, records: list[ValidationResultRecord]) -> int:
        for record in records:
            self._records[(record.validation_id, record.requirement_id)] = deepcopy(record)
        logger.info(f"[Results] Saved {len(records)} validation results")
        return len(records)

    def get(self, validation_id: str, requirement_id: str) -> Optional[ValidationResultRecord]:
        record = self._records.get((validation_id, requirement_id))
        return deepcopy(record) if record else None

    def list(self, validation_id: str) -> list[ValidationResultRecord]:
        return [deepcopy(r) for (vid, _), r in self._records.items() if vid == validation_id]

    def merge_remediation(
        self,
        validation_id: str,
        requirement_id: str,
        smart_questions: str,
        benchmark_answer: str,
    ) -> bool:
        """Overwrite remediation fields only; stored citations are kept."""
        key = (validation_id, requirement_id)
        record = self._records.get(key)
        if record is None:
            return False
        self._records[key] = record.model_copy(
            update={"smart_questions": smart_questions, "benchmark_answer": benchmark_answer}
        )
        return True
