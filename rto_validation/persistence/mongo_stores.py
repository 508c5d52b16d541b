"""
MongoDB-backed stores.

Collections:
  prompts              — PromptTemplate documents
  <requirement type>   — one collection per requirement type (raw rows)
  elements             — DocumentElement fragments
  validation_results   — ValidationResultRecord rows keyed by run + requirement
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from pymongo import ASCENDING, UpdateOne

from rto_validation.models.enums import DocumentType, PromptPhase, RequirementType
from rto_validation.models.schemas import (
    DocumentElement,
    PromptTemplate,
    Requirement,
    ValidationResultRecord,
)
from rto_validation.persistence.stores import normalize_requirement_row

logger = logging.getLogger(__name__)


def _strip_id(doc: dict[str, Any]) -> dict[str, Any]:
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class MongoPromptTemplateStore:
    def __init__(self, db: Any, collection: str = "prompts"):
        self._col = db[collection]

    def find(
        self,
        phase: PromptPhase,
        requirement_type: Optional[RequirementType],
        document_type: Optional[DocumentType],
    ) -> Optional[PromptTemplate]:
        query = {
            "phase": phase.value,
            "requirement_type": requirement_type.value if requirement_type else None,
            "document_type": document_type.value if document_type else None,
            "is_active": True,
            "is_default": True,
        }
        doc = self._col.find_one(query)
        return PromptTemplate(**_strip_id(doc)) if doc else None


class MongoRequirementStore:
    def __init__(self, db: Any):
        self._db = db

    def fetch(
        self, unit_code: str, requirement_type: Optional[RequirementType] = None
    ) -> list[Requirement]:
        types = [requirement_type] if requirement_type else list(RequirementType)
        results: list[Requirement] = []
        for rtype in types:
            for row in self._db[rtype.value].find({"unit_code": unit_code}).sort("_id", ASCENDING):
                results.append(normalize_requirement_row(row, rtype))
        logger.debug(f"[Requirements] {unit_code}: fetched {len(results)} rows")
        return results

    def fetch_by_type(self, unit_code: str) -> dict[RequirementType, list[Requirement]]:
        return {rtype: self.fetch(unit_code, rtype) for rtype in RequirementType}


class MongoElementStore:
    def __init__(self, db: Any, collection: str = "elements"):
        self._col = db[collection]

    def has_elements(self, urls: list[str]) -> bool:
        return self._col.count_documents({"url": {"$in": urls}}, limit=1) > 0

    def insert_many(self, elements: list[DocumentElement]) -> int:
        if not elements:
            return 0
        result = self._col.insert_many([e.model_dump() for e in elements])
        return len(result.inserted_ids)

    def search(self, urls: list[str], needle: str, limit: int) -> list[DocumentElement]:
        cursor = self._col.find(
            {"url": {"$in": urls}, "text": {"$regex": re.escape(needle), "$options": "i"}}
        ).limit(limit)
        return [DocumentElement(**_strip_id(d)) for d in cursor]

    def by_pages(self, urls: list[str], pages: list[int], limit: int) -> list[DocumentElement]:
        cursor = (
            self._col.find({"url": {"$in": urls}, "page_number": {"$in": pages}})
            .sort("_id", ASCENDING)
            .limit(limit)
        )
        return [DocumentElement(**_strip_id(d)) for d in cursor]

    def all(self, urls: list[str], limit: int) -> list[DocumentElement]:
        cursor = (
            self._col.find({"url": {"$in": urls}})
            .sort([("page_number", ASCENDING), ("order", ASCENDING)])
            .limit(limit)
        )
        return [DocumentElement(**_strip_id(d)) for d in cursor]


class MongoValidationResultRepository:
    def __init__(self, db: Any, collection: str = "validation_results"):
        self._col = db[collection]

    def insert_many(self, records: list[ValidationResultRecord]) -> int:
        if not records:
            return 0
        ops = [
            UpdateOne(
                {"validation_id": r.validation_id, "requirement_id": r.requirement_id},
                {"$set": r.model_dump(mode="json")},
                upsert=True,
            )
            for r in records
        ]
        self._col.bulk_write(ops)
        logger.info(f"[Results] Saved {len(records)} validation results")
        return len(records)

    def get(self, validation_id: str, requirement_id: str) -> Optional[ValidationResultRecord]:
        doc = self._col.find_one({"validation_id": validation_id, "requirement_id": requirement_id})
        return ValidationResultRecord(**_strip_id(doc)) if doc else None

    def merge_remediation(
        self,
        validation_id: str,
        requirement_id: str,
        smart_questions: str,
        benchmark_answer: str,
    ) -> bool:
        result = self._col.update_one(
            {"validation_id": validation_id, "requirement_id": requirement_id},
            {"$set": {"smart_questions": smart_questions, "benchmark_answer": benchmark_answer}},
        )
        return result.matched_count > 0
