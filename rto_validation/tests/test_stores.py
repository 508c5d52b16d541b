"""
Tests: In-memory stores, requirement row normalization and local
document storage.

Run with:
    pytest rto_validation/tests/test_stores.py -v
"""

import pytest

from rto_validation.config import Settings
from rto_validation.errors import ConfigurationError, NotFoundError
from rto_validation.models.enums import RequirementType, ValidationStatus
from rto_validation.models.schemas import ValidationResultRecord
from rto_validation.persistence.stores import (
    InMemoryRequirementStore,
    InMemoryValidationResultRepository,
    normalize_requirement_row,
)
from rto_validation.services.file_service import DocumentStorage


class TestRequirementRows:
    @pytest.mark.parametrize(
        "rtype, row, number, text",
        [
            (RequirementType.KNOWLEDGE_EVIDENCE, {"requirement_number": "1", "knowledge_point": "Policies"}, "1", "Policies"),
            (RequirementType.FOUNDATION_SKILLS, {"skill_category": "Reading", "skill_description": "Reads SOPs"}, "Reading", "Reads SOPs"),
            (RequirementType.ELEMENTS_PERFORMANCE_CRITERIA, {"element_number": "1.2", "performance_criteria": "Greets"}, "1.2", "Greets"),
            (RequirementType.ASSESSMENT_CONDITIONS, {"condition_number": "3", "condition_text": "Workplace"}, "3", "Workplace"),
            (RequirementType.ASSESSMENT_INSTRUCTIONS, {"requirement_number": "2", "requirement_text": "Observe"}, "2", "Observe"),
        ],
    )
    def test_type_specific_columns(self, rtype, row, number, text):
        requirement = normalize_requirement_row(row, rtype)
        assert (requirement.number, requirement.text) == (number, text)
        assert requirement.requirement_id == f"{rtype.short_code}-{number}"

    def test_element_text_only_for_criteria(self):
        row = {"id": 7, "element_number": "1.1", "performance_criteria": "Greets", "element": "Serve customers"}
        requirement = normalize_requirement_row(row, RequirementType.ELEMENTS_PERFORMANCE_CRITERIA)
        assert requirement.requirement_id == "7"
        assert requirement.element_text == "Serve customers"

        ke = normalize_requirement_row({"element": "ignored"}, RequirementType.KNOWLEDGE_EVIDENCE)
        assert ke.element_text == ""

    def test_fetch_by_type_groups_per_unit(self):
        store = InMemoryRequirementStore({
            RequirementType.KNOWLEDGE_EVIDENCE: [
                {"unit_code": "BSB1", "requirement_number": "1", "knowledge_point": "A"},
                {"unit_code": "OTHER", "requirement_number": "2", "knowledge_point": "B"},
            ],
        })
        store.add_rows(RequirementType.PERFORMANCE_EVIDENCE, [
            {"unitCode": "BSB1", "requirement_number": "1", "performance_evidence": "C"},
        ])

        grouped = store.fetch_by_type("BSB1")

        assert [r.text for r in grouped[RequirementType.KNOWLEDGE_EVIDENCE]] == ["A"]
        assert [r.text for r in grouped[RequirementType.PERFORMANCE_EVIDENCE]] == ["C"]
        assert grouped[RequirementType.FOUNDATION_SKILLS] == []
        assert [r.unit_code for r in store.fetch("BSB1")] == ["BSB1", "BSB1"]


class TestResultRepository:
    def _record(self, **overrides):
        values = dict(
            validation_id="VAL-1",
            requirement_id="pe-1",
            requirement_type=RequirementType.PERFORMANCE_EVIDENCE,
            status=ValidationStatus.NOT_MET,
            citations=["Guide.pdf, Page 3"],
            smart_questions="N/A",
        )
        values.update(overrides)
        return ValidationResultRecord(**values)

    def test_insert_is_an_upsert(self):
        repo = InMemoryValidationResultRepository()
        repo.insert_many([self._record()])
        repo.insert_many([self._record(status=ValidationStatus.MET)])

        assert len(repo.list("VAL-1")) == 1
        assert repo.get("VAL-1", "pe-1").status == ValidationStatus.MET

    def test_merge_remediation_keeps_everything_else(self):
        repo = InMemoryValidationResultRepository()
        repo.insert_many([self._record()])

        assert repo.merge_remediation("VAL-1", "pe-1", "New task", "New answer")
        stored = repo.get("VAL-1", "pe-1")
        assert (stored.smart_questions, stored.benchmark_answer) == ("New task", "New answer")
        assert stored.citations == ["Guide.pdf, Page 3"]
        assert not repo.merge_remediation("VAL-1", "missing", "x", "y")

    def test_returned_records_are_copies(self):
        repo = InMemoryValidationResultRepository()
        repo.insert_many([self._record()])
        repo.get("VAL-1", "pe-1").citations.append("mutated")
        assert repo.get("VAL-1", "pe-1").citations == ["Guide.pdf, Page 3"]


class TestDocumentStorage:
    def test_save_then_download(self, settings):
        storage = DocumentStorage(settings)
        storage.save(b"%PDF-1.7", "BSBOPS304/assessment.pdf")
        assert storage.download("BSBOPS304/assessment.pdf") == b"%PDF-1.7"

    def test_missing_file(self, settings):
        with pytest.raises(NotFoundError):
            DocumentStorage(settings).download("nope.pdf")

    def test_path_traversal_is_rejected(self, settings):
        with pytest.raises(NotFoundError, match="Invalid storage path"):
            DocumentStorage(settings).download("../../etc/passwd")

    def test_unsupported_backend(self, tmp_path):
        settings = Settings(_env_file=None, storage_backend="s3", local_storage_path=str(tmp_path))
        with pytest.raises(ConfigurationError):
            DocumentStorage(settings)
