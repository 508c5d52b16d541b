"""
Tests: JSON extraction, field normalization and status classification.

Run with:
    pytest rto_validation/tests/test_response_parser.py -v
"""

import pytest

from rto_validation.errors import ResponseParseError
from rto_validation.models.enums import ValidationStatus
from rto_validation.models.schemas import Citation, ValidationOutcome
from rto_validation.services.response_parser import (
    build_outcome,
    citations_from_grounding,
    classify_status,
    extract_json_object,
    extract_remediation,
    is_placeholder,
    merge_grounding_citations,
    normalize_fields,
    parse_json_response,
)

RAW = '{"status": "Partially Met", "reasoning": "Covers two of three steps", "citations": ["Guide, Page 4"]}'


class TestExtractJson:
    def test_fence_raw_and_embedded_parse_identically(self):
        fenced = f"Here you go:\n```json\n{RAW}\n```\nThanks"
        embedded = f"Sure. The result is {RAW} as requested."

        results = [extract_json_object(t) for t in (fenced, RAW, embedded)]

        assert results[0] is not None
        assert results[0] == results[1] == results[2]
        assert results[0]["status"] == "Partially Met"

    def test_bare_fence_without_language(self):
        assert extract_json_object(f"```\n{RAW}\n```")["reasoning"] == "Covers two of three steps"

    def test_first_of_several_fenced_blocks(self):
        text = f'Result:\n```json\n{RAW}\n```\nAlternative:\n```json\n{{"status": "Met"}}\n```'
        assert extract_json_object(text)["status"] == "Partially Met"

    def test_non_json_fence_is_skipped(self):
        text = f"```text\nnotes first\n```\n```json\n{RAW}\n```"
        assert extract_json_object(text)["status"] == "Partially Met"

    def test_truncated_json_returns_none(self):
        assert extract_json_object('{"status": "met", "reasoning": "incomplete') is None

    @pytest.mark.parametrize("text", [None, "", "   ", "no json here", "[1, 2, 3]"])
    def test_non_object_returns_none(self, text):
        assert extract_json_object(text) is None

    def test_parse_json_response_raises_with_cause(self):
        with pytest.raises(ResponseParseError, match="empty response"):
            parse_json_response("")
        with pytest.raises(ResponseParseError, match="invalid JSON"):
            parse_json_response('{"status": "Met",')


class TestNormalizeFields:
    def test_aliases_resolve_to_canonical_keys(self):
        fields = normalize_fields({
            "Status": "Met",
            "Explanation": "All good",
            "Mapped Questions": "Q1, Q2",
            "doc_references": ["A.pdf, Page 1"],
            "Recommendations": "none",
        })
        assert fields["status"] == "Met"
        assert fields["reasoning"] == "All good"
        assert fields["mapped_content"] == "Q1, Q2"
        assert fields["citations"] == ["A.pdf, Page 1"]
        assert fields["unmapped_content"] == "none"

    def test_first_non_empty_alias_wins(self):
        fields = normalize_fields({"mapped_content": "", "evidence_found": "Task 3"})
        assert fields["mapped_content"] == "Task 3"

    def test_unknown_keys_are_ignored(self):
        assert normalize_fields({"confidence": 0.9}) == {}


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "raw",
        ["Met", "met ", "MET", "Requirement Met", "pass", "Compliant", "fully-satisfied"],
    )
    def test_met_forms(self, raw):
        assert classify_status(raw) == ValidationStatus.MET

    @pytest.mark.parametrize("raw", ["Partially Met", "partial", "PARTIALLY_MET"])
    def test_partial_forms(self, raw):
        assert classify_status(raw) == ValidationStatus.PARTIALLY_MET

    @pytest.mark.parametrize("raw", ["Not Met", "fail", "non-compliant", "", None, "maybe"])
    def test_everything_else_is_not_met(self, raw):
        assert classify_status(raw) == ValidationStatus.NOT_MET

    def test_idempotent(self):
        once = classify_status("Partially Met")
        assert classify_status(once) == once
        assert classify_status(once.value) == once


class TestBuildOutcome:
    def test_list_in_mapped_content_becomes_citations(self):
        outcome = build_outcome({"status": "Met", "mapped_content": ["Doc A, Page 2", "Doc B, Page 5"]})
        assert outcome.citations == ["Doc A, Page 2", "Doc B, Page 5"]
        assert outcome.mapped_content == ""

    def test_structured_remediation_object(self):
        outcome = build_outcome({
            "status": "Not Met",
            "smart_task": {"task_text": "Role-play a complaint", "benchmark_answer": "Uses LAST model"},
        })
        assert outcome.remediation == "Role-play a complaint"
        assert outcome.benchmark_answer == "Uses LAST model"

    def test_extract_remediation_from_alias_fields(self):
        fields = normalize_fields({"practical_task": "Complete form", "model_answer": "Form complete"})
        assert extract_remediation(fields) == ("Complete form", "Form complete")

    @pytest.mark.parametrize("value", ["", "N/A", "na", "None", " null ", "undefined", None])
    def test_placeholders(self, value):
        assert is_placeholder(value)

    def test_real_text_is_not_placeholder(self):
        assert not is_placeholder("Describe the escalation process")


class TestGroundingCitations:
    def test_chunks_from_dicts(self):
        chunks = [
            {"file_search_chunk": {"document_name": "Guide.pdf", "page_numbers": [3, 4], "content": "text"}},
            {"retrievedContext": {"title": "Assessment.pdf", "text": "more"}},
        ]
        citations = citations_from_grounding(chunks)
        assert [c.label() for c in citations] == ["Guide.pdf, Page 3, 4", "Assessment.pdf"]

    def test_merge_only_fills_empty_citations(self):
        grounded = [Citation(document_name="Guide.pdf", page_numbers=[1])] * 2
        empty = ValidationOutcome(status=ValidationStatus.MET)
        assert merge_grounding_citations(empty, grounded).citations == ["Guide.pdf, Page 1"]

        existing = ValidationOutcome(citations=["Model cited this"])
        assert merge_grounding_citations(existing, grounded).citations == ["Model cited this"]
