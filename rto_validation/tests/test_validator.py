"""
Tests: Phase 1 validation — prompt rendering, template lookup,
classification, and the failure paths that become Not Met.

Run with:
    pytest rto_validation/tests/test_validator.py -v
"""

import asyncio

import pytest

from rto_validation.agents.requirement_validator import (
    RequirementValidator,
    enforce_not_applicable,
    failed_outcome,
)
from rto_validation.errors import ConfigurationError, ProviderError
from rto_validation.models.enums import (
    DocumentType,
    PromptPhase,
    RequirementType,
    ValidationStage,
    ValidationStatus,
)
from rto_validation.models.schemas import (
    NO_CONTENT_SENTINEL,
    ContentContext,
    PromptTemplate,
    Requirement,
    ValidationOutcome,
)
from rto_validation.persistence.stores import InMemoryPromptTemplateStore
from rto_validation.services.prompt_service import (
    DEFAULT_VALIDATION_SYSTEM_INSTRUCTION,
    PromptService,
    output_format_instruction,
    render_prompt,
)
from rto_validation.tests.fakes import FakeAIClient, reply


def _validate(client, templates, requirement, context, unit) -> tuple[ValidationOutcome, RequirementValidator]:
    validator = RequirementValidator(client, PromptService(templates))
    outcome = asyncio.run(validator.validate(requirement, context, unit))
    return outcome, validator


class TestRequirementValidator:
    def test_met_forces_not_applicable_remediation(self, templates, requirements, text_context, unit):
        client = FakeAIClient([
            reply(
                "Met",
                reasoning="Q1 covers the complaints policy",
                mapped_content="Q1 (Page 1)",
                smart_question="Describe the refund policy",
                benchmark_answer="Mentions refunds",
                unmapped_content="Nothing much",
            )
        ])

        outcome, validator = _validate(client, templates, requirements[0], text_context, unit)

        assert outcome.status == ValidationStatus.MET
        assert outcome.remediation == "N/A"
        assert outcome.benchmark_answer == "N/A"
        assert outcome.unmapped_content == "N/A"
        assert outcome.mapped_content == "Q1 (Page 1)"
        assert outcome.success
        assert validator.stage == ValidationStage.CLASSIFIED

    def test_prompt_is_rendered_with_output_instruction(self, templates, requirements, text_context, unit):
        client = FakeAIClient([reply("Not Met")])

        _validate(client, templates, requirements[0], text_context, unit)

        call = client.calls[0]
        assert call["prompt"].startswith(
            "VALIDATE KE1: Organisational policies for customer service for BSBOPS304"
        )
        assert '"smart_question"' in call["prompt"]
        assert call["system_instruction"] == "You are a validator."
        assert call["context"] is text_context

    def test_partially_met_keeps_model_remediation(self, templates, requirements, text_context, unit):
        client = FakeAIClient([
            reply("partial", smart_task="Handle a complaint role-play", benchmark_answer="Follows policy")
        ])

        outcome, _ = _validate(client, templates, requirements[1], text_context, unit)

        assert outcome.status == ValidationStatus.PARTIALLY_MET
        assert outcome.remediation == "Handle a complaint role-play"
        assert outcome.benchmark_answer == "Follows policy"

    def test_truncated_json_is_not_met(self, templates, requirements, text_context, unit):
        client = FakeAIClient(['{"status": "Met", "reasoning": "incomplete'])

        outcome, validator = _validate(client, templates, requirements[0], text_context, unit)

        assert outcome.status == ValidationStatus.NOT_MET
        assert outcome.reasoning.startswith("Validation failed:")
        assert not outcome.success
        assert outcome.remediation == "N/A"
        assert validator.stage == ValidationStage.CLASSIFIED

    def test_provider_error_is_not_met(self, templates, requirements, text_context, unit):
        client = FakeAIClient([ProviderError("Azure OpenAI API error (429): rate limited", status_code=429)])

        outcome, _ = _validate(client, templates, requirements[0], text_context, unit)

        assert outcome.status == ValidationStatus.NOT_MET
        assert outcome.reasoning == "Validation failed: Azure OpenAI API error (429): rate limited"
        assert "429" in outcome.error

    def test_missing_document_content_is_not_met(self, templates, requirements, unit):
        client = FakeAIClient([ConfigurationError("Azure provider requires pre-extracted document content")])

        outcome, _ = _validate(client, templates, requirements[0], ContentContext(), unit)

        assert outcome.status == ValidationStatus.NOT_MET
        assert "pre-extracted" in outcome.reasoning

    def test_empty_context_skips_the_model(self, templates, requirements, unit):
        client = FakeAIClient()
        empty = ContentContext(document_content=NO_CONTENT_SENTINEL, is_empty=True)

        outcome, _ = _validate(client, templates, requirements[0], empty, unit)

        assert client.calls == []
        assert outcome.status == ValidationStatus.NOT_MET
        assert outcome.reasoning == "Validation failed: No document content available."
        assert not outcome.success

    def test_empty_context_reports_extraction_failure(self, templates, requirements, unit):
        empty = ContentContext(
            document_content=NO_CONTENT_SENTINEL,
            is_empty=True,
            extraction_error="assessment.pdf: Document analysis timed out after 120s",
        )

        outcome, _ = _validate(FakeAIClient(), templates, requirements[0], empty, unit)

        assert outcome.reasoning == (
            "Validation failed: No document content available. "
            "Extraction failed: assessment.pdf: Document analysis timed out after 120s"
        )
        assert not outcome.success

    def test_unknown_type_falls_back_to_built_in_prompt(self, templates, text_context, unit):
        client = FakeAIClient([reply("Met")])
        requirement = Requirement(
            requirement_id="fs-1",
            type=RequirementType.FOUNDATION_SKILLS,
            number="Reading",
            text="Interprets workplace procedures",
        )

        _validate(client, templates, requirement, text_context, unit)

        call = client.calls[0]
        assert "**Requirement Number:** Reading" in call["prompt"]
        assert "foundation_skills requirement" in call["prompt"]
        assert '"smart_task"' in call["prompt"]
        assert call["system_instruction"] == DEFAULT_VALIDATION_SYSTEM_INSTRUCTION


class TestOutcomeHelpers:
    def test_failed_outcome_shape(self):
        outcome = failed_outcome("cancelled")
        assert outcome.status == ValidationStatus.NOT_MET
        assert outcome.reasoning == "Validation failed: cancelled"
        assert outcome.error == "cancelled"

    def test_enforce_not_applicable_leaves_other_statuses(self):
        outcome = ValidationOutcome(status=ValidationStatus.NOT_MET, remediation="Do X")
        assert enforce_not_applicable(outcome) is outcome


# ── Prompt service ───────────────────────────────────────


def _template(rtype=None, dtype=None, name="t", **kwargs) -> PromptTemplate:
    return PromptTemplate(
        name=name,
        phase=kwargs.pop("phase", PromptPhase.VALIDATION),
        requirement_type=rtype,
        document_type=dtype,
        prompt_text=f"prompt {name}",
        **kwargs,
    )


class TestPromptService:
    KE = RequirementType.KNOWLEDGE_EVIDENCE

    def test_specific_template_wins(self):
        store = InMemoryPromptTemplateStore([
            _template(name="generic"),
            _template(self.KE, name="type-only"),
            _template(self.KE, DocumentType.UNIT, name="specific"),
        ])
        assert PromptService(store).validation_template(self.KE, DocumentType.UNIT).name == "specific"

    def test_type_only_then_generic(self):
        store = InMemoryPromptTemplateStore([_template(name="generic"), _template(self.KE, name="type-only")])
        service = PromptService(store)
        assert service.validation_template(self.KE, DocumentType.LEARNER_GUIDE).name == "type-only"
        assert (
            service.validation_template(RequirementType.ASSESSMENT_CONDITIONS, DocumentType.UNIT).name
            == "generic"
        )

    def test_inactive_and_non_default_templates_are_ignored(self):
        store = InMemoryPromptTemplateStore([
            _template(self.KE, DocumentType.UNIT, name="inactive", is_active=False),
            _template(self.KE, DocumentType.UNIT, name="draft", is_default=False),
        ])
        assert PromptService(store).validation_template(self.KE, DocumentType.UNIT).name == "default"

    def test_generation_template_has_no_fallback(self):
        store = InMemoryPromptTemplateStore([_template(self.KE, name="type-only", phase=PromptPhase.GENERATION)])
        assert PromptService(store).generation_template(self.KE, DocumentType.UNIT) is None


class TestRenderPrompt:
    def test_both_placeholder_styles(self):
        text = "{{ requirement_number }} / {{requirement_text}} in {unit_code}"
        values = {"requirement_number": "PE2", "requirement_text": "Monitor", "unit_code": "BSB"}
        assert render_prompt(text, values) == "PE2 / Monitor in BSB"

    def test_unknown_placeholders_survive(self):
        assert render_prompt('{missing} {{other}} {"a": 1}', {}) == '{missing} {{other}} {"a": 1}'

    def test_none_renders_empty(self):
        assert render_prompt("[{element_text}]", {"element_text": None}) == "[]"

    @pytest.mark.parametrize(
        "rtype, field",
        [
            (RequirementType.KNOWLEDGE_EVIDENCE, "smart_question"),
            (RequirementType.PERFORMANCE_EVIDENCE, "smart_task"),
            (RequirementType.ELEMENTS_PERFORMANCE_CRITERIA, "smart_task"),
        ],
    )
    def test_output_instruction_names_the_task_field(self, rtype, field):
        instruction = output_format_instruction(rtype)
        assert f'"{field}"' in instruction
        other = "smart_task" if field == "smart_question" else "smart_question"
        assert other not in instruction
