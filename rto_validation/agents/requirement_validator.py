"""
P1 — Requirement Validator
Responsibility: Validate one requirement against the document context
                and classify it as Met / Partially Met / Not Met.

Per requirement: PENDING → PROMPTED → PARSED | FAILED → CLASSIFIED.
A failure at any step yields a terminal Not Met outcome whose reasoning
starts with "Validation failed:". It never raises into the batch.

This is the one place the "N/A when Met" rule is enforced; the prompt
only asks for it.
"""

from __future__ import annotations

import logging

from rto_validation.agents.base_agent import BaseAgent
from rto_validation.errors import ValidationServiceError
from rto_validation.models.enums import AgentName, ValidationStage, ValidationStatus
from rto_validation.models.schemas import (
    NO_CONTENT_SENTINEL,
    NOT_APPLICABLE,
    ContentContext,
    Requirement,
    UnitMeta,
    ValidationOutcome,
)
from rto_validation.services.prompt_service import output_format_instruction, render_prompt
from rto_validation.services.response_parser import (
    build_outcome,
    merge_grounding_citations,
    parse_json_response,
)

logger = logging.getLogger(__name__)


def failed_outcome(cause: str) -> ValidationOutcome:
    """Terminal Not Met outcome for a tooling failure."""
    return ValidationOutcome(
        status=ValidationStatus.NOT_MET,
        reasoning=f"Validation failed: {cause}",
        remediation=NOT_APPLICABLE,
        benchmark_answer=NOT_APPLICABLE,
        success=False,
        error=cause,
    )


def enforce_not_applicable(outcome: ValidationOutcome) -> ValidationOutcome:
    """Met outcomes carry "N/A" in every remediation field, whatever the model said."""
    if outcome.status != ValidationStatus.MET:
        return outcome
    return outcome.model_copy(
        update={
            "remediation": NOT_APPLICABLE,
            "benchmark_answer": NOT_APPLICABLE,
            "unmapped_content": NOT_APPLICABLE,
        }
    )


class RequirementValidator(BaseAgent):
    name = AgentName.P1_REQUIREMENT_VALIDATOR

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stage = ValidationStage.PENDING

    def _advance(self, requirement: Requirement, stage: ValidationStage) -> None:
        logger.debug(
            f"[P1] {requirement.number or requirement.requirement_id}: "
            f"{self.stage.value} → {stage.value}"
        )
        self.stage = stage

    async def validate(
        self,
        requirement: Requirement,
        context: ContentContext,
        unit: UnitMeta,
    ) -> ValidationOutcome:
        self.stage = ValidationStage.PENDING
        label = requirement.number or requirement.requirement_id

        if context.is_empty:
            logger.warning(f"[P1] {label}: no document content — marking Not Met")
            self._advance(requirement, ValidationStage.FAILED)
            cause = NO_CONTENT_SENTINEL
            if context.extraction_error:
                cause = f"{NO_CONTENT_SENTINEL} Extraction failed: {context.extraction_error}"
            outcome = failed_outcome(cause)
            self._advance(requirement, ValidationStage.CLASSIFIED)
            return outcome

        try:
            template = self.prompts.validation_template(requirement.type, unit.document_type)
            prompt = render_prompt(
                template.prompt_text, self.placeholder_values(requirement, unit)
            ) + output_format_instruction(requirement.type)
            self._advance(requirement, ValidationStage.PROMPTED)

            response = await self._call_model(requirement, template, prompt, context)
            data = parse_json_response(response.text)
            self._advance(requirement, ValidationStage.PARSED)

            outcome = merge_grounding_citations(build_outcome(data), response.citations)
        except ValidationServiceError as exc:
            logger.error(f"[P1] {label}: {exc}")
            self._advance(requirement, ValidationStage.FAILED)
            outcome = failed_outcome(exc.message)

        outcome = enforce_not_applicable(outcome)
        self._advance(requirement, ValidationStage.CLASSIFIED)
        logger.info(f"[P1] {label} = {outcome.status.value}")
        return outcome
