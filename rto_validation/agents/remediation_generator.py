"""
P2 — Remediation Generator
Responsibility: For a requirement that is not fully Met, generate one
                SMART question (knowledge evidence) or practical task
                (everything else) plus a benchmark answer.

Soft-fail throughout: no template, any error during the model call or
unparseable JSON all return None so the Phase 1 outcome stands without
remediation.
"""

from __future__ import annotations

import logging
from typing import Optional

from rto_validation.agents.base_agent import BaseAgent
from rto_validation.errors import ValidationServiceError
from rto_validation.models.enums import AgentName, ValidationStatus
from rto_validation.models.schemas import (
    NOT_APPLICABLE,
    ContentContext,
    RemediationTask,
    Requirement,
    UnitMeta,
    ValidationOutcome,
)
from rto_validation.services.prompt_service import generation_format_instruction, render_prompt
from rto_validation.services.response_parser import (
    extract_remediation,
    flatten_text,
    is_placeholder,
    normalize_fields,
    parse_json_response,
)

logger = logging.getLogger(__name__)


def should_run_phase2(status: ValidationStatus, existing_remediation: Optional[str] = None) -> bool:
    """
    True unless the requirement is Met or already has real remediation.

    Placeholder remediation ("", "N/A", "none", "null", ...) does not
    count as existing.
    """
    if status == ValidationStatus.MET:
        return False
    return is_placeholder(existing_remediation)


class RemediationGenerator(BaseAgent):
    name = AgentName.P2_REMEDIATION_GENERATOR

    async def generate(
        self,
        requirement: Requirement,
        context: ContentContext,
        unit: UnitMeta,
        outcome: ValidationOutcome,
    ) -> Optional[RemediationTask]:
        label = requirement.number or requirement.requirement_id

        template = self.prompts.generation_template(requirement.type, unit.document_type)
        if template is None:
            logger.info(f"[P2] {label}: no generation template — skipping remediation")
            return None

        values = self.placeholder_values(requirement, unit)
        values.update({
            "status": outcome.status.value,
            "reasoning": outcome.reasoning,
            "unmapped_content": outcome.unmapped_content or NOT_APPLICABLE,
        })
        prompt = render_prompt(template.prompt_text, values)
        if template.output_schema is None:
            prompt += generation_format_instruction(requirement.type)

        try:
            response = await self._call_model(requirement, template, prompt, context)
            data = parse_json_response(response.text)
        except ValidationServiceError as exc:
            logger.error(f"[P2] {label}: Phase 2 failed — {exc}")
            return None
        except Exception:
            logger.exception(f"[P2] {label}: Phase 2 failed unexpectedly")
            return None

        fields = normalize_fields(data)
        task_text, benchmark = extract_remediation(fields)
        if is_placeholder(task_text):
            logger.warning(f"[P2] {label}: response contained no task/question text")
            return None

        logger.info(f"[P2] {label}: remediation generated ({len(task_text)} chars)")
        return RemediationTask(
            task_text=task_text,
            benchmark_answer=benchmark,
            rationale=flatten_text(fields.get("reasoning")),
        )
