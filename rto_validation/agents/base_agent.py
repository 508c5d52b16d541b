"""
Base agent class shared by the Phase 1 validator and the Phase 2
remediation generator.

Design:
  - Both agents render a template, call the same AIClient, and parse
    JSON out of the reply; `_call_model()` owns that round-trip.
  - Agents never hold provider state of their own; the client is
    injected per orchestration call.
"""

from __future__ import annotations

import logging
import time
from abc import ABC
from typing import Any

from rto_validation.models.enums import AgentName
from rto_validation.models.schemas import (
    ContentContext,
    PromptTemplate,
    ProviderResponse,
    Requirement,
    UnitMeta,
)
from rto_validation.providers.base import DEFAULT_SYSTEM_INSTRUCTION, AIClient
from rto_validation.services.prompt_service import PromptService

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """Abstract base for the per-requirement agents."""

    name: AgentName  # set in each subclass

    def __init__(self, ai_client: AIClient, prompts: PromptService):
        self.ai_client = ai_client
        self.prompts = prompts

    @staticmethod
    def placeholder_values(requirement: Requirement, unit: UnitMeta) -> dict[str, Any]:
        return {
            "requirement_number": requirement.number,
            "requirement_text": requirement.text,
            "requirement_type": requirement.type.value,
            "element_text": requirement.element_text,
            "unit_code": unit.unit_code or requirement.unit_code,
            "unit_title": unit.unit_title,
            "document_type": unit.document_type.value,
        }

    async def _call_model(
        self,
        requirement: Requirement,
        template: PromptTemplate,
        prompt: str,
        context: ContentContext,
    ) -> ProviderResponse:
        """One provider round-trip with timing logs."""
        label = requirement.number or requirement.requirement_id
        logger.info(
            f"▶ [{self.name.value}] {label} — template "
            f"'{template.name or template.template_id or 'default'}' via {self.ai_client.provider.value}"
        )
        t0 = time.perf_counter()
        try:
            response = await self.ai_client.generate_validation(
                prompt,
                context,
                system_instruction=template.system_instruction or DEFAULT_SYSTEM_INSTRUCTION,
                output_schema=template.output_schema,
                generation_config=template.generation_config,
            )
        except Exception as exc:
            logger.error(
                f"✘ [{self.name.value}] {label} FAILED after {time.perf_counter() - t0:.3f}s: {exc}"
            )
            raise
        logger.info(
            f"✔ [{self.name.value}] {label} responded in {time.perf_counter() - t0:.3f}s "
            f"({len(response.text)} chars)"
        )
        return response
