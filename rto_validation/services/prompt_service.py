"""
Prompt Service — template lookup and placeholder substitution.

Validation prompts resolve through three tiers and always produce a
usable template:
  1. (requirement type, document type)
  2. (requirement type, any document type)
  3. generic template (no requirement type)
and finally a built-in minimal prompt. Generation prompts have a single
tier; a miss means Phase 2 is skipped.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from rto_validation.models.enums import DocumentType, PromptPhase, RequirementType
from rto_validation.models.schemas import PromptTemplate
from rto_validation.persistence.stores import PromptTemplateStore

logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_SYSTEM_INSTRUCTION = (
    "You are an expert RTO validator. Return a JSON response with all required fields."
)

DEFAULT_VALIDATION_PROMPT = """Validate the following {{requirement_type}} requirement against the provided documents.

**Requirement Number:** {{requirement_number}}
**Requirement Text:** {{requirement_text}}

Determine if this requirement is Met, Partially Met, or Not Met based on the document content."""

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}|\{(\w+)\}")


class PromptService:
    def __init__(self, store: PromptTemplateStore):
        self.store = store

    def validation_template(
        self, requirement_type: RequirementType, document_type: DocumentType
    ) -> PromptTemplate:
        """Three-tier lookup, then the built-in default."""
        phase = PromptPhase.VALIDATION
        tiers: list[tuple[Optional[RequirementType], Optional[DocumentType], str]] = [
            (requirement_type, document_type, "specific"),
            (requirement_type, None, "type-only"),
            (None, None, "generic"),
        ]
        for rtype, dtype, label in tiers:
            template = self.store.find(phase, rtype, dtype)
            if template is not None:
                logger.debug(
                    f"[Prompts] Using {label} validation template "
                    f"'{template.name or template.template_id}' for {requirement_type.value}"
                )
                return template

        logger.info(
            f"[Prompts] No validation template for {requirement_type.value}/"
            f"{document_type.value} — using built-in default"
        )
        return PromptTemplate(
            name="default",
            phase=phase,
            requirement_type=requirement_type,
            prompt_text=DEFAULT_VALIDATION_PROMPT,
            system_instruction=DEFAULT_VALIDATION_SYSTEM_INSTRUCTION,
        )

    def generation_template(
        self, requirement_type: RequirementType, document_type: DocumentType
    ) -> Optional[PromptTemplate]:
        template = self.store.find(PromptPhase.GENERATION, requirement_type, document_type)
        if template is None:
            logger.info(
                f"[Prompts] No generation template for {requirement_type.value}/{document_type.value}"
            )
        return template


def render_prompt(template_text: str, values: dict[str, Any]) -> str:
    """
    Substitute {{key}} and {key} placeholders.

    Unknown placeholders are left untouched so literal braces in prompt
    text (JSON examples) survive.
    """

    def _sub(match: re.Match) -> str:
        key = match.group(1) or match.group(2)
        if key not in values:
            return match.group(0)
        value = values[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_sub, template_text)


def output_format_instruction(requirement_type: RequirementType) -> str:
    """Strict JSON output instruction appended to every validation prompt."""
    is_ke = requirement_type == RequirementType.KNOWLEDGE_EVIDENCE
    smart_field = "smart_question" if is_ke else "smart_task"
    item = "question" if is_ke else "practical task"
    return f"""

CRITICAL: You MUST return a JSON object with this EXACT structure:
{{
  "status": "Met" | "Partially Met" | "Not Met",
  "reasoning": "Detailed explanation (max 300 words)",
  "mapped_content": "Specific content with page numbers",
  "citations": ["Document name, Section, Page X"],
  "{smart_field}": "If status is 'Met', you MUST use 'N/A'. Otherwise, ONE {item}",
  "benchmark_answer": "If status is 'Met', you MUST use 'N/A'. Otherwise, expected answer/behavior",
  "unmapped_content": "What is missing. Use 'N/A' if fully met"
}}

IMPORTANT RULES:
- If status is "Met", {smart_field} MUST be exactly "N/A"
- If status is "Met", benchmark_answer MUST be exactly "N/A"
- ALL fields are required
- Return ONLY the JSON object"""


def generation_format_instruction(requirement_type: RequirementType) -> str:
    """JSON instruction for remediation prompts: the task and its benchmark only."""
    is_ke = requirement_type == RequirementType.KNOWLEDGE_EVIDENCE
    smart_field = "smart_question" if is_ke else "smart_task"
    item = "question" if is_ke else "practical task"
    return f"""

Return a JSON object with this EXACT structure:
{{
  "{smart_field}": "ONE {item} that closes the gap",
  "benchmark_answer": "Expected answer/behavior"
}}

Return ONLY the JSON object"""
