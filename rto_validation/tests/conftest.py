"""
Shared fixtures: seeded template store, settings and a small unit with
requirements. Fakes live in fakes.py.
"""

from __future__ import annotations

import pytest

from rto_validation.config import Settings
from rto_validation.models.enums import DocumentType, PromptPhase, RequirementType
from rto_validation.models.schemas import ContentContext, PromptTemplate, Requirement, UnitMeta
from rto_validation.persistence.stores import InMemoryPromptTemplateStore
from rto_validation.tests.fakes import GENERATION_PROMPT, VALIDATION_PROMPT


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        ai_provider="azure",
        orchestration_mode="direct",
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_key="test-key",
        local_storage_path=str(tmp_path / "storage"),
    )


@pytest.fixture
def templates() -> InMemoryPromptTemplateStore:
    store = InMemoryPromptTemplateStore()
    for rtype in (RequirementType.KNOWLEDGE_EVIDENCE, RequirementType.PERFORMANCE_EVIDENCE):
        store.add(
            PromptTemplate(
                template_id=f"val-{rtype.short_code}",
                name=f"{rtype.short_code} validation",
                phase=PromptPhase.VALIDATION,
                requirement_type=rtype,
                document_type=DocumentType.UNIT,
                prompt_text=VALIDATION_PROMPT,
                system_instruction="You are a validator.",
            )
        )
        store.add(
            PromptTemplate(
                template_id=f"gen-{rtype.short_code}",
                name=f"{rtype.short_code} generation",
                phase=PromptPhase.GENERATION,
                requirement_type=rtype,
                document_type=DocumentType.UNIT,
                prompt_text=GENERATION_PROMPT,
            )
        )
    return store


@pytest.fixture
def unit() -> UnitMeta:
    return UnitMeta(
        unit_code="BSBOPS304",
        unit_title="Deliver and monitor a service to customers",
        validation_id="VAL-1",
        rto_code="12345",
    )


@pytest.fixture
def requirements() -> list[Requirement]:
    return [
        Requirement(
            requirement_id="ke-1",
            type=RequirementType.KNOWLEDGE_EVIDENCE,
            number="KE1",
            text="Organisational policies for customer service",
            unit_code="BSBOPS304",
        ),
        Requirement(
            requirement_id="pe-1",
            type=RequirementType.PERFORMANCE_EVIDENCE,
            number="PE1",
            text="Respond to customer complaints",
            unit_code="BSBOPS304",
        ),
        Requirement(
            requirement_id="pe-2",
            type=RequirementType.PERFORMANCE_EVIDENCE,
            number="PE2",
            text="Monitor customer satisfaction",
            unit_code="BSBOPS304",
        ),
    ]


@pytest.fixture
def text_context() -> ContentContext:
    return ContentContext(
        document_content="\n\n=== Document: assessment.pdf ===\nQ1. Explain the complaints policy.",
        source_documents=["assessment.pdf"],
        pages={"assessment.pdf": [1]},
    )
