"""
Data schemas shared by the validation pipeline.
Each schema represents a clearly-bounded data object produced or
consumed by one stage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from .enums import (
    DocumentType,
    PromptPhase,
    ProviderName,
    RequirementType,
    RunStatus,
    ValidationStatus,
)

NOT_APPLICABLE = "N/A"
NO_CONTENT_SENTINEL = "No document content available."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Inputs ───────────────────────────────────────────────


class Requirement(BaseModel):
    """One assessable unit-of-competency clause."""

    model_config = {"frozen": True}

    requirement_id: str
    type: RequirementType
    number: str = ""
    text: str = ""
    element_text: str = ""
    unit_code: str = ""


class UnitMeta(BaseModel):
    unit_code: str
    unit_title: str = ""
    document_type: DocumentType = DocumentType.UNIT
    validation_id: str = ""
    rto_code: str = ""
    file_search_store_name: str = ""  # only used by the grounded-search backend
    namespace: str = ""  # validation-session scope for File Search metadata

    def file_search_filter(self) -> Optional[str]:
        """
        AIP-160 metadata filter scoping File Search to this session (or,
        without a namespace, to this unit) and document type.
        """
        doc_type = self.document_type.store_label
        if self.namespace:
            return f'namespace="{self.namespace}" AND document-type="{doc_type}"'
        if self.unit_code:
            return f'unit-code="{self.unit_code}" AND document-type="{doc_type}"'
        return None


class SourceDocument(BaseModel):
    """An uploaded assessment document in object storage."""

    document_id: str = ""
    file_name: str
    storage_path: str
    content_type: str = "application/pdf"

    @property
    def url(self) -> str:
        return f"storage://documents/{self.storage_path}"


# ── Extraction ───────────────────────────────────────────


class ExtractedPage(BaseModel):
    page_number: int
    content: str = ""
    width: Optional[float] = None
    height: Optional[float] = None


class TableCell(BaseModel):
    row_index: int
    column_index: int
    content: str = ""
    is_header: bool = False


class ExtractedTable(BaseModel):
    row_count: int
    column_count: int
    cells: list[TableCell] = []
    page_number: Optional[int] = None


class ExtractedParagraph(BaseModel):
    content: str = ""
    page_number: Optional[int] = None
    role: Optional[str] = None


class ExtractedDocument(BaseModel):
    content: str = ""
    pages: list[ExtractedPage] = []
    tables: list[ExtractedTable] = []
    paragraphs: list[ExtractedParagraph] = []


class DocumentElement(BaseModel):
    """One extracted text fragment, persisted per document."""

    element_id: str
    url: str
    file_name: str
    text: str
    page_number: int = 1
    role: str = "paragraph"
    order: int = 0
    date_processed: datetime = Field(default_factory=_utcnow)


class ContentContext(BaseModel):
    """
    Text corpus grounding one validation call: a remote store reference
    for search-grounded providers, or inline text for text-injection ones.
    """

    model_config = {"frozen": True}

    file_search_store_name: Optional[str] = None
    metadata_filter: Optional[str] = None
    document_content: Optional[str] = None
    source_documents: list[str] = []
    pages: dict[str, list[int]] = {}
    is_empty: bool = False
    extraction_error: Optional[str] = None  # last extraction failure, when content is empty


class UploadOperation(BaseModel):
    name: str
    done: bool = False
    error: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = {}


# ── Prompts & provider calls ─────────────────────────────


class GenerationConfig(BaseModel):
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None


class PromptTemplate(BaseModel):
    template_id: str = ""
    name: str = ""
    phase: PromptPhase = PromptPhase.VALIDATION
    requirement_type: Optional[RequirementType] = None
    document_type: Optional[DocumentType] = None
    prompt_text: str
    system_instruction: Optional[str] = None
    output_schema: Optional[dict[str, Any]] = None
    generation_config: Optional[GenerationConfig] = None
    version: str = "1"
    is_active: bool = True
    is_default: bool = True


class Citation(BaseModel):
    document_name: str
    page_numbers: list[int] = []
    chunk_text: str = ""

    def label(self) -> str:
        if not self.page_numbers:
            return self.document_name
        pages = ", ".join(str(p) for p in self.page_numbers)
        return f"{self.document_name}, Page {pages}"


class ProviderResponse(BaseModel):
    text: str
    provider: ProviderName
    citations: list[Citation] = []


# ── Outcomes ─────────────────────────────────────────────


class ValidationOutcome(BaseModel):
    """Phase 1 result for one requirement."""

    status: ValidationStatus = ValidationStatus.NOT_MET
    reasoning: str = ""
    mapped_content: str = ""
    citations: list[str] = []
    unmapped_content: str = ""
    remediation: str = ""
    benchmark_answer: str = ""
    success: bool = True
    error: Optional[str] = None


class RemediationTask(BaseModel):
    """Phase 2 result: a SMART question/task closing the gap."""

    task_text: str
    benchmark_answer: str = ""
    rationale: str = ""


class RequirementResult(BaseModel):
    """Combined Phase 1 + Phase 2 result for one requirement."""

    requirement: Requirement
    outcome: ValidationOutcome
    remediation: Optional[RemediationTask] = None
    phase2_ran: bool = False

    def canonical(self) -> dict[str, Any]:
        """Render the canonical JSON shape for this requirement."""
        field = (
            "smart_question"
            if self.requirement.type == RequirementType.KNOWLEDGE_EVIDENCE
            else "smart_task"
        )
        if self.remediation:
            task, benchmark = self.remediation.task_text, self.remediation.benchmark_answer
        else:
            task, benchmark = self.outcome.remediation, self.outcome.benchmark_answer
        return {
            "status": self.outcome.status.value,
            "reasoning": self.outcome.reasoning,
            "mapped_content": self.outcome.mapped_content,
            "citations": list(self.outcome.citations),
            field: task,
            "benchmark_answer": benchmark,
            "unmapped_content": self.outcome.unmapped_content,
        }


class TypeSummary(BaseModel):
    total: int = 0
    met: int = 0
    partially_met: int = 0
    not_met: int = 0


class UnitValidationResult(BaseModel):
    unit_code: str
    validation_id: str = ""
    run_status: RunStatus = RunStatus.COMPLETED
    overall_status: ValidationStatus = ValidationStatus.NOT_MET
    results: list[RequirementResult] = []
    summary_by_type: dict[str, TypeSummary] = {}
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    workflow_response: Optional[dict[str, Any]] = None  # n8n webhook reply
    persisted: bool = False  # results reached the repository


class ValidationResultRecord(BaseModel):
    """Persisted row for one requirement within one validation run."""

    validation_id: str
    requirement_id: str
    requirement_type: RequirementType
    requirement_number: str = ""
    status: ValidationStatus
    reasoning: str = ""
    mapped_content: str = ""
    citations: list[str] = []
    smart_questions: str = ""
    benchmark_answer: str = ""
    unmapped_content: str = ""
    success: bool = True
    error: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_result(cls, validation_id: str, result: RequirementResult) -> ValidationResultRecord:
        canonical = result.canonical()
        task = canonical.get("smart_question", canonical.get("smart_task", ""))
        return cls(
            validation_id=validation_id,
            requirement_id=result.requirement.requirement_id,
            requirement_type=result.requirement.type,
            requirement_number=result.requirement.number,
            status=result.outcome.status,
            reasoning=result.outcome.reasoning,
            mapped_content=result.outcome.mapped_content,
            citations=list(result.outcome.citations),
            smart_questions=task,
            benchmark_answer=canonical["benchmark_answer"],
            unmapped_content=canonical["unmapped_content"],
            success=result.outcome.success,
            error=result.outcome.error,
        )
