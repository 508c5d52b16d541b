from .enums import (
    AgentName,
    DocumentType,
    OrchestrationMode,
    PromptPhase,
    ProviderName,
    RequirementType,
    RunStatus,
    ValidationStage,
    ValidationStatus,
)
from .schemas import (
    NO_CONTENT_SENTINEL,
    NOT_APPLICABLE,
    Citation,
    ContentContext,
    DocumentElement,
    ExtractedDocument,
    GenerationConfig,
    PromptTemplate,
    ProviderResponse,
    RemediationTask,
    Requirement,
    RequirementResult,
    SourceDocument,
    TypeSummary,
    UnitMeta,
    UnitValidationResult,
    UploadOperation,
    ValidationOutcome,
    ValidationResultRecord,
)
