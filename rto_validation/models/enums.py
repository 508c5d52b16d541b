from __future__ import annotations

from enum import Enum


class ProviderName(str, Enum):
    GOOGLE = "google"
    AZURE = "azure"


class OrchestrationMode(str, Enum):
    DIRECT = "direct"
    N8N = "n8n"


class PromptPhase(str, Enum):
    VALIDATION = "validation"
    GENERATION = "generation"


class DocumentType(str, Enum):
    UNIT = "unit"
    LEARNER_GUIDE = "learner_guide"

    @property
    def store_label(self) -> str:
        """Value of the document-type metadata written on File Search uploads."""
        return "training_package" if self is DocumentType.LEARNER_GUIDE else "assessment"


class RequirementType(str, Enum):
    KNOWLEDGE_EVIDENCE = "knowledge_evidence"
    PERFORMANCE_EVIDENCE = "performance_evidence"
    FOUNDATION_SKILLS = "foundation_skills"
    ELEMENTS_PERFORMANCE_CRITERIA = "elements_performance_criteria"
    ASSESSMENT_CONDITIONS = "assessment_conditions"
    ASSESSMENT_INSTRUCTIONS = "assessment_instructions"

    @classmethod
    def from_value(cls, value: str | RequirementType) -> RequirementType:
        """Resolve a full name or a short code ("ke", "epc", ...)."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        key = _REQUIREMENT_TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown requirement type: {value!r}") from None

    @property
    def short_code(self) -> str:
        return _SHORT_CODES[self]


_REQUIREMENT_TYPE_ALIASES = {
    "ke": "knowledge_evidence",
    "pe": "performance_evidence",
    "fs": "foundation_skills",
    "epc": "elements_performance_criteria",
    "elements_criteria": "elements_performance_criteria",
    "ac": "assessment_conditions",
    "ai": "assessment_instructions",
    "learner": "knowledge_evidence",
}

_SHORT_CODES = {
    RequirementType.KNOWLEDGE_EVIDENCE: "ke",
    RequirementType.PERFORMANCE_EVIDENCE: "pe",
    RequirementType.FOUNDATION_SKILLS: "fs",
    RequirementType.ELEMENTS_PERFORMANCE_CRITERIA: "epc",
    RequirementType.ASSESSMENT_CONDITIONS: "ac",
    RequirementType.ASSESSMENT_INSTRUCTIONS: "ai",
}


class ValidationStatus(str, Enum):
    MET = "Met"
    PARTIALLY_MET = "Partially Met"
    NOT_MET = "Not Met"


class RunStatus(str, Enum):
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    TRIGGERED = "TRIGGERED"


class AgentName(str, Enum):
    P1_REQUIREMENT_VALIDATOR = "P1_REQUIREMENT_VALIDATOR"
    P2_REMEDIATION_GENERATOR = "P2_REMEDIATION_GENERATOR"


class ValidationStage(str, Enum):
    """Per-requirement Phase 1 progression."""

    PENDING = "PENDING"
    PROMPTED = "PROMPTED"
    PARSED = "PARSED"
    FAILED = "FAILED"
    CLASSIFIED = "CLASSIFIED"
