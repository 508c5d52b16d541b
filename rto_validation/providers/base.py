"""
AI client interface shared by both backends.

Exactly two implementations exist:
  - GeminiFileSearchClient — answers grounded on a remote File Search store
  - AzureTextClient        — answers from pre-extracted text injected in the prompt
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rto_validation.models.enums import ProviderName
from rto_validation.models.schemas import (
    ContentContext,
    ExtractedDocument,
    GenerationConfig,
    ProviderResponse,
    UploadOperation,
)

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are an expert assessment validator. Analyze the provided document "
    "against the requirements and return a structured JSON response."
)


class AIClient(ABC):
    """Abstract base for the provider adapters."""

    provider: ProviderName  # set in each subclass

    @abstractmethod
    async def generate_validation(
        self,
        prompt: str,
        context: ContentContext,
        system_instruction: str | None = None,
        output_schema: dict[str, Any] | None = None,
        generation_config: GenerationConfig | None = None,
    ) -> ProviderResponse:
        """Run one grounded validation/generation call."""
        ...

    @abstractmethod
    async def generate_content(self, prompt: str) -> str:
        """Plain text generation with no grounding."""
        ...

    @property
    def needs_extracted_text(self) -> bool:
        """True when the backend can only see text injected into the prompt."""
        return False

    async def extract_document(
        self, data: bytes, content_type: str = "application/pdf"
    ) -> ExtractedDocument:
        raise NotImplementedError(f"{self.provider.value} provider does not extract documents")

    async def upload_document(
        self,
        data: bytes,
        file_name: str,
        store_name: str,
        metadata: dict[str, str | int] | None = None,
    ) -> UploadOperation:
        raise NotImplementedError(f"{self.provider.value} provider does not upload documents")

    async def aclose(self) -> None:
        """Release any underlying HTTP resources."""
        return None
