"""
Text-injection backend: Azure OpenAI chat completions + Azure Document
Intelligence extraction.

Azure has no native document grounding, so the extracted text is pasted
into the user message under a literal DOCUMENT CONTENT section.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import openai
from openai import AsyncAzureOpenAI

from rto_validation.errors import ConfigurationError, ProviderError
from rto_validation.models.enums import ProviderName
from rto_validation.models.schemas import (
    ContentContext,
    ExtractedDocument,
    GenerationConfig,
    ProviderResponse,
)
from rto_validation.providers.base import DEFAULT_SYSTEM_INSTRUCTION, AIClient
from rto_validation.providers.document_intelligence import DocumentIntelligenceClient
from rto_validation.utils.logger import truncate

logger = logging.getLogger(__name__)

DOCUMENT_SECTION_HEADER = "\n\n---\n\nDOCUMENT CONTENT:\n\n"


def build_messages(
    prompt: str,
    document_content: str,
    system_instruction: str | None = None,
    output_schema: dict[str, Any] | None = None,
) -> list[dict[str, str]]:
    """Assemble system + user messages with the document text inlined."""
    user_content = prompt
    if output_schema:
        user_content += (
            "\n\nRespond with JSON matching this schema:\n"
            + json.dumps(output_schema, indent=2)
        )
    user_content += DOCUMENT_SECTION_HEADER + document_content
    return [
        {"role": "system", "content": system_instruction or DEFAULT_SYSTEM_INSTRUCTION},
        {"role": "user", "content": user_content},
    ]


class AzureTextClient(AIClient):
    """Azure OpenAI generation over pre-extracted document text."""

    provider = ProviderName.AZURE

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str = "gpt-4o-mini",
        api_version: str = "2024-08-01-preview",
        temperature: float = 0.1,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        doc_intel: DocumentIntelligenceClient | None = None,
        openai_client: Any = None,
    ):
        if openai_client is None:
            if not endpoint or not api_key:
                raise ConfigurationError(
                    "Missing Azure OpenAI configuration. "
                    "Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_KEY."
                )
            openai_client = AsyncAzureOpenAI(
                azure_endpoint=endpoint.rstrip("/"),
                api_key=api_key,
                api_version=api_version,
                timeout=timeout,
            )
        self._client = openai_client
        self.deployment = deployment
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.doc_intel = doc_intel

    @property
    def needs_extracted_text(self) -> bool:
        return True

    async def _chat(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
        top_p: float | None = None,
        json_mode: bool = False,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.deployment,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if top_p is not None:
            kwargs["top_p"] = top_p
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(
            f"[AzureOpenAI] Calling {self.deployment} | messages={len(messages)} | "
            f"temperature={temperature} | json={json_mode}"
        )
        t0 = time.perf_counter()
        try:
            completion = await self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"Azure OpenAI API error ({exc.status_code}): {exc.message}",
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(f"Azure OpenAI request failed: {exc}") from exc
        elapsed = time.perf_counter() - t0

        choice = completion.choices[0] if completion.choices else None
        text = (choice.message.content if choice else None) or ""
        usage = getattr(completion, "usage", None)
        logger.info(
            f"[AzureOpenAI] Response in {elapsed:.2f}s | {len(text)} chars | "
            f"finish_reason={getattr(choice, 'finish_reason', 'unknown')} | "
            f"tokens={getattr(usage, 'total_tokens', None)}"
        )
        logger.debug(f"[AzureOpenAI] Response preview: {truncate(text, 500)}")
        return text

    async def generate_validation(
        self,
        prompt: str,
        context: ContentContext,
        system_instruction: str | None = None,
        output_schema: dict[str, Any] | None = None,
        generation_config: GenerationConfig | None = None,
    ) -> ProviderResponse:
        if not context.document_content:
            raise ConfigurationError(
                "Azure provider requires pre-extracted document content"
            )
        config = generation_config or GenerationConfig()
        if config.top_k is not None:
            logger.debug("[AzureOpenAI] top_k is not supported by chat completions; ignored")

        messages = build_messages(
            prompt, context.document_content, system_instruction, output_schema
        )
        text = await self._chat(
            messages,
            temperature=config.temperature if config.temperature is not None else self.temperature,
            max_tokens=config.max_output_tokens or self.max_tokens,
            top_p=config.top_p,
            json_mode=True,
        )
        return ProviderResponse(text=text, provider=self.provider)

    async def generate_content(self, prompt: str) -> str:
        return await self._chat(
            [{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    async def extract_document(
        self, data: bytes, content_type: str = "application/pdf"
    ) -> ExtractedDocument:
        if self.doc_intel is None:
            raise ConfigurationError("Azure Document Intelligence is not configured")
        return await self.doc_intel.extract_document(data, content_type)

    async def aclose(self) -> None:
        if self.doc_intel is not None:
            await self.doc_intel.aclose()
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()
