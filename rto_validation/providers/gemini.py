"""
Grounded-search backend: Google Gemini with the File Search tool.

Documents are uploaded once into a File Search store; validation calls
reference the store by name and the model retrieves the relevant chunks
itself. Grounding chunks come back as citations.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from rto_validation.errors import ConfigurationError, ProviderError, ProviderTimeoutError
from rto_validation.models.enums import ProviderName
from rto_validation.models.schemas import (
    ContentContext,
    GenerationConfig,
    ProviderResponse,
    UploadOperation,
)
from rto_validation.providers.base import AIClient
from rto_validation.services.response_parser import citations_from_grounding
from rto_validation.utils.logger import truncate

logger = logging.getLogger(__name__)


def _metadata_entries(metadata: dict[str, str | int] | None) -> list[types.CustomMetadata]:
    """Gemini metadata keys use dashes; values are sent as strings."""
    return [
        types.CustomMetadata(key=key.replace("_", "-"), string_value=str(value))
        for key, value in (metadata or {}).items()
    ]


def _to_operation(op: Any) -> UploadOperation:
    return UploadOperation(
        name=getattr(op, "name", "") or "",
        done=bool(getattr(op, "done", False)),
        error=getattr(op, "error", None),
        metadata=getattr(op, "metadata", None) or {},
    )


class GeminiFileSearchClient(AIClient):
    """Gemini generation grounded on a File Search store."""

    provider = ProviderName.GOOGLE

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
        poll_interval: float = 2.0,
        upload_timeout: float = 60.0,
        genai_client: Any = None,
    ):
        if genai_client is None:
            if not api_key:
                raise ConfigurationError("Missing Gemini configuration. Set GEMINI_API_KEY.")
            genai_client = genai.Client(api_key=api_key)
        self._client = genai_client
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.poll_interval = poll_interval
        self.upload_timeout = upload_timeout

    # ── Generation ───────────────────────────────────────

    async def generate_validation(
        self,
        prompt: str,
        context: ContentContext,
        system_instruction: str | None = None,
        output_schema: dict[str, Any] | None = None,
        generation_config: GenerationConfig | None = None,
    ) -> ProviderResponse:
        if not context.file_search_store_name:
            raise ConfigurationError(
                "Google provider requires a File Search store name for document grounding"
            )
        config = generation_config or GenerationConfig()

        request_config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=config.temperature if config.temperature is not None else self.temperature,
            max_output_tokens=config.max_output_tokens or self.max_output_tokens,
            top_p=config.top_p,
            top_k=config.top_k,
            response_mime_type="application/json",
            response_json_schema=output_schema,
            tools=[
                types.Tool(
                    file_search=types.FileSearch(
                        file_search_store_names=[context.file_search_store_name],
                        metadata_filter=context.metadata_filter,
                    )
                )
            ],
        )

        logger.debug(
            f"[Gemini] generate_content model={self.model} store={context.file_search_store_name} "
            f"filter={context.metadata_filter or '-'} "
            f"prompt={len(prompt)} chars"
        )
        t0 = time.perf_counter()
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model, contents=prompt, config=request_config
            )
        except genai_errors.APIError as exc:
            raise ProviderError(
                f"Gemini API error ({exc.code}): {exc.message}", status_code=exc.code
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gemini transport error: {exc}") from exc
        elapsed = time.perf_counter() - t0

        text = response.text or ""
        chunks = None
        if response.candidates:
            grounding = getattr(response.candidates[0], "grounding_metadata", None)
            chunks = getattr(grounding, "grounding_chunks", None)

        logger.info(
            f"[Gemini] Response in {elapsed:.2f}s | {len(text)} chars | "
            f"grounding_chunks={len(chunks or [])}"
        )
        logger.debug(f"[Gemini] Response preview: {truncate(text, 500)}")

        return ProviderResponse(
            text=text,
            provider=self.provider,
            citations=citations_from_grounding(chunks),
        )

    async def generate_content(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model, contents=prompt
            )
        except genai_errors.APIError as exc:
            raise ProviderError(
                f"Gemini API error ({exc.code}): {exc.message}", status_code=exc.code
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gemini transport error: {exc}") from exc
        return response.text or ""

    # ── File Search upload ───────────────────────────────

    async def upload_document(
        self,
        data: bytes,
        file_name: str,
        store_name: str,
        metadata: dict[str, str | int] | None = None,
    ) -> UploadOperation:
        """Start a multipart upload into a File Search store."""
        if not store_name:
            raise ConfigurationError("A File Search store name is required for upload")

        logger.info(
            f"[Gemini] Uploading {file_name} ({len(data) / 1024:.2f} KB) to {store_name}"
        )
        try:
            operation = await self._client.aio.file_search_stores.upload_to_file_search_store(
                file_search_store_name=store_name,
                file=io.BytesIO(data),
                config=types.UploadToFileSearchStoreConfig(
                    display_name=file_name,
                    mime_type="application/pdf",
                    custom_metadata=_metadata_entries(metadata) or None,
                ),
            )
        except genai_errors.APIError as exc:
            raise ProviderError(
                f"Failed to upload to File Search store: {exc.message}", status_code=exc.code
            ) from exc

        result = _to_operation(operation)
        logger.info(f"[Gemini] Upload operation started: {result.name}")
        return result

    async def get_operation(self, operation_name: str) -> UploadOperation:
        try:
            operation = await self._client.aio.operations.get(
                types.UploadToFileSearchStoreOperation(name=operation_name)
            )
        except genai_errors.APIError as exc:
            raise ProviderError(
                f"Failed to get operation: {exc.message}", status_code=exc.code
            ) from exc
        return _to_operation(operation)

    async def wait_for_operation(
        self, operation_name: str, timeout: float | None = None
    ) -> UploadOperation:
        """Poll an upload operation until it is done."""
        timeout = timeout if timeout is not None else self.upload_timeout
        started = time.monotonic()
        checks = 0

        while time.monotonic() - started < timeout:
            checks += 1
            operation = await self.get_operation(operation_name)
            if operation.done:
                if operation.error:
                    raise ProviderError(f"Operation failed: {operation.error}")
                logger.info(
                    f"[Gemini] Operation {operation_name} done in "
                    f"{time.monotonic() - started:.1f}s ({checks} checks)"
                )
                return operation
            await asyncio.sleep(self.poll_interval)

        raise ProviderTimeoutError(
            f"Operation timed out after {timeout:.0f}s (checks: {checks})"
        )
