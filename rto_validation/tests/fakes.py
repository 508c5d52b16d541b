"""
Test doubles: a scripted AIClient and a dict-backed document storage.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Union

from rto_validation.errors import NotFoundError
from rto_validation.models.enums import ProviderName
from rto_validation.models.schemas import ContentContext, ExtractedDocument, ProviderResponse
from rto_validation.providers.base import AIClient

Reply = Union[str, Exception]


class FakeAIClient(AIClient):
    """
    Scripted AIClient.

    `replies` is either a list consumed in call order or a function of
    the prompt text. Exceptions in place of a reply are raised.
    """

    def __init__(
        self,
        replies: list[Reply] | Callable[[str], Reply] | None = None,
        provider: ProviderName = ProviderName.AZURE,
        needs_text: bool = True,
        extracted: dict[str, ExtractedDocument | Exception] | None = None,
    ):
        self.provider = provider
        self._replies = replies if replies is not None else []
        self._needs_text = needs_text
        self._extracted = extracted or {}
        self.calls: list[dict[str, Any]] = []
        self.extract_calls: list[bytes] = []
        self.closed = False

    @property
    def needs_extracted_text(self) -> bool:
        return self._needs_text

    def _next(self, prompt: str) -> Reply:
        if callable(self._replies):
            return self._replies(prompt)
        if not self._replies:
            raise AssertionError(f"Unexpected model call: {prompt[:80]}")
        return self._replies.pop(0)

    async def generate_validation(
        self,
        prompt: str,
        context: ContentContext,
        system_instruction: str | None = None,
        output_schema: dict[str, Any] | None = None,
        generation_config: Any = None,
    ) -> ProviderResponse:
        self.calls.append(
            {"prompt": prompt, "context": context, "system_instruction": system_instruction}
        )
        reply = self._next(prompt)
        if isinstance(reply, Exception):
            raise reply
        return ProviderResponse(text=reply, provider=self.provider)

    async def generate_content(self, prompt: str) -> str:
        reply = self._next(prompt)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def extract_document(
        self, data: bytes, content_type: str = "application/pdf"
    ) -> ExtractedDocument:
        self.extract_calls.append(data)
        result = self._extracted.get(data.decode())
        if isinstance(result, Exception):
            raise result
        return result or ExtractedDocument()

    async def aclose(self) -> None:
        self.closed = True

    def prompts_containing(self, needle: str) -> list[str]:
        return [c["prompt"] for c in self.calls if needle in c["prompt"]]


class FakeStorage:
    """DocumentStorage stand-in: storage path → bytes."""

    def __init__(self, files: dict[str, bytes]):
        self.files = files

    def download(self, storage_path: str) -> bytes:
        if storage_path not in self.files:
            raise NotFoundError(f"Failed to download document: {storage_path}")
        return self.files[storage_path]


def reply(status: str, **fields: Any) -> str:
    """Build a JSON model reply."""
    return json.dumps({"status": status, **fields})


VALIDATION_PROMPT = "VALIDATE {{requirement_number}}: {{requirement_text}} for {unit_code}"
GENERATION_PROMPT = (
    "GENERATE for {{requirement_number}} status={{status}} gaps={{unmapped_content}}"
)


