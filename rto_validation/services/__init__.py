"""Services — prompt lookup, content resolution, response parsing, storage."""

from rto_validation.services.content_resolver import DocumentContentResolver
from rto_validation.services.file_service import DocumentStorage
from rto_validation.services.prompt_service import PromptService, render_prompt

__all__ = ["DocumentContentResolver", "DocumentStorage", "PromptService", "render_prompt"]
