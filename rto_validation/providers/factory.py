"""
Provider selector — builds a fresh AIClient for one orchestration call.

No client is cached between calls; the ProviderConfig passed in is the
only thing that decides which backend is used.
"""

from __future__ import annotations

import logging

from rto_validation.config import ProviderConfig, Settings, get_settings
from rto_validation.models.enums import ProviderName
from rto_validation.providers.azure_openai import AzureTextClient
from rto_validation.providers.base import AIClient
from rto_validation.providers.document_intelligence import DocumentIntelligenceClient
from rto_validation.providers.gemini import GeminiFileSearchClient

logger = logging.getLogger(__name__)


def create_ai_client(config: ProviderConfig, settings: Settings | None = None) -> AIClient:
    """Construct the backend selected by *config*."""
    settings = settings or get_settings()
    logger.info(
        f"[Provider] Initializing provider={config.provider.value} "
        f"orchestration={config.orchestration_mode.value}"
    )

    if config.provider == ProviderName.AZURE:
        doc_intel = None
        if settings.azure_doc_intel_endpoint and settings.azure_doc_intel_key:
            doc_intel = DocumentIntelligenceClient(
                endpoint=settings.azure_doc_intel_endpoint,
                api_key=settings.azure_doc_intel_key,
                api_version=settings.azure_doc_intel_api_version,
                model_id=settings.azure_doc_intel_model,
                poll_interval=settings.poll_interval_seconds,
                timeout=settings.extraction_timeout_seconds,
            )
        else:
            logger.warning(
                "[Provider] Azure Document Intelligence not configured — "
                "documents without stored elements cannot be extracted"
            )
        return AzureTextClient(
            endpoint=settings.azure_openai_endpoint,
            api_key=settings.azure_openai_key,
            deployment=settings.azure_openai_deployment,
            api_version=settings.azure_openai_api_version,
            temperature=settings.llm_temperature,
            max_tokens=settings.azure_max_tokens,
            timeout=settings.request_timeout_seconds,
            doc_intel=doc_intel,
        )

    return GeminiFileSearchClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        temperature=settings.llm_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
        poll_interval=settings.poll_interval_seconds,
        upload_timeout=settings.upload_timeout_seconds,
    )
