"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.

Provider selection is resolved once per orchestration call into an
immutable ProviderConfig and threaded explicitly into the orchestrator
and the client factory.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic_settings import BaseSettings

from rto_validation.errors import ConfigurationError
from rto_validation.models.enums import OrchestrationMode, ProviderName


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "RTO Validation Service"
    debug: bool = False

    # ── Provider selection ───────────────────────────────
    ai_provider: str = "google"  # "google" | "azure"
    orchestration_mode: str = "direct"  # "direct" | "n8n"
    n8n_webhook_url: str = "https://n8n-gtoa.onrender.com/webhook/validate-document"

    # ── Google Gemini ────────────────────────────────────
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # ── Azure OpenAI ─────────────────────────────────────
    azure_openai_endpoint: str = ""
    azure_openai_key: str = ""
    azure_openai_deployment: str = "gpt-4o-mini"
    azure_openai_api_version: str = "2024-08-01-preview"

    # ── Azure Document Intelligence ──────────────────────
    azure_doc_intel_endpoint: str = ""
    azure_doc_intel_key: str = ""
    azure_doc_intel_api_version: str = "2024-11-30"
    azure_doc_intel_model: str = "prebuilt-layout"

    # ── Generation defaults ──────────────────────────────
    llm_temperature: float = 0.1
    gemini_max_output_tokens: int = 8192
    azure_max_tokens: int = 4096

    # ── Long-running operations ──────────────────────────
    poll_interval_seconds: float = 2.0
    extraction_timeout_seconds: float = 120.0
    upload_timeout_seconds: float = 60.0
    request_timeout_seconds: float = 120.0

    # ── Content window ───────────────────────────────────
    max_match_pages: int = 6
    max_context_fragments: int = 120
    max_fallback_fragments: int = 100
    max_search_hits: int = 50
    keyword_min_length: int = 6

    # ── MongoDB ──────────────────────────────────────────
    persistence_backend: str = "memory"  # "memory" | "mongo"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "rto_validation"

    # ── File Storage ─────────────────────────────────────
    storage_backend: str = "local"
    local_storage_path: str = "./storage"

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()


# ── Provider selection ───────────────────────────────────


@dataclass(frozen=True)
class ProviderConfig:
    """Backend identity + orchestration mode, fixed for one validation run."""

    provider: ProviderName
    orchestration_mode: OrchestrationMode

    @property
    def use_n8n(self) -> bool:
        return self.orchestration_mode == OrchestrationMode.N8N


def resolve_provider_config(settings: Settings | None = None) -> ProviderConfig:
    """
    Build the ProviderConfig from settings.

    Both values are case-insensitive. The n8n orchestration path only
    exists for the Google provider; Azure always runs direct.
    """
    settings = settings or get_settings()

    raw_provider = (settings.ai_provider or "google").strip().lower()
    raw_mode = (settings.orchestration_mode or "direct").strip().lower()

    try:
        provider = ProviderName(raw_provider)
    except ValueError:
        raise ConfigurationError(
            f"Unknown AI provider '{settings.ai_provider}' (expected 'google' or 'azure')"
        ) from None
    try:
        mode = OrchestrationMode(raw_mode)
    except ValueError:
        raise ConfigurationError(
            f"Unknown orchestration mode '{settings.orchestration_mode}' (expected 'direct' or 'n8n')"
        ) from None

    if provider == ProviderName.AZURE:
        mode = OrchestrationMode.DIRECT

    return ProviderConfig(provider=provider, orchestration_mode=mode)


def describe_provider_config(
    config: ProviderConfig, settings: Settings | None = None
) -> dict[str, str]:
    """Return a dict of setting → status badge for startup logging."""
    settings = settings or get_settings()

    def badge(value: str) -> str:
        return "configured" if value else "missing"

    summary = {
        "provider": config.provider.value,
        "orchestration": config.orchestration_mode.value,
    }
    if config.provider == ProviderName.AZURE:
        summary.update({
            "azure_openai_endpoint": badge(settings.azure_openai_endpoint),
            "azure_openai_key": badge(settings.azure_openai_key),
            "azure_openai_deployment": settings.azure_openai_deployment,
            "azure_doc_intel_endpoint": badge(settings.azure_doc_intel_endpoint),
            "azure_doc_intel_key": badge(settings.azure_doc_intel_key),
        })
    else:
        summary["gemini_api_key"] = badge(settings.gemini_api_key)
        summary["gemini_model"] = settings.gemini_model
    if config.use_n8n:
        summary["n8n_webhook_url"] = settings.n8n_webhook_url
    return summary
