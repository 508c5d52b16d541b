"""
Service wiring for the HTTP layer.

Stores are built once per process from settings ("memory" or "mongo");
an orchestrator is built per request so each request re-resolves the
provider configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from rto_validation.config import Settings, get_settings, resolve_provider_config
from rto_validation.orchestration.runner import UnitValidationOrchestrator
from rto_validation.persistence.mongo_client import MongoClient
from rto_validation.persistence.stores import (
    ElementStore,
    InMemoryElementStore,
    InMemoryPromptTemplateStore,
    InMemoryRequirementStore,
    InMemoryValidationResultRepository,
    PromptTemplateStore,
    RequirementStore,
    ValidationResultRepository,
)
from rto_validation.services.file_service import DocumentStorage

logger = logging.getLogger(__name__)


@dataclass
class Services:
    templates: PromptTemplateStore
    requirements: RequirementStore
    elements: ElementStore
    results: ValidationResultRepository
    storage: Optional[DocumentStorage] = None


def build_services(settings: Settings | None = None) -> Services:
    settings = settings or get_settings()
    storage = DocumentStorage(settings)

    if settings.persistence_backend.lower() == "mongo":
        from rto_validation.persistence.mongo_stores import (
            MongoElementStore,
            MongoPromptTemplateStore,
            MongoRequirementStore,
            MongoValidationResultRepository,
        )

        db = MongoClient(settings).get_database()
        logger.info(f"[Services] Using MongoDB stores ({settings.mongodb_database})")
        return Services(
            templates=MongoPromptTemplateStore(db),
            requirements=MongoRequirementStore(db),
            elements=MongoElementStore(db),
            results=MongoValidationResultRepository(db),
            storage=storage,
        )

    logger.info("[Services] Using in-memory stores")
    return Services(
        templates=InMemoryPromptTemplateStore(),
        requirements=InMemoryRequirementStore(),
        elements=InMemoryElementStore(),
        results=InMemoryValidationResultRepository(),
        storage=storage,
    )


@lru_cache()
def get_services() -> Services:
    """Process-wide stores (override in tests via app.dependency_overrides)."""
    return build_services()


def build_orchestrator(services: Services, settings: Settings | None = None) -> UnitValidationOrchestrator:
    settings = settings or get_settings()
    return UnitValidationOrchestrator(
        provider_config=resolve_provider_config(settings),
        templates=services.templates,
        elements=services.elements,
        results=services.results,
        storage=services.storage,
        settings=settings,
    )


def get_orchestrator(services: Services = Depends(get_services)) -> UnitValidationOrchestrator:
    return build_orchestrator(services)
