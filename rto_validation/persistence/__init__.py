"""Persistence — MongoClient plus the store interfaces and implementations."""

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

__all__ = [
    "MongoClient",
    "PromptTemplateStore",
    "RequirementStore",
    "ElementStore",
    "ValidationResultRepository",
    "InMemoryPromptTemplateStore",
    "InMemoryRequirementStore",
    "InMemoryElementStore",
    "InMemoryValidationResultRepository",
]
