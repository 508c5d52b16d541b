"""Providers — AI backends behind one AIClient interface, plus the n8n trigger."""

from rto_validation.providers.base import AIClient
from rto_validation.providers.azure_openai import AzureTextClient
from rto_validation.providers.gemini import GeminiFileSearchClient
from rto_validation.providers.document_intelligence import DocumentIntelligenceClient
from rto_validation.providers.factory import create_ai_client
from rto_validation.providers.n8n import N8nTrigger

__all__ = [
    "AIClient",
    "AzureTextClient",
    "GeminiFileSearchClient",
    "DocumentIntelligenceClient",
    "create_ai_client",
    "N8nTrigger",
]
