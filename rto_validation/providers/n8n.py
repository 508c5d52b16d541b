"""
n8n trigger — hands a whole unit validation to an external workflow.

Only used when the Google provider runs in n8n orchestration mode; the
workflow owns polling, validation and result storage from then on.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from rto_validation.errors import ConfigurationError, ProviderError
from rto_validation.models.schemas import Requirement, UnitMeta

logger = logging.getLogger(__name__)


class N8nTrigger:
    def __init__(
        self,
        webhook_url: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not webhook_url:
            raise ConfigurationError("N8N_WEBHOOK_URL is not set")
        self.webhook_url = webhook_url
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def build_payload(unit: UnitMeta, requirements: list[Requirement]) -> dict[str, Any]:
        return {
            "validationDetailId": unit.validation_id,
            "unitCode": unit.unit_code,
            "unitTitle": unit.unit_title,
            "rtoCode": unit.rto_code,
            "documentType": unit.document_type.value,
            "fileSearchStoreName": unit.file_search_store_name,
            "requirements": [r.model_dump(mode="json") for r in requirements],
            "requirementsCount": len(requirements),
        }

    async def trigger(self, unit: UnitMeta, requirements: list[Requirement]) -> dict[str, Any]:
        """POST the validation request; returns the webhook's JSON body (or {})."""
        if not unit.file_search_store_name:
            raise ConfigurationError(
                "Documents not uploaded to Gemini: no File Search store for this validation"
            )

        payload = self.build_payload(unit, requirements)
        logger.info(
            f"[n8n] Triggering validation {unit.validation_id} for {unit.unit_code} "
            f"({len(requirements)} requirements)"
        )
        try:
            response = await self._http.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            raise ProviderError(f"n8n webhook request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"n8n webhook error ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            return {}

    async def aclose(self) -> None:
        await self._http.aclose()
