"""
Azure Document Intelligence — layout analysis over REST.

Analysis is asynchronous on the service side: POST the bytes, read the
Operation-Location header, then poll analyzeResults/{id} until it
succeeds, fails, or the absolute timeout elapses.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from rto_validation.errors import ConfigurationError, ExtractionError, ProviderError, ProviderTimeoutError
from rto_validation.models.schemas import (
    ExtractedDocument,
    ExtractedPage,
    ExtractedParagraph,
    ExtractedTable,
    TableCell,
)

logger = logging.getLogger(__name__)


class DocumentIntelligenceClient:
    """Thin async wrapper around the prebuilt-layout analyze API."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        api_version: str = "2024-11-30",
        model_id: str = "prebuilt-layout",
        poll_interval: float = 2.0,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not endpoint or not api_key:
            raise ConfigurationError(
                "Missing Azure Document Intelligence configuration. "
                "Set AZURE_DOC_INTEL_ENDPOINT and AZURE_DOC_INTEL_KEY."
            )
        self.base_url = endpoint.rstrip("/")
        self.api_key = api_key
        self.api_version = api_version
        self.model_id = model_id
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._http = http_client or httpx.AsyncClient(timeout=30.0)

    # ── Analyze ──────────────────────────────────────────

    async def start_analysis(self, data: bytes, content_type: str = "application/pdf") -> str:
        """Submit a document and return the operation id."""
        url = (
            f"{self.base_url}/documentintelligence/documentModels/"
            f"{self.model_id}:analyze?api-version={self.api_version}"
        )
        logger.info(
            f"[DocIntel] Starting analysis ({self.model_id}, {content_type}, "
            f"{len(data) / 1024:.2f} KB)"
        )
        try:
            response = await self._http.post(
                url,
                content=data,
                headers={
                    "Content-Type": content_type,
                    "Ocp-Apim-Subscription-Key": self.api_key,
                },
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Document analysis request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"Document analysis failed ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        location = response.headers.get("Operation-Location")
        if not location:
            raise ProviderError("No operation location returned from Document Intelligence")

        operation_id = location.rstrip("/").split("/")[-1].split("?")[0]
        logger.info(f"[DocIntel] Analysis started: {operation_id}")
        return operation_id

    async def get_analysis(self, operation_id: str) -> dict[str, Any]:
        url = (
            f"{self.base_url}/documentintelligence/documentModels/{self.model_id}"
            f"/analyzeResults/{operation_id}?api-version={self.api_version}"
        )
        try:
            response = await self._http.get(
                url, headers={"Ocp-Apim-Subscription-Key": self.api_key}
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to poll analysis result: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"Failed to get analysis result ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        return response.json()

    async def wait_for_analysis(self, operation_id: str) -> ExtractedDocument:
        """Poll until the analysis finishes or the timeout elapses."""
        started = time.monotonic()
        checks = 0

        while time.monotonic() - started < self.timeout:
            checks += 1
            data = await self.get_analysis(operation_id)
            status = data.get("status")

            if status == "succeeded":
                document = parse_analyze_result(data.get("analyzeResult") or {})
                logger.info(
                    f"[DocIntel] Analysis completed: {operation_id} | "
                    f"pages={len(document.pages)} | chars={len(document.content)} | checks={checks}"
                )
                return document

            if status == "failed":
                message = (data.get("error") or {}).get("message", "Analysis failed")
                raise ExtractionError(f"Document analysis failed: {message}")

            logger.debug(
                f"[DocIntel] Analysis in progress: {operation_id} status={status} "
                f"elapsed={time.monotonic() - started:.1f}s"
            )
            await asyncio.sleep(self.poll_interval)

        raise ProviderTimeoutError(
            f"Document analysis timed out after {self.timeout:.0f}s ({checks} checks)"
        )

    async def extract_document(
        self, data: bytes, content_type: str = "application/pdf"
    ) -> ExtractedDocument:
        """Analyze a document and wait for completion."""
        operation_id = await self.start_analysis(data, content_type)
        return await self.wait_for_analysis(operation_id)

    async def aclose(self) -> None:
        await self._http.aclose()


def _first_page(item: dict[str, Any]) -> int | None:
    regions = item.get("boundingRegions") or []
    return regions[0].get("pageNumber") if regions else None


def parse_analyze_result(result: dict[str, Any]) -> ExtractedDocument:
    """Convert the service's analyzeResult payload into an ExtractedDocument."""
    pages = [
        ExtractedPage(
            page_number=page.get("pageNumber", index + 1),
            content="\n".join(line.get("content", "") for line in page.get("lines") or []),
            width=page.get("width"),
            height=page.get("height"),
        )
        for index, page in enumerate(result.get("pages") or [])
    ]

    tables = [
        ExtractedTable(
            row_count=table.get("rowCount", 0),
            column_count=table.get("columnCount", 0),
            cells=[
                TableCell(
                    row_index=cell.get("rowIndex", 0),
                    column_index=cell.get("columnIndex", 0),
                    content=cell.get("content") or "",
                    is_header=cell.get("kind") in ("columnHeader", "rowHeader"),
                )
                for cell in table.get("cells") or []
            ],
            page_number=_first_page(table),
        )
        for table in result.get("tables") or []
    ]

    paragraphs = [
        ExtractedParagraph(
            content=para.get("content") or "",
            page_number=_first_page(para),
            role=para.get("role"),
        )
        for para in result.get("paragraphs") or []
    ]

    return ExtractedDocument(
        content=result.get("content") or "",
        pages=pages,
        tables=tables,
        paragraphs=paragraphs,
    )
