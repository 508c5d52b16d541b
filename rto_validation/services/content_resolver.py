"""
Document Content Resolver — assembles the text context for one
validation call.

For the text-injection backend:
  1. Extract any documents with no stored elements (once per document)
  2. Search stored fragments for the requirement number, else for the
     first long keyword of the requirement text
  3. Expand matches to whole pages (bounded) to keep surrounding context
  4. Otherwise fall back to a bounded window of everything, by page
  5. Otherwise return the explicit "no content" sentinel

For the grounded-search backend the context is just the store reference.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from rto_validation.config import Settings, get_settings
from rto_validation.errors import ValidationServiceError
from rto_validation.models.schemas import (
    NO_CONTENT_SENTINEL,
    ContentContext,
    DocumentElement,
    ExtractedDocument,
    Requirement,
    SourceDocument,
)
from rto_validation.persistence.stores import ElementStore
from rto_validation.providers.base import AIClient
from rto_validation.services.file_service import DocumentStorage

logger = logging.getLogger(__name__)


def elements_from_extraction(
    document: SourceDocument, extracted: ExtractedDocument
) -> list[DocumentElement]:
    """One element per paragraph, or the whole text as one element."""
    if extracted.paragraphs:
        return [
            DocumentElement(
                element_id=str(uuid.uuid4()),
                url=document.url,
                file_name=document.file_name,
                text=para.content,
                page_number=para.page_number or 1,
                role=para.role or "paragraph",
                order=index,
            )
            for index, para in enumerate(extracted.paragraphs)
        ]
    if not extracted.content:
        return []
    return [
        DocumentElement(
            element_id=str(uuid.uuid4()),
            url=document.url,
            file_name=document.file_name,
            text=extracted.content,
            page_number=1,
            role="document",
        )
    ]


def first_keyword(text: str, min_length: int = 6) -> Optional[str]:
    for word in text.split():
        if len(word) > min_length:
            return word
    return None


class DocumentContentResolver:
    def __init__(
        self,
        ai_client: AIClient,
        elements: ElementStore,
        storage: DocumentStorage | None = None,
        settings: Settings | None = None,
    ):
        self.ai_client = ai_client
        self.elements = elements
        self.storage = storage
        self.settings = settings or get_settings()

    async def resolve(
        self,
        documents: list[SourceDocument],
        requirement: Optional[Requirement] = None,
        file_search_store_name: Optional[str] = None,
        metadata_filter: Optional[str] = None,
    ) -> ContentContext:
        names = [d.file_name for d in documents]

        if not self.ai_client.needs_extracted_text:
            return ContentContext(
                file_search_store_name=file_search_store_name,
                metadata_filter=metadata_filter,
                source_documents=names,
            )

        if not documents:
            logger.warning("[Content] No documents supplied — no content available")
            return ContentContext(document_content=NO_CONTENT_SENTINEL, is_empty=True)

        urls = [d.url for d in documents]
        extraction_errors: list[str] = []
        if not self.elements.has_elements(urls):
            logger.info(f"[Content] No elements for {len(documents)} documents. Extracting now...")
            await self.extract_documents(documents, extraction_errors)

        s = self.settings
        fragments: list[DocumentElement] = []
        if requirement is not None:
            matches = self._search(urls, requirement)
            if matches:
                pages = list(dict.fromkeys(e.page_number for e in matches))[: s.max_match_pages]
                logger.info(
                    f"[Content] {requirement.number or requirement.requirement_id}: "
                    f"matches on pages {pages}. Fetching context..."
                )
                fragments = self.elements.by_pages(urls, pages, s.max_context_fragments) or matches

        if not fragments:
            logger.info("[Content] No specific matches found, using all available content")
            fragments = self.elements.all(urls, s.max_fallback_fragments)

        if not fragments:
            logger.warning("[Content] No document content available for validation")
            return ContentContext(
                document_content=NO_CONTENT_SENTINEL,
                source_documents=names,
                is_empty=True,
                extraction_error=extraction_errors[-1] if extraction_errors else None,
            )

        content, pages_by_doc = self._assemble(fragments)
        logger.debug(
            f"[Content] Context built: {len(fragments)} fragments, {len(content)} chars"
        )
        return ContentContext(
            document_content=content,
            source_documents=list(pages_by_doc.keys()),
            pages=pages_by_doc,
        )

    def _search(self, urls: list[str], requirement: Requirement) -> list[DocumentElement]:
        limit = self.settings.max_search_hits
        number = requirement.number.strip()
        matches: list[DocumentElement] = []
        if number:
            matches = self.elements.search(urls, number, limit)

        if not matches and requirement.text:
            keyword = first_keyword(requirement.text, self.settings.keyword_min_length)
            if keyword:
                logger.info(f"[Content] No exact match for '{number}', trying keyword '{keyword}'")
                matches = self.elements.search(urls, keyword, limit)
        return matches

    @staticmethod
    def _assemble(fragments: list[DocumentElement]) -> tuple[str, dict[str, list[int]]]:
        """Group fragment text under a per-document header."""
        groups: dict[str, list[str]] = {}
        pages: dict[str, list[int]] = {}
        for element in fragments:
            name = element.file_name or element.url.rsplit("/", 1)[-1]
            groups.setdefault(name, []).append(element.text)
            doc_pages = pages.setdefault(name, [])
            if element.page_number not in doc_pages:
                doc_pages.append(element.page_number)

        content = "".join(
            f"\n\n=== Document: {name} ===\n" + "\n\n".join(texts)
            for name, texts in groups.items()
        )
        return content, {name: sorted(p) for name, p in pages.items()}

    async def extract_documents(
        self, documents: list[SourceDocument], errors: Optional[list[str]] = None
    ) -> int:
        """
        Extract and persist elements, one document at a time.

        A failure on one document is logged, appended to `errors` when
        given, and skipped; the rest still get processed.
        """
        if errors is None:
            errors = []
        if self.storage is None:
            logger.error("[Content] No document storage configured — cannot extract")
            errors.append("No document storage configured")
            return 0

        stored = 0
        for document in documents:
            logger.info(f"[Content] Processing document: {document.file_name}")
            try:
                data = self.storage.download(document.storage_path)
                extracted = await self.ai_client.extract_document(data, document.content_type)
            except ValidationServiceError as exc:
                logger.error(f"[Content] Extraction failed for {document.file_name}: {exc}")
                errors.append(f"{document.file_name}: {exc.message}")
                continue

            elements = elements_from_extraction(document, extracted)
            if elements:
                stored += self.elements.insert_many(elements)
                logger.info(f"[Content] Stored {len(elements)} elements for {document.file_name}")
        return stored
