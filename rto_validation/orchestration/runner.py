"""
Unit Orchestrator — runs Phase 1 and, when warranted, Phase 2 for every
requirement of a unit, then aggregates.

Guarantees:
  - Requirements are processed one at a time, in the order given.
  - Every requirement ends up with a result; a failure is recorded as
    that requirement's Not Met outcome and iteration continues. A
    client that cannot be built fails every requirement the same way.
  - A failed save is logged; the run is still returned (persisted=False).
  - A fresh AIClient is built from the ProviderConfig for each call.
  - An optional asyncio.Event is checked between requirements.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from rto_validation.agents.remediation_generator import RemediationGenerator, should_run_phase2
from rto_validation.agents.requirement_validator import RequirementValidator, failed_outcome
from rto_validation.config import ProviderConfig, Settings, get_settings
from rto_validation.errors import NotFoundError, ValidationServiceError
from rto_validation.models.enums import RunStatus, ValidationStatus
from rto_validation.models.schemas import (
    ContentContext,
    RemediationTask,
    Requirement,
    RequirementResult,
    SourceDocument,
    UnitMeta,
    UnitValidationResult,
    ValidationOutcome,
    ValidationResultRecord,
)
from rto_validation.orchestration.aggregation import overall_status, summarize_by_type
from rto_validation.persistence.stores import (
    ElementStore,
    PromptTemplateStore,
    ValidationResultRepository,
)
from rto_validation.providers.base import AIClient
from rto_validation.providers.factory import create_ai_client
from rto_validation.providers.n8n import N8nTrigger
from rto_validation.services.content_resolver import DocumentContentResolver
from rto_validation.services.file_service import DocumentStorage
from rto_validation.services.prompt_service import PromptService
from rto_validation.services.response_parser import is_placeholder

logger = logging.getLogger(__name__)

CANCELLED_CAUSE = "cancelled"

ClientFactory = Callable[[ProviderConfig, Settings], AIClient]


class _RunContext:
    """Per-call wiring: one client, its agents and its resolver."""

    def __init__(self, client: AIClient, orchestrator: UnitValidationOrchestrator):
        self.client = client
        prompts = PromptService(orchestrator.templates)
        self.validator = RequirementValidator(client, prompts)
        self.generator = RemediationGenerator(client, prompts)
        self.resolver = DocumentContentResolver(
            client, orchestrator.elements, orchestrator.storage, orchestrator.settings
        )


class UnitValidationOrchestrator:
    def __init__(
        self,
        provider_config: ProviderConfig,
        templates: PromptTemplateStore,
        elements: ElementStore,
        results: Optional[ValidationResultRepository] = None,
        storage: Optional[DocumentStorage] = None,
        settings: Optional[Settings] = None,
        client_factory: ClientFactory = create_ai_client,
        n8n: Optional[N8nTrigger] = None,
    ):
        self.provider_config = provider_config
        self.templates = templates
        self.elements = elements
        self.results = results
        self.storage = storage
        self.settings = settings or get_settings()
        self.client_factory = client_factory
        self.n8n = n8n

    # ── Public entry points ──────────────────────────────

    async def validate_unit(
        self,
        unit: UnitMeta,
        requirements: list[Requirement],
        documents: Optional[list[SourceDocument]] = None,
        context: Optional[ContentContext] = None,
        cancel_event: Optional[asyncio.Event] = None,
        force_remediation: bool = False,
    ) -> UnitValidationResult:
        """
        Validate every requirement of a unit.

        `context`, when given, is used for every requirement; otherwise
        it is resolved per requirement from `documents`.
        """
        if self.provider_config.use_n8n:
            return await self._trigger_n8n(unit, requirements)

        t0 = time.perf_counter()
        separator = "═" * 70
        logger.info(f"\n{separator}")
        logger.info(
            f"▶ [Orchestrator] {unit.unit_code} — {len(requirements)} requirements "
            f"via {self.provider_config.provider.value}"
        )
        logger.info(separator)

        run = UnitValidationResult(unit_code=unit.unit_code, validation_id=unit.validation_id)
        try:
            client = self.client_factory(self.provider_config, self.settings)
        except ValidationServiceError as exc:
            logger.error(
                f"[Orchestrator] Could not build {self.provider_config.provider.value} client: {exc}"
            )
            run.results = [
                RequirementResult(requirement=r, outcome=failed_outcome(exc.message))
                for r in requirements
            ]
            return self._finish(unit, run, t0, separator)

        try:
            wiring = _RunContext(client, self)
            for index, requirement in enumerate(requirements, start=1):
                if cancel_event is not None and cancel_event.is_set():
                    if run.run_status != RunStatus.CANCELLED:
                        logger.warning(
                            f"[Orchestrator] Cancelled before requirement {index}/{len(requirements)}"
                        )
                    run.run_status = RunStatus.CANCELLED
                    run.results.append(
                        RequirementResult(
                            requirement=requirement, outcome=failed_outcome(CANCELLED_CAUSE)
                        )
                    )
                    continue

                logger.info(
                    f"[Orchestrator] ({index}/{len(requirements)}) "
                    f"{requirement.type.short_code.upper()} {requirement.number}"
                )
                run.results.append(
                    await self._process_requirement(
                        wiring, unit, requirement, documents, context, force_remediation
                    )
                )
        finally:
            await client.aclose()

        return self._finish(unit, run, t0, separator)

    async def revalidate_requirement(
        self,
        unit: UnitMeta,
        requirement: Requirement,
        documents: Optional[list[SourceDocument]] = None,
        context: Optional[ContentContext] = None,
        force_remediation: bool = False,
    ) -> RequirementResult:
        """Re-run one requirement and merge it into its stored record."""
        client = self.client_factory(self.provider_config, self.settings)
        try:
            result = await self._process_requirement(
                _RunContext(client, self), unit, requirement, documents, context, force_remediation
            )
        finally:
            await client.aclose()

        self._persist(unit, [result])
        return result

    async def regenerate_remediation(
        self,
        unit: UnitMeta,
        requirement: Requirement,
        documents: Optional[list[SourceDocument]] = None,
        context: Optional[ContentContext] = None,
    ) -> Optional[RemediationTask]:
        """
        Run Phase 2 alone against a stored Phase 1 outcome and merge the
        new remediation into that record.
        """
        if self.results is None:
            raise NotFoundError("No validation result store configured")
        stored = self.results.get(unit.validation_id, requirement.requirement_id)
        if stored is None:
            raise NotFoundError(
                f"No stored result for requirement {requirement.requirement_id} "
                f"in validation {unit.validation_id}"
            )
        if stored.status == ValidationStatus.MET:
            logger.info(f"[Orchestrator] {requirement.number} is Met — no remediation to generate")
            return None

        outcome = ValidationOutcome(
            status=stored.status,
            reasoning=stored.reasoning,
            unmapped_content=stored.unmapped_content,
        )
        client = self.client_factory(self.provider_config, self.settings)
        try:
            wiring = _RunContext(client, self)
            ctx = context or await wiring.resolver.resolve(
                documents or [],
                requirement,
                unit.file_search_store_name,
                unit.file_search_filter(),
            )
            task = await wiring.generator.generate(requirement, ctx, unit, outcome)
        finally:
            await client.aclose()

        if task is not None:
            self.results.merge_remediation(
                unit.validation_id, requirement.requirement_id, task.task_text, task.benchmark_answer
            )
        return task

    # ── Per-requirement pipeline ─────────────────────────

    async def _process_requirement(
        self,
        wiring: _RunContext,
        unit: UnitMeta,
        requirement: Requirement,
        documents: Optional[list[SourceDocument]],
        context: Optional[ContentContext],
        force_remediation: bool,
    ) -> RequirementResult:
        try:
            return await self._run_phases(
                wiring, unit, requirement, documents, context, force_remediation
            )
        except ValidationServiceError as exc:
            logger.error(f"[Orchestrator] {requirement.number}: {exc}")
            return RequirementResult(requirement=requirement, outcome=failed_outcome(exc.message))
        except Exception as exc:
            logger.exception(f"[Orchestrator] {requirement.number}: unexpected error")
            return RequirementResult(requirement=requirement, outcome=failed_outcome(str(exc)))

    async def _run_phases(
        self,
        wiring: _RunContext,
        unit: UnitMeta,
        requirement: Requirement,
        documents: Optional[list[SourceDocument]],
        context: Optional[ContentContext],
        force_remediation: bool,
    ) -> RequirementResult:
        ctx = context or await wiring.resolver.resolve(
            documents or [], requirement, unit.file_search_store_name, unit.file_search_filter()
        )
        outcome = await wiring.validator.validate(requirement, ctx, unit)
        if not outcome.success:
            return RequirementResult(requirement=requirement, outcome=outcome)

        existing = None if force_remediation else self._stored_remediation(unit, requirement)
        if not should_run_phase2(outcome.status, existing.task_text if existing else None):
            if existing is not None and outcome.status != ValidationStatus.MET:
                logger.info(
                    f"[Orchestrator] {requirement.number}: keeping stored remediation, Phase 2 skipped"
                )
                return RequirementResult(requirement=requirement, outcome=outcome, remediation=existing)
            return RequirementResult(requirement=requirement, outcome=outcome)

        remediation = await wiring.generator.generate(requirement, ctx, unit, outcome)
        return RequirementResult(
            requirement=requirement, outcome=outcome, remediation=remediation, phase2_ran=True
        )

    def _stored_remediation(
        self, unit: UnitMeta, requirement: Requirement
    ) -> Optional[RemediationTask]:
        if self.results is None or not unit.validation_id:
            return None
        stored = self.results.get(unit.validation_id, requirement.requirement_id)
        if stored is None or is_placeholder(stored.smart_questions):
            return None
        return RemediationTask(
            task_text=stored.smart_questions, benchmark_answer=stored.benchmark_answer
        )

    # ── Helpers ──────────────────────────────────────────

    def _finish(
        self, unit: UnitMeta, run: UnitValidationResult, t0: float, separator: str
    ) -> UnitValidationResult:
        run.overall_status = overall_status([r.outcome.status for r in run.results])
        run.summary_by_type = summarize_by_type(run.results)
        run.completed_at = datetime.now(timezone.utc)

        try:
            run.persisted = self._persist(unit, run.results)
        except Exception:
            logger.exception(f"[Orchestrator] {unit.unit_code}: saving results failed")

        logger.info(
            f"✔ [Orchestrator] {unit.unit_code} {run.run_status.value} in "
            f"{time.perf_counter() - t0:.3f}s — overall {run.overall_status.value}"
        )
        logger.info(f"{separator}\n")
        return run

    def _persist(self, unit: UnitMeta, results: list[RequirementResult]) -> bool:
        """Upsert results; a re-run with no citations keeps the stored ones."""
        if self.results is None or not unit.validation_id or not results:
            return False
        records = []
        for result in results:
            record = ValidationResultRecord.from_result(unit.validation_id, result)
            if not record.citations:
                stored = self.results.get(unit.validation_id, record.requirement_id)
                if stored is not None and stored.citations:
                    record = record.model_copy(update={"citations": stored.citations})
            records.append(record)
        self.results.insert_many(records)
        return True

    async def _trigger_n8n(
        self, unit: UnitMeta, requirements: list[Requirement]
    ) -> UnitValidationResult:
        trigger = self.n8n or N8nTrigger(
            self.settings.n8n_webhook_url, timeout=self.settings.request_timeout_seconds
        )
        try:
            response = await trigger.trigger(unit, requirements)
        finally:
            if self.n8n is None:
                await trigger.aclose()
        return UnitValidationResult(
            unit_code=unit.unit_code,
            validation_id=unit.validation_id,
            run_status=RunStatus.TRIGGERED,
            workflow_response=response,
        )
