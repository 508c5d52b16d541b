"""
API routes — thin HTTP layer that delegates to the orchestrator.

Routes:
  GET  /health                        → API health + provider badges
  POST /api/validation/unit           → Validate every requirement of a unit
  POST /api/validation/requirement    → Re-validate one requirement (merged into storage)
  POST /api/validation/remediation    → Regenerate remediation for a stored result
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from rto_validation.api.dependencies import Services, get_orchestrator, get_services
from rto_validation.config import describe_provider_config, get_settings, resolve_provider_config
from rto_validation.errors import InvalidRequestError, NotFoundError
from rto_validation.models.enums import RequirementType, RunStatus
from rto_validation.models.schemas import (
    Requirement,
    RequirementResult,
    SourceDocument,
    UnitMeta,
)
from rto_validation.orchestration.runner import UnitValidationOrchestrator

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
validation_router = APIRouter()


# ── Request schemas ──────────────────────────────────────
class UnitValidationRequest(BaseModel):
    unit: UnitMeta
    requirements: Optional[list[Requirement]] = None  # fetched by unit code when omitted
    requirement_types: list[str] = []
    documents: list[SourceDocument] = []
    force_remediation: bool = False


class RequirementValidationRequest(BaseModel):
    unit: UnitMeta
    requirement: Requirement
    documents: list[SourceDocument] = []
    force_remediation: bool = False


class RemediationRequest(BaseModel):
    unit: UnitMeta
    requirement: Requirement
    documents: list[SourceDocument] = []


def _result_payload(result: RequirementResult) -> dict[str, Any]:
    return {
        "requirement_id": result.requirement.requirement_id,
        "requirement_number": result.requirement.number,
        "requirement_type": result.requirement.type.value,
        **result.canonical(),
        "success": result.outcome.success,
        "error": result.outcome.error,
    }


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "providers": describe_provider_config(resolve_provider_config(settings), settings),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Unit validation ──────────────────────────────────────

@validation_router.post("/unit")
async def validate_unit(
    body: UnitValidationRequest,
    services: Services = Depends(get_services),
    orchestrator: UnitValidationOrchestrator = Depends(get_orchestrator),
):
    requirements = body.requirements
    if requirements is None:
        requirements = services.requirements.fetch(body.unit.unit_code)
        if not requirements:
            raise NotFoundError(f"No requirements found for unit {body.unit.unit_code}")
    if body.requirement_types:
        try:
            wanted = {RequirementType.from_value(t) for t in body.requirement_types}
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc
        requirements = [r for r in requirements if r.type in wanted]

    logger.info(
        f"[API] Validate unit {body.unit.unit_code} "
        f"({len(requirements)} requirements, {len(body.documents)} documents)"
    )
    run = await orchestrator.validate_unit(
        body.unit,
        requirements,
        documents=body.documents,
        force_remediation=body.force_remediation,
    )

    if run.run_status == RunStatus.TRIGGERED:
        return {
            "success": True,
            "mode": "n8n",
            "validation_id": run.validation_id,
            "unit_code": run.unit_code,
            "requirements_count": len(requirements),
            "workflow_response": run.workflow_response,
        }

    return {
        "success": True,
        "mode": "direct",
        "provider": orchestrator.provider_config.provider.value,
        "validation_id": run.validation_id,
        "unit_code": run.unit_code,
        "run_status": run.run_status.value,
        "overall_status": run.overall_status.value,
        "summary_by_type": {k: v.model_dump() for k, v in run.summary_by_type.items()},
        "results": [_result_payload(r) for r in run.results],
        "started_at": run.started_at.isoformat(),
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
    }


# ── Single requirement ───────────────────────────────────

@validation_router.post("/requirement")
async def revalidate_requirement(
    body: RequirementValidationRequest,
    orchestrator: UnitValidationOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.revalidate_requirement(
        body.unit,
        body.requirement,
        documents=body.documents,
        force_remediation=body.force_remediation,
    )
    return {"success": True, "result": _result_payload(result)}


@validation_router.post("/remediation")
async def regenerate_remediation(
    body: RemediationRequest,
    orchestrator: UnitValidationOrchestrator = Depends(get_orchestrator),
):
    task = await orchestrator.regenerate_remediation(
        body.unit, body.requirement, documents=body.documents
    )
    return {
        "success": True,
        "generated": task is not None,
        "remediation": task.model_dump() if task else None,
    }
