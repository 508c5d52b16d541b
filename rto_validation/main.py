"""
RTO Validation Service — Main Entry Point

Run as an API server:
    python -m rto_validation.main --serve
    # or: uvicorn rto_validation.api:app --reload --port 8000

Or validate a unit programmatically:
    from rto_validation.main import run
    result = run(unit, requirements, documents)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime, timezone

from rto_validation.api.dependencies import build_orchestrator, get_services
from rto_validation.config import get_settings
from rto_validation.models.schemas import (
    Requirement,
    SourceDocument,
    UnitMeta,
    UnitValidationResult,
)
from rto_validation.utils.logger import setup_logging


def run(
    unit: UnitMeta,
    requirements: list[Requirement],
    documents: list[SourceDocument] | None = None,
) -> UnitValidationResult:
    """Validate one unit with the configured provider and return the result."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("  RTO VALIDATION SERVICE")
    logger.info(f"  Provider: {settings.ai_provider} | Started: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    orchestrator = build_orchestrator(get_services(), settings)
    result = asyncio.run(orchestrator.validate_unit(unit, requirements, documents=documents))

    _print_summary(result)
    return result


def _print_summary(result: UnitValidationResult) -> None:
    """Print a human-readable summary of the unit result."""
    logger = logging.getLogger(__name__)

    logger.info("")
    logger.info("-" * 60)
    logger.info("  VALIDATION RESULT SUMMARY")
    logger.info("-" * 60)
    logger.info(f"  Unit:           {result.unit_code}")
    logger.info(f"  Validation ID:  {result.validation_id or 'N/A'}")
    logger.info(f"  Run Status:     {result.run_status.value}")
    logger.info(f"  Overall:        {result.overall_status.value}")
    for rtype, counts in result.summary_by_type.items():
        logger.info(
            f"  {rtype:<32} total={counts.total} met={counts.met} "
            f"partial={counts.partially_met} not_met={counts.not_met}"
        )
    logger.info("-" * 60)


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI server."""
    import uvicorn

    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("rto_validation.api:app", host=host, port=port, reload=True)


if __name__ == "__main__":
    if "--serve" in sys.argv:
        serve()
    else:
        print("Usage: python -m rto_validation.main --serve")
