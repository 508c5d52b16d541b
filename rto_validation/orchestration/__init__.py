"""Orchestration — unit-level runner and result aggregation."""

from rto_validation.orchestration.aggregation import overall_status, summarize_by_type
from rto_validation.orchestration.runner import UnitValidationOrchestrator

__all__ = ["UnitValidationOrchestrator", "overall_status", "summarize_by_type"]
