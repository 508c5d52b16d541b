"""
Aggregation functions for a finished unit run.

Pure functions over the per-requirement results; the orchestrator calls
them once every requirement has an outcome.
"""

from __future__ import annotations

from rto_validation.models.enums import ValidationStatus
from rto_validation.models.schemas import RequirementResult, TypeSummary


def overall_status(statuses: list[ValidationStatus]) -> ValidationStatus:
    """
    Met only if every requirement is Met.
    Partially Met if at least one is Met or Partially Met.
    Not Met otherwise, including an empty unit.
    """
    if not statuses:
        return ValidationStatus.NOT_MET
    if all(s == ValidationStatus.MET for s in statuses):
        return ValidationStatus.MET
    if any(s in (ValidationStatus.MET, ValidationStatus.PARTIALLY_MET) for s in statuses):
        return ValidationStatus.PARTIALLY_MET
    return ValidationStatus.NOT_MET


def summarize_by_type(results: list[RequirementResult]) -> dict[str, TypeSummary]:
    """Count outcomes per requirement type, in first-seen order."""
    summary: dict[str, TypeSummary] = {}
    for result in results:
        bucket = summary.setdefault(result.requirement.type.value, TypeSummary())
        bucket.total += 1
        status = result.outcome.status
        if status == ValidationStatus.MET:
            bucket.met += 1
        elif status == ValidationStatus.PARTIALLY_MET:
            bucket.partially_met += 1
        else:
            bucket.not_met += 1
    return summary
