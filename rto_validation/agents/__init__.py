from .base_agent import BaseAgent
from .requirement_validator import RequirementValidator
from .remediation_generator import RemediationGenerator, should_run_phase2

__all__ = [
    "BaseAgent",
    "RequirementValidator",
    "RemediationGenerator",
    "should_run_phase2",
]
