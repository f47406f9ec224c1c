"""Eligibility pre-screening of submitted project forms."""

from .filter import assess_project, evaluate_eligibility, parse_eligibility_criteria

__all__ = ["assess_project", "evaluate_eligibility", "parse_eligibility_criteria"]
