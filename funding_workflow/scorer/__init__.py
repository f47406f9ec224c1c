"""Weighted scoring engine for project evaluations."""

from .engine import (
    compute_raw_total,
    compute_total,
    criterion_band,
    recommend_status,
    score_evaluation,
    validate_scores,
)
from .weights import load_evaluation_criteria, save_evaluation_criteria, validate_evaluation_criteria
from .prompts import build_evaluation_prompt

__all__ = [
    "compute_raw_total",
    "compute_total",
    "criterion_band",
    "recommend_status",
    "score_evaluation",
    "validate_scores",
    "load_evaluation_criteria",
    "save_evaluation_criteria",
    "validate_evaluation_criteria",
    "build_evaluation_prompt",
]
