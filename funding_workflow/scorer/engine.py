"""Weighted-criteria scoring engine for project evaluations.

Each criterion contributes ``(clamp(score, 0, max_score) / max_score) * weight``
to the total. Programs stored before weight validation may have weights
summing above 100, so the rounded total is capped at 100. The banded
recommendation is a default heuristic; a manager's explicit decision always
wins (see ``ProjectService.stage_evaluation``).
"""

import math
from typing import Iterable, Mapping, Sequence

from ..errors import ScoreValidationError
from ..models.evaluation import CriterionScore, EvaluationScore, ScoreBand
from ..models.program import EvaluationCriterion
from ..models.project import ProjectStatus

MAX_TOTAL = 100


def compute_total(
    scores: Mapping[str, float],
    criteria: Sequence[EvaluationCriterion],
) -> int:
    """Total evaluation score, rounded to the nearest integer.

    Args:
        scores: Raw score per criterion id (missing criteria count as 0)
        criteria: Program evaluation criteria

    Returns:
        Rounded total capped at 100, stored as ``total_evaluation_score``

    Raises:
        ScoreValidationError: unknown criterion id or non-numeric score
    """
    return _cap(_round_half_up(compute_raw_total(scores, criteria)))


def compute_raw_total(
    scores: Mapping[str, float],
    criteria: Sequence[EvaluationCriterion],
) -> float:
    """Unrounded sum of weighted contributions."""
    validated = validate_scores(scores, criteria)
    return sum(
        _contribution(validated.get(criterion.id, 0.0), criterion)
        for criterion in criteria
    )


def score_evaluation(
    scores: Mapping[str, float],
    criteria: Sequence[EvaluationCriterion],
) -> EvaluationScore:
    """Build the full score sheet: per-criterion contributions, total and banding."""

    validated = validate_scores(scores, criteria)
    rows = []

    for criterion in criteria:
        score = _clamp(validated.get(criterion.id, 0.0), criterion.max_score)
        rows.append(CriterionScore(
            criterion_id=criterion.id,
            name=criterion.name,
            score=score,
            max_score=criterion.max_score,
            weight=criterion.weight,
            contribution=_contribution(score, criterion),
            percentage=_percentage(score, criterion.max_score),
            band=criterion_band(score, criterion.max_score),
        ))

    raw_total = sum(row.contribution for row in rows)
    total = _cap(_round_half_up(raw_total))

    return EvaluationScore(
        total=total,
        raw_total=raw_total,
        recommendation=recommend_status(total),
        criteria=rows,
    )


def validate_scores(
    scores: Mapping[str, float],
    criteria: Iterable[EvaluationCriterion],
) -> dict[str, float]:
    """Reject malformed scores instead of coercing them.

    Keys must be a subset of the criterion ids and values finite numbers.
    """

    known = {criterion.id for criterion in criteria}
    unknown = sorted(set(scores) - known)
    if unknown:
        raise ScoreValidationError(
            f"Scores reference unknown criteria: {', '.join(unknown)}"
        )

    validated = {}
    for criterion_id, score in scores.items():
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ScoreValidationError(
                f"Score for '{criterion_id}' must be a number, got {score!r}"
            )
        if not math.isfinite(score):
            raise ScoreValidationError(f"Score for '{criterion_id}' is not finite")
        validated[criterion_id] = float(score)

    return validated


def recommend_status(total: float) -> ProjectStatus:
    """Map a total onto a suggested decision.

    Thresholds:
    - selected: 80-100
    - pre_selected: 60-79
    - rejected: 0-59
    """

    if total >= 80:
        return ProjectStatus.SELECTED
    elif total >= 60:
        return ProjectStatus.PRE_SELECTED
    else:
        return ProjectStatus.REJECTED


def criterion_band(score: float, max_score: float) -> ScoreBand:
    """Presentational strength band of a single criterion score."""

    percentage = _percentage(score, max_score)
    if percentage >= 75:
        return "strong"
    elif percentage >= 50:
        return "medium"
    elif percentage >= 25:
        return "weak"
    else:
        return "very_weak"


def _clamp(score: float, max_score: float) -> float:
    return min(max(score, 0.0), max_score)


def _contribution(score: float, criterion: EvaluationCriterion) -> float:
    if criterion.max_score <= 0:
        return 0.0
    return (_clamp(score, criterion.max_score) / criterion.max_score) * criterion.weight


def _percentage(score: float, max_score: float) -> float:
    if max_score <= 0:
        return 0.0
    return _clamp(score, max_score) / max_score * 100


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _cap(total: int) -> int:
    return min(total, MAX_TOTAL)
