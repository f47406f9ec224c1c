"""Evaluation criteria configuration.

Programs carry their own weighted criteria. Weights are percentages; their
sum is checked when a program is edited, not when a criterion is built.
Criteria templates can be kept in JSON or YAML files.
"""

import json
import yaml
from pathlib import Path
from typing import Iterable, Optional

from ..errors import CriteriaWeightError
from ..models.program import EvaluationCriterion


MAX_TOTAL_WEIGHT = 100.0

DEFAULT_TEMPLATE_PATH = Path(__file__).parent / "templates" / "default_criteria.yaml"


def validate_evaluation_criteria(criteria: Iterable[EvaluationCriterion]) -> None:
    """Edit-time validation of a program's evaluation criteria.

    Raises:
        CriteriaWeightError: duplicate ids, or weights summing above 100
    """

    criteria = list(criteria)
    seen = set()
    duplicates = set()
    for criterion in criteria:
        if criterion.id in seen:
            duplicates.add(criterion.id)
        seen.add(criterion.id)

    if duplicates:
        raise CriteriaWeightError(
            f"Duplicate evaluation criterion ids: {', '.join(sorted(duplicates))}"
        )

    total = sum(criterion.weight for criterion in criteria)
    if total > MAX_TOTAL_WEIGHT + 0.001:
        raise CriteriaWeightError(
            f"Criterion weights must sum to at most {MAX_TOTAL_WEIGHT:.0f}, got {total:.2f}. "
            f"({', '.join(f'{c.name}:{c.weight:g}' for c in criteria)})"
        )


def load_evaluation_criteria(filepath: Optional[str] = None) -> list[EvaluationCriterion]:
    """Load evaluation criteria from file or return the bundled defaults.

    Supports JSON and YAML formats. The file holds either a list of
    criteria or a mapping with a ``criteria`` key.

    Args:
        filepath: Optional path to a criteria template

    Returns:
        Validated list of EvaluationCriterion

    Raises:
        FileNotFoundError: If filepath provided but doesn't exist
        ValueError: If the format is unsupported or criteria are invalid
    """

    path = Path(filepath) if filepath else DEFAULT_TEMPLATE_PATH
    if not path.exists():
        raise FileNotFoundError(f"Criteria file not found: {path}")

    if path.suffix == '.json':
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    elif path.suffix in ['.yaml', '.yml']:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")

    if isinstance(data, dict):
        data = data.get("criteria", [])

    criteria = [EvaluationCriterion(**item) for item in data or []]
    validate_evaluation_criteria(criteria)
    return criteria


def save_evaluation_criteria(criteria: Iterable[EvaluationCriterion], filepath: str) -> None:
    """Save evaluation criteria to file (extension determines format)."""

    path = Path(filepath)
    data = {"criteria": [criterion.model_dump() for criterion in criteria]}

    if path.suffix == '.json':
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    elif path.suffix in ['.yaml', '.yml']:
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")
