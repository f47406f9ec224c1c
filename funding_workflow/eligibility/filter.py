"""Field-level eligibility filter for submitted project forms.

Applies each flagged ``FieldEligibilityCriterion`` to the matching form
value. The filter is pure: persisting the resulting status and notes is the
caller's job (see ``ProjectService.record_eligibility``).
"""

import logging
import math
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from ..errors import EligibilityRuleError
from ..models.eligibility import (
    NUMERIC_OPERATORS,
    EligibilityCondition,
    EligibilityOutcome,
    FieldEligibilityCriterion,
)
from ..models.form import FieldValue, field_text, is_blank, to_field_value
from ..models.project import Project

logger = logging.getLogger(__name__)


def evaluate_eligibility(
    form_data: Mapping[str, Any],
    criteria: Iterable[FieldEligibilityCriterion],
) -> EligibilityOutcome:
    """Check a form against a program's eligibility criteria.

    Rules:
    1. Only criteria flagged ``is_eligibility_criteria`` are checked
    2. A missing or empty value fails, whatever the operator
    3. Numeric operators parse both sides as floats; a parse failure fails
    4. ``==`` / ``!=`` compare string renderings
    5. ``contains`` is a case-insensitive substring match

    Args:
        form_data: Field name -> form value (tagged variant or plain value)
        criteria: Rules to apply

    Returns:
        EligibilityOutcome, eligible iff no criterion failed
    """

    failed = []

    for criterion in criteria:
        if not criterion.is_eligibility_criteria:
            continue

        raw = form_data.get(criterion.field_name)
        value = None if raw is None else to_field_value(raw)

        if not _check_criterion(value, criterion.conditions):
            failed.append(criterion.display_label())

    if failed:
        logger.debug("Eligibility failed on %d criteria: %s", len(failed), failed)

    return EligibilityOutcome(eligible=not failed, failed_criteria=failed)


def assess_project(
    project: Project,
    criteria: Iterable[FieldEligibilityCriterion],
) -> EligibilityOutcome:
    """Run the filter over a project's submitted form."""
    return evaluate_eligibility(project.form_data, criteria)


def parse_eligibility_criteria(raw_rules: Iterable[Any]) -> list[FieldEligibilityCriterion]:
    """Validate stored or edited rule definitions.

    Raises:
        EligibilityRuleError: a rule has an unknown operator or missing operands
    """
    criteria = []
    for index, raw in enumerate(raw_rules):
        if isinstance(raw, FieldEligibilityCriterion):
            criteria.append(raw)
            continue
        try:
            criteria.append(FieldEligibilityCriterion.model_validate(raw))
        except ValidationError as exc:
            field_name = raw.get("field_name", f"#{index}") if isinstance(raw, dict) else f"#{index}"
            raise EligibilityRuleError(
                f"Invalid eligibility rule for '{field_name}': {exc.errors()[0]['msg']}"
            ) from exc
    return criteria


def _check_criterion(value: Optional[FieldValue], condition: EligibilityCondition) -> bool:
    if value is None or is_blank(value):
        return False

    operator = condition.operator

    if operator == "required":
        return True

    if operator in NUMERIC_OPERATORS:
        return _check_numeric(value, condition)

    if operator in ("==", "!="):
        return _check_equality(value, condition)

    if operator == "contains":
        return _check_contains(value, condition)

    raise EligibilityRuleError(f"Unhandled eligibility operator: {operator}")


def _check_numeric(value: FieldValue, condition: EligibilityCondition) -> bool:
    actual = _parse_float(field_text(value))
    bound = _parse_float(condition.value)
    if actual is None or bound is None:
        return False

    operator = condition.operator
    if operator == ">":
        return actual > bound
    if operator == "<":
        return actual < bound
    if operator == ">=":
        return actual >= bound
    if operator == "<=":
        return actual <= bound

    upper = _parse_float(condition.value2)
    if upper is None:
        return False
    return bound <= actual <= upper


def _check_equality(value: FieldValue, condition: EligibilityCondition) -> bool:
    actual = field_text(value).strip()
    expected = _operand_text(condition.value)
    if condition.operator == "==":
        return actual == expected
    return actual != expected


def _check_contains(value: FieldValue, condition: EligibilityCondition) -> bool:
    needle = _operand_text(condition.value).lower()
    return needle in field_text(value).lower()


def _parse_float(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        number = float(str(raw).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _operand_text(raw: Any) -> str:
    if isinstance(raw, bool):
        return str(raw).lower()
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()
