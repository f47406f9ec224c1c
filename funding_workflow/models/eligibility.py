"""Field-level eligibility rules and the outcome of evaluating them."""

from typing import Any, Literal, Optional
from pydantic import BaseModel, Field, model_validator


Operator = Literal[">", "<", ">=", "<=", "==", "!=", "between", "contains", "required"]

NUMERIC_OPERATORS = frozenset({">", "<", ">=", "<=", "between"})


class EligibilityCondition(BaseModel):
    """Operator and operand(s) applied to one form field."""

    operator: Operator = Field(..., description="Comparison applied to the field value")
    value: Optional[Any] = Field(None, description="Right-hand operand (lower bound for between)")
    value2: Optional[Any] = Field(None, description="Upper bound, only used by between")

    @model_validator(mode="after")
    def operands_present(self) -> "EligibilityCondition":
        if self.operator == "required":
            return self
        if self.value is None or self.value == "":
            raise ValueError(f"Operator '{self.operator}' needs a value")
        if self.operator == "between" and (self.value2 is None or self.value2 == ""):
            raise ValueError("Operator 'between' needs both value and value2")
        return self

    def describe(self) -> str:
        if self.operator == "required":
            return "required"
        if self.operator == "between":
            return f"between {self.value} and {self.value2}"
        return f"{self.operator} {self.value}"


class FieldEligibilityCriterion(BaseModel):
    """Eligibility rule attached to a program form field."""

    field_name: str = Field(..., description="Key looked up in the project's form_data")
    label: Optional[str] = Field(None, description="Human-readable field label for notes")
    is_eligibility_criteria: bool = Field(default=True, description="Only flagged rules are evaluated")
    conditions: EligibilityCondition

    def display_label(self) -> str:
        return f"{self.label or self.field_name} ({self.conditions.describe()})"


class EligibilityOutcome(BaseModel):
    """Result of running the eligibility evaluator over a form."""

    eligible: bool
    failed_criteria: list[str] = Field(default_factory=list)

    def notes(self) -> str:
        if self.eligible:
            return "All eligibility criteria met"
        return "Failed criteria: " + "; ".join(self.failed_criteria)
