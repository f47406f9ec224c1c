"""Programs, their owning partners and evaluation criteria."""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from .eligibility import FieldEligibilityCriterion


class EvaluationCriterion(BaseModel):
    """Weighted scoring dimension of a program.

    Contribution to the total is ``(score / max_score) * weight``.
    """

    id: str = Field(..., description="Stable identifier used as key in evaluation_scores")
    name: str = Field(..., description="Display name; AI providers answer by name")
    description: str = Field(default="", description="What the evaluator should look for")
    weight: float = Field(..., ge=0, le=100, description="Percentage contribution to the total")
    max_score: float = Field(..., ge=0, description="Highest raw score a reviewer can give")


class Partner(BaseModel):
    """Organisation on whose behalf programs are run."""

    id: str
    name: str
    description: str = ""
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
    assigned_manager_id: Optional[str] = None
    created_at: Optional[datetime] = None


class Program(BaseModel):
    """Funding initiative with its own eligibility and evaluation rules."""

    id: str
    name: str
    description: str = ""
    partner_id: str = Field(..., description="Owning partner")
    form_template_id: Optional[str] = Field(None, description="Submission form used by this program")
    budget: float = Field(default=0, ge=0)
    currency: str = Field(default="XOF")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True
    manager_id: Optional[str] = Field(None, description="Manager responsible for the program")
    selection_criteria: list[FieldEligibilityCriterion] = Field(default_factory=list)
    evaluation_criteria: list[EvaluationCriterion] = Field(default_factory=list)
    custom_ai_prompt: Optional[str] = Field(None, description="Extra instructions for AI scoring")
    created_at: Optional[datetime] = None

    def criterion_ids(self) -> set[str]:
        return {criterion.id for criterion in self.evaluation_criteria}

    def total_weight(self) -> float:
        return sum(criterion.weight for criterion in self.evaluation_criteria)
