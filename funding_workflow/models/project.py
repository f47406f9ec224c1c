"""Project - the central mutable entity of the funding workflow."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .form import FieldValue, to_field_value


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"
    UNDER_REVIEW = "under_review"
    PRE_SELECTED = "pre_selected"
    SELECTED = "selected"
    REJECTED = "rejected"
    FORMALIZATION = "formalization"
    FINANCED = "financed"
    MONITORING = "monitoring"
    CLOSED = "closed"


# Outcomes an evaluation may recommend
DECISION_STATUSES = (
    ProjectStatus.SELECTED,
    ProjectStatus.PRE_SELECTED,
    ProjectStatus.REJECTED,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(BaseModel):
    """Funding proposal submitted against a program."""

    id: str
    title: str
    description: str = ""
    status: ProjectStatus = Field(default=ProjectStatus.DRAFT)
    budget: float = Field(default=0, ge=0)
    timeline: str = Field(default="", description="Free-text duration, e.g. '18 months'")
    submitter_id: str = Field(..., description="Owning submitter")
    program_id: str
    tags: list[str] = Field(default_factory=list)
    form_data: dict[str, FieldValue] = Field(default_factory=dict)

    # Evaluation
    evaluation_scores: dict[str, float] = Field(
        default_factory=dict, description="Raw score per evaluation criterion id"
    )
    evaluation_comments: dict[str, str] = Field(default_factory=dict)
    total_evaluation_score: Optional[float] = Field(None, ge=0, le=100)
    evaluation_notes: Optional[str] = None
    evaluated_by: Optional[str] = None
    evaluation_date: Optional[datetime] = None
    recommended_status: Optional[ProjectStatus] = Field(
        None, description="Staged decision awaiting explicit manager commit"
    )
    manually_submitted: bool = False
    eligibility_notes: Optional[str] = None

    # Formalization
    formalization_completed: bool = False
    nda_signed: bool = False

    # Timestamps
    submission_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("form_data", mode="before")
    @classmethod
    def lift_form_values(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {key: to_field_value(raw) for key, raw in value.items()}
        return value

    @field_validator("tags", "evaluation_scores", "evaluation_comments", mode="before")
    @classmethod
    def null_collections(cls, value: Any, info: ValidationInfo) -> Any:
        # Storage returns NULL for never-filled JSON columns
        if value is None:
            return [] if info.field_name == "tags" else {}
        return value

    @property
    def is_evaluated(self) -> bool:
        return self.total_evaluation_score is not None and bool(self.evaluation_scores)
