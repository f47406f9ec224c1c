"""Evaluation results: weighted score sheets, AI provider contract, bulk progress."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .project import ProjectStatus


ScoreBand = Literal["strong", "medium", "weak", "very_weak"]
Recommendation = Literal["selected", "pre_selected", "rejected"]


class CriterionScore(BaseModel):
    """Contribution of one criterion to a project's total."""

    criterion_id: str
    name: str
    score: float = Field(..., description="Raw score after clamping to [0, max_score]")
    max_score: float
    weight: float
    contribution: float = Field(..., description="(score / max_score) * weight")
    percentage: float = Field(..., description="score / max_score as 0-100")
    band: ScoreBand


class EvaluationScore(BaseModel):
    """Weighted score sheet for one project."""

    total: int = Field(..., ge=0, description="Sum of contributions, rounded")
    raw_total: float
    recommendation: ProjectStatus
    criteria: list[CriterionScore] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# AI scoring provider contract
# ---------------------------------------------------------------------------

class ProjectSummary(BaseModel):
    """Project fields sent to the scoring provider."""

    title: str
    description: str = ""
    budget: float = 0
    timeline: str = ""
    tags: list[str] = Field(default_factory=list)
    submission_date: Optional[datetime] = None
    form_data: dict[str, str] = Field(
        default_factory=dict, description="Non-empty form answers rendered as text"
    )


class CriterionBrief(BaseModel):
    id: str
    name: str
    description: str = ""
    max_score: float
    weight: float


class ProgramContext(BaseModel):
    """Optional program block injected into the scoring prompt."""

    name: str
    description: str = ""
    partner_name: str = ""
    budget_range: str = ""


class AIEvaluationRequest(BaseModel):
    project_data: ProjectSummary
    evaluation_criteria: list[CriterionBrief]
    custom_prompt: Optional[str] = None
    program_context: Optional[ProgramContext] = None


class DetailedAnalysis(BaseModel):
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    observations: dict[str, str] = Field(default_factory=dict)


class AIEvaluationResponse(BaseModel):
    """Provider answer; scores are keyed by criterion *name*."""

    scores: dict[str, float] = Field(default_factory=dict)
    notes: str = ""
    recommendation: Optional[Recommendation] = None
    detailed_analysis: Optional[DetailedAnalysis] = None


class AIScoringResult(BaseModel):
    """Provider answer mapped back onto criterion ids."""

    scores: dict[str, float] = Field(..., description="Raw score per criterion id")
    comments: dict[str, str] = Field(default_factory=dict)
    notes: str = ""
    recommendation: ProjectStatus
    total_score: int
    unmatched_criteria: list[str] = Field(
        default_factory=list, description="Criterion ids the provider did not score (set to 0)"
    )
    detailed_analysis: Optional[DetailedAnalysis] = None


# ---------------------------------------------------------------------------
# Bulk evaluation
# ---------------------------------------------------------------------------

class BulkProgress(BaseModel):
    current: int = 0
    total: int = 0
    current_project: Optional[str] = None


class BulkEvaluationReport(BaseModel):
    """Outcome of a sequential AI evaluation pass."""

    total: int
    evaluated: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="project id -> error")
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def success_count(self) -> int:
        return len(self.evaluated)
