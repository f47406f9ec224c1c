"""Report payload handed to the external report renderer."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .evaluation import CriterionScore, ScoreBand
from .project import ProjectStatus


class CriterionReportRow(BaseModel):
    """One line of the evaluation table."""

    criterion_id: str
    name: str
    description: str = ""
    score: float
    max_score: float
    weight: float
    contribution: float
    band: ScoreBand
    comment: str = ""

    @classmethod
    def from_score(cls, row: CriterionScore, description: str, comment: str) -> "CriterionReportRow":
        return cls(
            criterion_id=row.criterion_id,
            name=row.name,
            description=description,
            score=row.score,
            max_score=row.max_score,
            weight=row.weight,
            contribution=row.contribution,
            band=row.band,
            comment=comment,
        )


class ReportPayload(BaseModel):
    """Complete, consistent evaluation data for one project."""

    project_id: str
    project_title: str
    project_description: str = ""
    budget: float
    timeline: str = ""
    status: ProjectStatus
    recommended_status: Optional[ProjectStatus] = None
    submission_date: Optional[datetime] = None

    program_name: str
    program_budget: str = Field(..., description="Formatted program budget with currency")
    partner_name: str

    total_score: int = Field(..., ge=0, le=100)
    criteria: list[CriterionReportRow]
    evaluation_notes: str = ""
    evaluated_by: Optional[str] = None
    evaluation_date: Optional[datetime] = None
    generated_at: datetime
