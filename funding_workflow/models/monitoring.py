"""Dashboard views derived from the project collection."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class RiskFlag(BaseModel):
    """Heuristic, non-authoritative risk shown on the monitoring dashboard."""

    level: Literal["low", "medium", "high"]
    title: str
    description: str
    project_ids: list[str] = Field(default_factory=list)


class RecentUpdate(BaseModel):
    project_id: str
    title: str
    kind: Literal["milestone", "meeting", "report"]
    occurred_at: datetime
    description: str = ""


class MonitoringSnapshot(BaseModel):
    generated_at: datetime
    total_projects: int
    active_count: int
    success_rate: int = Field(..., description="Percentage of projects financed, monitored or closed")
    status_counts: dict[str, int] = Field(default_factory=dict)
    average_score: Optional[float] = Field(None, description="Mean total score of evaluated projects")
    risks: list[RiskFlag] = Field(default_factory=list)
    recent_updates: list[RecentUpdate] = Field(default_factory=list)
