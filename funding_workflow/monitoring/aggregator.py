"""Dashboard statistics over a project collection.

All figures are recomputed from scratch on each call; nothing here
touches storage.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from ..models.monitoring import MonitoringSnapshot, RecentUpdate, RiskFlag
from ..models.project import Project, ProjectStatus

S = ProjectStatus

ACTIVE_STATUSES = frozenset({S.MONITORING, S.FINANCED, S.FORMALIZATION})
SUCCESS_STATUSES = frozenset({S.FINANCED, S.MONITORING, S.CLOSED})
PENDING_STATUSES = frozenset({S.SUBMITTED, S.UNDER_REVIEW})
MILESTONE_STATUSES = frozenset({S.PRE_SELECTED, S.SELECTED, S.FORMALIZATION, S.FINANCED, S.CLOSED})

WEAK_SCORE_THRESHOLD = 50
RECENT_LIMIT = 10
MEETING_WINDOW = timedelta(days=7)


def compute_snapshot(
    projects: Iterable[Project],
    now: Optional[datetime] = None,
    high_workload_threshold: int = 10,
    overdue_days: int = 90,
) -> MonitoringSnapshot:
    """Build the monitoring dashboard for ``projects``.

    Args:
        projects: Already-filtered project collection
        now: Reference time (defaults to current UTC time)
        high_workload_threshold: Active count above which workload is flagged
        overdue_days: Age after which a pending submission is overdue
    """
    now = _aware(now or datetime.now(timezone.utc))
    projects = list(projects)

    scored = [p.total_evaluation_score for p in projects if p.total_evaluation_score is not None]

    return MonitoringSnapshot(
        generated_at=now,
        total_projects=len(projects),
        active_count=sum(1 for p in projects if p.status in ACTIVE_STATUSES),
        success_rate=success_rate(projects),
        status_counts=dict(Counter(p.status.value for p in projects)),
        average_score=round(sum(scored) / len(scored), 1) if scored else None,
        risks=detect_risks(projects, now, high_workload_threshold, overdue_days),
        recent_updates=recent_updates(projects, now),
    )


def success_rate(projects: list[Project]) -> int:
    """Share of projects financed, monitored or closed, as a rounded percentage."""
    if not projects:
        return 0
    successes = sum(1 for p in projects if p.status in SUCCESS_STATUSES)
    return int(successes / len(projects) * 100 + 0.5)


def detect_risks(
    projects: list[Project],
    now: datetime,
    high_workload_threshold: int = 10,
    overdue_days: int = 90,
) -> list[RiskFlag]:
    risks = []

    active = [p for p in projects if p.status in ACTIVE_STATUSES]
    if len(active) > high_workload_threshold:
        risks.append(RiskFlag(
            level="medium",
            title="High workload",
            description=f"{len(active)} projects are in active follow-up",
            project_ids=[p.id for p in active],
        ))

    cutoff = now - timedelta(days=overdue_days)
    overdue = [
        p for p in projects
        if p.status in PENDING_STATUSES and _aware(p.submission_date or p.created_at) < cutoff
    ]
    if overdue:
        risks.append(RiskFlag(
            level="high",
            title="Overdue reviews",
            description=f"{len(overdue)} projects submitted more than {overdue_days} days ago are still pending",
            project_ids=[p.id for p in overdue],
        ))

    weak = [
        p for p in projects
        if p.total_evaluation_score is not None and p.total_evaluation_score < WEAK_SCORE_THRESHOLD
    ]
    if weak:
        risks.append(RiskFlag(
            level="low",
            title="Weak evaluations",
            description=f"{len(weak)} projects scored below {WEAK_SCORE_THRESHOLD}",
            project_ids=[p.id for p in weak],
        ))

    if not risks:
        risks.append(RiskFlag(
            level="low",
            title="No risk identified",
            description="All projects are progressing normally",
        ))
    return risks


def recent_updates(projects: list[Project], now: datetime) -> list[RecentUpdate]:
    """Last ten touched projects, newest first."""
    latest = sorted(projects, key=lambda p: _aware(p.updated_at), reverse=True)[:RECENT_LIMIT]
    return [
        RecentUpdate(
            project_id=p.id,
            title=p.title,
            kind=_classify(p, now),
            occurred_at=p.updated_at,
            description=f"Status: {p.status.value.replace('_', ' ')}",
        )
        for p in latest
    ]


def _classify(project: Project, now: datetime) -> str:
    if project.status in MILESTONE_STATUSES:
        return "milestone"
    if project.status == S.MONITORING and now - _aware(project.updated_at) <= MEETING_WINDOW:
        return "meeting"
    return "report"


def _aware(value: datetime) -> datetime:
    # Naive timestamps from storage are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
