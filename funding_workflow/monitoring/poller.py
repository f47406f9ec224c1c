"""Periodic monitoring refresh driven by APScheduler."""

import logging
from typing import Callable, Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..models.monitoring import MonitoringSnapshot
from ..services.project_service import ProjectService
from .aggregator import compute_snapshot

logger = logging.getLogger(__name__)

JOB_ID = "monitoring_refresh"


class MonitoringPoller:
    """Recomputes the monitoring snapshot on a fixed interval.

    ``start()`` must be called from within a running event loop.
    """

    def __init__(
        self,
        project_service: ProjectService,
        interval_seconds: int = 30,
        high_workload_threshold: int = 10,
        overdue_days: int = 90,
        on_snapshot: Optional[Callable[[MonitoringSnapshot], None]] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self._projects = project_service
        self._interval = interval_seconds
        self._high_workload_threshold = high_workload_threshold
        self._overdue_days = overdue_days
        self._on_snapshot = on_snapshot
        self.scheduler = scheduler or AsyncIOScheduler()
        self.job: Optional[Job] = None
        self.latest: Optional[MonitoringSnapshot] = None

    def start(self) -> None:
        if self.job is not None:
            return
        self.job = self.scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(seconds=self._interval),
            id=JOB_ID,
            name="Refresh monitoring snapshot",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Monitoring poller started (every %ds)", self._interval)

    def shutdown(self) -> None:
        """Cancel the scheduled refresh and stop the scheduler.

        ``AsyncIOScheduler`` performs the stop on its event loop, so the
        scheduler only reports not running after the loop has cycled once.
        """
        if self.job is not None:
            self.job.remove()
            self.job = None
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Monitoring poller stopped")

    async def refresh(self) -> MonitoringSnapshot:
        projects = self._projects.fetch_projects(force=True)
        snapshot = compute_snapshot(
            projects,
            high_workload_threshold=self._high_workload_threshold,
            overdue_days=self._overdue_days,
        )
        self.latest = snapshot

        logger.info(
            "monitoring_snapshot projects=%d active=%d success_rate=%d risks=%d",
            snapshot.total_projects,
            snapshot.active_count,
            snapshot.success_rate,
            len(snapshot.risks),
        )
        if self._on_snapshot:
            self._on_snapshot(snapshot)
        return snapshot
