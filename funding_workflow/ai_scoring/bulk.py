"""Sequential AI evaluation over a batch of projects.

Projects are scored one at a time with a fixed pause between provider calls.
A failure on one project is logged and skipped; evaluations already staged
for earlier projects are left as they are.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from ..models.evaluation import BulkEvaluationReport, BulkProgress
from ..models.project import Project
from ..models.user import User
from ..services.program_service import ProgramService
from ..services.project_service import ProjectService
from .adapter import AIScoringAdapter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BulkProgress], None]


class BulkEvaluator:
    def __init__(
        self,
        adapter: AIScoringAdapter,
        project_service: ProjectService,
        program_service: ProgramService,
        delay_seconds: float = 1.0,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self._adapter = adapter
        self._projects = project_service
        self._programs = program_service
        self._delay = delay_seconds
        self._on_progress = on_progress
        self.progress = BulkProgress()

    async def run(self, projects: Iterable[Project], user: User) -> BulkEvaluationReport:
        """Score and stage each project in turn.

        Only the first evaluation phase is written; committing the
        recommendations stays a manager action.
        """
        batch = list(projects)
        report = BulkEvaluationReport(total=len(batch), started_at=datetime.now(timezone.utc))
        self.progress = BulkProgress(current=0, total=len(batch))

        logger.info("Starting bulk evaluation of %d projects", len(batch))

        for index, project in enumerate(batch, start=1):
            self.progress = BulkProgress(current=index, total=len(batch), current_project=project.title)
            if self._on_progress:
                self._on_progress(self.progress)

            try:
                await self._evaluate(project, user)
                report.evaluated.append(project.id)
            except Exception as exc:
                logger.error(
                    "bulk_evaluation project=%s result=failure error=%s", project.id, exc
                )
                report.failed[project.id] = str(exc)

            if index < len(batch):
                await asyncio.sleep(self._delay)

        report.completed_at = datetime.now(timezone.utc)
        self.progress = BulkProgress(current=len(batch), total=len(batch))
        logger.info(
            "Bulk evaluation complete: %d/%d evaluated, %d failed",
            report.success_count, report.total, len(report.failed),
        )
        return report

    async def _evaluate(self, project: Project, user: User) -> None:
        program = self._programs.get_program(project.program_id)
        result = await self._adapter.evaluate_project(
            project,
            program.evaluation_criteria,
            context=self._programs.evaluation_context(program),
            custom_prompt=program.custom_ai_prompt,
        )
        self._projects.stage_evaluation(
            project.id,
            result.scores,
            program.evaluation_criteria,
            user,
            comments=result.comments,
            decision=result.recommendation,
            notes=result.notes,
        )
