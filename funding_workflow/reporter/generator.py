"""Evaluation report payloads for the external PDF renderer."""

import logging
from datetime import datetime, timezone

from ..errors import IncompleteEvaluationError
from ..models.program import Partner, Program
from ..models.project import Project
from ..models.report import CriterionReportRow, ReportPayload
from ..scorer.engine import score_evaluation
from ..services.program_service import format_budget

logger = logging.getLogger(__name__)


def build_report_payload(project: Project, program: Program, partner: Partner) -> ReportPayload:
    """Assemble the renderer input for an evaluated project.

    The stored total must agree with the criteria it was computed from, so
    the payload always describes one consistent score sheet.

    Raises:
        IncompleteEvaluationError: no total, criteria missing a score, or a
            stored total that no longer matches the scores
    """
    if project.program_id != program.id:
        raise IncompleteEvaluationError(
            f"Project {project.id} belongs to program {project.program_id}, not {program.id}"
        )
    if project.total_evaluation_score is None:
        raise IncompleteEvaluationError(f"Project {project.id} has not been evaluated")
    if not program.evaluation_criteria:
        raise IncompleteEvaluationError(f"Program {program.id} has no evaluation criteria")

    missing = [c.name for c in program.evaluation_criteria if c.id not in project.evaluation_scores]
    if missing:
        raise IncompleteEvaluationError(
            f"Project {project.id} is missing scores for: {', '.join(missing)}"
        )

    sheet = score_evaluation(
        {cid: score for cid, score in project.evaluation_scores.items() if cid in program.criterion_ids()},
        program.evaluation_criteria,
    )
    if sheet.total != project.total_evaluation_score:
        raise IncompleteEvaluationError(
            f"Stored total {project.total_evaluation_score:g} does not match "
            f"scores ({sheet.total}); re-evaluate project {project.id}"
        )

    descriptions = {c.id: c.description for c in program.evaluation_criteria}
    rows = [
        CriterionReportRow.from_score(
            row,
            description=descriptions[row.criterion_id],
            comment=project.evaluation_comments.get(row.criterion_id, ""),
        )
        for row in sheet.criteria
    ]

    logger.info("Report payload built for project %s (total %d)", project.id, sheet.total)

    return ReportPayload(
        project_id=project.id,
        project_title=project.title,
        project_description=project.description,
        budget=project.budget,
        timeline=project.timeline,
        status=project.status,
        recommended_status=project.recommended_status,
        submission_date=project.submission_date,
        program_name=program.name,
        program_budget=format_budget(program.budget, program.currency),
        partner_name=partner.name,
        total_score=sheet.total,
        criteria=rows,
        evaluation_notes=project.evaluation_notes or "",
        evaluated_by=project.evaluated_by,
        evaluation_date=project.evaluation_date,
        generated_at=datetime.now(timezone.utc),
    )


class ReportGenerator:
    """Loads the project/program/partner triple from storage and builds the payload."""

    def __init__(self, store):
        self.store = store

    def generate(self, project_id: str) -> ReportPayload:
        project = self.store.get_project(project_id)
        program = self.store.get_program(project.program_id)
        partner = self.store.get_partner(program.partner_id)
        return build_report_payload(project, program, partner)
