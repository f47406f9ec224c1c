"""Project lifecycle service.

Owns the in-memory project cache and every status mutation. Each mutation
checks role and transition rules *before* touching storage, so a rejected
action leaves both the cache and the stored record untouched.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ..eligibility.filter import assess_project
from ..errors import (
    FormalizationError,
    PermissionDeniedError,
    ScoreValidationError,
    StorageError,
    TransitionError,
)
from ..models.eligibility import EligibilityOutcome, FieldEligibilityCriterion
from ..models.program import EvaluationCriterion
from ..models.project import DECISION_STATUSES, Project, ProjectStatus
from ..models.user import Role, User
from ..scorer.engine import score_evaluation
from ..workflow.transitions import (
    EVALUABLE_STATUSES,
    PIPELINE_STATUSES,
    can_transition,
    ensure_owner,
    ensure_staff,
    ensure_transition,
    financing_blockers,
)

logger = logging.getLogger(__name__)

# Fields a submitter may change while the project is still a draft
EDITABLE_FIELDS = frozenset(
    {"title", "description", "budget", "timeline", "tags", "form_data", "program_id"}
)

# Statuses in which an NDA can be recorded
NDA_STATUSES = frozenset(
    {ProjectStatus.PRE_SELECTED, ProjectStatus.SELECTED, ProjectStatus.FORMALIZATION}
)


class ProjectService:
    """Cached access to projects plus the status state machine."""

    def __init__(self, store):
        """
        Args:
            store: Storage collaborator exposing list/get/create/update/delete
                for projects (see ``database.SupabaseClient``).
        """
        self._store = store
        self._projects: Optional[dict[str, Project]] = None
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def fetch_projects(self, force: bool = False) -> list[Project]:
        """Return all projects, loading them from storage when needed.

        A storage failure is recorded in ``last_error`` and the previously
        cached list is returned unchanged.
        """
        if self._projects is not None and not force:
            return list(self._projects.values())

        try:
            projects = self._store.list_projects()
        except StorageError as exc:
            self.last_error = str(exc)
            logger.error("Failed to fetch projects: %s", exc)
            return list(self._projects.values()) if self._projects is not None else []

        self._projects = {project.id: project for project in projects}
        self.last_error = None
        logger.info("Loaded %d projects", len(projects))
        return projects

    def invalidate(self) -> None:
        """Drop the cache; the next read goes back to storage."""
        self._projects = None

    def get_project(self, project_id: str) -> Project:
        if self._projects is not None and project_id in self._projects:
            return self._projects[project_id]
        project = self._call(self._store.get_project, project_id)
        if self._projects is not None:
            self._projects[project.id] = project
        return project

    # ------------------------------------------------------------------
    # Submitter actions
    # ------------------------------------------------------------------

    def create_project(
        self,
        user: User,
        title: str,
        program_id: str,
        description: str = "",
        budget: float = 0,
        timeline: str = "",
        tags: Optional[list[str]] = None,
        form_data: Optional[Mapping[str, Any]] = None,
    ) -> Project:
        """Create a draft owned by ``user``."""
        if user.role != Role.SUBMITTER:
            raise PermissionDeniedError("Only submitters can create projects")

        project = Project(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            budget=budget,
            timeline=timeline,
            tags=tags or [],
            form_data=dict(form_data or {}),
            submitter_id=user.id,
            program_id=program_id,
        )
        created = self._call(self._store.create_project, project)
        if self._projects is not None:
            self._projects[created.id] = created
        logger.info("project_created id=%s program=%s submitter=%s", created.id, program_id, user.id)
        return created

    def update_draft(self, project_id: str, user: User, **changes: Any) -> Project:
        """Edit a draft's content fields."""
        project = self.get_project(project_id)
        ensure_owner(project, user)
        if project.status != ProjectStatus.DRAFT:
            raise PermissionDeniedError(f"Project {project_id} is no longer a draft")

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise PermissionDeniedError(
                f"Fields not editable on a draft: {', '.join(sorted(unknown))}"
            )

        # Validate the merged record before writing anything
        merged = Project.model_validate({**project.model_dump(), **changes})
        updates = {name: getattr(merged, name) for name in changes}
        return self._save(project_id, updates)

    def delete_project(self, project_id: str, user: User) -> None:
        project = self.get_project(project_id)
        if user.role != Role.ADMIN:
            ensure_owner(project, user)
            if project.status != ProjectStatus.DRAFT:
                raise PermissionDeniedError("Submitted projects can only be deleted by an admin")

        self._call(self._store.delete_project, project_id)
        if self._projects is not None:
            self._projects.pop(project_id, None)
        logger.info("project_deleted id=%s by=%s", project_id, user.id)

    def submit_project(self, project_id: str, user: User) -> Project:
        """draft -> submitted, stamping the submission date."""
        project = self.get_project(project_id)
        ensure_owner(project, user)
        if project.status != ProjectStatus.DRAFT:
            raise TransitionError(
                project.status.value, ProjectStatus.SUBMITTED.value, "only drafts can be submitted"
            )
        ensure_transition(project.status, ProjectStatus.SUBMITTED)

        return self._save(project_id, {
            "status": ProjectStatus.SUBMITTED,
            "submission_date": datetime.now(timezone.utc),
        })

    # ------------------------------------------------------------------
    # Staff actions
    # ------------------------------------------------------------------

    def screen_eligibility(
        self,
        project_id: str,
        criteria: Iterable[FieldEligibilityCriterion],
        user: User,
    ) -> Project:
        """Run the eligibility filter and record its outcome."""
        project = self.get_project(project_id)
        return self.record_eligibility(project_id, assess_project(project, criteria), user)

    def record_eligibility(
        self,
        project_id: str,
        outcome: EligibilityOutcome,
        user: User,
    ) -> Project:
        ensure_staff(user, "record eligibility")
        project = self.get_project(project_id)
        target = ProjectStatus.ELIGIBLE if outcome.eligible else ProjectStatus.INELIGIBLE
        ensure_transition(project.status, target)

        return self._save(project_id, {"status": target, "eligibility_notes": outcome.notes()})

    def reset_eligibility(self, project_id: str, user: User) -> Project:
        """eligible / ineligible -> submitted."""
        ensure_staff(user, "reset eligibility")
        project = self.get_project(project_id)
        if project.status not in (ProjectStatus.ELIGIBLE, ProjectStatus.INELIGIBLE):
            raise TransitionError(
                project.status.value, ProjectStatus.SUBMITTED.value, "no eligibility result to reset"
            )
        ensure_transition(project.status, ProjectStatus.SUBMITTED)

        return self._save(project_id, {"status": ProjectStatus.SUBMITTED, "eligibility_notes": None})

    def start_review(self, project_id: str, user: User) -> Project:
        ensure_staff(user, "start a review")
        project = self.get_project(project_id)
        ensure_transition(project.status, ProjectStatus.UNDER_REVIEW)
        return self._save(project_id, {"status": ProjectStatus.UNDER_REVIEW})

    def stage_evaluation(
        self,
        project_id: str,
        scores: Mapping[str, float],
        criteria: Optional[Sequence[EvaluationCriterion]],
        user: User,
        comments: Optional[Mapping[str, str]] = None,
        decision: Optional[Union[ProjectStatus, str]] = None,
        notes: Optional[str] = None,
    ) -> Project:
        """Phase one of an evaluation: store scores and a recommended status.

        ``status`` itself is never touched here. The recommendation is the
        manager's explicit ``decision`` when given, else the banding of the
        total. ``criteria`` defaults to the owning program's criteria and may
        only name criteria that program defines.

        Raises:
            ScoreValidationError: malformed scores, or criteria and comments
                outside the project's program
            TransitionError: project not in an evaluable state, bad decision, or
                a recommendation the current status could never move to
        """
        ensure_staff(user, "evaluate projects")
        project = self.get_project(project_id)
        program = self._call(self._store.get_program, project.program_id)

        if criteria is None:
            criteria = program.evaluation_criteria
        foreign = sorted({criterion.id for criterion in criteria} - program.criterion_ids())
        if foreign:
            raise ScoreValidationError(
                f"Criteria not defined by program {program.id}: {', '.join(foreign)}"
            )

        sheet = score_evaluation(scores, criteria)

        recommended = sheet.recommendation
        if decision is not None:
            recommended = ProjectStatus(decision)
            if recommended not in DECISION_STATUSES:
                raise TransitionError(
                    project.status.value, recommended.value, "not an evaluation decision"
                )

        if project.status not in EVALUABLE_STATUSES:
            raise TransitionError(
                project.status.value, recommended.value, "project is not open for evaluation"
            )
        if not can_transition(project.status, recommended):
            raise TransitionError(
                project.status.value, recommended.value, "recommendation could never be committed"
            )

        comments = dict(comments or {})
        known = {criterion.id for criterion in criteria}
        stray = sorted(set(comments) - known)
        if stray:
            raise ScoreValidationError(f"Comments reference unknown criteria: {', '.join(stray)}")

        updated = self._save(project_id, {
            "evaluation_scores": {
                row.criterion_id: row.score for row in sheet.criteria if row.criterion_id in scores
            },
            "evaluation_comments": comments,
            "total_evaluation_score": sheet.total,
            "recommended_status": recommended,
            "evaluation_notes": notes,
            "evaluated_by": user.id,
            "evaluation_date": datetime.now(timezone.utc),
            "manually_submitted": False,
        })
        logger.info(
            "evaluation_staged project=%s total=%d recommended=%s by=%s",
            project_id, sheet.total, recommended.value, user.id,
        )
        return updated

    def commit_recommendation(self, project_id: str, user: User) -> Project:
        """Phase two: apply the staged recommendation as the project status."""
        ensure_staff(user, "commit evaluations")
        project = self.get_project(project_id)
        if project.recommended_status is None:
            raise TransitionError(project.status.value, "?", "no staged evaluation to commit")
        ensure_transition(project.status, project.recommended_status)

        updated = self._save(project_id, {
            "status": project.recommended_status,
            "manually_submitted": True,
        })
        logger.info(
            "evaluation_committed project=%s status=%s by=%s",
            project_id, project.recommended_status.value, user.id,
        )
        return updated

    def advance_status(
        self,
        project_id: str,
        target: Union[ProjectStatus, str],
        user: User,
    ) -> Project:
        """Post-decision pipeline: formalization, financed, monitoring, closed.

        Moving to ``financed`` requires a completed formalization (see
        ``financing_blockers``).
        """
        ensure_staff(user, "advance projects")
        project = self.get_project(project_id)
        target = ProjectStatus(target)
        if target not in PIPELINE_STATUSES:
            raise TransitionError(
                project.status.value, target.value, "decisions go through commit_recommendation"
            )
        ensure_transition(project.status, target)
        if target == ProjectStatus.FINANCED:
            blockers = self.financing_blockers(project_id)
            if blockers:
                raise TransitionError(
                    project.status.value, target.value,
                    "formalization incomplete (" + "; ".join(blockers) + ")",
                )

        updates: dict[str, Any] = {"status": target}
        if target == ProjectStatus.FINANCED:
            updates["formalization_completed"] = True
        return self._save(project_id, updates)

    def financing_blockers(self, project_id: str) -> list[str]:
        project = self.get_project(project_id)
        requests = self._call(self._store.list_document_requests, project_id)
        plan = self._call(self._store.get_disbursement_plan, project_id)
        return financing_blockers(project, requests, plan)

    def record_nda_signed(self, project_id: str, user: User) -> Project:
        """Flag the NDA as signed once the project has been selected."""
        ensure_staff(user, "record NDAs")
        project = self.get_project(project_id)
        if project.status not in NDA_STATUSES:
            raise FormalizationError(
                f"NDA only applies to selected projects; {project_id} is {project.status.value}"
            )
        return self._save(project_id, {"nda_signed": True})

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def filter_by_status(self, status: Union[ProjectStatus, str]) -> list[Project]:
        """Projects in ``status``; ``"all"`` returns everything."""
        projects = self.fetch_projects()
        if status == "all":
            return projects
        status = ProjectStatus(status)
        return [p for p in projects if p.status == status]

    def filter_by_user(self, user: User) -> list[Project]:
        """Projects visible to ``user`` according to their role."""
        projects = self.fetch_projects()
        if user.role == Role.ADMIN:
            return projects
        if user.role == Role.SUBMITTER:
            return [p for p in projects if p.submitter_id == user.id]
        return [p for p in projects if p.status != ProjectStatus.DRAFT]

    def filter_by_program(self, program_id: str) -> list[Project]:
        return [p for p in self.fetch_projects() if p.program_id == program_id]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call(self, method, *args):
        try:
            result = method(*args)
        except StorageError as exc:
            self.last_error = str(exc)
            raise
        self.last_error = None
        return result

    def _save(self, project_id: str, updates: dict[str, Any]) -> Project:
        updated = self._call(self._store.update_project, project_id, updates)
        if self._projects is not None:
            self._projects[project_id] = updated
        return updated
