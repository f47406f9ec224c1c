"""Formalization of selected projects.

Between selection and financing a project collects requested documents,
gets a disbursement plan split into tranches and may be offered technical
support. ``complete_formalization`` moves it to ``financed`` once nothing
is left open.
"""

import logging
import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from ..errors import FormalizationError, StorageError
from ..models.form import FileReference
from ..models.formalization import (
    DisbursementPlan,
    DisbursementSchedule,
    DisbursementTranche,
    DocumentRequest,
    DocumentRequestStatus,
    DocumentSubmission,
    SupportStatus,
    SupportType,
    TechnicalSupport,
    TrancheDraft,
    TrancheStatus,
    ValidationStatus,
)
from ..models.project import Project, ProjectStatus
from ..models.user import User
from ..workflow.transitions import ensure_owner, ensure_staff
from .project_service import ProjectService

logger = logging.getLogger(__name__)

# Tolerance when comparing tranche sums against the plan
AMOUNT_TOLERANCE = 0.01

# Statuses from which formalization records may be created
FORMALIZING_STATUSES = frozenset(
    {ProjectStatus.PRE_SELECTED, ProjectStatus.SELECTED, ProjectStatus.FORMALIZATION}
)

FINAL_SUPPORT_STATUSES = frozenset({SupportStatus.COMPLETED, SupportStatus.CANCELLED})


def build_tranches(
    total_amount: float,
    drafts: Sequence[Union[TrancheDraft, Mapping[str, Any]]],
) -> list[TrancheDraft]:
    """Validate tranche drafts against the plan total.

    Missing percentages are derived from the amounts. Amounts must add up to
    the total and percentages to 100.

    Raises:
        FormalizationError: no tranche, a non-positive amount, or sums that
            do not match the plan
    """
    if total_amount <= 0:
        raise FormalizationError("Disbursement total must be positive")
    if not drafts:
        raise FormalizationError("A disbursement plan needs at least one tranche")

    tranches = []
    for number, raw in enumerate(drafts, start=1):
        draft = raw if isinstance(raw, TrancheDraft) else TrancheDraft.model_validate(raw)
        if draft.amount <= 0:
            raise FormalizationError(f"Tranche {number} amount must be positive")
        if draft.percentage is None:
            draft = draft.model_copy(update={"percentage": round(draft.amount / total_amount * 100, 2)})
        if not 0 <= draft.percentage <= 100:
            raise FormalizationError(f"Tranche {number} percentage must be between 0 and 100")
        tranches.append(draft)

    amount_sum = sum(t.amount for t in tranches)
    if not math.isclose(amount_sum, total_amount, abs_tol=AMOUNT_TOLERANCE):
        raise FormalizationError(
            f"Tranche amounts sum to {amount_sum:,.2f}, plan total is {total_amount:,.2f}"
        )
    percentage_sum = sum(t.percentage for t in tranches)
    if not math.isclose(percentage_sum, 100, abs_tol=AMOUNT_TOLERANCE * len(tranches)):
        raise FormalizationError(f"Tranche percentages sum to {percentage_sum:g}%, expected 100%")

    return tranches


class FormalizationService:
    """Document requests, disbursement plans and technical support."""

    def __init__(self, store, project_service: ProjectService):
        self._store = store
        self._projects = project_service

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def request_document(
        self,
        project_id: str,
        user: User,
        document_name: str,
        document_type: str = "",
        description: str = "",
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> DocumentRequest:
        ensure_staff(user, "request documents")
        self._formalizing_project(project_id)

        request = DocumentRequest(
            id=str(uuid.uuid4()),
            project_id=project_id,
            document_name=document_name,
            document_type=document_type,
            description=description,
            requested_by=user.id,
            due_date=due_date,
            notes=notes,
        )
        created = self._store.create_document_request(request)
        logger.info("document_requested project=%s document=%s by=%s", project_id, document_name, user.id)
        return created

    def document_requests(self, project_id: str) -> list[DocumentRequest]:
        return self._store.list_document_requests(project_id)

    def submit_document(self, request_id: str, file: FileReference, user: User) -> DocumentSubmission:
        """Attach an uploaded file to a request; the request becomes ``submitted``.

        Only the project's submitter may answer, and only while the request
        is pending or was rejected.
        """
        request = self._store.get_document_request(request_id)
        ensure_owner(self._projects.get_project(request.project_id), user)
        if request.status not in (DocumentRequestStatus.PENDING, DocumentRequestStatus.REJECTED):
            raise FormalizationError(
                f"Document request {request_id} is {request.status.value}, not awaiting a file"
            )

        submission = DocumentSubmission(
            id=str(uuid.uuid4()),
            request_id=request_id,
            file_name=file.name,
            file_path=file.path,
            file_size=file.size,
            submitted_by=user.id,
            submitted_at=datetime.now(timezone.utc),
        )
        created = self._store.create_document_submission(submission)
        self._store.update_document_request(request_id, {"status": DocumentRequestStatus.SUBMITTED})
        return created

    def review_submission(
        self,
        submission_id: str,
        user: User,
        approved: bool,
        notes: Optional[str] = None,
    ) -> DocumentSubmission:
        """Approve or reject a submitted file and update its request accordingly."""
        ensure_staff(user, "validate documents")
        submission = self._store.get_document_submission(submission_id)
        if submission.validation_status != ValidationStatus.PENDING:
            raise FormalizationError(
                f"Submission {submission_id} was already {submission.validation_status.value}"
            )

        verdict = ValidationStatus.APPROVED if approved else ValidationStatus.REJECTED
        reviewed = self._store.update_document_submission(submission_id, {
            "validation_status": verdict,
            "validation_notes": notes,
            "validated_by": user.id,
            "validated_at": datetime.now(timezone.utc),
        })
        self._store.update_document_request(submission.request_id, {
            "status": DocumentRequestStatus.VALIDATED if approved else DocumentRequestStatus.REJECTED,
        })
        logger.info(
            "document_reviewed submission=%s request=%s result=%s by=%s",
            submission_id, submission.request_id, verdict.value, user.id,
        )
        return reviewed

    # ------------------------------------------------------------------
    # Disbursement
    # ------------------------------------------------------------------

    def create_disbursement_plan(
        self,
        project_id: str,
        user: User,
        total_amount: float,
        tranches: Sequence[Union[TrancheDraft, Mapping[str, Any]]],
        currency: Optional[str] = None,
    ) -> DisbursementSchedule:
        """Create the project's single disbursement plan.

        ``currency`` defaults to the program's currency. If the tranches
        cannot be stored the plan is deleted again.
        """
        ensure_staff(user, "plan disbursements")
        project = self._formalizing_project(project_id)
        if self._store.get_disbursement_plan(project_id) is not None:
            raise FormalizationError(f"Project {project_id} already has a disbursement plan")

        drafts = build_tranches(total_amount, tranches)
        if currency is None:
            currency = self._store.get_program(project.program_id).currency

        plan = self._store.create_disbursement_plan(DisbursementPlan(
            id=str(uuid.uuid4()),
            project_id=project_id,
            total_amount=total_amount,
            currency=currency,
            created_by=user.id,
        ))
        rows = [
            DisbursementTranche(
                id=str(uuid.uuid4()),
                plan_id=plan.id,
                tranche_number=number,
                amount=draft.amount,
                percentage=draft.percentage,
                scheduled_date=draft.scheduled_date,
                conditions=draft.conditions,
            )
            for number, draft in enumerate(drafts, start=1)
        ]
        try:
            stored = self._store.create_disbursement_tranches(rows)
        except StorageError:
            logger.error("Tranche insert failed, removing plan %s", plan.id)
            self._store.delete_disbursement_plan(plan.id)
            raise

        logger.info(
            "disbursement_planned project=%s total=%g %s tranches=%d",
            project_id, total_amount, currency, len(stored),
        )
        return DisbursementSchedule(plan=plan, tranches=stored)

    def disbursement_schedule(self, project_id: str) -> Optional[DisbursementSchedule]:
        plan = self._store.get_disbursement_plan(project_id)
        if plan is None:
            return None
        return DisbursementSchedule(plan=plan, tranches=self._store.list_disbursement_tranches(plan.id))

    def record_disbursement(
        self,
        tranche_id: str,
        user: User,
        actual_amount: Optional[float] = None,
        reference: Optional[str] = None,
        disbursed_on: Optional[date] = None,
    ) -> DisbursementTranche:
        """Mark a tranche as paid out; the actual amount defaults to the planned one."""
        ensure_staff(user, "record disbursements")
        tranche = self._store.get_disbursement_tranche(tranche_id)
        if tranche.status in (TrancheStatus.DISBURSED, TrancheStatus.CANCELLED):
            raise FormalizationError(f"Tranche {tranche.tranche_number} is already {tranche.status.value}")

        return self._store.update_disbursement_tranche(tranche_id, {
            "status": TrancheStatus.DISBURSED,
            "actual_amount": tranche.amount if actual_amount is None else actual_amount,
            "disbursement_reference": reference,
            "actual_disbursement_date": disbursed_on or date.today(),
        })

    # ------------------------------------------------------------------
    # Technical support
    # ------------------------------------------------------------------

    def schedule_support(
        self,
        project_id: str,
        user: User,
        support_type: Union[SupportType, str],
        title: str,
        description: str = "",
        scheduled_date: Optional[date] = None,
        duration_hours: float = 0,
        provider: Optional[str] = None,
        participants: Optional[str] = None,
    ) -> TechnicalSupport:
        ensure_staff(user, "schedule technical support")
        self._projects.get_project(project_id)

        support = TechnicalSupport(
            id=str(uuid.uuid4()),
            project_id=project_id,
            support_type=SupportType(support_type),
            title=title,
            description=description,
            scheduled_date=scheduled_date,
            duration_hours=duration_hours,
            provider=provider,
            participants=participants,
            created_by=user.id,
        )
        return self._store.create_technical_support(support)

    def support_sessions(self, project_id: str) -> list[TechnicalSupport]:
        return self._store.list_technical_support(project_id)

    def update_support_status(
        self,
        support_id: str,
        user: User,
        status: Union[SupportStatus, str],
        completion_notes: Optional[str] = None,
    ) -> TechnicalSupport:
        ensure_staff(user, "update technical support")
        support = self._store.get_technical_support(support_id)
        if support.status in FINAL_SUPPORT_STATUSES:
            raise FormalizationError(f"Support session {support_id} is already {support.status.value}")

        updates: dict[str, Any] = {"status": SupportStatus(status)}
        if completion_notes is not None:
            updates["completion_notes"] = completion_notes
        return self._store.update_technical_support(support_id, updates)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def complete_formalization(self, project_id: str, user: User) -> Project:
        """formalization -> financed, once the NDA, plan and documents are in order."""
        project = self._projects.advance_status(project_id, ProjectStatus.FINANCED, user)
        logger.info("formalization_completed project=%s by=%s", project_id, user.id)
        return project

    def _formalizing_project(self, project_id: str) -> Project:
        project = self._projects.get_project(project_id)
        if project.status not in FORMALIZING_STATUSES:
            raise FormalizationError(
                f"Project {project_id} is {project.status.value}; formalization starts after selection"
            )
        return project
