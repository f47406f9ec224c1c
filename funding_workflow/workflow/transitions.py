"""Project status state machine.

draft -> submitted -> [eligible | ineligible] -> under_review
      -> pre_selected | selected | rejected -> formalization -> financed
      -> monitoring -> closed

``rejected`` and ``closed`` are terminal. ``eligible`` and ``ineligible``
are pre-screen states that can be reset to ``submitted``. Decision states
are only ever entered by committing a staged recommendation.
"""

from ..errors import PermissionDeniedError, TransitionError
from ..models.formalization import DocumentRequestStatus
from ..models.project import DECISION_STATUSES, Project, ProjectStatus
from ..models.user import Role, User

S = ProjectStatus

ALLOWED_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    S.DRAFT: frozenset({S.SUBMITTED}),
    S.SUBMITTED: frozenset({S.ELIGIBLE, S.INELIGIBLE, S.UNDER_REVIEW, *DECISION_STATUSES}),
    S.ELIGIBLE: frozenset({S.SUBMITTED, S.UNDER_REVIEW, *DECISION_STATUSES}),
    S.INELIGIBLE: frozenset({S.SUBMITTED}),
    S.UNDER_REVIEW: frozenset(DECISION_STATUSES),
    S.PRE_SELECTED: frozenset({S.SELECTED, S.REJECTED, S.FORMALIZATION}),
    S.SELECTED: frozenset({S.FORMALIZATION}),
    S.REJECTED: frozenset(),
    S.FORMALIZATION: frozenset({S.FINANCED}),
    S.FINANCED: frozenset({S.MONITORING}),
    S.MONITORING: frozenset({S.CLOSED}),
    S.CLOSED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# States in which a manager may stage (or re-stage) an evaluation
EVALUABLE_STATUSES = frozenset({S.SUBMITTED, S.ELIGIBLE, S.UNDER_REVIEW, S.PRE_SELECTED})

# Post-decision pipeline moves driven by advance_status
PIPELINE_STATUSES = frozenset({S.FORMALIZATION, S.FINANCED, S.MONITORING, S.CLOSED})


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    return ProjectStatus(target) in ALLOWED_TRANSITIONS[ProjectStatus(current)]


def ensure_transition(current: ProjectStatus, target: ProjectStatus) -> None:
    """Raise TransitionError unless ``current -> target`` is an edge of the machine."""
    current = ProjectStatus(current)
    target = ProjectStatus(target)
    if current in TERMINAL_STATUSES:
        raise TransitionError(current.value, target.value, f"'{current.value}' is terminal")
    if not can_transition(current, target):
        raise TransitionError(current.value, target.value)


def ensure_owner(project: Project, user: User) -> None:
    if user.role != Role.SUBMITTER or project.submitter_id != user.id:
        raise PermissionDeniedError(
            f"Only the submitter who owns project {project.id} may do this"
        )


def ensure_staff(user: User, action: str) -> None:
    if not user.is_staff:
        raise PermissionDeniedError(
            f"Role '{user.role.value}' may not {action}; manager or admin required"
        )


def financing_blockers(project: Project, document_requests, disbursement_plan) -> list[str]:
    """Reasons a project in formalization cannot be marked financed yet.

    Financing needs a signed NDA, a disbursement plan and every requested
    document validated.
    """
    blockers = []
    if not project.nda_signed:
        blockers.append("NDA not signed")
    if disbursement_plan is None:
        blockers.append("no disbursement plan")
    open_requests = [
        request.document_name
        for request in document_requests
        if request.status != DocumentRequestStatus.VALIDATED
    ]
    if open_requests:
        blockers.append(f"documents not validated: {', '.join(open_requests)}")
    return blockers
