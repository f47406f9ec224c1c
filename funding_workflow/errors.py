"""Error hierarchy shared by the evaluation engine and its services."""

from typing import Optional


class FundingWorkflowError(Exception):
    """Base class for every recoverable error raised by this package."""


class ScoreValidationError(FundingWorkflowError):
    """Raised when submitted scores are malformed or reference unknown criteria."""


class EligibilityRuleError(FundingWorkflowError):
    """Raised when an eligibility rule definition cannot be evaluated."""


class CriteriaWeightError(FundingWorkflowError):
    """Raised when a program's evaluation criteria fail edit-time validation."""


class TransitionError(FundingWorkflowError):
    """Raised when a status change is not allowed from the current state."""

    def __init__(self, current: str, target: str, reason: Optional[str] = None) -> None:
        self.current = current
        self.target = target
        message = f"Cannot move project from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PermissionDeniedError(FundingWorkflowError):
    """Raised when the acting user's role or ownership does not permit an action."""


class ProviderError(FundingWorkflowError):
    """Raised when the AI scoring provider is unreachable or answers garbage."""


class StorageError(FundingWorkflowError):
    """Raised when the storage collaborator fails a CRUD call."""


class NotFoundError(FundingWorkflowError):
    """Raised when a record id does not exist."""


class IncompleteEvaluationError(FundingWorkflowError):
    """Raised when report data is requested before evaluation is complete."""


class FormalizationError(FundingWorkflowError):
    """Raised when a formalization record is invalid or out of sequence."""
