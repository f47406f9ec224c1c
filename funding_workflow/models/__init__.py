"""Shared Pydantic models - contract between the engine, services and storage."""

from .eligibility import EligibilityCondition, EligibilityOutcome, FieldEligibilityCriterion
from .form import FieldValue, FileReference, FormField, FormTemplate, to_field_value
from .program import EvaluationCriterion, Partner, Program
from .project import DECISION_STATUSES, Project, ProjectStatus
from .user import Role, User
from .evaluation import (
    AIEvaluationRequest,
    AIEvaluationResponse,
    AIScoringResult,
    BulkEvaluationReport,
    BulkProgress,
    EvaluationScore,
    ProgramContext,
)
from .monitoring import MonitoringSnapshot, RecentUpdate, RiskFlag
from .report import CriterionReportRow, ReportPayload
from .formalization import (
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

__all__ = [
    "EligibilityCondition",
    "EligibilityOutcome",
    "FieldEligibilityCriterion",
    "FieldValue",
    "FileReference",
    "FormField",
    "FormTemplate",
    "to_field_value",
    "EvaluationCriterion",
    "Partner",
    "Program",
    "DECISION_STATUSES",
    "Project",
    "ProjectStatus",
    "Role",
    "User",
    "AIEvaluationRequest",
    "AIEvaluationResponse",
    "AIScoringResult",
    "BulkEvaluationReport",
    "BulkProgress",
    "EvaluationScore",
    "ProgramContext",
    "MonitoringSnapshot",
    "RecentUpdate",
    "RiskFlag",
    "CriterionReportRow",
    "ReportPayload",
    "DisbursementPlan",
    "DisbursementSchedule",
    "DisbursementTranche",
    "DocumentRequest",
    "DocumentRequestStatus",
    "DocumentSubmission",
    "SupportStatus",
    "SupportType",
    "TechnicalSupport",
    "TrancheDraft",
    "TrancheStatus",
    "ValidationStatus",
]
