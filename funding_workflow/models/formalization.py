"""Formalization records: document requests, disbursement plans, technical support."""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class DocumentRequestStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    VALIDATED = "validated"
    REJECTED = "rejected"


class ValidationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TrancheStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DISBURSED = "disbursed"
    CANCELLED = "cancelled"


class SupportType(str, Enum):
    TRAINING = "training"
    ADVISORY = "advisory"
    MENTORING = "mentoring"
    OTHER = "other"


class SupportStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DocumentRequest(BaseModel):
    """Document a manager asks a selected project to provide."""

    id: str
    project_id: str
    document_name: str
    document_type: str = Field(default="", description="e.g. 'statuts', 'bank_details'")
    description: str = ""
    requested_by: str
    due_date: Optional[date] = None
    status: DocumentRequestStatus = DocumentRequestStatus.PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DocumentSubmission(BaseModel):
    """File uploaded by the submitter in answer to a document request."""

    id: str
    request_id: str
    file_name: str
    file_path: str = Field(..., description="Storage path of the uploaded file")
    file_size: int = 0
    submitted_by: str
    submitted_at: Optional[datetime] = None
    validation_status: ValidationStatus = ValidationStatus.PENDING
    validation_notes: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None


class DisbursementPlan(BaseModel):
    id: str
    project_id: str
    total_amount: float = Field(..., gt=0)
    currency: str
    created_by: str
    created_at: Optional[datetime] = None


class DisbursementTranche(BaseModel):
    """One scheduled payment of a disbursement plan."""

    id: str
    plan_id: str
    tranche_number: int = Field(..., ge=1)
    amount: float = Field(..., gt=0)
    percentage: float = Field(..., ge=0, le=100, description="Share of the plan total")
    scheduled_date: Optional[date] = None
    conditions: Optional[str] = None
    status: TrancheStatus = TrancheStatus.PENDING
    actual_disbursement_date: Optional[date] = None
    actual_amount: Optional[float] = None
    disbursement_reference: Optional[str] = None
    notes: Optional[str] = None


class TrancheDraft(BaseModel):
    """Tranche as entered when a plan is created.

    ``percentage`` is derived from the plan total when omitted.
    """

    amount: float
    percentage: Optional[float] = None
    scheduled_date: Optional[date] = None
    conditions: Optional[str] = None


class DisbursementSchedule(BaseModel):
    """A plan with its tranches, ordered by tranche number."""

    plan: DisbursementPlan
    tranches: list[DisbursementTranche] = Field(default_factory=list)

    @property
    def disbursed_amount(self) -> float:
        return sum(
            t.actual_amount if t.actual_amount is not None else t.amount
            for t in self.tranches
            if t.status == TrancheStatus.DISBURSED
        )


class TechnicalSupport(BaseModel):
    """Training, advisory or mentoring session planned for a funded project."""

    id: str
    project_id: str
    support_type: SupportType
    title: str
    description: str = ""
    scheduled_date: Optional[date] = None
    duration_hours: float = Field(default=0, ge=0)
    provider: Optional[str] = None
    participants: Optional[str] = None
    status: SupportStatus = SupportStatus.PLANNED
    completion_notes: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
