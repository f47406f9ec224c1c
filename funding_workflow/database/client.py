"""Supabase storage client for the funding workflow.

Plain CRUD keyed by id over the users, partners, programs, projects and
form_templates tables and the formalization tables. No query logic beyond
equality filters lives here.
"""

import logging
import os
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from supabase import Client, create_client

from ..errors import NotFoundError, StorageError
from ..models.formalization import (
    DisbursementPlan,
    DisbursementTranche,
    DocumentRequest,
    DocumentSubmission,
    TechnicalSupport,
)
from ..models.form import FormTemplate
from ..models.program import Partner, Program
from ..models.project import Project
from ..models.user import User

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

USERS = "users"
PARTNERS = "partners"
PROGRAMS = "programs"
PROJECTS = "projects"
FORM_TEMPLATES = "form_templates"
DOCUMENT_REQUESTS = "document_requests"
DOCUMENT_SUBMISSIONS = "document_submissions"
DISBURSEMENT_PLANS = "disbursement_plan"
DISBURSEMENT_TRANCHES = "disbursement_tranches"
TECHNICAL_SUPPORT = "technical_support"


class SupabaseClient:
    """Client for the funding workflow tables."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase anon/service key (falls back to SUPABASE_KEY env var).
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._client: Client = create_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self, program_id: Optional[str] = None) -> List[Project]:
        """Fetch projects, most recently updated first.

        Args:
            program_id: Restrict to one program when given.
        """
        filters = {"program_id": program_id} if program_id else {}
        rows = self._select(PROJECTS, filters, order_by="updated_at")
        return [Project(**row) for row in rows]

    def get_project(self, project_id: str) -> Project:
        return self._get(PROJECTS, project_id, Project)

    def create_project(self, project: Project) -> Project:
        return self._insert(PROJECTS, project, Project)

    def update_project(self, project_id: str, updates: Dict[str, Any]) -> Project:
        """Apply a partial update and return the stored project.

        ``updated_at`` is always refreshed.
        """
        return self._update(PROJECTS, project_id, updates, Project)

    def delete_project(self, project_id: str) -> None:
        self._delete(PROJECTS, project_id)

    # ------------------------------------------------------------------
    # Programs, partners, form templates, users
    # ------------------------------------------------------------------

    def list_programs(self, partner_id: Optional[str] = None) -> List[Program]:
        filters = {"partner_id": partner_id} if partner_id else {}
        return [Program(**row) for row in self._select(PROGRAMS, filters)]

    def get_program(self, program_id: str) -> Program:
        return self._get(PROGRAMS, program_id, Program)

    def create_program(self, program: Program) -> Program:
        return self._insert(PROGRAMS, program, Program)

    def update_program(self, program_id: str, updates: Dict[str, Any]) -> Program:
        return self._update(PROGRAMS, program_id, updates, Program)

    def delete_program(self, program_id: str) -> None:
        self._delete(PROGRAMS, program_id)

    def list_partners(self) -> List[Partner]:
        return [Partner(**row) for row in self._select(PARTNERS, {})]

    def get_partner(self, partner_id: str) -> Partner:
        return self._get(PARTNERS, partner_id, Partner)

    def get_form_template(self, template_id: str) -> FormTemplate:
        return self._get(FORM_TEMPLATES, template_id, FormTemplate)

    def list_users(self) -> List[User]:
        return [User(**row) for row in self._select(USERS, {})]

    def get_user(self, user_id: str) -> User:
        return self._get(USERS, user_id, User)

    # ------------------------------------------------------------------
    # Formalization
    # ------------------------------------------------------------------

    def list_document_requests(self, project_id: str) -> List[DocumentRequest]:
        rows = self._select(DOCUMENT_REQUESTS, {"project_id": project_id}, order_by="created_at")
        return [DocumentRequest(**row) for row in rows]

    def get_document_request(self, request_id: str) -> DocumentRequest:
        return self._get(DOCUMENT_REQUESTS, request_id, DocumentRequest)

    def create_document_request(self, request: DocumentRequest) -> DocumentRequest:
        return self._insert(DOCUMENT_REQUESTS, request, DocumentRequest)

    def update_document_request(self, request_id: str, updates: Dict[str, Any]) -> DocumentRequest:
        return self._update(DOCUMENT_REQUESTS, request_id, updates, DocumentRequest)

    def list_document_submissions(self, request_id: str) -> List[DocumentSubmission]:
        rows = self._select(DOCUMENT_SUBMISSIONS, {"request_id": request_id})
        return [DocumentSubmission(**row) for row in rows]

    def get_document_submission(self, submission_id: str) -> DocumentSubmission:
        return self._get(DOCUMENT_SUBMISSIONS, submission_id, DocumentSubmission)

    def create_document_submission(self, submission: DocumentSubmission) -> DocumentSubmission:
        return self._insert(DOCUMENT_SUBMISSIONS, submission, DocumentSubmission)

    def update_document_submission(
        self, submission_id: str, updates: Dict[str, Any]
    ) -> DocumentSubmission:
        # document_submissions has no updated_at column
        return self._update(
            DOCUMENT_SUBMISSIONS, submission_id, updates, DocumentSubmission, touch=False
        )

    def get_disbursement_plan(self, project_id: str) -> Optional[DisbursementPlan]:
        """The project's plan, or None when none was created yet."""
        rows = self._select(DISBURSEMENT_PLANS, {"project_id": project_id})
        return DisbursementPlan(**rows[0]) if rows else None

    def create_disbursement_plan(self, plan: DisbursementPlan) -> DisbursementPlan:
        return self._insert(DISBURSEMENT_PLANS, plan, DisbursementPlan)

    def delete_disbursement_plan(self, plan_id: str) -> None:
        self._delete(DISBURSEMENT_PLANS, plan_id)

    def list_disbursement_tranches(self, plan_id: str) -> List[DisbursementTranche]:
        rows = self._select(DISBURSEMENT_TRANCHES, {"plan_id": plan_id})
        tranches = [DisbursementTranche(**row) for row in rows]
        return sorted(tranches, key=lambda tranche: tranche.tranche_number)

    def get_disbursement_tranche(self, tranche_id: str) -> DisbursementTranche:
        return self._get(DISBURSEMENT_TRANCHES, tranche_id, DisbursementTranche)

    def create_disbursement_tranches(
        self, tranches: List[DisbursementTranche]
    ) -> List[DisbursementTranche]:
        """Insert all tranches of a plan in a single call."""
        payload = [tranche.model_dump(mode="json") for tranche in tranches]
        rows = self._execute(
            DISBURSEMENT_TRANCHES, "insert",
            lambda: self._client.table(DISBURSEMENT_TRANCHES).insert(payload),
        )
        logger.info("Inserted %d %s records", len(payload), DISBURSEMENT_TRANCHES)
        return [DisbursementTranche(**row) for row in (rows or payload)]

    def update_disbursement_tranche(
        self, tranche_id: str, updates: Dict[str, Any]
    ) -> DisbursementTranche:
        return self._update(DISBURSEMENT_TRANCHES, tranche_id, updates, DisbursementTranche)

    def list_technical_support(self, project_id: str) -> List[TechnicalSupport]:
        rows = self._select(TECHNICAL_SUPPORT, {"project_id": project_id}, order_by="created_at")
        return [TechnicalSupport(**row) for row in rows]

    def get_technical_support(self, support_id: str) -> TechnicalSupport:
        return self._get(TECHNICAL_SUPPORT, support_id, TechnicalSupport)

    def create_technical_support(self, support: TechnicalSupport) -> TechnicalSupport:
        return self._insert(TECHNICAL_SUPPORT, support, TechnicalSupport)

    def update_technical_support(self, support_id: str, updates: Dict[str, Any]) -> TechnicalSupport:
        return self._update(TECHNICAL_SUPPORT, support_id, updates, TechnicalSupport)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(self, table: str, action: str, build: Callable[[], Any]) -> List[Dict[str, Any]]:
        """Run a query builder, turning any client failure into StorageError."""
        try:
            response = build().execute()
        except Exception as exc:
            logger.error("storage_call table=%s action=%s result=failure error=%s", table, action, exc)
            raise StorageError(f"{action} on '{table}' failed: {exc}") from exc
        return response.data or []

    def _select(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        def build():
            query = self._client.table(table).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            if order_by:
                query = query.order(order_by, desc=True)
            return query

        return self._execute(table, "select", build)

    def _get(self, table: str, record_id: str, model: Type[ModelT]) -> ModelT:
        rows = self._execute(
            table, "get", lambda: self._client.table(table).select("*").eq("id", record_id)
        )
        if not rows:
            raise NotFoundError(f"No {table} record with id {record_id}")
        return model(**rows[0])

    def _insert(self, table: str, record: BaseModel, model: Type[ModelT]) -> ModelT:
        payload = record.model_dump(mode="json")
        rows = self._execute(table, "insert", lambda: self._client.table(table).insert(payload))
        logger.info("Inserted %s record %s", table, payload.get("id"))
        return model(**rows[0]) if rows else model(**payload)

    def _update(
        self,
        table: str,
        record_id: str,
        updates: Dict[str, Any],
        model: Type[ModelT],
        touch: bool = True,
    ) -> ModelT:
        payload = _to_json(updates)
        if touch:
            payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        rows = self._execute(
            table, "update",
            lambda: self._client.table(table).update(payload).eq("id", record_id),
        )
        if not rows:
            raise NotFoundError(f"No {table} record with id {record_id}")
        logger.info("Updated %s record %s (%s)", table, record_id, ", ".join(sorted(updates)))
        return model(**rows[0])

    def _delete(self, table: str, record_id: str) -> None:
        self._execute(table, "delete", lambda: self._client.table(table).delete().eq("id", record_id))
        logger.info("Deleted %s record %s", table, record_id)


def _to_json(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize update values (models, enums, dates) to JSON-safe primitives."""
    payload = {}
    for column, value in updates.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        elif isinstance(value, dict):
            value = {
                k: v.model_dump(mode="json") if isinstance(v, BaseModel) else v
                for k, v in value.items()
            }
        elif isinstance(value, list):
            value = [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value]
        elif isinstance(value, Enum):
            value = value.value
        elif isinstance(value, date):
            value = value.isoformat()
        payload[column] = value
    return payload
