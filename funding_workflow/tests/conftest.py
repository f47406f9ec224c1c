"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from funding_workflow.errors import NotFoundError, StorageError
from funding_workflow.models import (
    DisbursementPlan,
    DisbursementTranche,
    DocumentRequest,
    DocumentSubmission,
    EvaluationCriterion,
    FormTemplate,
    Partner,
    Program,
    Project,
    ProjectStatus,
    Role,
    TechnicalSupport,
    User,
)


class InMemoryStore:
    """In-memory replacement for SupabaseClient."""

    def __init__(self):
        self.projects: Dict[str, Project] = {}
        self.programs: Dict[str, Program] = {}
        self.partners: Dict[str, Partner] = {}
        self.form_templates: Dict[str, FormTemplate] = {}
        self.document_requests: Dict[str, DocumentRequest] = {}
        self.document_submissions: Dict[str, DocumentSubmission] = {}
        self.disbursement_plans: Dict[str, DisbursementPlan] = {}
        self.disbursement_tranches: Dict[str, DisbursementTranche] = {}
        self.technical_support: Dict[str, TechnicalSupport] = {}
        self.update_calls: List[tuple] = []
        self.fail_next: Optional[str] = None

    def _maybe_fail(self, action: str):
        if self.fail_next == action:
            self.fail_next = None
            raise StorageError(f"{action} on 'projects' failed: connection reset")

    # Projects
    def list_projects(self, program_id: Optional[str] = None) -> List[Project]:
        self._maybe_fail("select")
        projects = sorted(self.projects.values(), key=lambda p: p.updated_at, reverse=True)
        if program_id:
            projects = [p for p in projects if p.program_id == program_id]
        return projects

    def get_project(self, project_id: str) -> Project:
        if project_id not in self.projects:
            raise NotFoundError(f"No projects record with id {project_id}")
        return self.projects[project_id]

    def create_project(self, project: Project) -> Project:
        self._maybe_fail("insert")
        self.projects[project.id] = project
        return project

    def update_project(self, project_id: str, updates: Dict[str, Any]) -> Project:
        self._maybe_fail("update")
        current = self.get_project(project_id)
        updated = Project.model_validate({
            **current.model_dump(),
            **updates,
            "updated_at": datetime.now(timezone.utc),
        })
        self.projects[project_id] = updated
        self.update_calls.append((project_id, dict(updates)))
        return updated

    def delete_project(self, project_id: str) -> None:
        self._maybe_fail("delete")
        self.projects.pop(project_id, None)

    # Programs, partners, templates
    def list_programs(self, partner_id: Optional[str] = None) -> List[Program]:
        return [p for p in self.programs.values() if partner_id in (None, p.partner_id)]

    def get_program(self, program_id: str) -> Program:
        if program_id not in self.programs:
            raise NotFoundError(f"No programs record with id {program_id}")
        return self.programs[program_id]

    def create_program(self, program: Program) -> Program:
        self.programs[program.id] = program
        return program

    def update_program(self, program_id: str, updates: Dict[str, Any]) -> Program:
        updated = Program.model_validate({**self.get_program(program_id).model_dump(), **updates})
        self.programs[program_id] = updated
        return updated

    def get_partner(self, partner_id: str) -> Partner:
        if partner_id not in self.partners:
            raise NotFoundError(f"No partners record with id {partner_id}")
        return self.partners[partner_id]

    def get_form_template(self, template_id: str) -> FormTemplate:
        if template_id not in self.form_templates:
            raise NotFoundError(f"No form_templates record with id {template_id}")
        return self.form_templates[template_id]

    # Formalization
    def _record(self, table: Dict[str, Any], name: str, record_id: str):
        if record_id not in table:
            raise NotFoundError(f"No {name} record with id {record_id}")
        return table[record_id]

    def _patch(self, table: Dict[str, Any], name: str, record_id: str, updates: Dict[str, Any]):
        current = self._record(table, name, record_id)
        updated = type(current).model_validate({**current.model_dump(), **updates})
        table[record_id] = updated
        return updated

    def list_document_requests(self, project_id: str) -> List[DocumentRequest]:
        return [r for r in self.document_requests.values() if r.project_id == project_id]

    def get_document_request(self, request_id: str) -> DocumentRequest:
        return self._record(self.document_requests, "document_requests", request_id)

    def create_document_request(self, request: DocumentRequest) -> DocumentRequest:
        self.document_requests[request.id] = request
        return request

    def update_document_request(self, request_id: str, updates: Dict[str, Any]) -> DocumentRequest:
        return self._patch(self.document_requests, "document_requests", request_id, updates)

    def list_document_submissions(self, request_id: str) -> List[DocumentSubmission]:
        return [s for s in self.document_submissions.values() if s.request_id == request_id]

    def get_document_submission(self, submission_id: str) -> DocumentSubmission:
        return self._record(self.document_submissions, "document_submissions", submission_id)

    def create_document_submission(self, submission: DocumentSubmission) -> DocumentSubmission:
        self.document_submissions[submission.id] = submission
        return submission

    def update_document_submission(self, submission_id: str, updates: Dict[str, Any]) -> DocumentSubmission:
        return self._patch(self.document_submissions, "document_submissions", submission_id, updates)

    def get_disbursement_plan(self, project_id: str) -> Optional[DisbursementPlan]:
        return next((p for p in self.disbursement_plans.values() if p.project_id == project_id), None)

    def create_disbursement_plan(self, plan: DisbursementPlan) -> DisbursementPlan:
        self.disbursement_plans[plan.id] = plan
        return plan

    def delete_disbursement_plan(self, plan_id: str) -> None:
        self.disbursement_plans.pop(plan_id, None)

    def list_disbursement_tranches(self, plan_id: str) -> List[DisbursementTranche]:
        tranches = [t for t in self.disbursement_tranches.values() if t.plan_id == plan_id]
        return sorted(tranches, key=lambda t: t.tranche_number)

    def get_disbursement_tranche(self, tranche_id: str) -> DisbursementTranche:
        return self._record(self.disbursement_tranches, "disbursement_tranches", tranche_id)

    def create_disbursement_tranches(self, tranches: List[DisbursementTranche]) -> List[DisbursementTranche]:
        self._maybe_fail("insert_tranches")
        for tranche in tranches:
            self.disbursement_tranches[tranche.id] = tranche
        return list(tranches)

    def update_disbursement_tranche(self, tranche_id: str, updates: Dict[str, Any]) -> DisbursementTranche:
        return self._patch(self.disbursement_tranches, "disbursement_tranches", tranche_id, updates)

    def list_technical_support(self, project_id: str) -> List[TechnicalSupport]:
        return [s for s in self.technical_support.values() if s.project_id == project_id]

    def get_technical_support(self, support_id: str) -> TechnicalSupport:
        return self._record(self.technical_support, "technical_support", support_id)

    def create_technical_support(self, support: TechnicalSupport) -> TechnicalSupport:
        self.technical_support[support.id] = support
        return support

    def update_technical_support(self, support_id: str, updates: Dict[str, Any]) -> TechnicalSupport:
        return self._patch(self.technical_support, "technical_support", support_id, updates)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def criteria():
    """Two equally weighted criteria; {a: 7, b: 14} totals 70."""
    return [
        EvaluationCriterion(id="a", name="Relevance", weight=50, max_score=10),
        EvaluationCriterion(id="b", name="Feasibility", weight=50, max_score=20),
    ]


@pytest.fixture
def partner():
    return Partner(id="partner-1", name="Fonds Régional")


@pytest.fixture
def program(criteria, partner):
    return Program(
        id="prog-1",
        name="Agri Innovation 2024",
        description="Support for agricultural SMEs",
        partner_id=partner.id,
        budget=50_000_000,
        evaluation_criteria=criteria,
    )


@pytest.fixture
def submitter():
    return User(id="user-sub", email="owner@example.org", name="Awa", role=Role.SUBMITTER)


@pytest.fixture
def other_submitter():
    return User(id="user-other", email="other@example.org", role=Role.SUBMITTER)


@pytest.fixture
def manager():
    return User(id="user-mgr", email="manager@example.org", name="Moussa", role=Role.MANAGER)


@pytest.fixture
def admin():
    return User(id="user-admin", email="admin@example.org", role=Role.ADMIN)


@pytest.fixture
def partner_user(partner):
    return User(id="user-partner", email="partner@example.org", role=Role.PARTNER, partner_id=partner.id)


@pytest.fixture
def seeded_store(store, program, partner):
    store.programs[program.id] = program
    store.partners[partner.id] = partner
    return store


@pytest.fixture
def make_project(seeded_store, submitter, program):
    """Factory storing a project in the given status."""

    def _make(
        project_id: str = "proj-1",
        status: ProjectStatus = ProjectStatus.SUBMITTED,
        **fields: Any,
    ) -> Project:
        data = {
            "id": project_id,
            "title": f"Project {project_id}",
            "description": "Solar-powered cold storage for cooperatives in rural areas",
            "status": status,
            "budget": 12_000_000,
            "timeline": "18 months",
            "submitter_id": submitter.id,
            "program_id": program.id,
        }
        data.update(fields)
        project = Project(**data)
        seeded_store.projects[project.id] = project
        return project

    return _make
