"""Tests for FormalizationService: documents, disbursement plans, support."""

import pytest

from funding_workflow.errors import (
    FormalizationError,
    PermissionDeniedError,
    StorageError,
    TransitionError,
)
from funding_workflow.models import (
    DocumentRequestStatus,
    FileReference,
    ProjectStatus,
    SupportStatus,
    TrancheStatus,
    ValidationStatus,
)
from funding_workflow.services import FormalizationService, ProjectService, build_tranches

S = ProjectStatus


@pytest.fixture
def projects(seeded_store):
    return ProjectService(seeded_store)


@pytest.fixture
def service(seeded_store, projects):
    return FormalizationService(seeded_store, projects)


@pytest.fixture
def statutes():
    return FileReference(name="statuts.pdf", path="proj-1/statuts.pdf", size=4096, type="application/pdf")


class TestBuildTranches:
    def test_percentages_derived_from_amounts(self):
        tranches = build_tranches(1000, [{"amount": 300}, {"amount": 700}])

        assert [t.percentage for t in tranches] == [30, 70]

    def test_percentages_must_sum_to_100(self):
        with pytest.raises(FormalizationError, match="percentages"):
            build_tranches(1000, [
                {"amount": 300, "percentage": 30},
                {"amount": 700, "percentage": 60},
            ])

    def test_amounts_must_match_total(self):
        with pytest.raises(FormalizationError, match="amounts sum"):
            build_tranches(1000, [{"amount": 300}, {"amount": 600}])

    def test_needs_a_tranche(self):
        with pytest.raises(FormalizationError, match="at least one"):
            build_tranches(1000, [])

    def test_amount_must_be_positive(self):
        with pytest.raises(FormalizationError, match="Tranche 2"):
            build_tranches(1000, [{"amount": 1000}, {"amount": 0}])

    def test_thirds_accepted_despite_rounding(self):
        tranches = build_tranches(900, [{"amount": 300}] * 3)
        assert [t.percentage for t in tranches] == [33.33, 33.33, 33.33]


class TestDocuments:
    def test_request_submit_validate(self, service, make_project, manager, submitter, statutes, seeded_store):
        make_project(status=S.FORMALIZATION)

        request = service.request_document("proj-1", manager, "Company statutes", document_type="statuts")
        submission = service.submit_document(request.id, statutes, submitter)

        assert seeded_store.document_requests[request.id].status == DocumentRequestStatus.SUBMITTED
        assert submission.file_path == "proj-1/statuts.pdf"
        assert submission.file_size == 4096

        reviewed = service.review_submission(submission.id, manager, approved=True, notes="Certified copy")

        assert reviewed.validation_status == ValidationStatus.APPROVED
        assert reviewed.validated_by == manager.id
        assert seeded_store.document_requests[request.id].status == DocumentRequestStatus.VALIDATED

    def test_rejected_document_can_be_resubmitted(self, service, make_project, manager, submitter, statutes):
        make_project(status=S.FORMALIZATION)
        request = service.request_document("proj-1", manager, "Bank details")
        first = service.submit_document(request.id, statutes, submitter)
        service.review_submission(first.id, manager, approved=False, notes="Unsigned")

        second = service.submit_document(request.id, statutes, submitter)

        assert second.id != first.id
        assert service.document_requests("proj-1")[0].status == DocumentRequestStatus.SUBMITTED

    def test_submission_reviewed_once(self, service, make_project, manager, submitter, statutes):
        make_project(status=S.FORMALIZATION)
        request = service.request_document("proj-1", manager, "Bank details")
        submission = service.submit_document(request.id, statutes, submitter)
        service.review_submission(submission.id, manager, approved=True)

        with pytest.raises(FormalizationError, match="already approved"):
            service.review_submission(submission.id, manager, approved=False)

    def test_only_owner_submits(self, service, make_project, manager, other_submitter, statutes):
        make_project(status=S.FORMALIZATION)
        request = service.request_document("proj-1", manager, "Bank details")

        with pytest.raises(PermissionDeniedError):
            service.submit_document(request.id, statutes, other_submitter)

    def test_no_requests_before_selection(self, service, make_project, manager):
        make_project(status=S.UNDER_REVIEW)

        with pytest.raises(FormalizationError, match="after selection"):
            service.request_document("proj-1", manager, "Bank details")


class TestDisbursementPlan:
    def test_plan_uses_program_currency(self, service, make_project, manager):
        make_project(status=S.FORMALIZATION)

        schedule = service.create_disbursement_plan(
            "proj-1", manager, 12_000_000,
            [{"amount": 3_600_000, "conditions": "On signature"}, {"amount": 8_400_000}],
        )

        assert schedule.plan.currency == "XOF"
        assert [t.tranche_number for t in schedule.tranches] == [1, 2]
        assert [t.percentage for t in schedule.tranches] == [30, 70]
        assert service.disbursement_schedule("proj-1").plan.id == schedule.plan.id

    def test_one_plan_per_project(self, service, make_project, manager):
        make_project(status=S.FORMALIZATION)
        service.create_disbursement_plan("proj-1", manager, 1000, [{"amount": 1000}])

        with pytest.raises(FormalizationError, match="already has"):
            service.create_disbursement_plan("proj-1", manager, 1000, [{"amount": 1000}])

    def test_failed_tranche_insert_removes_plan(self, service, make_project, manager, seeded_store):
        make_project(status=S.FORMALIZATION)
        seeded_store.fail_next = "insert_tranches"

        with pytest.raises(StorageError):
            service.create_disbursement_plan("proj-1", manager, 1000, [{"amount": 1000}])

        assert seeded_store.disbursement_plans == {}
        assert service.disbursement_schedule("proj-1") is None

    def test_record_disbursement(self, service, make_project, manager):
        make_project(status=S.FORMALIZATION)
        schedule = service.create_disbursement_plan("proj-1", manager, 1000, [{"amount": 400}, {"amount": 600}])
        first = schedule.tranches[0]

        paid = service.record_disbursement(first.id, manager, reference="VIR-2024-001")

        assert paid.status == TrancheStatus.DISBURSED
        assert paid.actual_amount == 400
        assert service.disbursement_schedule("proj-1").disbursed_amount == 400
        with pytest.raises(FormalizationError, match="already disbursed"):
            service.record_disbursement(first.id, manager)

    def test_submitter_cannot_plan(self, service, make_project, submitter):
        make_project(status=S.FORMALIZATION)
        with pytest.raises(PermissionDeniedError):
            service.create_disbursement_plan("proj-1", submitter, 1000, [{"amount": 1000}])


class TestTechnicalSupport:
    def test_schedule_and_complete(self, service, make_project, manager):
        make_project(status=S.FINANCED)

        session = service.schedule_support(
            "proj-1", manager, "training", "Bookkeeping basics", duration_hours=6, provider="CCI Dakar"
        )
        done = service.update_support_status(session.id, manager, "completed", completion_notes="12 attendees")

        assert done.status == SupportStatus.COMPLETED
        assert done.completion_notes == "12 attendees"
        assert [s.title for s in service.support_sessions("proj-1")] == ["Bookkeeping basics"]

    def test_finished_session_is_frozen(self, service, make_project, manager):
        make_project(status=S.FINANCED)
        session = service.schedule_support("proj-1", manager, "mentoring", "Founder mentoring")
        service.update_support_status(session.id, manager, SupportStatus.CANCELLED)

        with pytest.raises(FormalizationError):
            service.update_support_status(session.id, manager, SupportStatus.IN_PROGRESS)


class TestCompletion:
    def test_full_formalization_reaches_financed(self, service, projects, make_project, manager, submitter, statutes):
        make_project(status=S.FORMALIZATION)
        request = service.request_document("proj-1", manager, "Company statutes")
        service.create_disbursement_plan("proj-1", manager, 1000, [{"amount": 1000}])
        projects.record_nda_signed("proj-1", manager)

        with pytest.raises(TransitionError, match="Company statutes"):
            service.complete_formalization("proj-1", manager)

        submission = service.submit_document(request.id, statutes, submitter)
        service.review_submission(submission.id, manager, approved=True)
        project = service.complete_formalization("proj-1", manager)

        assert project.status == S.FINANCED
        assert project.formalization_completed is True
        assert projects.financing_blockers("proj-1") == []
