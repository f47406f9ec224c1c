"""Tests for report payload assembly."""

import pytest

from funding_workflow.errors import IncompleteEvaluationError
from funding_workflow.models import ProjectStatus
from funding_workflow.reporter import ReportGenerator, build_report_payload


@pytest.fixture
def evaluated(make_project):
    return make_project(
        status=ProjectStatus.SELECTED,
        evaluation_scores={"a": 9, "b": 16},
        evaluation_comments={"a": "Strong fit"},
        total_evaluation_score=85,
        recommended_status=ProjectStatus.SELECTED,
        evaluation_notes="Recommended for funding",
        evaluated_by="user-mgr",
    )


class TestBuildReportPayload:
    def test_complete_payload(self, evaluated, program, partner):
        payload = build_report_payload(evaluated, program, partner)

        assert payload.total_score == 85
        assert payload.partner_name == "Fonds Régional"
        assert payload.program_budget == "50,000,000 XOF"
        assert [row.criterion_id for row in payload.criteria] == ["a", "b"]
        assert payload.criteria[0].comment == "Strong fit"
        assert payload.criteria[0].contribution == 45.0
        assert payload.criteria[1].band == "strong"
        assert payload.evaluation_notes == "Recommended for funding"

    def test_unevaluated_project(self, make_project, program, partner):
        with pytest.raises(IncompleteEvaluationError, match="not been evaluated"):
            build_report_payload(make_project(), program, partner)

    def test_missing_criterion_score(self, make_project, program, partner):
        project = make_project(evaluation_scores={"a": 9}, total_evaluation_score=45)

        with pytest.raises(IncompleteEvaluationError, match="Feasibility"):
            build_report_payload(project, program, partner)

    def test_inconsistent_total(self, make_project, program, partner):
        project = make_project(evaluation_scores={"a": 9, "b": 16}, total_evaluation_score=60)

        with pytest.raises(IncompleteEvaluationError, match="does not match"):
            build_report_payload(project, program, partner)

    def test_generator_loads_from_store(self, seeded_store, evaluated):
        payload = ReportGenerator(seeded_store).generate(evaluated.id)

        assert payload.project_id == evaluated.id
        assert payload.program_name == "Agri Innovation 2024"
