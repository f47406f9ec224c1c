"""Tests for ProgramService."""

import pytest

from funding_workflow.errors import CriteriaWeightError, EligibilityRuleError, PermissionDeniedError
from funding_workflow.models import (
    EligibilityCondition,
    EvaluationCriterion,
    FieldEligibilityCriterion,
    FormTemplate,
    Program,
)
from funding_workflow.models.form import FormField
from funding_workflow.services import ProgramService


@pytest.fixture
def service(seeded_store):
    return ProgramService(seeded_store)


def new_program(weights):
    return Program(
        id="prog-new",
        name="Youth Enterprise Fund",
        partner_id="partner-1",
        evaluation_criteria=[
            EvaluationCriterion(id=f"c{i}", name=f"C{i}", weight=w, max_score=10)
            for i, w in enumerate(weights)
        ],
    )


class TestCreateAndUpdate:
    def test_create(self, service, manager, seeded_store):
        service.create_program(new_program([40, 60]), manager)
        assert "prog-new" in seeded_store.programs

    def test_weights_over_100_rejected(self, service, manager, seeded_store):
        with pytest.raises(CriteriaWeightError):
            service.create_program(new_program([70, 60]), manager)
        assert "prog-new" not in seeded_store.programs

    def test_submitter_cannot_create(self, service, submitter):
        with pytest.raises(PermissionDeniedError):
            service.create_program(new_program([50]), submitter)

    def test_update_revalidates_weights(self, service, manager, program):
        criteria = [
            {"id": "a", "name": "Relevance", "weight": 80, "max_score": 10},
            {"id": "b", "name": "Feasibility", "weight": 50, "max_score": 20},
        ]
        with pytest.raises(CriteriaWeightError):
            service.update_program(program.id, {"evaluation_criteria": criteria}, manager)

    def test_update_with_malformed_rule_rejected(self, service, manager, program, seeded_store):
        rules = [{"field_name": "budget", "conditions": {"operator": ">", "value": ""}}]

        with pytest.raises(EligibilityRuleError, match="budget"):
            service.update_program(program.id, {"selection_criteria": rules}, manager)

        assert seeded_store.programs[program.id].selection_criteria == []

    def test_default_currency_applied(self, seeded_store, manager):
        service = ProgramService(seeded_store, default_currency="EUR")

        implicit = service.create_program(new_program([50]), manager)
        explicit = service.create_program(
            Program(id="prog-usd", name="Diaspora Fund", partner_id="partner-1", currency="USD"), manager
        )

        assert implicit.currency == "EUR"
        assert explicit.currency == "USD"

    def test_update_name(self, service, manager, program):
        updated = service.update_program(program.id, {"name": "Agri Innovation 2025"}, manager)
        assert updated.name == "Agri Innovation 2025"


class TestDerivedInputs:
    def test_eligibility_criteria_merges_form_rules(self, service, seeded_store, program):
        program_rule = FieldEligibilityCriterion(
            field_name="region", conditions=EligibilityCondition(operator="==", value="Dakar")
        )
        ignored_rule = FieldEligibilityCriterion(
            field_name="motto", is_eligibility_criteria=False,
            conditions=EligibilityCondition(operator="required"),
        )
        seeded_store.form_templates["form-1"] = FormTemplate(
            id="form-1",
            name="SME application",
            fields=[
                FormField(
                    id="f1", name="employees", label="Number of employees", type="number",
                    eligibility=FieldEligibilityCriterion(
                        field_name="", conditions=EligibilityCondition(operator="between", value=10, value2=20)
                    ),
                ),
                FormField(id="f2", name="story", label="Your story", type="textarea"),
            ],
        )
        program = program.model_copy(update={
            "form_template_id": "form-1",
            "selection_criteria": [program_rule, ignored_rule],
        })

        criteria = service.eligibility_criteria_for(program)

        assert [c.field_name for c in criteria] == ["region", "employees"]
        assert criteria[1].display_label() == "Number of employees (between 10 and 20)"

    def test_evaluation_context(self, service, program):
        context = service.evaluation_context(program)

        assert context.name == "Agri Innovation 2024"
        assert context.partner_name == "Fonds Régional"
        assert context.budget_range == "50,000,000 XOF"

    def test_unknown_partner_leaves_name_blank(self, service, program):
        context = service.evaluation_context(program.model_copy(update={"partner_id": "ghost"}))
        assert context.partner_name == ""
