"""Tests for the tagged form value union and model coercions."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from funding_workflow.models import Project, to_field_value
from funding_workflow.models.form import (
    BooleanValue,
    DateValue,
    FileValue,
    MultipleSelectValue,
    NumberValue,
    TextValue,
    field_text,
    is_blank,
)


class TestToFieldValue:
    @pytest.mark.parametrize("raw,variant", [
        ("Dakar", TextValue),
        (None, TextValue),
        (True, BooleanValue),
        (12, NumberValue),
        (3.5, NumberValue),
        (date(2024, 3, 1), DateValue),
        (datetime(2024, 3, 1, 9, 30), DateValue),
        (["Energy", "Agriculture"], MultipleSelectValue),
        ([{"name": "statuts.pdf", "path": "docs/statuts.pdf"}], FileValue),
    ])
    def test_plain_values_lifted(self, raw, variant):
        assert isinstance(to_field_value(raw), variant)

    def test_tagged_dict_validated(self):
        value = to_field_value({"type": "textarea", "value": "Long story"})
        assert value.type == "textarea"
        assert field_text(value) == "Long story"

    def test_single_file_reference_lifted(self):
        value = to_field_value(
            {"name": "plan.pdf", "path": "p1/plan.pdf", "size": 2048, "type": "application/pdf", "url": None}
        )

        assert isinstance(value, FileValue)
        assert value.files[0].path == "p1/plan.pdf"
        assert value.files[0].type == "application/pdf"
        assert field_text(value) == "plan.pdf"

    def test_dict_without_known_tag_is_text(self):
        value = to_field_value({"type": "rating", "value": 4})
        assert isinstance(value, TextValue)


class TestRendering:
    def test_field_text(self):
        assert field_text(NumberValue(value=12.0)) == "12"
        assert field_text(NumberValue(value=12.5)) == "12.5"
        assert field_text(BooleanValue(value=False)) == "false"
        assert field_text(DateValue(value=date(2024, 3, 1))) == "2024-03-01"
        assert field_text(to_field_value([{"name": "a.pdf", "path": "x/a.pdf"}, {"name": "b.pdf", "path": "x/b.pdf"}])) == "a.pdf, b.pdf"

    def test_is_blank(self):
        assert is_blank(TextValue(value="  "))
        assert is_blank(MultipleSelectValue(values=[]))
        assert not is_blank(BooleanValue(value=False))


class TestProject:
    def test_null_collections_from_storage(self):
        project = Project(
            id="p", title="T", submitter_id="u", program_id="g",
            tags=None, evaluation_scores=None, evaluation_comments=None, form_data=None,
        )
        assert project.tags == []
        assert project.evaluation_scores == {}
        assert project.form_data == {}
        assert project.is_evaluated is False

    def test_file_reference_survives_storage_round_trip(self):
        project = Project(
            id="p", title="T", submitter_id="u", program_id="g",
            form_data={"business_plan": {"name": "plan.pdf", "path": "p1/plan.pdf", "size": 2048}},
        )

        reloaded = Project(**project.model_dump(mode="json"))

        value = reloaded.form_data["business_plan"]
        assert isinstance(value, FileValue)
        assert value.files[0].name == "plan.pdf"
        assert value.files[0].size == 2048

    def test_total_bounded(self):
        with pytest.raises(ValidationError):
            Project(id="p", title="T", submitter_id="u", program_id="g", total_evaluation_score=120)
