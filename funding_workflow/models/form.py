"""Typed form values and form templates.

Submitted form data is a closed, tagged set of variants discriminated on
``type``. Callers holding plain Python values lift them with
``to_field_value``.
"""

from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, Union, get_args
from pydantic import BaseModel, Field, TypeAdapter

from .eligibility import FieldEligibilityCriterion


FieldType = Literal[
    "text", "textarea", "number", "select", "boolean", "date", "file", "multiple_select"
]


class FileReference(BaseModel):
    """Opaque pointer to an uploaded file."""

    name: str
    path: str
    size: int = 0
    type: str = ""
    url: Optional[str] = None


class TextValue(BaseModel):
    type: Literal["text"] = "text"
    value: Optional[str] = None


class TextareaValue(BaseModel):
    type: Literal["textarea"] = "textarea"
    value: Optional[str] = None


class NumberValue(BaseModel):
    type: Literal["number"] = "number"
    value: Optional[float] = None


class SelectValue(BaseModel):
    type: Literal["select"] = "select"
    value: Optional[str] = None


class BooleanValue(BaseModel):
    type: Literal["boolean"] = "boolean"
    value: Optional[bool] = None


class DateValue(BaseModel):
    type: Literal["date"] = "date"
    value: Optional[date] = None


class FileValue(BaseModel):
    type: Literal["file"] = "file"
    files: list[FileReference] = Field(default_factory=list)


class MultipleSelectValue(BaseModel):
    type: Literal["multiple_select"] = "multiple_select"
    values: list[str] = Field(default_factory=list)


FieldValue = Annotated[
    Union[
        TextValue,
        TextareaValue,
        NumberValue,
        SelectValue,
        BooleanValue,
        DateValue,
        FileValue,
        MultipleSelectValue,
    ],
    Field(discriminator="type"),
]

_FIELD_VALUE_ADAPTER = TypeAdapter(FieldValue)
_VARIANTS = (
    TextValue,
    TextareaValue,
    NumberValue,
    SelectValue,
    BooleanValue,
    DateValue,
    FileValue,
    MultipleSelectValue,
)


def _looks_like_file(item: Any) -> bool:
    return isinstance(item, FileReference) or (isinstance(item, dict) and "path" in item)


def to_field_value(raw: Any) -> FieldValue:
    """Lift a plain Python value (or a tagged dict) into a form value variant."""
    if isinstance(raw, _VARIANTS):
        return raw
    if _looks_like_file(raw):
        return FileValue(files=[raw])
    if isinstance(raw, dict) and raw.get("type") in get_args(FieldType):
        return _FIELD_VALUE_ADAPTER.validate_python(raw)
    if raw is None:
        return TextValue(value=None)
    if isinstance(raw, bool):
        return BooleanValue(value=raw)
    if isinstance(raw, (int, float)):
        return NumberValue(value=float(raw))
    if isinstance(raw, datetime):
        return DateValue(value=raw.date())
    if isinstance(raw, date):
        return DateValue(value=raw)
    if isinstance(raw, (list, tuple)):
        if raw and all(_looks_like_file(item) for item in raw):
            return FileValue(files=list(raw))
        return MultipleSelectValue(values=[str(item) for item in raw])
    return TextValue(value=str(raw))


def is_blank(value: FieldValue) -> bool:
    """True when a form value carries nothing a reviewer could check."""
    if isinstance(value, (TextValue, TextareaValue, SelectValue)):
        return value.value is None or not value.value.strip()
    if isinstance(value, (NumberValue, BooleanValue, DateValue)):
        return value.value is None
    if isinstance(value, FileValue):
        return not value.files
    if isinstance(value, MultipleSelectValue):
        return not [v for v in value.values if v.strip()]
    raise TypeError(f"Unsupported form value type: {type(value).__name__}")


def _format_number(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def field_text(value: FieldValue) -> str:
    """String rendering used for equality and substring rules and prompts."""
    if isinstance(value, (TextValue, TextareaValue, SelectValue)):
        return value.value or ""
    if isinstance(value, NumberValue):
        return "" if value.value is None else _format_number(value.value)
    if isinstance(value, BooleanValue):
        return "" if value.value is None else str(value.value).lower()
    if isinstance(value, DateValue):
        return "" if value.value is None else value.value.isoformat()
    if isinstance(value, FileValue):
        return ", ".join(f.name for f in value.files)
    if isinstance(value, MultipleSelectValue):
        return ", ".join(value.values)
    raise TypeError(f"Unsupported form value type: {type(value).__name__}")


class FormField(BaseModel):
    """One field of a program's submission form."""

    id: str
    name: str = Field(..., description="Key under which the value is stored in form_data")
    label: str
    type: FieldType
    required: bool = False
    options: list[str] = Field(default_factory=list)
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    eligibility: Optional[FieldEligibilityCriterion] = Field(
        None, description="Pre-screening rule evaluated against this field"
    )


class FormTemplate(BaseModel):
    """Reusable submission form definition."""

    id: str
    name: str
    description: str = ""
    fields: list[FormField] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def eligibility_criteria(self) -> list[FieldEligibilityCriterion]:
        criteria = []
        for form_field in self.fields:
            rule = form_field.eligibility
            if rule is None or not rule.is_eligibility_criteria:
                continue
            criteria.append(rule.model_copy(update={
                "field_name": form_field.name,
                "label": rule.label or form_field.label,
            }))
        return criteria
