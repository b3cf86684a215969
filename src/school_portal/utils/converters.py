"""Conversion between pydantic identity records and SQLAlchemy models."""

from typing import Type

from school_portal.models.student import StudentModel
from school_portal.schemas.user import IdentityRecord, Role

_STUDENT_FIELDS = (
    "class_name",
    "division",
    "parent_name",
    "place",
    "roll_number",
    "phone",
    "email_sent",
)


def record_to_model(record: IdentityRecord, model_cls: Type):
    """Build a model instance of ``model_cls`` from an identity record."""
    values = record.model_dump(exclude=set(_STUDENT_FIELDS))
    values["role"] = Role(record.role).value
    if model_cls is StudentModel:
        for name in _STUDENT_FIELDS:
            values[name] = getattr(record, name)
        values["roll_number"] = values["roll_number"] or ""
        values["phone"] = values["phone"] or ""
        values["email_sent"] = bool(values["email_sent"])
    return model_cls(**values)


def model_to_record(model) -> IdentityRecord:
    return IdentityRecord.model_validate(model)
