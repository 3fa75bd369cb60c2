"""Form-derived description of an archived document."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from archive.exceptions import InvalidDescriptorError


COURSE_CODE_PATTERN = r"^[A-Z]{2}[0-9]{4}$"


class Study(str, Enum):
    COMPUTER_SCIENCE = "computer-science"
    APPLIED_MATHEMATICS = "applied-mathematics"


class AcademicYear(str, Enum):
    FIRST_YEAR = "first-year"
    SECOND_YEAR = "second-year"
    THIRD_YEAR = "third-year"
    MASTER = "master"


class DocumentType(str, Enum):
    EXAM = "exam"
    MIDTERM = "midterm"
    RESIT = "resit"
    SUMMARY = "summary"


def checkbox_value(value: Any) -> bool:
    """Interpret an HTML checkbox field; browsers send ``on`` when ticked."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    return lowered in {"on", "true", "1", "yes"}


class UploadDescriptor(BaseModel):
    """Where an uploaded document belongs in the archive hierarchy."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    study: Study
    year: AcademicYear | None = None
    code: str = Field(..., pattern=COURSE_CODE_PATTERN)
    type: DocumentType
    answers: bool = False
    exam_date: date | None = Field(None, alias="date")

    @field_validator("answers", mode="before")
    @classmethod
    def _checkbox(cls, value: Any) -> bool:
        return checkbox_value(value)

    @field_validator("year", "exam_date", mode="before")
    @classmethod
    def _blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _year_or_date(self) -> "UploadDescriptor":
        if self.year is None and self.exam_date is None:
            raise ValueError("either an academic year or an exam date is required")
        return self

    @classmethod
    def from_form(cls, fields: Mapping[str, Any]) -> "UploadDescriptor":
        """Build a descriptor from raw form fields.

        Raises:
            InvalidDescriptorError: If any field is missing or outside its allowed values.
        """
        payload = {
            name: fields.get(name)
            for name in ("study", "year", "code", "type", "answers", "date")
            if fields.get(name) is not None
        }
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            problems = {
                ".".join(str(part) for part in error["loc"]) or "form": error["msg"]
                for error in exc.errors()
            }
            summary = "; ".join(f"{field}: {msg}" for field, msg in problems.items())
            raise InvalidDescriptorError(f"Invalid upload form: {summary}", problems) from exc


__all__ = [
    "COURSE_CODE_PATTERN",
    "Study",
    "AcademicYear",
    "DocumentType",
    "UploadDescriptor",
    "checkbox_value",
]
