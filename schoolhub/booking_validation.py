"""Validation of candidate classroom bookings.

A booking is entered as two calendar dates and two times of day. They are
combined into naive local wall-clock instants exactly as the user typed
them; no timezone conversion takes place, so start and end stay comparable.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from .errors import BookingValidationError

PURPOSE_MAX_LENGTH = 500

_REQUIRED_MESSAGES = {
    "classroom_id": "Please select a classroom",
    "teacher_id": "Please select a teacher",
}


def _require_local_time(value: time) -> time:
    # Booking times are naive local wall-clock times.
    if value.tzinfo is not None:
        raise PydanticCustomError("time_has_offset", "Enter a local time without a timezone offset")
    return value


class BookingDraft(BaseModel):
    """Accepted booking fields with the instants already combined."""

    model_config = ConfigDict(frozen=True)

    classroom_id: str
    teacher_id: str
    start_time: datetime
    end_time: datetime
    purpose: str


class BookingForm(BaseModel):
    """Booking input as submitted from the booking form.

    Field order matters: ``end_time`` is checked against the fields declared
    before it, so the ordering error is reported on ``end_time``.
    """

    classroom_id: str
    teacher_id: str
    start_date: date
    start_time: time
    end_date: date
    end_time: time
    purpose: str

    @field_validator("classroom_id", "teacher_id")
    @classmethod
    def _require_identifier(cls, value: str, info: ValidationInfo) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("missing_reference", _REQUIRED_MESSAGES[info.field_name])
        return value

    @field_validator("start_time")
    @classmethod
    def _start_is_local(cls, value: time) -> time:
        return _require_local_time(value)

    @field_validator("end_time")
    @classmethod
    def _end_after_start(cls, value: time, info: ValidationInfo) -> time:
        value = _require_local_time(value)
        data = info.data
        if not {"start_date", "start_time", "end_date"} <= data.keys():
            return value
        start = datetime.combine(data["start_date"], data["start_time"])
        end = datetime.combine(data["end_date"], value)
        if end <= start:
            raise PydanticCustomError("end_before_start", "End time must be after start time")
        return value

    @field_validator("purpose")
    @classmethod
    def _check_purpose(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("purpose_missing", "Please provide a purpose for the booking")
        if len(value) > PURPOSE_MAX_LENGTH:
            raise PydanticCustomError(
                "purpose_too_long", "Purpose cannot exceed {max_length} characters", {"max_length": PURPOSE_MAX_LENGTH}
            )
        return value

    @property
    def start(self) -> datetime:
        return datetime.combine(self.start_date, self.start_time)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.end_date, self.end_time)

    def to_draft(self) -> BookingDraft:
        return BookingDraft(
            classroom_id=self.classroom_id,
            teacher_id=self.teacher_id,
            start_time=self.start,
            end_time=self.end,
            purpose=self.purpose,
        )


def validate_booking(data: Mapping[str, Any] | BookingForm) -> BookingDraft:
    """
    Validate a candidate booking and return its normalized draft.

    Parameters
    ----------
    data : Mapping or BookingForm
        Raw form values, or a form that has already been parsed.

    Returns
    -------
    BookingDraft
        The accepted fields with ``start_time``/``end_time`` as datetimes.

    Raises
    ------
    BookingValidationError
        If a required field is empty, the purpose is too long, or the end
        is not strictly after the start. Nothing is written in that case.
    """
    if isinstance(data, BookingForm):
        return data.to_draft()
    try:
        form = BookingForm.model_validate(data)
    except ValidationError as exc:
        raise BookingValidationError.from_pydantic(exc) from exc
    return form.to_draft()
