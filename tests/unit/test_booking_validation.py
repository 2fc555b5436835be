"""Unit tests for booking form validation."""
from datetime import datetime

import pytest

from schoolhub.booking_validation import PURPOSE_MAX_LENGTH, BookingForm, validate_booking
from schoolhub.errors import BookingValidationError


def form(**overrides) -> dict:
    data = {
        "classroom_id": "room-1",
        "teacher_id": "teacher-1",
        "start_date": "2025-05-12",
        "start_time": "09:00",
        "end_date": "2025-05-12",
        "end_time": "10:00",
        "purpose": "Biology practical",
    }
    data.update(overrides)
    return data


class TestValidateBooking:
    """Candidate bookings are combined into local instants and checked."""

    def test_valid_form_becomes_draft(self):
        draft = validate_booking(form())

        assert draft.classroom_id == "room-1"
        assert draft.teacher_id == "teacher-1"
        assert draft.start_time == datetime(2025, 5, 12, 9, 0)
        assert draft.end_time == datetime(2025, 5, 12, 10, 0)
        assert draft.purpose == "Biology practical"

    def test_combined_instants_are_naive(self):
        draft = validate_booking(form())

        assert draft.start_time.tzinfo is None
        assert draft.end_time.tzinfo is None

    def test_end_before_start_reported_on_end_time(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(start_time="14:00", end_time="13:00"))

        assert exc_info.value.errors == {"end_time": ["End time must be after start time"]}

    def test_end_equal_to_start_rejected(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(start_time="09:00", end_time="09:00"))

        assert "end_time" in exc_info.value.errors

    def test_end_on_later_day_accepted(self):
        draft = validate_booking(form(start_time="23:00", end_date="2025-05-13", end_time="01:00"))

        assert draft.end_time == datetime(2025, 5, 13, 1, 0)

    def test_end_on_earlier_day_rejected(self):
        with pytest.raises(BookingValidationError):
            validate_booking(form(start_time="08:00", end_date="2025-05-11", end_time="18:00"))

    def test_blank_references_rejected(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(classroom_id="", teacher_id="   "))

        assert exc_info.value.errors["classroom_id"] == ["Please select a classroom"]
        assert exc_info.value.errors["teacher_id"] == ["Please select a teacher"]

    def test_empty_purpose_rejected(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(purpose=""))

        assert exc_info.value.errors == {"purpose": ["Please provide a purpose for the booking"]}

    def test_purpose_length_limit(self):
        assert validate_booking(form(purpose="a" * PURPOSE_MAX_LENGTH)).purpose == "a" * PURPOSE_MAX_LENGTH

        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(purpose="a" * (PURPOSE_MAX_LENGTH + 1)))

        assert exc_info.value.errors == {"purpose": ["Purpose cannot exceed 500 characters"]}

    def test_all_errors_reported_together(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(classroom_id="", purpose="", start_time="10:00", end_time="09:00"))

        assert set(exc_info.value.errors) == {"classroom_id", "purpose", "end_time"}

    def test_missing_field_reported(self):
        data = form()
        del data["end_date"]

        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(data)

        assert "end_date" in exc_info.value.errors
        assert "end_time" not in exc_info.value.errors

    def test_parsed_form_is_accepted(self):
        parsed = BookingForm.model_validate(form())

        assert validate_booking(parsed).start_time == datetime(2025, 5, 12, 9, 0)

    def test_start_time_with_offset_rejected(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(start_time="09:00Z", end_time="10:00"))

        assert exc_info.value.errors == {"start_time": ["Enter a local time without a timezone offset"]}

    def test_end_time_with_offset_rejected(self):
        with pytest.raises(BookingValidationError) as exc_info:
            validate_booking(form(start_time="09:00", end_time="10:00+02:00"))

        assert exc_info.value.errors == {"end_time": ["Enter a local time without a timezone offset"]}
