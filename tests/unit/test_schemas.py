"""Unit tests for schema validation."""
from datetime import datetime

import pytest
from pydantic import ValidationError

from schoolhub.models import BookingStatus, Classroom, ClassroomType, RoleEnum, RoomBooking, Teacher
from schoolhub.schemas import (
    Actor,
    BookingRead,
    BookingStatusUpdate,
    ClassroomCreate,
    SweepResult,
    UserCreate,
)


class TestUserSchemas:
    def test_default_role_is_user(self):
        user = UserCreate(name="Jane Doe", username="janedoe", email="jane@example.com", password="SecurePass123!")

        assert user.role == RoleEnum.USER

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            UserCreate(name="Test", username="test", email="invalid-email", password="Password123")

    def test_short_password(self):
        with pytest.raises(ValidationError):
            UserCreate(name="Test", username="test", email="t@example.com", password="short")


class TestClassroomSchemas:
    def test_defaults(self):
        room = ClassroomCreate(name="Room 12", room_number="12", capacity=30)

        assert room.type == ClassroomType.STANDARD
        assert room.building == "Main Building"
        assert room.is_available is True

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            ClassroomCreate(name="Pool", room_number="P1", capacity=10, type="swimming_pool")

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            ClassroomCreate(name="Cupboard", room_number="X", capacity=0)


class TestBookingSchemas:
    def test_booking_read_from_orm(self):
        booking = RoomBooking(
            id="b-1",
            classroom_id="c-1",
            teacher_id="t-1",
            start_time=datetime(2025, 3, 3, 9, 0),
            end_time=datetime(2025, 3, 3, 10, 0),
            purpose="Choir practice",
            status=BookingStatus.APPROVED,
            created_by="u-1",
            created_at=datetime(2025, 3, 1, 8, 0),
        )
        booking.classroom = Classroom(name="Music Room", room_number="M-1")
        booking.teacher = Teacher(name="Mr Green")

        read = BookingRead.model_validate(booking)

        assert read.status == BookingStatus.APPROVED
        assert read.classroom.room_number == "M-1"
        assert read.teacher.name == "Mr Green"

    def test_status_update_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            BookingStatusUpdate(status="archived")

    def test_actor_is_admin(self):
        assert Actor(id="u-1", role=RoleEnum.ADMIN).is_admin is True
        assert Actor(id="u-2", role=RoleEnum.USER, teacher_id="t-1").is_admin is False


class TestSweepResult:
    def test_serializes_with_camel_case_counts(self):
        result = SweepResult(message="Successfully deleted 3 expired bookings", deleted_count=3)

        assert result.model_dump(by_alias=True, exclude_none=True) == {
            "message": "Successfully deleted 3 expired bookings",
            "deletedCount": 3,
        }
