"""Unit tests for the booking status lifecycle."""
from datetime import datetime, timedelta

import pytest

from schoolhub.errors import InvalidStatusTransition, StorageError
from schoolhub.lifecycle import (
    Trigger,
    ensure_transition,
    is_allowed_transition,
    is_completable,
    is_purgeable,
    sweep_complete_expired_approved,
    sweep_delete_expired_completed,
)
from schoolhub.models import BookingStatus, RoomBooking

NOW = datetime(2025, 6, 2, 12, 0)


class RecordingStore:
    """Stands in for BookingStore and remembers the cutoff it was given."""

    def __init__(self, count: int = 0) -> None:
        self.count = count
        self.cutoffs: list[datetime] = []

    def complete_expired(self, now: datetime) -> int:
        self.cutoffs.append(now)
        return self.count

    def delete_expired_completed(self, now: datetime) -> int:
        self.cutoffs.append(now)
        return self.count


class TestTransitions:
    def test_creation_only_produces_pending(self):
        assert is_allowed_transition(None, BookingStatus.PENDING, Trigger.CREATE)
        assert not is_allowed_transition(None, BookingStatus.APPROVED, Trigger.CREATE)
        assert not is_allowed_transition(BookingStatus.PENDING, BookingStatus.PENDING, Trigger.CREATE)

    @pytest.mark.parametrize("current", list(BookingStatus))
    @pytest.mark.parametrize("target", list(BookingStatus))
    def test_admin_may_set_any_status(self, current, target):
        assert is_allowed_transition(current, target, Trigger.ADMIN_EDIT)

    def test_sweep_only_completes_approved(self):
        assert is_allowed_transition(BookingStatus.APPROVED, BookingStatus.COMPLETED, Trigger.SWEEP)
        assert not is_allowed_transition(BookingStatus.PENDING, BookingStatus.COMPLETED, Trigger.SWEEP)
        assert not is_allowed_transition(BookingStatus.COMPLETED, BookingStatus.PENDING, Trigger.SWEEP)

    def test_ensure_transition_raises(self):
        with pytest.raises(InvalidStatusTransition) as exc_info:
            ensure_transition(BookingStatus.REJECTED, BookingStatus.COMPLETED, Trigger.SWEEP)

        assert exc_info.value.status_code == 409


class TestPredicates:
    def test_is_completable(self):
        ended = RoomBooking(status=BookingStatus.APPROVED, end_time=NOW - timedelta(minutes=1))
        running = RoomBooking(status=BookingStatus.APPROVED, end_time=NOW + timedelta(minutes=1))
        pending = RoomBooking(status=BookingStatus.PENDING, end_time=NOW - timedelta(hours=1))

        assert is_completable(ended, NOW)
        assert not is_completable(running, NOW)
        assert not is_completable(pending, NOW)

    def test_boundary_is_not_expired(self):
        booking = RoomBooking(status=BookingStatus.COMPLETED, end_time=NOW)

        assert not is_purgeable(booking, NOW)
        assert is_purgeable(booking, NOW + timedelta(seconds=1))


class TestSweeps:
    def test_completion_sweep_result(self):
        store = RecordingStore(count=4)

        result = sweep_complete_expired_approved(store, NOW)

        assert store.cutoffs == [NOW]
        assert result.message == "Booking statuses updated successfully"
        assert result.updated_count == 4
        assert result.deleted_count is None

    def test_cleanup_sweep_result(self):
        store = RecordingStore(count=2)

        result = sweep_delete_expired_completed(store, NOW)

        assert result.message == "Successfully deleted 2 expired bookings"
        assert result.deleted_count == 2
        assert result.updated_count is None

    def test_sweep_defaults_to_wall_clock(self):
        store = RecordingStore()
        before = datetime.now()

        sweep_complete_expired_approved(store)

        assert before <= store.cutoffs[0] <= datetime.now()

    def test_storage_error_propagates(self):
        class FailingStore(RecordingStore):
            def delete_expired_completed(self, now: datetime) -> int:
                raise StorageError("delete expired bookings: OperationalError")

        with pytest.raises(StorageError):
            sweep_delete_expired_completed(FailingStore(), NOW)
