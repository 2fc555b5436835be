"""Persistence of room bookings behind a small typed store."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .booking_validation import BookingDraft
from .errors import NotFoundError, StorageError
from .lifecycle import COMPLETABLE_STATUS, INITIAL_STATUS, PURGEABLE_STATUS
from .models import BookingStatus, RoomBooking

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset({"classroom_id", "teacher_id", "start_time", "end_time", "purpose", "status"})


class BookingStore:
    """Reads and writes ``room_bookings`` rows through one session.

    Every write commits on success; on failure the session is rolled back
    and a ``StorageError`` is raised with the driver error chained.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _fail(self, action: str, exc: SQLAlchemyError) -> StorageError:
        self.db.rollback()
        logger.error("Booking store failed to %s: %s", action, exc)
        if isinstance(exc, IntegrityError):
            # Missing classroom, teacher or creator surfaces here.
            return StorageError(f"{action}: integrity violation", "The referenced classroom or teacher is not available.")
        return StorageError(f"{action}: {exc.__class__.__name__}")

    def insert_pending(self, draft: BookingDraft, created_by: str) -> RoomBooking:
        booking = RoomBooking(
            classroom_id=draft.classroom_id,
            teacher_id=draft.teacher_id,
            start_time=draft.start_time,
            end_time=draft.end_time,
            purpose=draft.purpose,
            status=INITIAL_STATUS,
            created_by=created_by,
        )
        try:
            self.db.add(booking)
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError as exc:
            raise self._fail("insert booking", exc) from exc
        return booking

    def get(self, booking_id: str) -> Optional[RoomBooking]:
        try:
            return (
                self.db.query(RoomBooking)
                .options(joinedload(RoomBooking.classroom), joinedload(RoomBooking.teacher))
                .filter(RoomBooking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as exc:
            raise self._fail("read booking", exc) from exc

    def update_fields(self, booking_id: str, **fields: Any) -> RoomBooking:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown booking fields: {', '.join(sorted(unknown))}")
        booking = self.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        for key, value in fields.items():
            setattr(booking, key, value)
        try:
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError as exc:
            raise self._fail("update booking", exc) from exc
        return booking

    def delete(self, booking_id: str) -> bool:
        booking = self.get(booking_id)
        if booking is None:
            return False
        try:
            self.db.delete(booking)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete booking", exc) from exc
        return True

    def list_bookings(self, teacher_id: Optional[str] = None) -> List[RoomBooking]:
        query = self.db.query(RoomBooking).options(
            joinedload(RoomBooking.classroom), joinedload(RoomBooking.teacher)
        )
        if teacher_id is not None:
            query = query.filter(RoomBooking.teacher_id == teacher_id)
        try:
            return query.order_by(RoomBooking.start_time).all()
        except SQLAlchemyError as exc:
            raise self._fail("list bookings", exc) from exc

    def complete_expired(self, now: datetime) -> int:
        try:
            count = (
                self.db.query(RoomBooking)
                .filter(RoomBooking.status == COMPLETABLE_STATUS, RoomBooking.end_time < now)
                .update(
                    {RoomBooking.status: BookingStatus.COMPLETED, RoomBooking.updated_at: datetime.utcnow()},
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("complete expired bookings", exc) from exc
        return count

    def delete_expired_completed(self, now: datetime) -> int:
        try:
            count = (
                self.db.query(RoomBooking)
                .filter(RoomBooking.status == PURGEABLE_STATUS, RoomBooking.end_time < now)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete expired bookings", exc) from exc
        return count
