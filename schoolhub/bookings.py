"""Booking operations exposed to the services.

Each operation receives the acting user explicitly and either returns the
stored booking or raises one of the domain errors from ``errors``.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Union

from .booking_validation import BookingForm, validate_booking
from .errors import AuthorizationError, NotFoundError
from .lifecycle import INITIAL_STATUS, Trigger, ensure_transition
from .models import BookingStatus, RoomBooking
from .schemas import Actor
from .store import BookingStore

logger = logging.getLogger(__name__)

FormInput = Union[BookingForm, Mapping[str, Any]]


def _require_teacher_or_admin(actor: Actor, message: str) -> None:
    if not actor.is_admin and actor.teacher_id is None:
        logger.warning("User %s refused: %s", actor.id, message)
        raise AuthorizationError(message)


def _ensure_can_touch(actor: Actor, booking: RoomBooking) -> None:
    if actor.is_admin:
        return
    if actor.teacher_id is None or booking.teacher_id != actor.teacher_id:
        logger.warning("User %s refused access to booking %s", actor.id, booking.id)
        raise AuthorizationError("You can only manage your own bookings")


def create_booking(store: BookingStore, actor: Actor, form: FormInput) -> RoomBooking:
    """
    Validate a booking request and store it as pending.

    Raises
    ------
    AuthorizationError
        If the actor is neither an admin nor a teacher, or a teacher books
        on behalf of somebody else.
    BookingValidationError
        If the form is rejected; nothing is written.
    StorageError
        If the insert fails (including unknown classroom or teacher).
    """
    _require_teacher_or_admin(actor, "Only teachers can book classrooms")
    draft = validate_booking(form)
    if not actor.is_admin and draft.teacher_id != actor.teacher_id:
        logger.warning("Teacher %s tried to book for teacher %s", actor.teacher_id, draft.teacher_id)
        raise AuthorizationError("Teachers can only create bookings for themselves")

    ensure_transition(None, INITIAL_STATUS, Trigger.CREATE)
    booking = store.insert_pending(draft, created_by=actor.id)
    logger.info(
        "Booking %s created for classroom %s from %s to %s",
        booking.id,
        booking.classroom_id,
        booking.start_time.isoformat(),
        booking.end_time.isoformat(),
    )
    return booking


def update_booking_status(
    store: BookingStore, actor: Actor, booking_id: str, new_status: BookingStatus
) -> RoomBooking:
    """
    Set a booking's status on behalf of an administrator.

    Any status may follow any other; see ``lifecycle.is_allowed_transition``.

    Raises
    ------
    AuthorizationError
        If the actor is not an administrator.
    NotFoundError
        If no booking has ``booking_id``.
    StorageError
        If the update fails; the stored status is left unchanged.
    """
    if not actor.is_admin:
        logger.warning("User %s refused status change on booking %s", actor.id, booking_id)
        raise AuthorizationError("Only administrators can change a booking status")
    booking = store.get(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    previous = booking.status
    ensure_transition(previous, new_status, Trigger.ADMIN_EDIT)
    booking = store.update_fields(booking_id, status=new_status)
    logger.info("Booking %s moved from %s to %s by %s", booking_id, previous.value, new_status.value, actor.id)
    return booking


def edit_booking(store: BookingStore, actor: Actor, booking_id: str, form: FormInput) -> RoomBooking:
    """Replace the classroom, teacher, times and purpose of a booking; status is left alone."""
    booking = store.get(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    _ensure_can_touch(actor, booking)
    draft = validate_booking(form)
    if not actor.is_admin and draft.teacher_id != actor.teacher_id:
        raise AuthorizationError("Teachers cannot reassign bookings to another teacher")
    return store.update_fields(
        booking_id,
        classroom_id=draft.classroom_id,
        teacher_id=draft.teacher_id,
        start_time=draft.start_time,
        end_time=draft.end_time,
        purpose=draft.purpose,
    )


def delete_booking(store: BookingStore, actor: Actor, booking_id: str) -> None:
    booking = store.get(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    _ensure_can_touch(actor, booking)
    store.delete(booking_id)
    logger.info("Booking %s deleted by %s", booking_id, actor.id)


def list_bookings(store: BookingStore, actor: Actor) -> List[RoomBooking]:
    _require_teacher_or_admin(actor, "Only teachers and administrators can view bookings")
    if actor.is_admin:
        return store.list_bookings()
    return store.list_bookings(teacher_id=actor.teacher_id)


def get_booking(store: BookingStore, actor: Actor, booking_id: str) -> RoomBooking:
    booking = store.get(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    _ensure_can_touch(actor, booking)
    return booking
