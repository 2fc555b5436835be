"""Booking status lifecycle: transition policy and maintenance sweeps.

Statuses move through a small state machine::

    (new)     -> pending                          on creation
    any       -> any                              by an administrator
    approved  -> completed                        by the completion sweep
    completed -> (deleted)                        by the cleanup sweep

Both sweeps are single set-based statements, so running them again with
nothing new to do is a no-op and they may run concurrently with each other.
"""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .errors import InvalidStatusTransition
from .models import BookingStatus, RoomBooking
from .schemas import SweepResult

if TYPE_CHECKING:
    from .store import BookingStore

logger = logging.getLogger(__name__)

INITIAL_STATUS = BookingStatus.PENDING
COMPLETABLE_STATUS = BookingStatus.APPROVED
PURGEABLE_STATUS = BookingStatus.COMPLETED


class Trigger(str, Enum):
    """Origin of a requested status change, checked by ``is_allowed_transition``."""

    CREATE = "create"
    ADMIN_EDIT = "admin_edit"
    SWEEP = "sweep"


_SWEEP_TRANSITIONS = frozenset({(COMPLETABLE_STATUS, BookingStatus.COMPLETED)})


def is_allowed_transition(
    current: Optional[BookingStatus], target: BookingStatus, trigger: Trigger
) -> bool:
    if trigger is Trigger.CREATE:
        return current is None and target is INITIAL_STATUS
    if current is None:
        return False
    if trigger is Trigger.ADMIN_EDIT:
        # Administrators may set any status, including reopening a completed booking.
        return True
    return (current, target) in _SWEEP_TRANSITIONS


def ensure_transition(
    current: Optional[BookingStatus], target: BookingStatus, trigger: Trigger
) -> None:
    if not is_allowed_transition(current, target, trigger):
        source = current.value if current is not None else "new"
        raise InvalidStatusTransition(
            f"Cannot move a booking from {source} to {target.value} via {trigger.value}"
        )


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def is_completable(booking: RoomBooking, now: Optional[datetime] = None) -> bool:
    return booking.status == COMPLETABLE_STATUS and booking.end_time < _now(now)


def is_purgeable(booking: RoomBooking, now: Optional[datetime] = None) -> bool:
    return booking.status == PURGEABLE_STATUS and booking.end_time < _now(now)


def sweep_complete_expired_approved(store: "BookingStore", now: Optional[datetime] = None) -> SweepResult:
    """
    Mark every approved booking whose end time has passed as completed.

    Parameters
    ----------
    store : BookingStore
        Store bound to the session the sweep runs in.
    now : datetime, optional
        Reference instant; defaults to the current local wall clock.

    Returns
    -------
    SweepResult
        ``updated_count`` holds the number of bookings moved to completed.

    Raises
    ------
    StorageError
        If the bulk update fails. Nothing is retried here; the next
        scheduled run picks the rows up again.
    """
    cutoff = _now(now)
    logger.info("Completing approved bookings that ended before %s", cutoff.isoformat())
    count = store.complete_expired(cutoff)
    logger.info("Marked %s bookings as completed", count)
    return SweepResult(message="Booking statuses updated successfully", updated_count=count)


def sweep_delete_expired_completed(store: "BookingStore", now: Optional[datetime] = None) -> SweepResult:
    """Hard-delete completed bookings whose end time has passed."""
    cutoff = _now(now)
    logger.info("Starting cleanup of expired bookings at %s", cutoff.isoformat())
    count = store.delete_expired_completed(cutoff)
    logger.info("Successfully deleted %s expired bookings", count)
    return SweepResult(message=f"Successfully deleted {count} expired bookings", deleted_count=count)
