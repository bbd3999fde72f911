"""
services/booking/lifecycle.py
Booking status state machine.

    pending ──▶ confirmed ──▶ completed
       │
       └──────▶ cancelled

completed and cancelled are terminal.
"""

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from shared.models.models import Booking, BookingStatus, utcnow

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Column stamped when a booking enters the status
_TIMESTAMP_FIELDS = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
}


class InvalidTransition(ValueError):
    def __init__(self, current: BookingStatus, target: BookingStatus):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot change booking status from '{current.value}' to '{target.value}'"
        )


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def apply_transition(
    booking: Booking,
    target: BookingStatus,
    at: Optional[datetime] = None,
) -> BookingStatus:
    """
    Move the booking to `target` and stamp the matching *_at column.
    Returns the previous status. Raises InvalidTransition for illegal moves.
    """
    current = BookingStatus(booking.status)
    if not can_transition(current, target):
        raise InvalidTransition(current, target)

    booking.status = target
    field = _TIMESTAMP_FIELDS.get(target)
    if field:
        setattr(booking, field, at or utcnow())
    return current
