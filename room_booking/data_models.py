# data_models.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})

# Allowed moves of the booking lifecycle; terminal states have none.
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def active_status_values() -> list:
    """Plain strings for use in `IN (...)` clauses."""
    return [s.value for s in ACTIVE_STATUSES]


def is_active(status: str) -> bool:
    return BookingStatus(status) in ACTIVE_STATUSES


def is_terminal(status: str) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval test: [start_a, end_a) and [start_b, end_b) share time.

    Touching endpoints (end_a == start_b) do not overlap.
    """
    return start_a < end_b and start_b < end_a


@dataclass
class BookingDraft:
    """A booking request that passed field validation, ready to be written."""
    room_id: int
    start_time: datetime
    end_time: datetime
    purpose: str


@dataclass
class BookingChanges:
    """Normalized fields of an update request; None means 'leave as is'."""
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    purpose: Optional[str] = None

    @property
    def touches_schedule(self) -> bool:
        return any(v is not None for v in (self.start_time, self.end_time, self.purpose))
