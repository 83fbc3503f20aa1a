# validation.py
"""
Booking Validator.

Field checks are pure and collect every applicable message before raising a
single `ValidationError`. Business rules that need the store (room exists,
room not under maintenance, one active booking per user) live in
`check_booking_rules` and are run by the booking service inside the same
transaction as the write.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from room_booking.config import PURPOSE_MAX_LENGTH
from room_booking.data_models import (
    BookingChanges,
    BookingDraft,
    BookingStatus,
    RoomStatus,
    active_status_values,
)
from room_booking.database import as_utc, database, utcnow
from room_booking.errors import ConflictError, NotFoundError, ValidationError
from room_booking.models import bookings, rooms

ROOM_NAME_MAX_LENGTH = 100
ROOM_DESCRIPTION_MAX_LENGTH = 500
ROOM_LOCATION_MAX_LENGTH = 200
ROOM_CAPACITY_RANGE = (1, 100)

FACILITY_NAME_MAX_LENGTH = 50
FACILITY_DESCRIPTION_MAX_LENGTH = 200
FACILITY_ICON_MAX_LENGTH = 50


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime, or None if it is not one.

    Naive timestamps are taken to be UTC. A trailing 'Z' is accepted.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def validate_booking_fields(
    room_id: Any,
    start_time: Any,
    end_time: Any,
    purpose: Any,
    now: Optional[datetime] = None,
) -> BookingDraft:
    """Check a create request's fields and return the normalized draft."""
    if room_id in (None, "") or not start_time or not end_time or not purpose:
        raise ValidationError("Room ID, start time, end time, and purpose are required")

    errors: List[str] = []
    if not isinstance(purpose, str):
        errors.append("Purpose must be text")
    elif len(purpose) > PURPOSE_MAX_LENGTH:
        errors.append(f"Purpose must be {PURPOSE_MAX_LENGTH} characters or less")

    try:
        room_id = int(room_id)
    except (TypeError, ValueError):
        errors.append("Invalid room ID")

    start = parse_timestamp(start_time)
    end = parse_timestamp(end_time)
    if start is None or end is None:
        errors.append("Invalid date format")
    else:
        if start >= end:
            errors.append("Start time must be before end time")
        if start < (now or utcnow()):
            errors.append("Start time cannot be in the past")

    if errors:
        raise ValidationError(*errors)
    return BookingDraft(room_id=room_id, start_time=start, end_time=end, purpose=purpose)


def validate_booking_changes(
    status: Any = None,
    start_time: Any = None,
    end_time: Any = None,
    purpose: Any = None,
    now: Optional[datetime] = None,
) -> BookingChanges:
    """Normalize the fields of an update request. Absent fields stay None."""
    changes = BookingChanges()
    errors: List[str] = []

    if status is not None:
        try:
            changes.status = BookingStatus(status).value
        except ValueError:
            errors.append("Invalid status value")

    if start_time is not None:
        changes.start_time = parse_timestamp(start_time)
        if changes.start_time is None:
            errors.append("Invalid start time format")
        elif changes.start_time < (now or utcnow()):
            errors.append("Start time cannot be in the past")

    if end_time is not None:
        changes.end_time = parse_timestamp(end_time)
        if changes.end_time is None:
            errors.append("Invalid end time format")

    if purpose is not None:
        if not isinstance(purpose, str) or not purpose or len(purpose) > PURPOSE_MAX_LENGTH:
            errors.append(f"Purpose is required and must be {PURPOSE_MAX_LENGTH} characters or less")
        else:
            changes.purpose = purpose

    if errors:
        raise ValidationError(*errors)
    return changes


async def check_booking_rules(draft: BookingDraft, user_id: int):
    """Store-backed rules for a new booking. Returns the room record."""
    room = await database.fetch_one(rooms.select().where(rooms.c.id == draft.room_id))
    if room is None:
        raise NotFoundError("Room not found")

    if room["status"] == RoomStatus.MAINTENANCE.value:
        raise ConflictError("Room is under maintenance and cannot be booked")

    if await find_active_booking_for_user(user_id) is not None:
        raise ConflictError(
            "You already have an active booking. "
            "Please cancel or complete it before making a new booking."
        )
    return room


async def find_active_booking_for_user(user_id: int):
    query = (
        bookings.select()
        .where(
            bookings.c.user_id == user_id,
            bookings.c.status.in_(active_status_values()),
        )
        .limit(1)
    )
    return await database.fetch_one(query)


def validate_room_fields(
    name: Any,
    capacity: Any,
    description: Any = None,
    location: Any = None,
    status: Any = None,
) -> None:
    if not name or capacity in (None, "", 0):
        raise ValidationError("Name and capacity are required")

    errors: List[str] = []
    low, high = ROOM_CAPACITY_RANGE
    if isinstance(capacity, bool) or not isinstance(capacity, int) or not low <= capacity <= high:
        errors.append(f"Capacity must be between {low} and {high}")
    if len(name) > ROOM_NAME_MAX_LENGTH:
        errors.append(f"Name must be {ROOM_NAME_MAX_LENGTH} characters or less")
    if description and len(description) > ROOM_DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description must be {ROOM_DESCRIPTION_MAX_LENGTH} characters or less")
    if location and len(location) > ROOM_LOCATION_MAX_LENGTH:
        errors.append(f"Location must be {ROOM_LOCATION_MAX_LENGTH} characters or less")
    # "booked" is derived from bookings and never set by hand
    if status is not None and status not in (RoomStatus.AVAILABLE.value, RoomStatus.MAINTENANCE.value):
        errors.append("Room status can only be set to available or maintenance")

    if errors:
        raise ValidationError(*errors)


def validate_facility_fields(name: Any, description: Any = None, icon: Any = None) -> None:
    if not name:
        raise ValidationError("Name is required")

    errors: List[str] = []
    if len(name) > FACILITY_NAME_MAX_LENGTH:
        errors.append(f"Name must be {FACILITY_NAME_MAX_LENGTH} characters or less")
    if description and len(description) > FACILITY_DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description must be {FACILITY_DESCRIPTION_MAX_LENGTH} characters or less")
    if icon and len(icon) > FACILITY_ICON_MAX_LENGTH:
        errors.append(f"Icon must be {FACILITY_ICON_MAX_LENGTH} characters or less")

    if errors:
        raise ValidationError(*errors)
