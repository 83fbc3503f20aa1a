# conflicts.py
from datetime import datetime
from typing import Iterable, Optional

from room_booking.data_models import active_status_values, is_active, overlaps
from room_booking.database import as_utc, database
from room_booking.errors import ConflictError
from room_booking.models import bookings

OVERLAP_MESSAGE = "The room is already booked for the selected time period"


def find_overlapping(
    start_time: datetime,
    end_time: datetime,
    schedule: Iterable,
    exclude_booking_id: Optional[int] = None,
):
    """Return the first active booking in `schedule` that overlaps [start_time, end_time)."""
    for booking in schedule:
        if exclude_booking_id is not None and booking["id"] == exclude_booking_id:
            continue
        if not is_active(booking["status"]):
            continue
        if overlaps(start_time, end_time, as_utc(booking["start_time"]), as_utc(booking["end_time"])):
            return booking
    return None


async def find_conflicting_booking(
    room_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_booking_id: Optional[int] = None,
):
    """Look up an active booking of `room_id` overlapping the candidate interval."""
    conditions = [
        bookings.c.room_id == room_id,
        bookings.c.status.in_(active_status_values()),
        bookings.c.start_time < as_utc(end_time),
        bookings.c.end_time > as_utc(start_time),
    ]
    if exclude_booking_id is not None:
        conditions.append(bookings.c.id != exclude_booking_id)

    candidates = await database.fetch_all(bookings.select().where(*conditions))
    # Re-check in Python so the half-open rule does not depend on how the
    # backend compares stored timestamps.
    return find_overlapping(start_time, end_time, candidates, exclude_booking_id)


async def ensure_no_conflict(
    room_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_booking_id: Optional[int] = None,
) -> None:
    if await find_conflicting_booking(room_id, start_time, end_time, exclude_booking_id) is not None:
        raise ConflictError(OVERLAP_MESSAGE)
