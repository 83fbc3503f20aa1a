# reconciler.py
"""
Status Reconciler.

Room.status is derived from the room's active bookings: "booked" when at
least one pending or confirmed booking exists, "available" otherwise.
"maintenance" is set out of band by an administrator and is never
overwritten here.

Every path that changes a room's set of active bookings calls
`reconcile_room_status` from inside the transaction that made the change,
so the booking write and the room status commit or roll back together.
"""

import sqlalchemy
import structlog

from room_booking.data_models import RoomStatus, active_status_values
from room_booking.database import database, utcnow
from room_booking.errors import NotFoundError
from room_booking.models import bookings, rooms

logger = structlog.get_logger(__name__)


def derive_room_status(current_status: str, active_booking_count: int) -> str:
    if current_status == RoomStatus.MAINTENANCE.value:
        return RoomStatus.MAINTENANCE.value
    if active_booking_count > 0:
        return RoomStatus.BOOKED.value
    return RoomStatus.AVAILABLE.value


async def count_active_bookings(room_id: int) -> int:
    query = sqlalchemy.select(sqlalchemy.func.count()).select_from(bookings).where(
        bookings.c.room_id == room_id,
        bookings.c.status.in_(active_status_values()),
    )
    return await database.fetch_val(query)


async def reconcile_room_status(room_id: int) -> str:
    """Recompute and persist the status of `room_id`; returns the new status."""
    room = await database.fetch_one(rooms.select().where(rooms.c.id == room_id))
    if room is None:
        raise NotFoundError("Room not found")

    active = await count_active_bookings(room_id)
    new_status = derive_room_status(room["status"], active)
    if new_status != room["status"]:
        await database.execute(
            rooms.update()
            .where(rooms.c.id == room_id)
            .values(status=new_status, updated_at=utcnow())
        )
        logger.info(
            "room_status_changed",
            room_id=room_id,
            previous=room["status"],
            status=new_status,
            active_bookings=active,
        )
    return new_status
