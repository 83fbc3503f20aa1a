# booking_service.py
"""
Booking orchestration: validation, conflict detection, the write, and room
status reconciliation.

Each mutation runs in a single `database.transaction()`. The transaction
claims the room row (and, on create, the user's row) before reading, so two
requests racing for the same room or the same user are serialized: the
second one only runs its checks after the first has committed.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

import sqlalchemy
import structlog

from room_booking.auth import User
from room_booking.catalog import load_room
from room_booking.conflicts import ensure_no_conflict
from room_booking.data_models import BookingStatus, can_transition, is_terminal
from room_booking.database import as_utc, database, utcnow
from room_booking.errors import AuthorizationError, NotFoundError, StateError, ValidationError
from room_booking.models import bookings, rooms, users
from room_booking.reconciler import reconcile_room_status
from room_booking.serializers import booking_to_dict
from room_booking.validation import check_booking_rules, validate_booking_changes, validate_booking_fields

logger = structlog.get_logger(__name__)


async def _claim_room(room_id: int) -> None:
    # An UPDATE takes the row lock on PostgreSQL and the write lock on SQLite.
    await database.execute(rooms.update().where(rooms.c.id == room_id).values(updated_at=utcnow()))


async def _claim_user(user_id: int) -> None:
    await database.fetch_one(users.select().where(users.c.id == user_id).with_for_update())


async def _get_owned_booking(user: User, booking_id: int, action: str):
    booking = await database.fetch_one(bookings.select().where(bookings.c.id == booking_id))
    if booking is None:
        raise NotFoundError("Booking not found")
    # Owner-only until user roles exist; admins get no bypass yet.
    if booking["user_id"] != user.id:
        raise AuthorizationError(f"Forbidden - Can only {action} own bookings")
    return booking


async def load_booking(booking_id: int) -> dict:
    booking = await database.fetch_one(bookings.select().where(bookings.c.id == booking_id))
    if booking is None:
        raise NotFoundError("Booking not found")
    owner = await database.fetch_one(users.select().where(users.c.id == booking["user_id"]))
    return booking_to_dict(booking, room=await load_room(booking["room_id"]), user=owner)


async def get_booking(user: User, booking_id: int) -> dict:
    await _get_owned_booking(user, booking_id, "access")
    return await load_booking(booking_id)


async def list_bookings(
    user: User,
    status: Optional[str] = None,
    room_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[dict], int]:
    """The caller's bookings, newest start first."""
    conditions = [bookings.c.user_id == user.id]
    if status:
        conditions.append(bookings.c.status == status)
    if room_id:
        conditions.append(bookings.c.room_id == room_id)
    if start_date:
        conditions.append(bookings.c.start_time >= as_utc(start_date))
    if end_date:
        conditions.append(bookings.c.end_time <= as_utc(end_date))

    total = await database.fetch_val(
        sqlalchemy.select(sqlalchemy.func.count()).select_from(bookings).where(*conditions)
    )
    query = (
        bookings.select()
        .where(*conditions)
        .order_by(sqlalchemy.desc(bookings.c.start_time))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    records = await database.fetch_all(query)
    return [await load_booking(record["id"]) for record in records], total


async def create_booking(
    user: User,
    room_id: Any,
    start_time: Any,
    end_time: Any,
    purpose: Any,
    now: Optional[datetime] = None,
) -> dict:
    draft = validate_booking_fields(room_id, start_time, end_time, purpose, now=now)

    async with database.transaction():
        await _claim_room(draft.room_id)
        await _claim_user(user.id)
        await check_booking_rules(draft, user.id)
        await ensure_no_conflict(draft.room_id, draft.start_time, draft.end_time)

        created_at = utcnow()
        booking_id = await database.execute(
            bookings.insert().values(
                user_id=user.id,
                room_id=draft.room_id,
                start_time=draft.start_time,
                end_time=draft.end_time,
                purpose=draft.purpose,
                status=BookingStatus.PENDING.value,
                created_at=created_at,
                updated_at=created_at,
            )
        )
        room_status = await reconcile_room_status(draft.room_id)

    logger.info(
        "booking_created",
        booking_id=booking_id,
        room_id=draft.room_id,
        user_id=user.id,
        room_status=room_status,
    )
    return await load_booking(booking_id)


async def update_booking(
    user: User,
    booking_id: int,
    status: Any = None,
    start_time: Any = None,
    end_time: Any = None,
    purpose: Any = None,
    now: Optional[datetime] = None,
) -> dict:
    """Apply a status transition and/or a schedule edit to a booking."""
    existing = await _get_owned_booking(user, booking_id, "modify")
    wants_status = status is not None
    wants_schedule = any(v is not None for v in (start_time, end_time, purpose))

    async with database.transaction():
        await _claim_room(existing["room_id"])
        # Re-read under the claim; a concurrent request may have moved it on.
        existing = await _get_owned_booking(user, booking_id, "modify")

        if (wants_status or wants_schedule) and is_terminal(existing["status"]):
            raise StateError("Cannot modify a cancelled or completed booking")
        if wants_schedule and existing["status"] != BookingStatus.PENDING.value:
            raise StateError("Can only modify time and purpose for pending bookings")

        changes = validate_booking_changes(status, start_time, end_time, purpose, now=now)
        values = {}

        if changes.status is not None and changes.status != existing["status"]:
            if not can_transition(existing["status"], changes.status):
                raise StateError(
                    f"Cannot change booking status from {existing['status']} to {changes.status}"
                )
            values["status"] = changes.status

        if changes.start_time is not None or changes.end_time is not None:
            final_start = changes.start_time or as_utc(existing["start_time"])
            final_end = changes.end_time or as_utc(existing["end_time"])
            if final_start >= final_end:
                raise ValidationError("Start time must be before end time")
            await ensure_no_conflict(existing["room_id"], final_start, final_end, exclude_booking_id=booking_id)
            if changes.start_time is not None:
                values["start_time"] = changes.start_time
            if changes.end_time is not None:
                values["end_time"] = changes.end_time

        if changes.purpose is not None:
            values["purpose"] = changes.purpose

        if values:
            values["updated_at"] = utcnow()
            await database.execute(bookings.update().where(bookings.c.id == booking_id).values(**values))
        room_status = await reconcile_room_status(existing["room_id"])

    logger.info(
        "booking_updated",
        booking_id=booking_id,
        room_id=existing["room_id"],
        user_id=user.id,
        fields=sorted(values),
        room_status=room_status,
    )
    return await load_booking(booking_id)


async def delete_booking(user: User, booking_id: int) -> None:
    """Remove a pending or cancelled booking."""
    booking = await _get_owned_booking(user, booking_id, "delete")

    async with database.transaction():
        await _claim_room(booking["room_id"])
        booking = await _get_owned_booking(user, booking_id, "delete")
        if booking["status"] in (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value):
            raise StateError("Cannot delete a confirmed or completed booking. Please cancel it first.")

        await database.execute(bookings.delete().where(bookings.c.id == booking_id))
        room_status = await reconcile_room_status(booking["room_id"])

    logger.info(
        "booking_deleted",
        booking_id=booking_id,
        room_id=booking["room_id"],
        user_id=user.id,
        room_status=room_status,
    )
