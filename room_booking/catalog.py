# catalog.py
"""Room and facility store operations."""

from typing import List, Optional, Sequence, Tuple

import sqlalchemy
import structlog

from room_booking.data_models import RoomStatus
from room_booking.database import database, utcnow
from room_booking.errors import ConflictError, NotFoundError, ValidationError
from room_booking.models import bookings, facilities, room_facilities, rooms
from room_booking.reconciler import count_active_bookings, reconcile_room_status
from room_booking.serializers import facility_to_dict, room_to_dict
from room_booking.validation import validate_facility_fields, validate_room_fields

logger = structlog.get_logger(__name__)


async def fetch_room_facilities(room_id: int) -> list:
    query = (
        sqlalchemy.select(facilities)
        .select_from(facilities.join(room_facilities, room_facilities.c.facility_id == facilities.c.id))
        .where(room_facilities.c.room_id == room_id)
        .order_by(facilities.c.name)
    )
    return await database.fetch_all(query)


async def get_room_record(room_id: int):
    room = await database.fetch_one(rooms.select().where(rooms.c.id == room_id))
    if room is None:
        raise NotFoundError("Room not found")
    return room


async def load_room(room_id: int) -> dict:
    room = await get_room_record(room_id)
    return room_to_dict(room, await fetch_room_facilities(room_id))


async def list_rooms(
    status: Optional[str] = None,
    capacity: Optional[int] = None,
    search: Optional[str] = None,
    facility_ids: Optional[Sequence[int]] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[dict], int]:
    conditions = []
    if status:
        conditions.append(rooms.c.status == status)
    if capacity:
        conditions.append(rooms.c.capacity >= capacity)
    if search:
        pattern = f"%{search}%"
        conditions.append(sqlalchemy.or_(rooms.c.name.like(pattern), rooms.c.location.like(pattern)))
    if facility_ids:
        with_facility = sqlalchemy.select(room_facilities.c.room_id).where(
            room_facilities.c.facility_id.in_(list(facility_ids))
        )
        conditions.append(rooms.c.id.in_(with_facility))

    count_query = sqlalchemy.select(sqlalchemy.func.count()).select_from(rooms).where(sqlalchemy.true(), *conditions)
    total = await database.fetch_val(count_query)

    query = (
        rooms.select()
        .where(sqlalchemy.true(), *conditions)
        .order_by(rooms.c.name)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    records = await database.fetch_all(query)
    data = [room_to_dict(room, await fetch_room_facilities(room["id"])) for room in records]
    return data, total


async def _ensure_unique_room_name(name: str, exclude_id: Optional[int] = None) -> None:
    query = rooms.select().where(rooms.c.name == name)
    if exclude_id is not None:
        query = query.where(rooms.c.id != exclude_id)
    if await database.fetch_one(query):
        raise ValidationError("A room with this name already exists")


async def _ensure_facilities_exist(facility_ids: Sequence[int]) -> None:
    if not facility_ids:
        return
    query = sqlalchemy.select(sqlalchemy.func.count()).select_from(facilities).where(
        facilities.c.id.in_(list(facility_ids))
    )
    if await database.fetch_val(query) != len(set(facility_ids)):
        raise ValidationError("One or more facility IDs are invalid")


async def _link_facilities(room_id: int, facility_ids: Sequence[int]) -> None:
    for facility_id in dict.fromkeys(facility_ids):
        await database.execute(room_facilities.insert().values(room_id=room_id, facility_id=facility_id))


async def create_room(
    name: str,
    capacity: int,
    description: Optional[str] = None,
    location: Optional[str] = None,
    facility_ids: Optional[Sequence[int]] = None,
) -> dict:
    validate_room_fields(name, capacity, description, location)
    await _ensure_unique_room_name(name)
    await _ensure_facilities_exist(facility_ids or [])

    now = utcnow()
    async with database.transaction():
        room_id = await database.execute(
            rooms.insert().values(
                name=name,
                description=description,
                capacity=capacity,
                location=location,
                status=RoomStatus.AVAILABLE.value,
                created_at=now,
                updated_at=now,
            )
        )
        await _link_facilities(room_id, facility_ids or [])

    logger.info("room_created", room_id=room_id, name=name)
    return await load_room(room_id)


async def update_room(
    room_id: int,
    name: str,
    capacity: int,
    description: Optional[str] = None,
    location: Optional[str] = None,
    facility_ids: Optional[Sequence[int]] = None,
    status: Optional[str] = None,
) -> dict:
    """Replace a room's fields. `status` may only enter or leave maintenance."""
    existing = await get_room_record(room_id)
    validate_room_fields(name, capacity, description, location, status)
    await _ensure_unique_room_name(name, exclude_id=room_id)
    await _ensure_facilities_exist(facility_ids or [])

    values = dict(name=name, description=description, capacity=capacity, location=location, updated_at=utcnow())
    async with database.transaction():
        if status == RoomStatus.MAINTENANCE.value:
            values["status"] = RoomStatus.MAINTENANCE.value
        elif status == RoomStatus.AVAILABLE.value and existing["status"] == RoomStatus.MAINTENANCE.value:
            # Leaving maintenance: the reconciler re-derives booked/available below
            values["status"] = RoomStatus.AVAILABLE.value

        await database.execute(rooms.update().where(rooms.c.id == room_id).values(**values))

        if facility_ids is not None:
            await database.execute(room_facilities.delete().where(room_facilities.c.room_id == room_id))
            await _link_facilities(room_id, facility_ids)

        new_status = await reconcile_room_status(room_id)

    logger.info("room_updated", room_id=room_id, status=new_status)
    return await load_room(room_id)


async def delete_room(room_id: int) -> None:
    await get_room_record(room_id)
    async with database.transaction():
        if await count_active_bookings(room_id) > 0:
            raise ConflictError(
                "Cannot delete a room that has active bookings. "
                "Please cancel or complete all bookings first."
            )
        # Only cancelled/completed history is left at this point
        await database.execute(bookings.delete().where(bookings.c.room_id == room_id))
        await database.execute(room_facilities.delete().where(room_facilities.c.room_id == room_id))
        await database.execute(rooms.delete().where(rooms.c.id == room_id))
    logger.info("room_deleted", room_id=room_id)


# Facilities

async def get_facility(facility_id: int) -> dict:
    facility = await database.fetch_one(facilities.select().where(facilities.c.id == facility_id))
    if facility is None:
        raise NotFoundError("Facility not found")
    return facility_to_dict(facility)


async def list_facilities(search: Optional[str] = None) -> List[dict]:
    query = facilities.select().order_by(facilities.c.name)
    if search:
        query = query.where(facilities.c.name.like(f"%{search}%"))
    return [facility_to_dict(f) for f in await database.fetch_all(query)]


async def _ensure_unique_facility_name(name: str, exclude_id: Optional[int] = None) -> None:
    query = facilities.select().where(facilities.c.name == name)
    if exclude_id is not None:
        query = query.where(facilities.c.id != exclude_id)
    if await database.fetch_one(query):
        raise ValidationError("A facility with this name already exists")


async def create_facility(name: str, description: Optional[str] = None, icon: Optional[str] = None) -> dict:
    validate_facility_fields(name, description, icon)
    await _ensure_unique_facility_name(name)
    facility_id = await database.execute(
        facilities.insert().values(name=name, description=description, icon=icon, created_at=utcnow())
    )
    return await get_facility(facility_id)


async def update_facility(
    facility_id: int, name: str, description: Optional[str] = None, icon: Optional[str] = None
) -> dict:
    await get_facility(facility_id)
    validate_facility_fields(name, description, icon)
    await _ensure_unique_facility_name(name, exclude_id=facility_id)
    await database.execute(
        facilities.update()
        .where(facilities.c.id == facility_id)
        .values(name=name, description=description, icon=icon)
    )
    return await get_facility(facility_id)


async def delete_facility(facility_id: int) -> None:
    await get_facility(facility_id)
    in_use = await database.fetch_val(
        sqlalchemy.select(sqlalchemy.func.count())
        .select_from(room_facilities)
        .where(room_facilities.c.facility_id == facility_id)
    )
    if in_use:
        raise ConflictError("Cannot delete a facility that is assigned to rooms. Remove it from all rooms first.")
    await database.execute(facilities.delete().where(facilities.c.id == facility_id))
