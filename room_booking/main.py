# main.py
from datetime import datetime
from typing import List, Optional

import fastapi
import structlog
from fastapi import Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from room_booking import booking_service, catalog
from room_booking.auth import (
    User,
    UserCreate,
    UserLogin,
    authenticate_user,
    create_user,
    get_current_active_user,
    token_for,
)
from room_booking.config import BOOKINGS_PAGE_LIMIT_MAX
from room_booking.data_models import BookingStatus, RoomStatus
from room_booking.database import database, engine, metadata
from room_booking.errors import BookingSystemError, UnexpectedError, ValidationError
from room_booking.log import configure_logging
from room_booking.serializers import paginated, success

logger = structlog.get_logger(__name__)

#FastAPI Setup
app = fastapi.FastAPI(title="Room Booking")


# Request bodies. Every field is optional so missing ones reach the
# validators, which answer with a specific message instead of a schema dump.
class BookingCreate(BaseModel):
    room_id: Optional[int] = Field(None, alias="roomId")
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    purpose: Optional[str] = None

class BookingUpdate(BaseModel):
    status: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    purpose: Optional[str] = None

class RoomPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = None
    location: Optional[str] = None
    facility_ids: Optional[List[int]] = Field(None, alias="facilityIds")
    status: Optional[str] = None

class FacilityPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


# Error envelopes
@app.exception_handler(BookingSystemError)
async def booking_error_handler(request: Request, exc: BookingSystemError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=ValidationError(*messages).to_envelope())

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unexpected_error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content=UnexpectedError().to_envelope())


# Auth endpoints
@app.post("/auth/register", status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate):
    created = await create_user(user)
    logger.info("user_registered", user_id=created.id)
    return success({"user": created.model_dump(), "token": token_for(created)})

@app.post("/auth/login")
async def login(credentials: UserLogin):
    user = await authenticate_user(credentials)
    return success({"user": user.model_dump(), "token": token_for(user)})

@app.get("/auth/me")
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return success(current_user.model_dump())


# Booking endpoints
@app.get("/bookings")
async def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    room_id: Optional[int] = Query(None, alias="roomId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    current_user: User = Depends(get_current_active_user),
):
    # A userId filter for other users is ignored: owner-only until admin roles exist.
    limit = min(limit, BOOKINGS_PAGE_LIMIT_MAX)
    data, total = await booking_service.list_bookings(
        current_user,
        status=booking_status.value if booking_status else None,
        room_id=room_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return paginated(data, total, page, limit)

@app.post("/bookings", status_code=status.HTTP_201_CREATED)
async def create_booking(body: BookingCreate, current_user: User = Depends(get_current_active_user)):
    booking = await booking_service.create_booking(
        current_user, body.room_id, body.start_time, body.end_time, body.purpose
    )
    return success(booking)

@app.get("/bookings/{booking_id}")
async def get_booking(booking_id: int, current_user: User = Depends(get_current_active_user)):
    return success(await booking_service.get_booking(current_user, booking_id))

@app.put("/bookings/{booking_id}")
async def update_booking(booking_id: int, body: BookingUpdate, current_user: User = Depends(get_current_active_user)):
    booking = await booking_service.update_booking(
        current_user,
        booking_id,
        status=body.status,
        start_time=body.start_time,
        end_time=body.end_time,
        purpose=body.purpose,
    )
    return success(booking)

@app.delete("/bookings/{booking_id}")
async def delete_booking(booking_id: int, current_user: User = Depends(get_current_active_user)):
    await booking_service.delete_booking(current_user, booking_id)
    return success({"id": booking_id})


# Room endpoints
def _parse_id_list(raw: Optional[str]) -> List[int]:
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError("facilityIds must be a comma-separated list of IDs")

@app.get("/rooms")
async def list_rooms(
    room_status: Optional[RoomStatus] = Query(None, alias="status"),
    capacity: Optional[int] = Query(None, ge=1),
    search: Optional[str] = None,
    facility_ids: Optional[str] = Query(None, alias="facilityIds"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    current_user: User = Depends(get_current_active_user),
):
    limit = min(limit, BOOKINGS_PAGE_LIMIT_MAX)
    data, total = await catalog.list_rooms(
        status=room_status.value if room_status else None,
        capacity=capacity,
        search=search,
        facility_ids=_parse_id_list(facility_ids),
        page=page,
        limit=limit,
    )
    return paginated(data, total, page, limit)

@app.post("/rooms", status_code=status.HTTP_201_CREATED)
async def create_room(body: RoomPayload, current_user: User = Depends(get_current_active_user)):
    # TODO: restrict room administration to admins once user roles exist
    room = await catalog.create_room(
        body.name, body.capacity, body.description, body.location, body.facility_ids
    )
    return success(room)

@app.get("/rooms/{room_id}")
async def get_room(room_id: int, current_user: User = Depends(get_current_active_user)):
    return success(await catalog.load_room(room_id))

@app.put("/rooms/{room_id}")
async def update_room(room_id: int, body: RoomPayload, current_user: User = Depends(get_current_active_user)):
    room = await catalog.update_room(
        room_id,
        body.name,
        body.capacity,
        body.description,
        body.location,
        body.facility_ids,
        status=body.status,
    )
    return success(room)

@app.delete("/rooms/{room_id}")
async def delete_room(room_id: int, current_user: User = Depends(get_current_active_user)):
    await catalog.delete_room(room_id)
    return success({"id": room_id})


# Facility endpoints
@app.get("/facilities")
async def list_facilities(search: Optional[str] = None, current_user: User = Depends(get_current_active_user)):
    return success(await catalog.list_facilities(search))

@app.post("/facilities", status_code=status.HTTP_201_CREATED)
async def create_facility(body: FacilityPayload, current_user: User = Depends(get_current_active_user)):
    return success(await catalog.create_facility(body.name, body.description, body.icon))

@app.get("/facilities/{facility_id}")
async def get_facility(facility_id: int, current_user: User = Depends(get_current_active_user)):
    return success(await catalog.get_facility(facility_id))

@app.put("/facilities/{facility_id}")
async def update_facility(facility_id: int, body: FacilityPayload, current_user: User = Depends(get_current_active_user)):
    return success(await catalog.update_facility(facility_id, body.name, body.description, body.icon))

@app.delete("/facilities/{facility_id}")
async def delete_facility(facility_id: int, current_user: User = Depends(get_current_active_user)):
    await catalog.delete_facility(facility_id)
    return success({"id": facility_id})


@app.on_event("startup")
async def startup():
    configure_logging()
    await database.connect()
    # Create tables if they don't exist
    metadata.create_all(bind=engine)
    logger.info("startup_complete")


@app.on_event("shutdown")
async def shutdown():
    await database.disconnect()
