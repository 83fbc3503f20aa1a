# serializers.py
import math
from datetime import datetime
from typing import Iterable, List, Optional

from room_booking.database import as_utc


def iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def user_to_dict(user) -> dict:
    return {"id": user["id"], "email": user["email"], "name": user["name"]}


def facility_to_dict(facility) -> dict:
    return {
        "id": facility["id"],
        "name": facility["name"],
        "description": facility["description"],
        "icon": facility["icon"],
        "createdAt": iso(facility["created_at"]),
    }


def room_to_dict(room, facilities: Iterable = ()) -> dict:
    return {
        "id": room["id"],
        "name": room["name"],
        "description": room["description"],
        "capacity": room["capacity"],
        "status": room["status"],
        "location": room["location"],
        "facilities": [facility_to_dict(f) for f in facilities],
        "createdAt": iso(room["created_at"]),
        "updatedAt": iso(room["updated_at"]),
    }


def booking_to_dict(booking, room: Optional[dict] = None, user=None) -> dict:
    data = {
        "id": booking["id"],
        "userId": booking["user_id"],
        "roomId": booking["room_id"],
        "startTime": iso(booking["start_time"]),
        "endTime": iso(booking["end_time"]),
        "purpose": booking["purpose"],
        "status": booking["status"],
        "createdAt": iso(booking["created_at"]),
        "updatedAt": iso(booking["updated_at"]),
    }
    if room is not None:
        data["room"] = room
    if user is not None:
        data["user"] = user_to_dict(user)
    return data


def success(data) -> dict:
    return {"success": True, "data": data}


def paginated(data: List, total: int, page: int, limit: int) -> dict:
    return {
        "data": data,
        "pagination": {
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
            "currentPage": page,
            "limit": limit,
        },
    }
