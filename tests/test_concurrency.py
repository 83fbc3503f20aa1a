"""Racing creates must not break one-booking-per-slot or one-active-per-user."""

import asyncio

from conftest import iso, tomorrow_at

from room_booking import booking_service
from room_booking.auth import User
from room_booking.errors import ConflictError


async def _create_concurrently(requests):
    """Run `create_booking` for each (user, room_id, start, end) at the same time."""
    return await asyncio.gather(
        *(
            booking_service.create_booking(user, room_id, iso(start), iso(end), "Standup")
            for user, room_id, start, end in requests
        ),
        return_exceptions=True,
    )


def _split(results):
    created = [r for r in results if isinstance(r, dict)]
    failed = [r for r in results if isinstance(r, Exception)]
    return created, failed


class TestConcurrentCreates:

    def test_same_room_same_slot(self, api, register, make_room):
        alice, headers = register("Alice")
        bob, _ = register("Bob")
        room = make_room()
        start, end = tomorrow_at(9), tomorrow_at(10)

        results = api.portal.call(
            _create_concurrently,
            [(User(**alice), room["id"], start, end), (User(**bob), room["id"], start, end)],
        )

        created, failed = _split(results)
        assert len(created) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], ConflictError)
        assert failed[0].messages == ["The room is already booked for the selected time period"]
        assert created[0]["status"] == "pending"
        assert api.get(f"/rooms/{room['id']}", headers=headers).json()["data"]["status"] == "booked"

    def test_same_user_two_rooms(self, api, register, make_room):
        carol, headers = register("Carol")
        room_a = make_room("Room A")
        room_b = make_room("Room B")
        user = User(**carol)

        results = api.portal.call(
            _create_concurrently,
            [
                (user, room_a["id"], tomorrow_at(9), tomorrow_at(10)),
                (user, room_b["id"], tomorrow_at(14), tomorrow_at(15)),
            ],
        )

        created, failed = _split(results)
        assert len(created) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], ConflictError)
        assert "already have an active booking" in failed[0].messages[0]

        listing = api.get("/bookings", headers=headers).json()
        assert listing["pagination"]["total"] == 1

        statuses = {
            r["id"]: api.get(f"/rooms/{r['id']}", headers=headers).json()["data"]["status"]
            for r in (room_a, room_b)
        }
        assert statuses[created[0]["roomId"]] == "booked"
        assert sorted(statuses.values()) == ["available", "booked"]
