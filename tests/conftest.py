# tests/conftest.py
"""
Shared fixtures.

The app is pointed at a throwaway SQLite file before `room_booking` is
imported (its database objects are built at import time). One TestClient is
started per session; every test that uses `api` gets empty tables.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="room_booking_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ.setdefault("SECRET_KEY", "test-secret")

from fastapi.testclient import TestClient  # noqa: E402

from room_booking.database import engine, metadata  # noqa: E402
from room_booking.main import app  # noqa: E402

_emails = count(1)


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def api(client):
    yield client
    with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            conn.execute(table.delete())


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    day = datetime.now(timezone.utc) + timedelta(days=1)
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


@pytest.fixture
def register(api):
    """Register a fresh user; returns (user dict, auth headers)."""
    def _register(name: str = "Test User"):
        email = f"user{next(_emails)}@example.com"
        resp = api.post("/auth/register", json={"email": email, "name": name, "password": "secret123"})
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}
    return _register


@pytest.fixture
def make_room(api, register):
    _, headers = register("Room Admin")

    def _make_room(name: str = "Room A", capacity: int = 10, **extra):
        payload = {"name": name, "capacity": capacity, "location": "First Floor", **extra}
        resp = api.post("/rooms", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    _make_room.headers = headers
    return _make_room


@pytest.fixture
def book(api):
    """POST a booking for `headers`; returns the raw response."""
    def _book(headers, room_id, start: datetime, end: datetime, purpose: str = "Standup"):
        return api.post(
            "/bookings",
            json={"roomId": room_id, "startTime": iso(start), "endTime": iso(end), "purpose": purpose},
            headers=headers,
        )
    return _book
