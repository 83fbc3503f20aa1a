"""Room and facility administration, including the maintenance state."""

from conftest import tomorrow_at


class TestRooms:

    def test_create_with_facilities(self, api, make_room):
        headers = make_room.headers
        projector = api.post("/facilities", json={"name": "Projector", "icon": "projector"}, headers=headers).json()["data"]
        room = make_room("Board Room", capacity=12, facilityIds=[projector["id"]])
        assert room["status"] == "available"
        assert [f["name"] for f in room["facilities"]] == ["Projector"]

    def test_duplicate_name(self, api, make_room):
        make_room("Room A")
        resp = api.post("/rooms", json={"name": "Room A", "capacity": 4}, headers=make_room.headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["_form"] == ["A room with this name already exists"]

    def test_capacity_bounds(self, api, make_room):
        resp = api.post("/rooms", json={"name": "Hall", "capacity": 150}, headers=make_room.headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["_form"] == ["Capacity must be between 1 and 100"]

    def test_unknown_facility(self, api, make_room):
        resp = api.post("/rooms", json={"name": "Hall", "capacity": 5, "facilityIds": [999]}, headers=make_room.headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["_form"] == ["One or more facility IDs are invalid"]

    def test_list_filters(self, api, make_room):
        headers = make_room.headers
        whiteboard = api.post("/facilities", json={"name": "Whiteboard"}, headers=headers).json()["data"]
        make_room("Alpha", capacity=4)
        make_room("Beta", capacity=20, facilityIds=[whiteboard["id"]])
        make_room("Gamma", capacity=8, location="Annex")

        names = lambda body: [r["name"] for r in body["data"]]  # noqa: E731
        assert names(api.get("/rooms", headers=headers).json()) == ["Alpha", "Beta", "Gamma"]
        assert names(api.get("/rooms", params={"capacity": 8}, headers=headers).json()) == ["Beta", "Gamma"]
        assert names(api.get("/rooms", params={"search": "Annex"}, headers=headers).json()) == ["Gamma"]
        assert names(api.get("/rooms", params={"facilityIds": str(whiteboard["id"])}, headers=headers).json()) == ["Beta"]

        page = api.get("/rooms", params={"limit": 2, "page": 2}, headers=headers).json()
        assert names(page) == ["Gamma"]
        assert page["pagination"] == {"total": 3, "pages": 2, "currentPage": 2, "limit": 2}

    def test_missing_room(self, api, make_room):
        resp = api.get("/rooms/4040", headers=make_room.headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": {"message": "Room not found"}}


class TestMaintenance:

    def _set_status(self, api, room, status, headers):
        return api.put(
            f"/rooms/{room['id']}",
            json={"name": room["name"], "capacity": room["capacity"], "status": status},
            headers=headers,
        )

    def test_maintenance_survives_cancellation(self, api, register, make_room, book):
        _, headers = register()
        room = make_room()
        booking = book(headers, room["id"], tomorrow_at(9), tomorrow_at(10)).json()["data"]

        resp = self._set_status(api, room, "maintenance", make_room.headers)
        assert resp.json()["data"]["status"] == "maintenance"

        api.put(f"/bookings/{booking['id']}", json={"status": "cancelled"}, headers=headers)
        assert api.get(f"/rooms/{room['id']}", headers=headers).json()["data"]["status"] == "maintenance"

    def test_leaving_maintenance_reconciles(self, api, register, make_room, book):
        _, headers = register()
        room = make_room()
        book(headers, room["id"], tomorrow_at(9), tomorrow_at(10))
        self._set_status(api, room, "maintenance", make_room.headers)

        resp = self._set_status(api, room, "available", make_room.headers)
        # Still has an active booking, so it comes back as booked
        assert resp.json()["data"]["status"] == "booked"

    def test_booked_cannot_be_set_by_hand(self, api, make_room):
        room = make_room()
        resp = self._set_status(api, room, "booked", make_room.headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["_form"] == ["Room status can only be set to available or maintenance"]


class TestDeleteRoom:

    def test_refused_with_active_bookings(self, api, register, make_room, book):
        _, headers = register()
        room = make_room()
        booking = book(headers, room["id"], tomorrow_at(9), tomorrow_at(10)).json()["data"]

        resp = api.delete(f"/rooms/{room['id']}", headers=make_room.headers)
        assert resp.status_code == 400
        assert "active bookings" in resp.json()["error"]["_form"][0]

        api.put(f"/bookings/{booking['id']}", json={"status": "cancelled"}, headers=headers)
        resp = api.delete(f"/rooms/{room['id']}", headers=make_room.headers)
        assert resp.status_code == 200
        assert api.get(f"/rooms/{room['id']}", headers=headers).status_code == 404


class TestFacilities:

    def test_crud(self, api, make_room):
        headers = make_room.headers
        created = api.post("/facilities", json={"name": "Wifi", "description": "Fast"}, headers=headers)
        assert created.status_code == 201
        facility = created.json()["data"]

        updated = api.put(f"/facilities/{facility['id']}", json={"name": "WiFi 6"}, headers=headers).json()["data"]
        assert updated["name"] == "WiFi 6"
        assert [f["name"] for f in api.get("/facilities", params={"search": "WiFi"}, headers=headers).json()["data"]] == ["WiFi 6"]

        assert api.delete(f"/facilities/{facility['id']}", headers=headers).status_code == 200
        assert api.get(f"/facilities/{facility['id']}", headers=headers).status_code == 404

    def test_duplicate_name(self, api, make_room):
        headers = make_room.headers
        api.post("/facilities", json={"name": "Wifi"}, headers=headers)
        resp = api.post("/facilities", json={"name": "Wifi"}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["_form"] == ["A facility with this name already exists"]

    def test_in_use_facility_cannot_be_deleted(self, api, make_room):
        headers = make_room.headers
        tv = api.post("/facilities", json={"name": "TV"}, headers=headers).json()["data"]
        make_room("Lounge", facilityIds=[tv["id"]])
        assert api.delete(f"/facilities/{tv['id']}", headers=headers).status_code == 400
