# tests/test_rides_api.py
"""
HTTP tests for /api/rides.
"""

import uuid

import pytest

from conftest import bearer, ride_payload


async def post_ride(client, user, **overrides):
    response = await client.post("/api/rides", json=ride_payload(**overrides), headers=bearer(user))
    assert response.status_code == 201, response.text
    return response.json()["ride"]


class TestCreate:

    @pytest.mark.asyncio
    async def test_create(self, client, rider):
        response = await client.post("/api/rides", json=ride_payload(), headers=bearer(rider))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        ride = body["ride"]
        assert ride["riderId"] == str(rider.id)
        assert ride["rider"]["email"] == rider.email
        assert ride["stops"] == ["G-11", "F-11"]
        assert ride["daysAvailable"] == ["Mon", "Wed", "Fri"]
        assert ride["status"] == "active"
        assert ride["moderationStatus"] == "approved"
        assert ride["isFlagged"] is False
        assert ride["preferences"]["car"]["airConditioned"] is False

    @pytest.mark.asyncio
    async def test_requires_auth(self, client):
        response = await client.post("/api/rides", json=ride_payload())

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_round_trip_without_return_time(self, client, rider):
        response = await client.post(
            "/api/rides", json=ride_payload(returnTime=None), headers=bearer(rider)
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Return time is required for round trips",
        }

    @pytest.mark.asyncio
    async def test_unknown_enum_value(self, client, rider):
        response = await client.post(
            "/api/rides", json=ride_payload(vehicleType="boat"), headers=bearer(rider)
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("vehicleType")


class TestRead:

    @pytest.mark.asyncio
    async def test_public_listing(self, client, rider):
        ride = await post_ride(client, rider)

        response = await client.get("/api/rides")

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [ride["id"]]

    @pytest.mark.asyncio
    async def test_get_one(self, client, rider):
        ride = await post_ride(client, rider)

        response = await client.get(f"/api/rides/{ride['id']}")

        assert response.status_code == 200
        assert response.json()["vehicleDetails"] == "White Corolla"

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        response = await client.get(f"/api/rides/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Ride not found"}

    @pytest.mark.asyncio
    async def test_malformed_id(self, client):
        response = await client.get("/api/rides/not-a-uuid")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_my_rides(self, client, rider, other_rider):
        mine = await post_ride(client, rider)
        await post_ride(client, other_rider)

        response = await client.get("/api/rides/myrides", headers=bearer(rider))

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [mine["id"]]

    @pytest.mark.asyncio
    async def test_filter(self, client, rider):
        direct = await post_ride(client, rider, destination="F-10 Markaz", stops=[])
        via_stop = await post_ride(client, rider, destination="Bahria Town", stops=["F-10 Markaz"])
        await post_ride(
            client, rider,
            startingPoint="G-9", destination="F-10", stops=[], isNustStart=False, isNustDest=True,
        )

        response = await client.get(
            "/api/rides/filter",
            params={"startingPoint": "nust", "destination": "f-10", "isNustStart": "true"},
        )

        assert response.status_code == 200
        assert {r["id"] for r in response.json()} == {direct["id"], via_stop["id"]}

    @pytest.mark.asyncio
    async def test_filter_days_and_vehicle(self, client, rider):
        bike = await post_ride(
            client, rider, vehicleType="bike", passengerCapacity=None, daysAvailable=["Sat"]
        )
        await post_ride(client, rider)

        response = await client.get(
            "/api/rides/filter", params={"daysAvailable": "Sat,Sun", "vehicleType": "bike"}
        )

        assert [r["id"] for r in response.json()] == [bike["id"]]


class TestOwnerChanges:

    @pytest.mark.asyncio
    async def test_update(self, client, rider):
        ride = await post_ride(client, rider)

        response = await client.put(
            f"/api/rides/{ride['id']}",
            json={"price": "300", "isFlagged": True},
            headers=bearer(rider),
        )

        assert response.status_code == 200
        assert response.json()["price"] == "300"
        assert response.json()["isFlagged"] is False

    @pytest.mark.asyncio
    async def test_update_rejects_blank_required_field(self, client, rider):
        ride = await post_ride(client, rider)

        response = await client.put(
            f"/api/rides/{ride['id']}", json={"destination": "  "}, headers=bearer(rider)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Field cannot be empty"

    @pytest.mark.asyncio
    async def test_update_by_other_user(self, client, rider, other_rider):
        ride = await post_ride(client, rider)

        response = await client.put(
            f"/api/rides/{ride['id']}", json={"price": "1"}, headers=bearer(other_rider)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete(self, client, rider):
        ride = await post_ride(client, rider)

        response = await client.delete(f"/api/rides/{ride['id']}", headers=bearer(rider))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Ride deleted successfully",
            "id": ride["id"],
        }
        assert (await client.get(f"/api/rides/{ride['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_by_other_user(self, client, rider, other_rider):
        ride = await post_ride(client, rider)

        response = await client.delete(f"/api/rides/{ride['id']}", headers=bearer(other_rider))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_missing_is_404_before_ownership(self, client, rider):
        response = await client.delete(f"/api/rides/{uuid.uuid4()}", headers=bearer(rider))

        assert response.status_code == 404


class TestAdmin:

    @pytest.mark.asyncio
    async def test_admin_routes_forbidden_to_riders(self, client, rider):
        ride = await post_ride(client, rider)

        responses = [
            await client.get("/api/rides/admin/all", headers=bearer(rider)),
            await client.put(
                f"/api/rides/{ride['id']}/flag", json={"flagReason": "x"}, headers=bearer(rider)
            ),
            await client.put(
                f"/api/rides/{ride['id']}/moderate",
                json={"moderationStatus": "rejected"},
                headers=bearer(rider),
            ),
            await client.delete(f"/api/rides/admin/{ride['id']}", headers=bearer(rider)),
        ]

        assert [r.status_code for r in responses] == [403, 403, 403, 403]

    @pytest.mark.asyncio
    async def test_flag_and_reject(self, client, rider, admin):
        ride = await post_ride(client, rider)

        response = await client.put(
            f"/api/rides/{ride['id']}/flag",
            json={"flagReason": "Suspicious price"},
            headers=bearer(admin),
        )
        assert response.status_code == 200
        assert response.json()["isFlagged"] is True
        assert response.json()["status"] == "active"

        response = await client.put(
            f"/api/rides/{ride['id']}/moderate",
            json={"moderationStatus": "rejected", "adminNotes": "Scam"},
            headers=bearer(admin),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["moderationStatus"] == "rejected"
        assert data["isFlagged"] is False
        assert data["adminNotes"] == "Scam"
        assert data["moderator"]["id"] == str(admin.id)

        # Gone from the public listing, still visible to the admin
        assert (await client.get("/api/rides")).json() == []
        admin_list = await client.get("/api/rides/admin/all", headers=bearer(admin))
        assert [r["id"] for r in admin_list.json()] == [ride["id"]]

    @pytest.mark.asyncio
    async def test_flag_without_reason(self, client, rider, admin):
        ride = await post_ride(client, rider)

        response = await client.put(
            f"/api/rides/{ride['id']}/flag", json={}, headers=bearer(admin)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Flag reason is required"

    @pytest.mark.asyncio
    async def test_moderate_without_decision(self, client, rider, admin):
        ride = await post_ride(client, rider)

        response = await client.put(
            f"/api/rides/{ride['id']}/moderate", json={}, headers=bearer(admin)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Moderation status is required"

    @pytest.mark.asyncio
    async def test_admin_delete(self, client, rider, admin):
        ride = await post_ride(client, rider)

        response = await client.delete(f"/api/rides/admin/{ride['id']}", headers=bearer(admin))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Ride deleted by admin",
            "id": ride["id"],
        }

    @pytest.mark.asyncio
    async def test_admin_delete_missing(self, client, admin):
        response = await client.delete(f"/api/rides/admin/{uuid.uuid4()}", headers=bearer(admin))

        assert response.status_code == 404
