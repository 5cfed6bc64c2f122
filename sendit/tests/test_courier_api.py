"""
Courier API tests: assigned deliveries, multipart status updates with
proof-of-delivery photos, earnings and stats.
"""

import os
from datetime import datetime

import pytest

from conftest import TestingSessionLocal, auth_headers
from sendit.app.core.config import settings
from sendit.app.core.exceptions import ConcurrentUpdateError
from sendit.app.models.courier_assignment import CourierAssignment
from sendit.app.models.parcel_enums import CourierAssignmentStatus
from sendit.app.services.courier_service import start_of_month, start_of_week
from sendit.app.services.parcel_store import ParcelStore
from sendit.app.services.upload_service import upload_service

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture
async def assigned_parcel(create_parcel, assign, courier):
    parcel = await create_parcel()
    assignment = await assign(parcel["id"], courier)
    return parcel, assignment


async def post_status(client, user, parcel_id, files=None, **data):
    return await client.post(
        f"/v1/courier/deliveries/{parcel_id}/status",
        data=data,
        files=files,
        headers=auth_headers(user),
    )


def stored_uploads():
    if not os.path.isdir(upload_service.storage_dir):
        return []
    return os.listdir(upload_service.storage_dir)


@pytest.mark.asyncio
async def test_courier_sees_only_assigned_deliveries(client, assigned_parcel, create_parcel, courier, other_courier):
    parcel, _ = assigned_parcel
    await create_parcel(description="Not assigned")

    response = await client.get("/v1/courier/deliveries", headers=auth_headers(courier))
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    delivery = body["deliveries"][0]
    assert delivery["id"] == parcel["id"]
    assert delivery["distance_km"] > 400
    assert delivery["estimated_earnings"] > 50
    assert delivery["priority"] in ("HIGH", "MEDIUM", "LOW")

    response = await client.get("/v1/courier/deliveries", headers=auth_headers(other_courier))
    assert response.json()["total"] == 0

    response = await client.get(f"/v1/courier/deliveries/{parcel['id']}", headers=auth_headers(other_courier))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_type_filter(client, assigned_parcel, set_status, courier):
    parcel, _ = assigned_parcel
    headers = auth_headers(courier)

    response = await client.get("/v1/courier/deliveries", params={"type": "PICKUP"}, headers=headers)
    assert response.json()["total"] == 1
    response = await client.get("/v1/courier/deliveries", params={"type": "DELIVERY"}, headers=headers)
    assert response.json()["total"] == 0

    await set_status(parcel["id"], "PICKED_UP")
    response = await client.get("/v1/courier/deliveries", params={"type": "DELIVERY"}, headers=headers)
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_today_route_lists_todays_parcels(client, assigned_parcel, courier):
    parcel, _ = assigned_parcel
    response = await client.get("/v1/courier/deliveries/today", headers=auth_headers(courier))
    assert response.status_code == 200
    assert [d["id"] for d in response.json()] == [parcel["id"]]


@pytest.mark.asyncio
async def test_customers_cannot_use_courier_api(client, sender):
    response = await client.get("/v1/courier/deliveries", headers=auth_headers(sender))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_courier_delivers_with_photo(client, assigned_parcel, courier):
    parcel, assignment = assigned_parcel

    response = await post_status(client, courier, parcel["id"], status="PICKED_UP", location="Nairobi")
    assert response.status_code == 200, response.text
    assert response.json()["tracking_history"][0]["updated_by"] == courier.id

    response = await post_status(
        client, courier, parcel["id"],
        files={"photo": ("pod.jpg", JPEG, "image/jpeg")},
        status="DELIVERED",
        latitude="-4.0435",
        longitude="39.6682",
        courier_notes="Handed to recipient",
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "DELIVERED"
    attempt = body["delivery_attempts"][0]
    assert attempt["status"] == "SUCCESSFUL"
    assert attempt["photo_url"].startswith("/uploads/")
    assert attempt["latitude"] == -4.0435
    assert len(stored_uploads()) == 1

    async with TestingSessionLocal() as session:
        stored = await session.get(CourierAssignment, assignment["id"])
    assert stored.status == CourierAssignmentStatus.COMPLETED

    # No longer an active delivery for this courier
    response = await client.get(f"/v1/courier/deliveries/{parcel['id']}", headers=auth_headers(courier))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_transition_stores_nothing(client, assigned_parcel, courier):
    parcel, _ = assigned_parcel
    response = await post_status(
        client, courier, parcel["id"],
        files={"photo": ("pod.jpg", JPEG, "image/jpeg")},
        status="DELIVERED",
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_TRANSITION_001"
    assert stored_uploads() == []


@pytest.mark.asyncio
async def test_non_image_upload_rejected(client, assigned_parcel, courier):
    parcel, _ = assigned_parcel
    await post_status(client, courier, parcel["id"], status="PICKED_UP")

    response = await post_status(
        client, courier, parcel["id"],
        files={"photo": ("notes.txt", b"hello", "text/plain")},
        status="DELIVERED",
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_002"

    response = await client.get(f"/v1/courier/deliveries/{parcel['id']}", headers=auth_headers(courier))
    assert response.json()["status"] == "PICKED_UP"


@pytest.mark.asyncio
@pytest.mark.parametrize("coords", [
    {"latitude": "-1.28"},
    {"longitude": "36.8"},
    {"latitude": "91", "longitude": "36.8"},
    {"latitude": "-1.28", "longitude": "181"},
])
async def test_malformed_coordinates_rejected(client, assigned_parcel, courier, coords):
    parcel, _ = assigned_parcel
    response = await post_status(client, courier, parcel["id"], status="PICKED_UP", **coords)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_002"


@pytest.mark.asyncio
async def test_photo_required_when_configured(client, assigned_parcel, courier, monkeypatch):
    parcel, _ = assigned_parcel
    monkeypatch.setattr(settings, "delivery_photo_required", True)

    await post_status(client, courier, parcel["id"], status="PICKED_UP")
    response = await post_status(client, courier, parcel["id"], status="DELIVERED")
    assert response.status_code == 400
    assert "photo" in response.json()["message"]

    response = await post_status(
        client, courier, parcel["id"],
        files={"photo": ("pod.png", b"\x89PNG\r\n", "image/png")},
        status="DELIVERED",
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_delay_is_classified_from_notes(client, assigned_parcel, courier):
    parcel, _ = assigned_parcel
    for status in ("PICKED_UP", "IN_TRANSIT"):
        await post_status(client, courier, parcel["id"], status=status)

    response = await post_status(
        client, courier, parcel["id"], status="DELAYED", courier_notes="Gate locked, no one home"
    )
    attempt = response.json()["delivery_attempts"][0]
    assert attempt["status"] == "FAILED_NO_ONE_HOME"
    assert attempt["courier_notes"] == "Gate locked, no one home"
    assert attempt["next_attempt"] is not None


@pytest.mark.asyncio
async def test_only_the_acting_couriers_assignment_completes(client, create_parcel, assign, courier, other_courier, admin):
    parcel = await create_parcel()
    first = await assign(parcel["id"], other_courier)
    response = await client.post(f"/v1/admin/assignments/{first['id']}/cancel", headers=auth_headers(admin))
    assert response.status_code == 200
    second = await assign(parcel["id"], courier)

    await post_status(client, courier, parcel["id"], status="PICKED_UP")
    response = await post_status(client, courier, parcel["id"], status="DELIVERED")
    assert response.status_code == 200

    async with TestingSessionLocal() as session:
        cancelled = await session.get(CourierAssignment, first["id"])
        completed = await session.get(CourierAssignment, second["id"])
    assert cancelled.status == CourierAssignmentStatus.CANCELLED
    assert cancelled.completed_at is None
    assert completed.status == CourierAssignmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_earnings_and_stats(client, assigned_parcel, create_parcel, assign, courier):
    parcel, _ = assigned_parcel
    headers = auth_headers(courier)
    other = await create_parcel(description="Still on the road")
    await assign(other["id"], courier)

    response = await client.get(f"/v1/courier/deliveries/{parcel['id']}", headers=headers)
    expected = response.json()["estimated_earnings"]

    await post_status(client, courier, parcel["id"], status="PICKED_UP")
    await post_status(client, courier, parcel["id"], status="DELIVERED")

    response = await client.get("/v1/courier/earnings", headers=headers)
    assert response.status_code == 200
    earnings = response.json()
    assert earnings["currency"] == "KES"
    assert earnings["daily"]["deliveries_completed"] == 1
    assert earnings["daily"]["total_earnings"] == expected
    assert earnings["daily"]["bonus_earnings"] == 0
    assert earnings["weekly"]["total_earnings"] == expected
    assert earnings["weekly"]["average_rating"] == 4.5
    assert earnings["monthly"]["deliveries_completed"] == 1
    assert earnings["monthly"]["month"] == datetime.utcnow().strftime("%B")

    response = await client.get("/v1/courier/stats", headers=headers)
    stats = response.json()
    assert stats["total_deliveries"] == 2
    assert stats["completed_deliveries"] == 1
    assert stats["active_deliveries"] == 1
    assert stats["success_rate"] == 50.0
    assert stats["total_earnings"] == expected
    assert stats["average_rating"] == 4.5


def test_week_starts_on_sunday():
    wednesday = datetime(2024, 5, 1, 15, 30)
    assert start_of_week(wednesday) == datetime(2024, 4, 28)
    sunday = datetime(2024, 4, 28, 8, 0)
    assert start_of_week(sunday) == datetime(2024, 4, 28)
    assert start_of_month(wednesday) == datetime(2024, 5, 1)


@pytest.mark.asyncio
async def test_deleted_parcels_drop_out_of_earnings(client, assigned_parcel, admin, courier):
    parcel, _ = assigned_parcel
    headers = auth_headers(courier)
    await post_status(client, courier, parcel["id"], status="PICKED_UP")
    await post_status(client, courier, parcel["id"], status="DELIVERED")

    response = await client.delete(f"/v1/admin/parcels/{parcel['id']}", headers=auth_headers(admin))
    assert response.status_code == 204

    earnings = (await client.get("/v1/courier/earnings", headers=headers)).json()
    assert earnings["daily"]["deliveries_completed"] == 0
    assert earnings["daily"]["total_earnings"] == 0
    assert earnings["monthly"]["deliveries_completed"] == 0

    stats = (await client.get("/v1/courier/stats", headers=headers)).json()
    assert stats["total_deliveries"] == 0
    assert stats["completed_deliveries"] == 0
    assert stats["success_rate"] == 0.0
    assert stats["total_earnings"] == 0


@pytest.mark.asyncio
async def test_rejected_update_removes_stored_photo(client, assigned_parcel, courier, mocker):
    parcel, _ = assigned_parcel
    await post_status(client, courier, parcel["id"], status="PICKED_UP")

    mocker.patch.object(
        ParcelStore, "commit", side_effect=ConcurrentUpdateError("Parcel", parcel["id"])
    )
    response = await post_status(
        client, courier, parcel["id"],
        files={"photo": ("door.jpg", JPEG, "image/jpeg")},
        status="DELIVERED",
    )

    assert response.status_code == 409
    assert stored_uploads() == []
