"""
Concurrency Tests.

Two requests that read the same parcel version cannot both commit a
transition: the second is rejected with 409 and writes nothing.
"""

import pytest
from sqlalchemy import func, select

from conftest import TestingSessionLocal, auth_headers
from sendit.app.core.exceptions import ConcurrentUpdateError
from sendit.app.models.courier_assignment import CourierAssignment
from sendit.app.models.parcel import Parcel
from sendit.app.models.parcel_enums import CourierAssignmentStatus, ParcelStatus
from sendit.app.models.tracking_history import TrackingHistory
from sendit.app.services.assignment_service import AssignmentService
from sendit.app.services.parcel_store import ParcelStore, StatusChange
from sendit.app.services.parcel_workflow import parcel_workflow


async def ledger_size(parcel_id):
    async with TestingSessionLocal() as session:
        result = await session.execute(
            select(func.count()).select_from(TrackingHistory).where(TrackingHistory.parcel_id == parcel_id)
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_stale_transition_rejected(create_parcel, admin, sender):
    parcel_json = await create_parcel()

    async with TestingSessionLocal() as first, TestingSessionLocal() as second:
        mine = await ParcelStore.get_parcel(first, parcel_json["id"])
        theirs = await ParcelStore.get_parcel(second, parcel_json["id"])

        # Both saw PROCESSING, so both pass validation
        await parcel_workflow.apply(first, mine, StatusChange(
            new_status=ParcelStatus.PICKED_UP, actor_id=admin.id,
        ))
        with pytest.raises(ConcurrentUpdateError):
            await parcel_workflow.apply(second, theirs, StatusChange(
                new_status=ParcelStatus.CANCELLED, actor_id=sender.id,
            ))

    async with TestingSessionLocal() as session:
        stored = await session.get(Parcel, parcel_json["id"])
        assert stored.status == ParcelStatus.PICKED_UP
    # creation entry plus the one winning transition
    assert await ledger_size(parcel_json["id"]) == 2


@pytest.mark.asyncio
async def test_conflict_surfaces_as_409(client, create_parcel, sender, mocker):
    parcel = await create_parcel()

    original = ParcelStore.get_parcel
    edited = []

    async def stale_read(db, parcel_id, refresh=False):
        loaded = await original(db, parcel_id, refresh)
        if not edited:
            edited.append(parcel_id)
            # Someone else commits between our read and our write
            async with TestingSessionLocal() as other:
                fresh = await original(other, parcel_id)
                fresh.description = "edited elsewhere"
                await other.commit()
        return loaded

    mocker.patch.object(ParcelStore, "get_parcel", side_effect=stale_read)

    response = await client.patch(f"/v1/parcels/{parcel['id']}/cancel", headers=auth_headers(sender))
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"
    assert await ledger_size(parcel["id"]) == 1


@pytest.mark.asyncio
async def test_delivery_racing_assignment_cancel(create_parcel, assign, set_status, courier, admin):
    parcel_json = await create_parcel()
    assignment = await assign(parcel_json["id"], courier)
    await set_status(parcel_json["id"], "PICKED_UP")

    async with TestingSessionLocal() as delivering:
        parcel = await ParcelStore.get_parcel(delivering, parcel_json["id"])

        async with TestingSessionLocal() as dispatch:
            await AssignmentService.cancel_assignment(
                dispatch, assignment["id"], {"user_id": admin.id, "sub": admin.email}
            )

        with pytest.raises(ConcurrentUpdateError):
            await parcel_workflow.apply(delivering, parcel, StatusChange(
                new_status=ParcelStatus.DELIVERED, actor_id=courier.id, courier_id=courier.id,
            ))

    async with TestingSessionLocal() as session:
        stored = await session.get(CourierAssignment, assignment["id"])
        assert stored.status == CourierAssignmentStatus.CANCELLED
        assert (await session.get(Parcel, parcel_json["id"])).status == ParcelStatus.PICKED_UP
