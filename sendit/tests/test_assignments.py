"""
Courier assignment lifecycle tests (dispatch side).
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from conftest import TestingSessionLocal, auth_headers, make_user
from sendit.app.models.audit_log import AuditLog
from sendit.app.models.courier_assignment import CourierAssignment
from sendit.app.models.enums import UserRole
from sendit.app.models.parcel_enums import CourierAssignmentStatus
from sendit.app.services.audit import AuditAction


@pytest.mark.asyncio
async def test_assign_creates_active_assignment(create_parcel, assign, courier, admin):
    parcel = await create_parcel()
    assignment = await assign(parcel["id"], courier)

    assert assignment["status"] == "ACTIVE"
    assert assignment["courier_id"] == courier.id
    assert assignment["assigned_by"] == admin.id
    assert assignment["completed_at"] is None

    async with TestingSessionLocal() as session:
        result = await session.execute(
            select(AuditLog.action).where(AuditLog.parcel_id == parcel["id"]).order_by(AuditLog.id)
        )
        actions = result.scalars().all()
    assert actions == [AuditAction.PARCEL_CREATED, AuditAction.COURIER_ASSIGNED]


@pytest.mark.asyncio
async def test_assignment_does_not_change_status(client, create_parcel, assign, courier, admin):
    parcel = await create_parcel()
    await assign(parcel["id"], courier)
    response = await client.get(f"/v1/parcels/{parcel['id']}", headers=auth_headers(admin))
    body = response.json()
    assert body["status"] == "PROCESSING"
    assert body["active_assignment"]["courier_id"] == courier.id
    assert len(body["tracking_history"]) == 1


@pytest.mark.asyncio
async def test_second_active_assignment_conflicts(create_parcel, assign, courier, other_courier):
    parcel = await create_parcel()
    await assign(parcel["id"], courier)
    body = await assign(parcel["id"], other_courier, expect=409)
    assert body["error_code"] == "ERR_CONFLICT_003"


@pytest.mark.asyncio
async def test_assign_requires_active_courier(create_parcel, assign, sender, db_session):
    parcel = await create_parcel()
    await assign(parcel["id"], sender, expect=404)

    retired = await make_user(db_session, "retired@sendit.co.ke", "Retired", UserRole.COURIER, is_active=False)
    await assign(parcel["id"], retired, expect=404)


@pytest.mark.asyncio
async def test_assign_to_terminal_parcel_rejected(create_parcel, set_status, assign, courier):
    parcel = await create_parcel()
    await set_status(parcel["id"], "CANCELLED")
    body = await assign(parcel["id"], courier, expect=400)
    assert body["error_code"] == "ERR_VALIDATION_002"


@pytest.mark.asyncio
async def test_cancel_then_reassign(client, create_parcel, assign, courier, other_courier, admin):
    parcel = await create_parcel()
    first = await assign(parcel["id"], courier)

    response = await client.post(
        f"/v1/admin/assignments/{first['id']}/cancel",
        json={"reason": "Courier off sick"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "CANCELLED"
    assert body["cancelled_at"] is not None

    response = await client.post(f"/v1/admin/assignments/{first['id']}/cancel", headers=auth_headers(admin))
    assert response.status_code == 400

    second = await assign(parcel["id"], other_courier)
    assert second["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_cancel_unknown_assignment(client, admin):
    response = await client.post("/v1/admin/assignments/4242/cancel", headers=auth_headers(admin))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_dispatch_is_admin_only(client, create_parcel, courier):
    parcel = await create_parcel()
    response = await client.post(
        f"/v1/admin/parcels/{parcel['id']}/assign",
        json={"courier_id": courier.id},
        headers=auth_headers(courier),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_database_allows_one_active_assignment(create_parcel, courier, other_courier):
    parcel = await create_parcel()

    async with TestingSessionLocal() as session:
        session.add(CourierAssignment(parcel_id=parcel["id"], courier_id=courier.id))
        await session.commit()

        session.add(CourierAssignment(parcel_id=parcel["id"], courier_id=other_courier.id))
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()

        session.add(CourierAssignment(
            parcel_id=parcel["id"],
            courier_id=other_courier.id,
            status=CourierAssignmentStatus.CANCELLED,
        ))
        await session.commit()


@pytest.mark.asyncio
async def test_audit_trail_lists_dispatch_actions(client, create_parcel, assign, courier, admin, sender):
    parcel = await create_parcel()
    await create_parcel(description="Unrelated")
    await assign(parcel["id"], courier)

    response = await client.get(
        "/v1/admin/audit-logs", params={"parcel_id": parcel["id"]}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [log["action"] for log in body["logs"]] == [
        AuditAction.COURIER_ASSIGNED, AuditAction.PARCEL_CREATED
    ]
    assert body["logs"][0]["actor_id"] == admin.id
    assert body["logs"][0]["meta_data"]["courier_id"] == courier.id

    response = await client.get(
        "/v1/admin/audit-logs",
        params={"action": AuditAction.PARCEL_CREATED},
        headers=auth_headers(admin),
    )
    assert response.json()["total"] == 2

    response = await client.get("/v1/admin/audit-logs", headers=auth_headers(sender))
    assert response.status_code == 403
