"""
Admin Parcel Operations.

Status overrides, courier dispatch, soft deletion and the audit trail. Every status change
still goes through the workflow and its transition table.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sendit.app.core.guards import require_role
from sendit.app.db.session import get_db
from sendit.app.models.enums import UserRole
from sendit.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from sendit.app.schemas.parcel import (
    AssignCourierRequest, AssignmentResponse, CancelAssignmentRequest, ParcelResponse,
    StatusUpdateRequest
)
from sendit.app.services.assignment_service import AssignmentService
from sendit.app.services.audit import get_audit_trail
from sendit.app.services.courier_service import validate_coordinates
from sendit.app.services.parcel_service import ParcelService
from sendit.app.services.parcel_workflow import parcel_workflow

router = APIRouter(prefix="/admin", tags=["Admin - Parcels"])


@router.patch("/parcels/{parcel_id}/status", response_model=ParcelResponse)
async def update_parcel_status(
    parcel_id: int = Path(..., description="Parcel ID"),
    update: StatusUpdateRequest = ...,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Move a parcel to any status the transition table allows."""
    validate_coordinates(update.latitude, update.longitude)
    return await parcel_workflow.update_parcel_status(
        db,
        parcel_id=parcel_id,
        new_status=update.status,
        actor_id=current_user["user_id"],
        location=update.location,
        description=update.description,
        latitude=update.latitude,
        longitude=update.longitude,
        courier_notes=update.courier_notes,
    )


@router.post("/parcels/{parcel_id}/assign", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_courier(
    parcel_id: int = Path(..., description="Parcel ID"),
    assignment: AssignCourierRequest = ...,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Create the parcel's ACTIVE courier assignment (409 if one exists)."""
    return await AssignmentService.assign_courier(
        db, parcel_id, assignment.courier_id, current_user, notes=assignment.notes
    )


@router.post("/assignments/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    request: Optional[CancelAssignmentRequest] = None,
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    reason = request.reason if request else None
    return await AssignmentService.cancel_assignment(db, assignment_id, current_user, reason)


@router.delete("/parcels/{parcel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Soft-delete. The parcel disappears from listings and tracking."""
    await ParcelService.soft_delete_parcel(db, parcel_id, current_user)


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    parcel_id: Optional[int] = Query(None, description="Filter by parcel ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Dispatch and admin actions, most recent first."""
    logs = await get_audit_trail(db, parcel_id=parcel_id, action=action, limit=limit)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs),
    )
