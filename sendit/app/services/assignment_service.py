"""
Courier Assignment Service.

Dispatch side of the assignment lifecycle: creating an ACTIVE assignment
and withdrawing it. Completion happens only inside the status workflow
when the parcel is delivered.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from sendit.app.core.exceptions import (
    AssignmentConflictError, ConcurrentUpdateError, ResourceNotFoundError, ValidationFailedError
)
from sendit.app.domain.workflow.transitions import is_terminal
from sendit.app.models.courier_assignment import CourierAssignment
from sendit.app.models.enums import UserRole
from sendit.app.models.parcel_enums import CourierAssignmentStatus
from sendit.app.models.user import User
from sendit.app.services.audit import AuditAction, log_event
from sendit.app.services.parcel_store import ParcelStore

logger = logging.getLogger(__name__)


class AssignmentService:

    @staticmethod
    async def get_active_courier(db: AsyncSession, courier_id: int) -> User:
        result = await db.execute(
            select(User).where(
                User.id == courier_id,
                User.role == UserRole.COURIER,
                User.is_active == True,  # noqa: E712
                User.deleted_at.is_(None),
            )
        )
        courier = result.scalar_one_or_none()
        if courier is None:
            raise ResourceNotFoundError("Courier", courier_id)
        return courier

    @staticmethod
    async def assign_courier(
        db: AsyncSession,
        parcel_id: int,
        courier_id: int,
        current_user: dict,
        notes: Optional[str] = None,
    ) -> CourierAssignment:
        """
        Create an ACTIVE assignment for a parcel.

        Raises:
            ResourceNotFoundError: parcel or active courier missing
            ValidationFailedError: parcel already in a terminal status
            AssignmentConflictError: parcel already has an ACTIVE assignment
        """
        parcel = await ParcelStore.get_parcel(db, parcel_id)
        if parcel is None:
            raise ResourceNotFoundError("Parcel", parcel_id)

        courier = await AssignmentService.get_active_courier(db, courier_id)

        if is_terminal(parcel.status):
            raise ValidationFailedError(
                f"Cannot assign a courier to a {parcel.status.value} parcel",
                details={"status": parcel.status.value},
            )
        if parcel.active_assignment is not None:
            raise AssignmentConflictError(parcel.id)

        assignment = CourierAssignment(
            parcel_id=parcel.id,
            courier_id=courier.id,
            assigned_by=current_user["user_id"],
            status=CourierAssignmentStatus.ACTIVE,
            notes=notes,
        )
        db.add(assignment)

        try:
            await log_event(
                db,
                action=AuditAction.COURIER_ASSIGNED,
                actor_id=current_user["user_id"],
                actor_email=current_user.get("sub"),
                parcel_id=parcel.id,
                metadata={"courier_id": courier.id, "tracking_number": parcel.tracking_number},
            )
            await db.commit()
        except IntegrityError:
            # Lost the race against another assignment for the same parcel
            await db.rollback()
            raise AssignmentConflictError(parcel_id)

        await db.refresh(assignment)
        logger.info("Courier %s assigned to parcel %s", courier.id, parcel.tracking_number)
        return assignment

    @staticmethod
    async def cancel_assignment(
        db: AsyncSession,
        assignment_id: int,
        current_user: dict,
        reason: Optional[str] = None,
    ) -> CourierAssignment:
        """Move an ACTIVE assignment to CANCELLED."""
        result = await db.execute(
            select(CourierAssignment).where(CourierAssignment.id == assignment_id)
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise ResourceNotFoundError("Assignment", assignment_id)

        if assignment.status != CourierAssignmentStatus.ACTIVE:
            raise ValidationFailedError(
                f"Only ACTIVE assignments can be cancelled, current status: {assignment.status.value}",
                details={"status": assignment.status.value},
            )

        await log_event(
            db,
            action=AuditAction.ASSIGNMENT_CANCELLED,
            actor_id=current_user["user_id"],
            actor_email=current_user.get("sub"),
            parcel_id=assignment.parcel_id,
            metadata={"assignment_id": assignment.id, "courier_id": assignment.courier_id, "reason": reason},
        )
        assignment.status = CourierAssignmentStatus.CANCELLED
        assignment.cancelled_at = datetime.utcnow()

        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            raise ConcurrentUpdateError("Assignment", assignment_id)

        logger.info("Assignment %s cancelled by user %s", assignment_id, current_user["user_id"])
        return assignment
