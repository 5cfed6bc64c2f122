"""
Audit logging service for dispatch and admin actions.

Parcel status changes are not audited here; the tracking history is their
audit trail.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sendit.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    PARCEL_CREATED = "PARCEL_CREATED"
    PARCEL_DELETED = "PARCEL_DELETED"
    COURIER_ASSIGNED = "COURIER_ASSIGNED"
    ASSIGNMENT_CANCELLED = "ASSIGNMENT_CANCELLED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    parcel_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit entry to the caller's transaction.

    The entry is flushed, not committed, so it lands or rolls back together
    with the action it describes.
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        parcel_id=parcel_id,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    parcel_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if parcel_id is not None:
        query = query.where(AuditLog.parcel_id == parcel_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
