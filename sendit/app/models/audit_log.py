"""
Audit Log Database Model.

Tracks dispatch and admin actions. Parcel status changes are recorded in
the tracking history instead.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from sendit.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - PARCEL_CREATED / PARCEL_DELETED
    - COURIER_ASSIGNED / ASSIGNMENT_CANCELLED
    - PAYMENT_CONFIRMED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # Parcel the action concerns, if any
    parcel_id = Column(Integer, index=True, nullable=True)

    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_id}, parcel={self.parcel_id})>"
