"""
Courier Assignment model.

Links a courier to a parcel. At most one ACTIVE assignment per parcel,
enforced by a partial unique index.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import CourierAssignmentStatus


class CourierAssignment(Base):
    """
    Courier Assignment model.

    Created ACTIVE by dispatch, completed by the parcel workflow when the
    parcel is delivered, or cancelled by dispatch.
    """
    __tablename__ = "courier_assignments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    parcel_id = Column(Integer, ForeignKey('parcels.id'), nullable=False, index=True)
    courier_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey('users.id'), nullable=True)

    status = Column(Enum(CourierAssignmentStatus), default=CourierAssignmentStatus.ACTIVE, nullable=False, index=True)
    notes = Column(String(500), nullable=True)

    assigned_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)

    parcel = relationship("Parcel", back_populates="assignments", lazy="selectin")
    courier = relationship("User", foreign_keys=[courier_id], lazy="selectin")
    assigned_by_user = relationship("User", foreign_keys=[assigned_by], lazy="selectin")

    # Unique constraint: only one active assignment per parcel
    __table_args__ = (
        Index('ix_courier_assignments_active', 'parcel_id', unique=True,
              postgresql_where=text("status = 'ACTIVE'"),
              sqlite_where=text("status = 'ACTIVE'")),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<CourierAssignment(parcel_id={self.parcel_id}, courier_id={self.courier_id}, status='{self.status.value}')>"
