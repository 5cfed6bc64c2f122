"""
Tracking History model.

Append-only ledger of every status a parcel has been in.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, Index
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import ParcelStatus


class TrackingHistory(Base):
    """
    Tracking History entry.

    Rows are written once and never updated or deleted. The timestamp is
    assigned by the server at write time.
    """
    __tablename__ = "tracking_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    parcel_id = Column(Integer, ForeignKey('parcels.id'), nullable=False)

    status = Column(Enum(ParcelStatus), nullable=False)
    location = Column(String(255), nullable=True)
    description = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Actor that caused the change (None for system events)
    updated_by = Column(Integer, ForeignKey('users.id'), nullable=True)

    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('ix_tracking_history_parcel_timestamp', 'parcel_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<TrackingHistory(parcel_id={self.parcel_id}, status='{self.status.value}')>"
