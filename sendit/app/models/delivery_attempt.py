"""
Delivery Attempt model.

One row per delivery-stage outcome (DELIVERED, DELAYED, RETURNED).
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, Text
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import AttemptStatus


class DeliveryAttempt(Base):
    """
    Delivery Attempt model.

    Append-only. A DELAYED parcel gets a next_attempt one day out.
    """
    __tablename__ = "delivery_attempts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    parcel_id = Column(Integer, ForeignKey('parcels.id'), nullable=False, index=True)

    status = Column(Enum(AttemptStatus), nullable=False)
    reason = Column(Text, nullable=True)
    courier_notes = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Proof of delivery
    photo_url = Column(String(500), nullable=True)

    attempt_date = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    next_attempt = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<DeliveryAttempt(parcel_id={self.parcel_id}, status='{self.status.value}')>"
