"""
Payment model.

Records the outcome reported by the payment gateway for a parcel. The
gateway integration itself lives outside this service.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from sendit.app.db.session import Base
from sendit.app.models.parcel_enums import PaymentStatus


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    parcel_id = Column(Integer, ForeignKey('parcels.id'), nullable=False, index=True)

    # Gateway reference (e.g. payment intent id)
    reference = Column(String(255), unique=True, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, default="KES")
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Payment(id={self.id}, parcel_id={self.parcel_id}, status='{self.status.value}')>"
