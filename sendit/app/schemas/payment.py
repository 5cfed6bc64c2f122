"""
Payment Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from sendit.app.models.parcel_enums import PaymentStatus
from sendit.app.schemas.parcel import ParcelResponse


class PaymentConfirmRequest(BaseModel):
    """Gateway confirmation relayed by operations."""
    parcel_id: int
    reference: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class PaymentResponse(BaseModel):
    id: int
    parcel_id: int
    reference: str
    amount: float
    currency: str
    status: PaymentStatus
    paid_at: Optional[datetime]

    class Config:
        from_attributes = True


class PaymentConfirmResponse(BaseModel):
    payment: PaymentResponse
    parcel: ParcelResponse
