"""
Parcel Pydantic schemas.

Request and response models for parcel creation, listing, tracking and
status changes.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from sendit.app.models.parcel_enums import (
    ParcelStatus, PackageType, DeliveryType, InsuranceCoverage, WeightUnit,
    DimensionUnit, AttemptStatus, CourierAssignmentStatus,
)


# --- Requests ---

class AddressIn(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    street: str = Field(..., min_length=1, max_length=255)
    area: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    county: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: str = Field(default="Kenya", max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class DimensionsIn(BaseModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    unit: DimensionUnit = DimensionUnit.cm


class RecipientIn(BaseModel):
    """Recipient contact. Unknown emails get a shell customer account."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)


class ParcelCreate(BaseModel):
    """Schema for creating a new parcel."""
    recipient: RecipientIn
    sender_address: AddressIn
    recipient_address: AddressIn
    dimensions: Optional[DimensionsIn] = None

    package_type: PackageType
    weight: float = Field(..., gt=0, description="Weight in `weight_unit`")
    weight_unit: WeightUnit = WeightUnit.kg
    delivery_type: DeliveryType = DeliveryType.STANDARD
    insurance_coverage: InsuranceCoverage = InsuranceCoverage.NO_INSURANCE
    description: Optional[str] = Field(None, max_length=1000)
    estimated_value: Optional[float] = Field(None, ge=0)

    fragile: bool = False
    perishable: bool = False
    hazardous_material: bool = False
    high_value: bool = False
    signature_required: bool = False
    hold_at_pickup_point: bool = Field(False, description="Hold at the nearest pickup point if delivery fails")
    pickup_instructions: Optional[str] = Field(None, max_length=1000)
    delivery_instructions: Optional[str] = Field(None, max_length=1000)

    save_as_draft: bool = Field(False, description="Create in DRAFT instead of PROCESSING")
    payment_required: bool = Field(False, description="Create in PAYMENT_PENDING until payment is confirmed")


class StatusUpdateRequest(BaseModel):
    """Admin status change."""
    status: ParcelStatus
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    courier_notes: Optional[str] = Field(None, max_length=1000)


class CancelParcelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AssignCourierRequest(BaseModel):
    courier_id: int
    notes: Optional[str] = Field(None, max_length=500)


class CancelAssignmentRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# --- Responses ---

class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]

    class Config:
        from_attributes = True


class AddressResponse(BaseModel):
    id: int
    name: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    street: str
    area: Optional[str]
    city: str
    county: Optional[str]
    state: Optional[str]
    zip_code: Optional[str]
    country: str
    latitude: Optional[float]
    longitude: Optional[float]

    class Config:
        from_attributes = True


class DimensionsResponse(BaseModel):
    length: float
    width: float
    height: float
    unit: DimensionUnit

    class Config:
        from_attributes = True


class TrackingHistoryResponse(BaseModel):
    id: int
    status: ParcelStatus
    location: Optional[str]
    description: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    updated_by: Optional[int]
    timestamp: datetime

    class Config:
        from_attributes = True


class DeliveryAttemptResponse(BaseModel):
    id: int
    status: AttemptStatus
    reason: Optional[str]
    courier_notes: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    photo_url: Optional[str]
    attempt_date: datetime
    next_attempt: Optional[datetime]

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    id: int
    parcel_id: int
    courier_id: int
    assigned_by: Optional[int]
    status: CourierAssignmentStatus
    notes: Optional[str]
    assigned_at: datetime
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    class Config:
        from_attributes = True


class ParcelResponse(BaseModel):
    """Full parcel view for the sender, the recipient and admins."""
    id: int
    tracking_number: str
    status: ParcelStatus
    package_type: PackageType
    delivery_type: DeliveryType
    weight: float
    weight_unit: WeightUnit
    description: Optional[str]
    estimated_value: Optional[float]
    insurance_coverage: InsuranceCoverage

    fragile: bool
    perishable: bool
    hazardous_material: bool
    high_value: bool
    signature_required: bool
    hold_at_pickup_point: bool
    pickup_instructions: Optional[str]
    delivery_instructions: Optional[str]

    base_price: float
    additional_fees: float
    total_price: float
    currency: str

    estimated_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]

    sender: UserSummary
    recipient: UserSummary
    sender_address: AddressResponse
    recipient_address: AddressResponse
    dimensions: Optional[DimensionsResponse]

    tracking_history: List[TrackingHistoryResponse] = []
    delivery_attempts: List[DeliveryAttemptResponse] = []
    active_assignment: Optional[AssignmentResponse] = None

    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ParcelListResponse(BaseModel):
    """Schema for paginated parcel list."""
    parcels: List[ParcelResponse]
    total: int
    page: int
    page_size: int


class TrackingLocation(BaseModel):
    city: str
    county: Optional[str]
    country: str

    class Config:
        from_attributes = True


class TrackingResponse(BaseModel):
    """
    Public tracking view.

    No contact details or street addresses: anyone holding the tracking
    number can read this.
    """
    tracking_number: str
    status: ParcelStatus
    package_type: PackageType
    delivery_type: DeliveryType
    origin: TrackingLocation
    destination: TrackingLocation
    estimated_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]
    tracking_history: List[TrackingHistoryResponse]
    created_at: datetime


class HistoryResponse(BaseModel):
    parcel_id: int
    tracking_number: str
    entries: List[TrackingHistoryResponse]
