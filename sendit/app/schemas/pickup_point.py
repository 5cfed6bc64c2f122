"""
Pickup Point Schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional
from sendit.app.models.parcel_enums import PickupPointType


class PickupPointCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: PickupPointType
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    county: str = Field(..., min_length=1, max_length=100)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    hours: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    services: List[str] = []
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_active: bool = True


class PickupPointUpdate(BaseModel):
    """Partial update. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[PickupPointType] = None
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    county: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    hours: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    services: Optional[List[str]] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_active: Optional[bool] = None


class PickupPointResponse(BaseModel):
    id: int
    name: str
    type: PickupPointType
    address: str
    city: str
    county: str
    latitude: float
    longitude: float
    hours: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    services: List[str]
    rating: Optional[float]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    distance_km: Optional[float] = None

    class Config:
        from_attributes = True


class PickupPointListResponse(BaseModel):
    pickup_points: List[PickupPointResponse]
    total: int
    page: int
    limit: int
    total_pages: int
