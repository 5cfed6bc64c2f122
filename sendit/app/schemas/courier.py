"""
Courier Schemas.
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel

from sendit.app.models.parcel_enums import ParcelStatus, Priority
from sendit.app.schemas.parcel import ParcelResponse


class CourierDeliveryResponse(ParcelResponse):
    """A parcel as the assigned courier sees it."""
    distance_km: float
    estimated_earnings: int
    priority: Priority


class DailyEarnings(BaseModel):
    date: datetime
    total_earnings: int
    deliveries_completed: int
    pickups_completed: int
    bonus_earnings: int


class WeeklyEarnings(BaseModel):
    week_start: datetime
    total_earnings: int
    deliveries_completed: int
    pickups_completed: int
    average_rating: float


class MonthlyEarnings(BaseModel):
    month: str
    year: int
    total_earnings: int
    deliveries_completed: int
    pickups_completed: int


class CourierEarningsResponse(BaseModel):
    currency: str
    daily: DailyEarnings
    weekly: WeeklyEarnings
    monthly: MonthlyEarnings


class CourierStatsResponse(BaseModel):
    total_deliveries: int
    completed_deliveries: int
    active_deliveries: int
    success_rate: float
    total_earnings: int
    average_rating: float


class DeliveryStatusForm(BaseModel):
    """Fields of the multipart status update, photo excluded."""
    status: ParcelStatus
    location: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    courier_notes: Optional[str] = None


class CourierDeliveryList(BaseModel):
    deliveries: List[CourierDeliveryResponse]
    total: int
