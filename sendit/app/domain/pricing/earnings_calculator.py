"""
Courier Earnings Calculator.

Pure functions used by the courier endpoints:
- delivery earnings per parcel (flat base + distance, delivery type multiplier,
  special handling bonus)
- daily volume bonus
- display priority of a delivery
"""

import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sendit.app.models.parcel_enums import DeliveryType, Priority


EARTH_RADIUS_KM = 6371.0

BASE_EARNING = 50.0
PER_KM_EARNING = 10.0
SPECIAL_HANDLING_BONUS = 25.0

EARNING_MULTIPLIERS = {
    DeliveryType.STANDARD: 1.0,
    DeliveryType.EXPRESS: 1.5,
    DeliveryType.SAME_DAY: 2.0,
    DeliveryType.OVERNIGHT: 1.3,
}

DAILY_BONUS_THRESHOLD = 5
DAILY_BONUS_PER_DELIVERY = 10

HIGH_PRIORITY_TYPES = frozenset({DeliveryType.SAME_DAY, DeliveryType.EXPRESS})
HIGH_PRIORITY_HOURS = 4
MEDIUM_PRIORITY_HOURS = 24


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def address_distance(from_address, to_address) -> float:
    """Distance between two addresses, 0 if either lacks coordinates."""
    if from_address is None or to_address is None:
        return 0.0
    coords = (
        from_address.latitude, from_address.longitude,
        to_address.latitude, to_address.longitude,
    )
    if any(value is None for value in coords):
        return 0.0
    return haversine_distance(*coords)


def round_whole(amount: float) -> int:
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_delivery_earnings(parcel) -> int:
    """
    Earnings for delivering one parcel, rounded to a whole currency unit.

    Example: 10 km, STANDARD, no special handling → 50 + 10 * 10 = 150
    """
    earning = BASE_EARNING
    earning += address_distance(parcel.sender_address, parcel.recipient_address) * PER_KM_EARNING
    earning *= EARNING_MULTIPLIERS.get(parcel.delivery_type, 1.0)

    if parcel.fragile or parcel.high_value:
        earning += SPECIAL_HANDLING_BONUS

    return round_whole(earning)


def total_earnings(parcels: Iterable) -> int:
    return sum(calculate_delivery_earnings(parcel) for parcel in parcels)


def calculate_daily_bonus(delivery_count: int) -> int:
    # Bonus only kicks in after the 5th delivery of the day
    if delivery_count > DAILY_BONUS_THRESHOLD:
        return delivery_count * DAILY_BONUS_PER_DELIVERY
    return 0


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def determine_priority(parcel, now: Optional[datetime] = None) -> Priority:
    """
    Display priority of a delivery.

    HIGH for express/same-day, special handling, or due within 4 hours.
    MEDIUM if due within 24 hours. LOW otherwise.
    """
    if parcel.delivery_type in HIGH_PRIORITY_TYPES:
        return Priority.HIGH

    if parcel.fragile or parcel.perishable or parcel.high_value:
        return Priority.HIGH

    if parcel.estimated_delivery is not None:
        now = _as_naive_utc(now or datetime.utcnow())
        hours_left = (_as_naive_utc(parcel.estimated_delivery) - now).total_seconds() / 3600
        if hours_left <= HIGH_PRIORITY_HOURS:
            return Priority.HIGH
        if hours_left <= MEDIUM_PRIORITY_HOURS:
            return Priority.MEDIUM

    return Priority.LOW
