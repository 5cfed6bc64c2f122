"""
Courier earnings, bonus and priority tests.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from sendit.app.domain.pricing.earnings_calculator import (
    address_distance, calculate_daily_bonus, calculate_delivery_earnings,
    determine_priority, haversine_distance
)
from sendit.app.models.parcel_enums import DeliveryType, Priority

NAIROBI = SimpleNamespace(latitude=-1.2864, longitude=36.8172)
NO_COORDS = SimpleNamespace(latitude=None, longitude=None)


def make_parcel(**fields):
    defaults = dict(
        sender_address=NO_COORDS,
        recipient_address=NO_COORDS,
        delivery_type=DeliveryType.STANDARD,
        fragile=False,
        perishable=False,
        high_value=False,
        estimated_delivery=None,
    )
    defaults.update(fields)
    return SimpleNamespace(**defaults)


def test_haversine_known_distance():
    # Nairobi to Mombasa is roughly 440 km in a straight line
    distance = haversine_distance(-1.2864, 36.8172, -4.0435, 39.6682)
    assert 430 < distance < 450


def test_distance_zero_without_coordinates():
    assert address_distance(NAIROBI, NO_COORDS) == 0.0
    assert address_distance(None, NAIROBI) == 0.0


def test_flat_earning_without_distance():
    assert calculate_delivery_earnings(make_parcel()) == 50


def test_ten_km_standard(mocker):
    mocker.patch(
        "sendit.app.domain.pricing.earnings_calculator.address_distance", return_value=10.0
    )
    assert calculate_delivery_earnings(make_parcel()) == 150


@pytest.mark.parametrize("delivery_type,expected", [
    (DeliveryType.EXPRESS, 75),
    (DeliveryType.SAME_DAY, 100),
    (DeliveryType.OVERNIGHT, 65),
])
def test_delivery_type_multiplier(delivery_type, expected):
    assert calculate_delivery_earnings(make_parcel(delivery_type=delivery_type)) == expected


def test_special_handling_bonus_added_after_multiplier():
    parcel = make_parcel(delivery_type=DeliveryType.EXPRESS, fragile=True)
    assert calculate_delivery_earnings(parcel) == 100


def test_daily_bonus_threshold():
    assert calculate_daily_bonus(5) == 0
    assert calculate_daily_bonus(6) == 60


def test_priority():
    now = datetime(2024, 5, 1, 12, 0)
    assert determine_priority(make_parcel(delivery_type=DeliveryType.SAME_DAY), now) == Priority.HIGH
    assert determine_priority(make_parcel(perishable=True), now) == Priority.HIGH
    assert determine_priority(make_parcel(estimated_delivery=now + timedelta(hours=3)), now) == Priority.HIGH
    assert determine_priority(make_parcel(estimated_delivery=now + timedelta(hours=20)), now) == Priority.MEDIUM
    assert determine_priority(make_parcel(estimated_delivery=now + timedelta(days=3)), now) == Priority.LOW
    assert determine_priority(make_parcel(), now) == Priority.LOW
