"""
Shipment pricing tests.
"""

from datetime import datetime, timedelta

import pytest

from sendit.app.domain.pricing.pricing_calculator import (
    calculate_base_price, calculate_shipment_price, estimate_delivery, round_money
)
from sendit.app.models.parcel_enums import DeliveryType, InsuranceCoverage, WeightUnit


@pytest.mark.parametrize("weight_kg,expected", [
    (0.5, 15.0),
    (0.999, 15.0),
    (1.0, 25.0),
    (5.0, 25.0),
    (5.01, 45.0),
    (20.0, 45.0),
    (20.5, 75.0),
])
def test_weight_tiers(weight_kg, expected):
    assert calculate_base_price(weight_kg) == expected


def test_express_three_kilos():
    quote = calculate_shipment_price(3, DeliveryType.EXPRESS)
    assert quote.base_price == 25.0
    assert quote.multiplier == 1.5
    assert quote.insurance_fee == 0.0
    assert quote.total_price == 37.5


def test_insurance_is_ten_percent_of_base():
    quote = calculate_shipment_price(10, DeliveryType.SAME_DAY, InsuranceCoverage.BASIC_COVERAGE)
    # 45 * 2.5 + 4.5
    assert quote.insurance_fee == 4.5
    assert quote.total_price == 117.0


def test_weight_units_are_converted():
    assert calculate_shipment_price(500, weight_unit=WeightUnit.g).base_price == 15.0
    # 11 lb is just under 5 kg
    assert calculate_shipment_price(11, weight_unit=WeightUnit.lb).base_price == 25.0
    assert calculate_shipment_price(12, weight_unit=WeightUnit.lb).base_price == 45.0


def test_quote_carries_currency():
    assert calculate_shipment_price(1).currency == "KES"


def test_round_money_half_up():
    assert round_money(0.125) == 0.13
    assert round_money(37.5) == 37.5
    assert round_money(2.675) == 2.68


def test_estimated_delivery_windows():
    now = datetime(2024, 5, 1, 9, 0)
    assert estimate_delivery(DeliveryType.STANDARD, now) == now + timedelta(days=5)
    assert estimate_delivery(DeliveryType.SAME_DAY, now) == now + timedelta(hours=6)
