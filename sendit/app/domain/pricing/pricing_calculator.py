"""
Shipment Price Calculator.

Prices a parcel at creation time from its weight, delivery type and
insurance choice. Pure functions, no database access.

Formula:
    base      = tier(weight_kg)              <1 → 15, ≤5 → 25, ≤20 → 45, else 75
    insurance = 10% of base if any coverage is requested
    total     = base * delivery_multiplier + insurance

All amounts are rounded half-up to cents.
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel

from sendit.app.core.config import settings
from sendit.app.models.parcel_enums import DeliveryType, InsuranceCoverage, WeightUnit


WEIGHT_TIERS = (
    # (upper bound kg, inclusive?, price)
    (1.0, False, 15.0),
    (5.0, True, 25.0),
    (20.0, True, 45.0),
)
HEAVY_PRICE = 75.0

DELIVERY_MULTIPLIERS = {
    DeliveryType.STANDARD: 1.0,
    DeliveryType.EXPRESS: 1.5,
    DeliveryType.SAME_DAY: 2.5,
    DeliveryType.OVERNIGHT: 2.0,
}

INSURANCE_RATE = 0.10

# Promised transit time per service level
DELIVERY_WINDOWS = {
    DeliveryType.STANDARD: timedelta(days=5),
    DeliveryType.EXPRESS: timedelta(days=2),
    DeliveryType.SAME_DAY: timedelta(hours=6),
    DeliveryType.OVERNIGHT: timedelta(days=1),
}

KG_PER_UNIT = {
    WeightUnit.kg: 1.0,
    WeightUnit.lb: 0.453592,
    WeightUnit.g: 0.001,
}


class PriceQuote(BaseModel):
    """Price breakdown for one parcel."""
    weight_kg: float
    base_price: float
    multiplier: float
    insurance_fee: float
    total_price: float
    currency: str


def round_money(amount: float) -> float:
    """Round half-up to 2 decimal places (37.5 stays 37.5, 0.125 → 0.13)."""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def to_kilograms(weight: float, unit: WeightUnit = WeightUnit.kg) -> float:
    return weight * KG_PER_UNIT[unit]


def calculate_base_price(weight_kg: float) -> float:
    for limit, inclusive, price in WEIGHT_TIERS:
        if weight_kg < limit or (inclusive and weight_kg == limit):
            return price
    return HEAVY_PRICE


def calculate_shipment_price(
    weight: float,
    delivery_type: DeliveryType = DeliveryType.STANDARD,
    insurance_coverage: InsuranceCoverage = InsuranceCoverage.NO_INSURANCE,
    weight_unit: WeightUnit = WeightUnit.kg,
) -> PriceQuote:
    """
    Calculate the shipment price.

    Example:
        calculate_shipment_price(3, DeliveryType.EXPRESS).total_price == 37.5
    """
    weight_kg = to_kilograms(weight, weight_unit)
    base_price = calculate_base_price(weight_kg)
    multiplier = DELIVERY_MULTIPLIERS[delivery_type]

    insurance_fee = 0.0
    if insurance_coverage != InsuranceCoverage.NO_INSURANCE:
        insurance_fee = base_price * INSURANCE_RATE

    total = base_price * multiplier + insurance_fee

    return PriceQuote(
        weight_kg=weight_kg,
        base_price=round_money(base_price),
        multiplier=multiplier,
        insurance_fee=round_money(insurance_fee),
        total_price=round_money(total),
        currency=settings.currency,
    )


def estimate_delivery(delivery_type: DeliveryType, now: datetime) -> datetime:
    return now + DELIVERY_WINDOWS[delivery_type]
