"""
Parcel-related enumerations.
"""

import enum


class ParcelStatus(str, enum.Enum):
    """
    Parcel lifecycle status.

    Allowed moves between these values are defined in
    sendit.app.domain.workflow.transitions.
    """
    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    DELAYED = "DELAYED"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PackageType(str, enum.Enum):
    STANDARD_BOX = "STANDARD_BOX"
    DOCUMENT = "DOCUMENT"
    CLOTHING = "CLOTHING"
    ELECTRONICS = "ELECTRONICS"
    FRAGILE = "FRAGILE"
    LIQUID = "LIQUID"
    PERISHABLE = "PERISHABLE"


class DeliveryType(str, enum.Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    SAME_DAY = "SAME_DAY"
    OVERNIGHT = "OVERNIGHT"


class InsuranceCoverage(str, enum.Enum):
    NO_INSURANCE = "NO_INSURANCE"
    BASIC_COVERAGE = "BASIC_COVERAGE"
    PREMIUM_COVERAGE = "PREMIUM_COVERAGE"


class WeightUnit(str, enum.Enum):
    kg = "kg"
    lb = "lb"
    g = "g"


class DimensionUnit(str, enum.Enum):
    cm = "cm"
    in_ = "in"
    m = "m"
    ft = "ft"


class AttemptStatus(str, enum.Enum):
    """Outcome of a single delivery attempt."""
    SUCCESSFUL = "SUCCESSFUL"
    FAILED_NO_ONE_HOME = "FAILED_NO_ONE_HOME"
    FAILED_INCORRECT_ADDRESS = "FAILED_INCORRECT_ADDRESS"
    FAILED_REFUSED = "FAILED_REFUSED"
    FAILED_WEATHER = "FAILED_WEATHER"
    FAILED_OTHER = "FAILED_OTHER"


class CourierAssignmentStatus(str, enum.Enum):
    """
    Courier assignment status.

    Status flow:
        ACTIVE → COMPLETED (parcel delivered)
        ACTIVE → CANCELLED (dispatch withdrew the assignment)
    """
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Priority(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DeliveryFilterType(str, enum.Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PickupPointType(str, enum.Enum):
    SENDIT_CENTER = "SENDIT_CENTER"
    PARTNER_LOCATION = "PARTNER_LOCATION"
    MALL_LOCKER = "MALL_LOCKER"
