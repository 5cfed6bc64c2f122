"""
Parcel Status Transitions.

Single source of truth for which status a parcel may move to next.
Every caller (sender cancel, admin update, courier update, payment
confirmation) goes through `validate_transition` before writing.

    DRAFT             → PROCESSING
    PROCESSING        → PICKED_UP, CANCELLED
    PAYMENT_PENDING   → PAYMENT_CONFIRMED, CANCELLED
    PAYMENT_CONFIRMED → PICKED_UP, CANCELLED
    PICKED_UP         → IN_TRANSIT, DELIVERED, RETURNED
    IN_TRANSIT        → OUT_FOR_DELIVERY, DELAYED, RETURNED
    OUT_FOR_DELIVERY  → DELIVERED, DELAYED, RETURNED
    DELAYED           → OUT_FOR_DELIVERY, RETURNED
    DELIVERED, RETURNED, CANCELLED, REFUNDED are terminal.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

from sendit.app.core.exceptions import InvalidTransitionError
from sendit.app.models.parcel_enums import ParcelStatus


# PICKED_UP → DELIVERED covers a doorstep handover with no transit leg
ALLOWED_TRANSITIONS: Mapping[ParcelStatus, FrozenSet[ParcelStatus]] = MappingProxyType({
    ParcelStatus.DRAFT: frozenset({ParcelStatus.PROCESSING}),
    ParcelStatus.PROCESSING: frozenset({ParcelStatus.PICKED_UP, ParcelStatus.CANCELLED}),
    ParcelStatus.PAYMENT_PENDING: frozenset({ParcelStatus.PAYMENT_CONFIRMED, ParcelStatus.CANCELLED}),
    ParcelStatus.PAYMENT_CONFIRMED: frozenset({ParcelStatus.PICKED_UP, ParcelStatus.CANCELLED}),
    ParcelStatus.PICKED_UP: frozenset({
        ParcelStatus.IN_TRANSIT, ParcelStatus.DELIVERED, ParcelStatus.RETURNED
    }),
    ParcelStatus.IN_TRANSIT: frozenset({
        ParcelStatus.OUT_FOR_DELIVERY, ParcelStatus.DELAYED, ParcelStatus.RETURNED
    }),
    ParcelStatus.OUT_FOR_DELIVERY: frozenset({
        ParcelStatus.DELIVERED, ParcelStatus.DELAYED, ParcelStatus.RETURNED
    }),
    ParcelStatus.DELAYED: frozenset({ParcelStatus.OUT_FOR_DELIVERY, ParcelStatus.RETURNED}),
    ParcelStatus.DELIVERED: frozenset(),
    ParcelStatus.RETURNED: frozenset(),
    ParcelStatus.CANCELLED: frozenset(),
    ParcelStatus.REFUNDED: frozenset(),
})

TERMINAL_STATUSES: FrozenSet[ParcelStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def allowed_transitions(current: ParcelStatus) -> FrozenSet[ParcelStatus]:
    return ALLOWED_TRANSITIONS.get(current, frozenset())


def can_transition(current: ParcelStatus, requested: ParcelStatus) -> bool:
    return requested in allowed_transitions(current)


def is_terminal(status: ParcelStatus) -> bool:
    return status in TERMINAL_STATUSES


def validate_transition(current: ParcelStatus, requested: ParcelStatus) -> None:
    """
    Reject a status change that is not in the table.

    Raises:
        InvalidTransitionError: naming both statuses
    """
    if not can_transition(current, requested):
        raise InvalidTransitionError(current, requested)
