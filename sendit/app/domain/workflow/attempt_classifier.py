"""
Delivery attempt classification.

Couriers describe failed attempts in free text. Until the courier app
sends a structured reason, the outcome is derived from the notes with a
case-insensitive substring match. First match wins.
"""

from datetime import datetime, timedelta
from typing import Optional

from sendit.app.models.parcel_enums import AttemptStatus, ParcelStatus


# Statuses that produce a DeliveryAttempt row
ATTEMPT_STATUSES = frozenset({
    ParcelStatus.DELIVERED,
    ParcelStatus.DELAYED,
    ParcelStatus.RETURNED,
})

# Order matters
NOTE_RULES = (
    ("no one home", AttemptStatus.FAILED_NO_ONE_HOME),
    ("wrong address", AttemptStatus.FAILED_INCORRECT_ADDRESS),
    ("refused", AttemptStatus.FAILED_REFUSED),
)

REDELIVERY_DELAY = timedelta(hours=24)


def records_attempt(status: ParcelStatus) -> bool:
    return status in ATTEMPT_STATUSES


def classify_attempt(new_status: ParcelStatus, courier_notes: Optional[str] = None) -> AttemptStatus:
    """
    Map a delivery-stage status plus courier notes to an attempt outcome.

    Examples:
        classify_attempt(DELAYED, "No one home at 3pm") → FAILED_NO_ONE_HOME
        classify_attempt(DELAYED, "traffic")            → FAILED_OTHER
        classify_attempt(DELIVERED, None)               → SUCCESSFUL
        classify_attempt(RETURNED, None)                → FAILED_OTHER
    """
    notes = (courier_notes or "").lower()
    for needle, outcome in NOTE_RULES:
        if needle in notes:
            return outcome

    if new_status == ParcelStatus.DELAYED:
        return AttemptStatus.FAILED_OTHER
    if new_status == ParcelStatus.DELIVERED:
        return AttemptStatus.SUCCESSFUL
    return AttemptStatus.FAILED_OTHER


def next_attempt_at(new_status: ParcelStatus, now: datetime) -> Optional[datetime]:
    """Only a DELAYED parcel is rescheduled, always one day out."""
    if new_status == ParcelStatus.DELAYED:
        return now + REDELIVERY_DELAY
    return None
