"""
Delivery attempt classification tests.
"""

from datetime import datetime, timedelta

import pytest

from sendit.app.domain.workflow.attempt_classifier import (
    classify_attempt, next_attempt_at, records_attempt
)
from sendit.app.models.parcel_enums import AttemptStatus as A, ParcelStatus as S


@pytest.mark.parametrize("status,notes,expected", [
    (S.DELAYED, "No one home at 3pm", A.FAILED_NO_ONE_HOME),
    (S.DELAYED, "WRONG ADDRESS given", A.FAILED_INCORRECT_ADDRESS),
    (S.RETURNED, "Recipient refused the parcel", A.FAILED_REFUSED),
    (S.DELAYED, "heavy traffic", A.FAILED_OTHER),
    (S.DELAYED, None, A.FAILED_OTHER),
    (S.DELIVERED, None, A.SUCCESSFUL),
    (S.DELIVERED, "left with neighbour", A.SUCCESSFUL),
    (S.RETURNED, None, A.FAILED_OTHER),
])
def test_classification(status, notes, expected):
    assert classify_attempt(status, notes) == expected


def test_first_rule_wins():
    notes = "no one home, and the neighbour refused to sign"
    assert classify_attempt(S.DELAYED, notes) == A.FAILED_NO_ONE_HOME

    notes = "wrong address, recipient refused"
    assert classify_attempt(S.DELAYED, notes) == A.FAILED_INCORRECT_ADDRESS


def test_only_delivery_stage_statuses_record_attempts():
    assert {s for s in S if records_attempt(s)} == {S.DELIVERED, S.DELAYED, S.RETURNED}


def test_next_attempt_only_for_delayed():
    now = datetime(2024, 5, 1, 10, 0)
    assert next_attempt_at(S.DELAYED, now) == now + timedelta(hours=24)
    assert next_attempt_at(S.DELIVERED, now) is None
    assert next_attempt_at(S.RETURNED, now) is None
