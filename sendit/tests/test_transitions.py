"""
Status transition table tests.
"""

import itertools

import pytest

from sendit.app.core.exceptions import InvalidTransitionError
from sendit.app.domain.workflow.transitions import (
    ALLOWED_TRANSITIONS, TERMINAL_STATUSES, allowed_transitions, can_transition,
    is_terminal, validate_transition
)
from sendit.app.models.parcel_enums import ParcelStatus as S


EXPECTED_EDGES = {
    S.DRAFT: {S.PROCESSING},
    S.PROCESSING: {S.PICKED_UP, S.CANCELLED},
    S.PAYMENT_PENDING: {S.PAYMENT_CONFIRMED, S.CANCELLED},
    S.PAYMENT_CONFIRMED: {S.PICKED_UP, S.CANCELLED},
    S.PICKED_UP: {S.IN_TRANSIT, S.DELIVERED, S.RETURNED},
    S.IN_TRANSIT: {S.OUT_FOR_DELIVERY, S.DELAYED, S.RETURNED},
    S.OUT_FOR_DELIVERY: {S.DELIVERED, S.DELAYED, S.RETURNED},
    S.DELAYED: {S.OUT_FOR_DELIVERY, S.RETURNED},
    S.DELIVERED: set(),
    S.RETURNED: set(),
    S.CANCELLED: set(),
    S.REFUNDED: set(),
}

ALLOWED_PAIRS = [(src, dst) for src, targets in EXPECTED_EDGES.items() for dst in sorted(targets)]
REJECTED_PAIRS = [
    (src, dst) for src, dst in itertools.product(S, S) if dst not in EXPECTED_EDGES[src]
]


def test_table_covers_every_status():
    assert set(ALLOWED_TRANSITIONS) == set(S)


def test_table_matches_expected_edges():
    assert {src: set(targets) for src, targets in ALLOWED_TRANSITIONS.items()} == EXPECTED_EDGES


@pytest.mark.parametrize("current,requested", ALLOWED_PAIRS)
def test_every_listed_edge_is_allowed(current, requested):
    assert can_transition(current, requested)
    validate_transition(current, requested)


@pytest.mark.parametrize("current,requested", REJECTED_PAIRS)
def test_every_unlisted_pair_is_rejected(current, requested):
    assert not can_transition(current, requested)
    with pytest.raises(InvalidTransitionError):
        validate_transition(current, requested)


def test_error_names_both_statuses():
    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition(S.DELIVERED, S.IN_TRANSIT)

    err = exc_info.value
    assert "DELIVERED" in err.message and "IN_TRANSIT" in err.message
    assert err.status_code == 400
    assert err.details == {"current_status": "DELIVERED", "requested_status": "IN_TRANSIT"}


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {S.DELIVERED, S.RETURNED, S.CANCELLED, S.REFUNDED}
    for status in TERMINAL_STATUSES:
        assert is_terminal(status)
        assert allowed_transitions(status) == frozenset()
    assert not is_terminal(S.DELAYED)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        ALLOWED_TRANSITIONS[S.DELIVERED] = frozenset({S.RETURNED})
