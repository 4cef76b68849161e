"""Tests for the order status state machine."""

import pytest

from orderflow.domain.status import TERMINAL_STATUSES, OrderStatus, allowed_next, validate_transition
from orderflow.errors import InvalidTransition

S = OrderStatus

EXPECTED = {
    S.PENDING: {S.CONFIRMED, S.CANCELLED},
    S.CONFIRMED: {S.PROCESSING, S.CANCELLED},
    S.PROCESSING: {S.SHIPPED, S.CANCELLED},
    S.SHIPPED: {S.DELIVERED},
    S.DELIVERED: set(),
    S.CANCELLED: set(),
}


@pytest.mark.parametrize("status", list(OrderStatus))
def test_allowed_next_matches_transition_graph(status):
    assert set(allowed_next(status)) == EXPECTED[status]


@pytest.mark.parametrize("status", list(OrderStatus))
def test_no_self_transitions(status):
    assert status not in allowed_next(status)
    with pytest.raises(InvalidTransition):
        validate_transition(status, status)


def test_every_pair_outside_the_graph_is_rejected():
    for current in OrderStatus:
        for requested in OrderStatus:
            if requested in EXPECTED[current]:
                validate_transition(current, requested)
            else:
                with pytest.raises(InvalidTransition) as exc_info:
                    validate_transition(current, requested)
                assert exc_info.value.current is current
                assert exc_info.value.requested is requested


def test_terminal_statuses():
    assert TERMINAL_STATUSES == {S.DELIVERED, S.CANCELLED}


def test_backward_move_is_rejected():
    with pytest.raises(InvalidTransition, match="from processing to pending"):
        validate_transition(S.PROCESSING, S.PENDING)


def test_accepts_raw_status_values():
    validate_transition("pending", "confirmed")
    assert allowed_next("shipped") == {S.DELIVERED}
