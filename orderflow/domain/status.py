"""Order status state machine.

    PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED
    PENDING, CONFIRMED, PROCESSING -> CANCELLED

DELIVERED and CANCELLED are terminal. A status never transitions to itself.
"""

from enum import Enum
from typing import FrozenSet

from orderflow.errors import InvalidTransition


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),  # Terminal
    OrderStatus.CANCELLED: frozenset(),  # Terminal
}

TERMINAL_STATUSES = frozenset(s for s, nxt in _VALID_TRANSITIONS.items() if not nxt)


def allowed_next(status: OrderStatus) -> FrozenSet[OrderStatus]:
    return _VALID_TRANSITIONS[OrderStatus(status)]


def validate_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """Raise ``InvalidTransition`` unless ``requested`` follows ``current``."""
    current, requested = OrderStatus(current), OrderStatus(requested)
    if requested not in _VALID_TRANSITIONS[current]:
        raise InvalidTransition(current, requested)
