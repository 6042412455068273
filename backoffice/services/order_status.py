"""
Order status lifecycle.

The allowed moves are kept in one table so the whole graph can be read and
tested on its own. A status never transitions to itself.
"""
from typing import Dict, FrozenSet

from ..enums import OrderStatus
from ..exceptions import InvalidStatusTransitionException


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    # fulfilment is over; only a refund may follow
    OrderStatus.DELIVERED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
})


def allowed_transitions(current_status: OrderStatus) -> FrozenSet[OrderStatus]:
    return ORDER_STATUS_TRANSITIONS.get(OrderStatus(current_status), frozenset())


def can_transition(current_status: OrderStatus, new_status: OrderStatus) -> bool:
    return OrderStatus(new_status) in allowed_transitions(current_status)


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES


def validate_status_transition(current_status: OrderStatus, new_status: OrderStatus) -> None:
    """Raise InvalidStatusTransitionException unless ``new_status`` may follow ``current_status``."""
    if not can_transition(current_status, new_status):
        raise InvalidStatusTransitionException(current_status, new_status)
