import pytest

from backoffice.enums import OrderStatus
from backoffice.exceptions import InvalidStatusTransitionException
from backoffice.services.order_status import (
    ORDER_STATUS_TRANSITIONS,
    allowed_transitions,
    can_transition,
    is_terminal,
    validate_status_transition,
)


def test_every_status_has_an_entry():
    assert set(ORDER_STATUS_TRANSITIONS) == set(OrderStatus)


def test_no_status_transitions_to_itself():
    for status, targets in ORDER_STATUS_TRANSITIONS.items():
        assert status not in targets


@pytest.mark.parametrize(
    "current, new",
    [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
        (OrderStatus.CONFIRMED, OrderStatus.PROCESSING),
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
        (OrderStatus.DELIVERED, OrderStatus.REFUNDED),
        (OrderStatus.CANCELLED, OrderStatus.REFUNDED),
    ],
)
def test_allowed(current, new):
    assert can_transition(current, new)
    validate_status_transition(current, new)


@pytest.mark.parametrize(
    "current, new",
    [
        (OrderStatus.PENDING, OrderStatus.SHIPPED),
        (OrderStatus.PENDING, OrderStatus.DELIVERED),
        (OrderStatus.CONFIRMED, OrderStatus.PENDING),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
        (OrderStatus.CANCELLED, OrderStatus.PENDING),
        (OrderStatus.REFUNDED, OrderStatus.PENDING),
        (OrderStatus.PROCESSING, OrderStatus.PROCESSING),
    ],
)
def test_rejected(current, new):
    assert not can_transition(current, new)

    with pytest.raises(InvalidStatusTransitionException):
        validate_status_transition(current, new)


def test_rejection_message_names_both_statuses():
    with pytest.raises(InvalidStatusTransitionException) as exc_info:
        validate_status_transition(OrderStatus.DELIVERED, OrderStatus.PENDING)

    assert str(exc_info.value) == "Invalid status transition from DELIVERED to PENDING"
    assert exc_info.value.field == "status"


def test_accepts_raw_values():
    assert can_transition("pending", "confirmed")
    assert allowed_transitions("refunded") == frozenset()


def test_terminal_statuses():
    assert is_terminal(OrderStatus.DELIVERED)
    assert is_terminal(OrderStatus.CANCELLED)
    assert is_terminal(OrderStatus.REFUNDED)
    assert not is_terminal(OrderStatus.SHIPPED)
    assert not is_terminal(OrderStatus.PENDING)


@pytest.mark.parametrize(
    "current",
    [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED],
)
def test_every_open_order_can_be_cancelled(current):
    assert can_transition(current, OrderStatus.CANCELLED)
    assert not is_terminal(current)


@pytest.mark.parametrize(
    "new",
    [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    ],
)
def test_cancelled_order_only_moves_to_refunded(new):
    with pytest.raises(InvalidStatusTransitionException):
        validate_status_transition(OrderStatus.CANCELLED, new)


@pytest.mark.parametrize("new", list(OrderStatus))
def test_refunded_has_no_way_out(new):
    assert not can_transition(OrderStatus.REFUNDED, new)
