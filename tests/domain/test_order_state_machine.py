"""Every (status, operation) pair of the Order state machine."""

import pytest

from ordering.domain.exceptions import InvalidTransitionError
from ordering.domain.model.events import (
    OrderCancelled,
    OrderPaid,
    OrderShipped,
    OrderStatusChangedToAwaitingValidation,
    OrderStatusChangedToStockConfirmed,
)
from ordering.domain.model.order import Order, OrderItem, OrderStatus, can_transition
from ordering.domain.model.value_objects import Address, Money, Quantity

S = OrderStatus

# operation -> (target status, statuses it is legal from, event type)
OPERATIONS = {
    "set_awaiting_validation_status": (S.AWAITING_VALIDATION, {S.SUBMITTED}, OrderStatusChangedToAwaitingValidation),
    "set_stock_confirmed_status": (S.STOCK_CONFIRMED, {S.AWAITING_VALIDATION}, OrderStatusChangedToStockConfirmed),
    "set_paid_status": (S.PAID, {S.STOCK_CONFIRMED}, OrderPaid),
    "set_shipped_status": (S.SHIPPED, {S.PAID}, OrderShipped),
    "set_cancelled_status": (
        S.CANCELLED,
        {S.SUBMITTED, S.AWAITING_VALIDATION, S.STOCK_CONFIRMED, S.PAID},
        OrderCancelled,
    ),
}

PAIRS = [(status, op) for status in OrderStatus for op in OPERATIONS]


def _order_in(status: OrderStatus) -> Order:
    """Reconstitute an order in *status*, the way the repository would."""
    return Order(
        id=1,
        buyer_id="buyer-1",
        buyer_name="Alice",
        address=Address("1 Main St", "Seattle", "WA", "US", "98101"),
        items=[OrderItem(3, "Mug", Money.of("12.50"), Quantity(2))],
        status=status,
        version=4,
    )


@pytest.mark.parametrize(
    "status,operation",
    [(s, op) for s, op in PAIRS if s in OPERATIONS[op][1]],
)
def test_legal_transition_changes_status_and_raises_event(status, operation):
    order = _order_in(status)
    target, _, event_type = OPERATIONS[operation]

    getattr(order, operation)()

    assert order.status == target
    assert len(order.domain_events) == 1
    assert isinstance(order.domain_events[0], event_type)


@pytest.mark.parametrize(
    "status,operation",
    [(s, op) for s, op in PAIRS if s not in OPERATIONS[op][1]],
)
def test_illegal_transition_is_rejected_and_leaves_order_untouched(status, operation):
    order = _order_in(status)
    description = order.description

    with pytest.raises(InvalidTransitionError):
        getattr(order, operation)()

    assert order.status == status
    assert order.description == description
    assert order.domain_events == ()


class TestNamedEdges:

    def test_shipped_order_cannot_be_cancelled(self):
        order = _order_in(S.SHIPPED)
        with pytest.raises(InvalidTransitionError, match="from SHIPPED to CANCELLED"):
            order.set_cancelled_status()

    def test_paying_twice_is_rejected(self):
        order = _order_in(S.STOCK_CONFIRMED)
        order.set_paid_status()

        with pytest.raises(InvalidTransitionError, match="from PAID to PAID"):
            order.set_paid_status()
        assert [type(e) for e in order.domain_events] == [OrderPaid]

    def test_paid_order_can_still_be_cancelled(self):
        order = _order_in(S.PAID)
        order.set_cancelled_status()
        assert order.domain_events == (OrderCancelled(previous_status="PAID"),)

    def test_paid_event_lists_products(self):
        order = _order_in(S.STOCK_CONFIRMED)
        order.set_paid_status()
        assert order.domain_events == (OrderPaid(product_ids=(3,)),)

    def test_pull_domain_events_clears_them(self):
        order = _order_in(S.SUBMITTED)
        order.set_cancelled_status()
        assert len(order.pull_domain_events()) == 1
        assert order.domain_events == ()


def test_terminal_statuses():
    assert {s for s in OrderStatus if s.is_terminal} == {S.SHIPPED, S.CANCELLED}
    for terminal in (S.SHIPPED, S.CANCELLED):
        assert not any(can_transition(terminal, target) for target in OrderStatus)
