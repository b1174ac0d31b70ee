"""Integration tests for the CreateOrder use case.

Uses the in-memory fake unit of work; no database.
"""

from decimal import Decimal

import pytest

from ordering.application.commands import CreateOrderCommand
from ordering.application.create_order import CreateOrderHandler
from ordering.application.dto import OrderItemSpec
from ordering.application.integration_events import OrderStartedIntegrationEvent
from ordering.domain.exceptions import ValidationError
from ordering.domain.model.order import OrderStatus
from tests.fakes import FakeStore, FakeUnitOfWork


def _command(*items: OrderItemSpec) -> CreateOrderCommand:
    return CreateOrderCommand(
        user_id="buyer-1",
        user_name="Alice",
        street="1 Main St",
        city="Seattle",
        state="WA",
        country="US",
        zip_code="98101",
        items=items,
    )


def _setup() -> tuple[CreateOrderHandler, FakeStore]:
    store = FakeStore()
    uow = FakeUnitOfWork(store)
    return CreateOrderHandler(uow.orders), store


class TestCreateOrderHappyPath:

    def test_persists_submitted_order(self):
        handler, store = _setup()

        assert handler.handle(
            _command(
                OrderItemSpec(1, "Mug", Decimal("12.50"), 2),
                OrderItemSpec(2, "Cap", Decimal("20.00"), 1, Decimal("5.00")),
            )
        )

        order = store.orders[1]
        assert order.status == OrderStatus.SUBMITTED
        assert order.address.city == "Seattle"
        assert [item.product_name for item in order.items] == ["Mug", "Cap"]
        assert str(order.total) == "$40.00"

    def test_stages_order_started_event(self):
        handler, store = _setup()
        handler.handle(_command(OrderItemSpec(1, "Mug", Decimal("12.50"), 1)))

        assert store.events == [
            OrderStartedIntegrationEvent(
                id=store.events[0].id,
                creation_date=store.events[0].creation_date,
                user_id="buyer-1",
            )
        ]


class TestCreateOrderValidation:

    def test_empty_basket_rejected(self):
        handler, store = _setup()
        with pytest.raises(ValidationError, match="at least one item"):
            handler.handle(_command())
        assert store.commits == 0

    def test_zero_units_rejected(self):
        handler, store = _setup()
        with pytest.raises(ValidationError, match="must be positive"):
            handler.handle(_command(OrderItemSpec(1, "Mug", Decimal("12.50"), 0)))
        assert store.orders == {}
