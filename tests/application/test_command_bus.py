"""Tests for routing and retry in the command bus."""

from decimal import Decimal

import pytest

from ordering.application.command_bus import CommandBus
from ordering.application.commands import (
    CancelOrderCommand,
    Command,
    CreateOrderCommand,
    IdentifiedCommand,
    SetPaidOrderStatusCommand,
)
from ordering.application.dto import OrderItemSpec
from ordering.application.results import CommandResult, ResultReason
from ordering.domain.exceptions import TransientStoreError
from ordering.domain.model.order import Order, OrderItem, OrderStatus
from ordering.domain.model.value_objects import Address, Money, Quantity
from tests.fakes import FakeStore, FakeUnitOfWork


class InterferingUnitOfWork(FakeUnitOfWork):
    """Another writer commits between this unit of work's read and write."""

    def save_entities(self, cancel=None):
        for order in self.tracked:
            if order.id in self.store.orders:
                self.store.orders[order.id].version += 1
        return super().save_entities(cancel)


def _seed(store: FakeStore, order_id: int, status: OrderStatus) -> None:
    store.put(
        Order(
            id=order_id,
            buyer_id="buyer-1",
            buyer_name="Alice",
            address=Address("1 Main St", "Seattle", "WA", "US", "98101"),
            items=[OrderItem(3, "Mug", Money.of("12.50"), Quantity(2))],
            status=status,
        )
    )


def _bus(factory, sleeps: list[float], max_attempts: int = 3) -> CommandBus:
    return CommandBus(
        uow_factory=factory,
        max_attempts=max_attempts,
        backoff_seconds=0.05,
        sleep=sleeps.append,
    )


class TestRouting:

    def test_create_then_cancel(self):
        store = FakeStore()
        units: list[FakeUnitOfWork] = []

        def factory():
            units.append(FakeUnitOfWork(store))
            return units[-1]

        bus = _bus(factory, [])
        create = CreateOrderCommand(
            user_id="buyer-1",
            user_name="Alice",
            street="1 Main St",
            city="Seattle",
            state="WA",
            country="US",
            zip_code="98101",
            items=(OrderItemSpec(1, "Mug", Decimal("12.50"), 1),),
        )

        assert bus.dispatch(IdentifiedCommand(create, "req-1")) == CommandResult.ok()
        assert bus.dispatch(IdentifiedCommand(CancelOrderCommand(1), "req-2")).success
        assert store.orders[1].status == OrderStatus.CANCELLED
        assert len(units) == 2
        assert all(u.closed for u in units)

    def test_duplicate_create_is_acknowledged(self):
        store = FakeStore()
        bus = _bus(lambda: FakeUnitOfWork(store), [])
        create = CreateOrderCommand(
            user_id="buyer-1",
            user_name="Alice",
            street="",
            city="Seattle",
            state="",
            country="US",
            zip_code="",
            items=(OrderItemSpec(1, "Mug", Decimal("12.50"), 1),),
        )

        bus.dispatch(IdentifiedCommand(create, "req-1"))
        result = bus.dispatch(IdentifiedCommand(create, "req-1"))

        assert result.success and result.duplicate
        assert list(store.orders) == [1]

    def test_unregistered_command_type(self):
        class Unknown(Command):
            command_type = None

        bus = _bus(lambda: FakeUnitOfWork(FakeStore()), [])
        with pytest.raises(TypeError, match="No handler registered"):
            bus.dispatch(IdentifiedCommand(Unknown(), "req-1"))


class TestRetry:

    def test_concurrency_conflict_is_retried_with_fresh_state(self):
        store = FakeStore()
        _seed(store, 1, OrderStatus.STOCK_CONFIRMED)
        units = iter([InterferingUnitOfWork(store), FakeUnitOfWork(store)])
        sleeps: list[float] = []

        result = _bus(lambda: next(units), sleeps).dispatch(
            IdentifiedCommand(SetPaidOrderStatusCommand(1), "req-pay")
        )

        assert result == CommandResult.ok()
        assert sleeps == [0.05]
        assert store.orders[1].status == OrderStatus.PAID

    def test_conflict_reported_after_last_attempt(self):
        store = FakeStore()
        _seed(store, 1, OrderStatus.STOCK_CONFIRMED)
        sleeps: list[float] = []

        result = _bus(lambda: InterferingUnitOfWork(store), sleeps).dispatch(
            IdentifiedCommand(SetPaidOrderStatusCommand(1), "req-pay")
        )

        assert result.reason is ResultReason.CONCURRENCY_CONFLICT
        assert sleeps == [0.05, 0.1]
        assert store.ledger == {}

    def test_transient_failure_is_retried(self):
        store = FakeStore()
        _seed(store, 1, OrderStatus.SUBMITTED)
        store.unavailable = True
        calls = []

        def factory():
            calls.append(1)
            if len(calls) == 2:
                store.unavailable = False
            return FakeUnitOfWork(store)

        sleeps: list[float] = []
        result = _bus(factory, sleeps).dispatch(
            IdentifiedCommand(CancelOrderCommand(1), "req-c")
        )

        assert result.success
        assert len(calls) == 2
        assert sleeps == [0.05]

    def test_transient_failure_escapes_after_last_attempt(self):
        store = FakeStore()
        store.unavailable = True
        sleeps: list[float] = []

        with pytest.raises(TransientStoreError):
            _bus(lambda: FakeUnitOfWork(store), sleeps).dispatch(
                IdentifiedCommand(CancelOrderCommand(1), "req-c")
            )
        assert sleeps == [0.05, 0.1]

    def test_business_failures_are_not_retried(self):
        store = FakeStore()
        sleeps: list[float] = []

        result = _bus(lambda: FakeUnitOfWork(store), sleeps).dispatch(
            IdentifiedCommand(CancelOrderCommand(999), "req-c")
        )

        assert result.reason is ResultReason.NOT_FOUND
        assert sleeps == []

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            CommandBus(uow_factory=lambda: FakeUnitOfWork(FakeStore()), max_attempts=0)
