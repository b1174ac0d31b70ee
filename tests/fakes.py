"""In-memory fakes for testing.

``FakeStore`` plays the durable store: committed orders (as private
copies), the request ledger and the outbox.  ``FakeUnitOfWork`` implements
the same contract as ``SqlUnitOfWork`` on top of it, including versioned
commits and request id claims that block a second claimant until the
first unit of work commits or rolls back.  No file I/O, no side effects.
"""

from __future__ import annotations

import copy
import threading

from ordering.application.integration_events import (
    IntegrationEvent,
    to_integration_events,
)
from ordering.application.observability import CommandObserver
from ordering.application.results import CommandResult
from ordering.application.unit_of_work import UnitOfWork
from ordering.domain.exceptions import CommandCancelledError, TransientStoreError
from ordering.domain.model.ledger import LedgerEntry
from ordering.domain.model.order import Order
from ordering.domain.repository.order_repository import OrderRepository
from ordering.domain.repository.request_ledger import RequestLedger


class FakeStore:

    def __init__(self) -> None:
        self.orders: dict[int, Order] = {}
        self.ledger: dict[str, LedgerEntry] = {}
        self.events: list[IntegrationEvent] = []
        self.commits = 0
        self.unavailable = False
        self.lock = threading.RLock()
        self.released = threading.Condition(self.lock)
        self.claims: dict[str, FakeUnitOfWork] = {}
        self._next_id = 1

    def put(self, order: Order) -> Order:
        """Seed a committed order, bypassing the pipeline."""
        if order.id is None:
            order.id = self._next_id
        self._next_id = max(self._next_id, order.id + 1)
        order.pull_domain_events()
        self.orders[order.id] = copy.deepcopy(order)
        return order

    def next_id(self) -> int:
        order_id = self._next_id
        self._next_id += 1
        return order_id

    def events_of(self, event_type: type) -> list[IntegrationEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


class FakeOrderRepository(OrderRepository):

    def __init__(self, uow: FakeUnitOfWork) -> None:
        self._uow = uow

    @property
    def unit_of_work(self) -> FakeUnitOfWork:
        return self._uow

    def add(self, order: Order) -> Order:
        self._uow.tracked.append(order)
        return order

    def get(self, order_id: int) -> Order | None:
        self._uow.check_available()
        stored = self._uow.store.orders.get(order_id)
        if stored is None:
            return None
        order = copy.deepcopy(stored)
        self._uow.tracked.append(order)
        return order


class FakeRequestLedger(RequestLedger):

    def __init__(self, uow: FakeUnitOfWork) -> None:
        self._uow = uow
        self.lookups = 0

    @property
    def unit_of_work(self) -> FakeUnitOfWork:
        return self._uow

    def find(self, request_id: str) -> LedgerEntry | None:
        self._uow.check_available()
        self.lookups += 1
        return self._uow.store.ledger.get(request_id)

    def record(self, entry: LedgerEntry) -> bool:
        return self._uow.record_request(entry)


class FakeUnitOfWork(UnitOfWork):

    def __init__(self, store: FakeStore, event_mapper=to_integration_events) -> None:
        self.store = store
        self.tracked: list[Order] = []
        self.staged: list[IntegrationEvent] = []
        self.pending_requests: list[LedgerEntry] = []
        self.rollbacks = 0
        self.closed = False
        self._event_mapper = event_mapper
        self.orders = FakeOrderRepository(self)
        self.requests = FakeRequestLedger(self)

    def check_available(self) -> None:
        if self.store.unavailable:
            raise TransientStoreError("fake store is down")

    def stage(self, event: IntegrationEvent) -> None:
        self.staged.append(event)

    def record_request(self, entry: LedgerEntry) -> bool:
        self.check_available()
        store = self.store
        with store.released:
            while store.claims.get(entry.request_id, self) is not self:
                store.released.wait()
            if entry.request_id in store.ledger:
                self.rollback()
                return False
            store.claims[entry.request_id] = self
        self.pending_requests.append(entry)
        return True

    def save_entities(self, cancel: threading.Event | None = None) -> bool:
        store = self.store
        with store.lock:
            if cancel is not None and cancel.is_set():
                self.rollback()
                raise CommandCancelledError("cancelled")
            if store.unavailable:
                self.rollback()
                raise TransientStoreError("fake store is down")

            for order in self.tracked:
                current = store.orders.get(order.id) if order.id is not None else None
                if current is not None and current.version != order.version:
                    self.rollback()
                    return False
            new_orders = [order for order in self.tracked if order.id is None]
            for order in new_orders:
                order.id = store.next_id()
            try:
                events = list(self.staged)
                for order in self.tracked:
                    events.extend(self._event_mapper(order, order.domain_events))
            except Exception:
                for order in new_orders:
                    order.id = None
                self.rollback()
                raise

            for order in self.tracked:
                if not any(order is new for new in new_orders):
                    order.version += 1
                order.pull_domain_events()
                store.orders[order.id] = copy.deepcopy(order)
            store.events.extend(events)
            for entry in self.pending_requests:
                store.ledger[entry.request_id] = entry
            store.commits += 1

        self._clear()
        return True

    def rollback(self) -> None:
        self.rollbacks += 1
        self._clear()

    def close(self) -> None:
        self.closed = True

    def _clear(self) -> None:
        with self.store.released:
            for entry in self.pending_requests:
                if self.store.claims.get(entry.request_id) is self:
                    del self.store.claims[entry.request_id]
            self.store.released.notify_all()
        self.tracked.clear()
        self.staged.clear()
        self.pending_requests.clear()


class CountingHandler:
    """Wraps a handler and counts how often it actually runs."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.calls = 0

    def handle(self, command, cancel=None) -> bool:
        self.calls += 1
        return self._inner.handle(command, cancel=cancel)


class RecordingObserver(CommandObserver):

    def __init__(self) -> None:
        self.started: list[tuple[str, str]] = []
        self.finished: list[tuple[str, str, CommandResult]] = []
        self.failed: list[tuple[str, str, Exception]] = []

    def command_started(self, command_name: str, request_id: str) -> None:
        self.started.append((command_name, request_id))

    def command_finished(
        self, command_name: str, request_id: str, result: CommandResult
    ) -> None:
        self.finished.append((command_name, request_id, result))

    def command_failed(
        self, command_name: str, request_id: str, error: Exception
    ) -> None:
        self.failed.append((command_name, request_id, error))
