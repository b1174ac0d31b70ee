"""SQLAlchemy unit of work.

One ``Session`` per unit of work.  ``save_entities`` writes, in a single
transaction:

1. every tracked order (INSERT, or a versioned UPDATE),
2. the integration events staged explicitly plus those mapped from the
   orders' domain events (the outbox),

and commits.  Request ledger rows are not deferred: ``record_request``
flushes them straight away, so the request id is claimed before the
command does any work and commits (or rolls back) with everything else.
Any failure rolls the whole transaction back.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from ordering.application.integration_events import (
    EventMapper,
    IntegrationEvent,
    to_integration_events,
)
from ordering.application.unit_of_work import UnitOfWork
from ordering.domain.exceptions import CommandCancelledError, TransientStoreError
from ordering.domain.model.ledger import LedgerEntry
from ordering.domain.model.order import Order, OrderItem
from ordering.infrastructure.persistence.integration_event_log import (
    EventState,
)
from ordering.infrastructure.persistence.models import (
    IntegrationEventLogRecord,
    OrderItemRecord,
    OrderRecord,
)
from ordering.infrastructure.persistence.sql_order_repository import (
    SqlOrderRepository,
    item_to_record,
    order_to_record,
)
from ordering.infrastructure.persistence.sql_request_ledger import (
    SqlRequestLedger,
    entry_to_record,
)

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


class StaleVersionError(Exception):
    """The order row no longer carries the version the aggregate was loaded at."""


class SqlUnitOfWork(UnitOfWork):

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        event_mapper: EventMapper = to_integration_events,
    ) -> None:
        self._session = session_factory()
        self._event_mapper = event_mapper
        self._tracked: list[Order] = []
        self._loaded_items: dict[int, tuple[OrderItem, ...]] = {}
        self._staged_events: list[IntegrationEvent] = []
        self._claimed: list[str] = []
        self.orders = SqlOrderRepository(self)
        self.requests = SqlRequestLedger(self)

    @property
    def session(self) -> Session:
        return self._session

    # --- Staging --------------------------------------------------------------

    def track(self, order: Order) -> None:
        if any(tracked is order for tracked in self._tracked):
            return
        self._tracked.append(order)
        if order.id is not None:
            self._loaded_items[order.id] = order.items

    def stage(self, event: IntegrationEvent) -> None:
        self._staged_events.append(event)

    def record_request(self, entry: LedgerEntry) -> bool:
        self._session.add(entry_to_record(entry))
        try:
            with self.translate_errors():
                self._session.flush()
        except IntegrityError:
            self.rollback()
            logger.info("Request %s is already claimed", entry.request_id)
            return False
        self._claimed.append(entry.request_id)
        return True

    # --- Commit / rollback ----------------------------------------------------

    def save_entities(self, cancel: threading.Event | None = None) -> bool:
        new_orders: list[Order] = []
        transaction_id = str(uuid.uuid4())
        try:
            self._check_cancelled(cancel)
            for order in self._tracked:
                if order.id is None:
                    self._insert(order)
                    new_orders.append(order)
                else:
                    self._update(order)

            events = list(self._staged_events)
            for order in self._tracked:
                events.extend(self._event_mapper(order, order.domain_events))

            self._session.add_all(
                _event_to_record(event, transaction_id) for event in events
            )
            self._session.flush()
            self._check_cancelled(cancel)
            self._session.commit()
        except StaleVersionError as exc:
            self._abort(new_orders)
            logger.warning("Commit rejected, stale aggregate: %s", exc)
            return False
        except IntegrityError as exc:
            self._abort(new_orders)
            logger.warning("Commit rejected by a constraint: %s", exc.orig)
            return False
        except _TRANSIENT_ERRORS as exc:
            self._abort(new_orders)
            raise TransientStoreError(f"Store unavailable during commit: {exc}") from exc
        except Exception:
            self._abort(new_orders)
            raise

        logger.debug(
            "Committed transaction %s: %d order(s), %d event(s), request(s) %s",
            transaction_id,
            len(self._tracked),
            len(events),
            self._claimed,
        )
        self._after_commit(new_orders)
        return True

    def rollback(self) -> None:
        self._session.rollback()
        self._clear()

    def close(self) -> None:
        self._session.close()

    @contextmanager
    def translate_errors(self) -> Iterator[None]:
        """Turn connectivity errors on reads into ``TransientStoreError``."""
        try:
            yield
        except _TRANSIENT_ERRORS as exc:
            self.rollback()
            raise TransientStoreError(f"Store unavailable: {exc}") from exc

    # --- Internal helpers -----------------------------------------------------

    def _insert(self, order: Order) -> None:
        record = order_to_record(order)
        self._session.add(record)
        self._session.flush()
        order.id = record.id

    def _update(self, order: Order) -> None:
        result = self._session.execute(
            update(OrderRecord)
            .where(OrderRecord.id == order.id, OrderRecord.version == order.version)
            .values(
                buyer_name=order.buyer_name,
                status=order.status.value,
                description=order.description,
                version=order.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleVersionError(
                f"order {order.id} was modified after version {order.version} was read"
            )

        if order.items != self._loaded_items.get(order.id):  # type: ignore[arg-type]
            self._session.execute(
                delete(OrderItemRecord).where(OrderItemRecord.order_id == order.id)
            )
            self._session.add_all(item_to_record(item, order.id) for item in order.items)

    def _check_cancelled(self, cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise CommandCancelledError("Unit of work cancelled before commit")

    def _after_commit(self, new_orders: list[Order]) -> None:
        for order in self._tracked:
            if not any(order is new for new in new_orders):
                order.version += 1
            order.pull_domain_events()
            self._loaded_items[order.id] = order.items  # type: ignore[index]
        self._clear()

    def _abort(self, new_orders: list[Order]) -> None:
        for order in new_orders:
            order.id = None
        self.rollback()

    def _clear(self) -> None:
        self._tracked.clear()
        self._staged_events.clear()
        self._claimed.clear()


def _event_to_record(
    event: IntegrationEvent, transaction_id: str
) -> IntegrationEventLogRecord:
    return IntegrationEventLogRecord(
        event_id=event.id,
        event_type_name=event.event_name,
        content=event.to_json(),
        state=EventState.NOT_PUBLISHED.value,
        times_sent=0,
        creation_time=event.creation_date,
        transaction_id=transaction_id,
    )
