"""Abstract unit of work, the transactional boundary of one command."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from ordering.application.integration_events import IntegrationEvent
from ordering.domain.model.ledger import LedgerEntry
from ordering.domain.repository.order_repository import OrderRepository
from ordering.domain.repository.request_ledger import RequestLedger


class UnitOfWork(ABC):
    """Commits aggregate changes, staged integration events and ledger
    entries together, or not at all.

    One instance serves exactly one command (and its retries of the ledger
    write); it is never shared between workers.
    """

    orders: OrderRepository
    requests: RequestLedger

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, *args) -> None:
        self.rollback()
        self.close()

    @abstractmethod
    def stage(self, event: IntegrationEvent) -> None:
        """Add an integration event to the outbox of this unit of work."""

    @abstractmethod
    def record_request(self, entry: LedgerEntry) -> bool:
        """Write a ledger entry as part of this unit of work.

        Must be the first write of the transaction, so a concurrent unit of
        work claiming the same request id waits on it (or is rejected)
        before doing any work.  Returns False if the id is already taken.
        """

    @abstractmethod
    def save_entities(self, cancel: threading.Event | None = None) -> bool:
        """Commit atomically.

        Returns False when the store rejected the commit because of a stale
        version or a uniqueness violation of the outbox.  Raises ``TransientStoreError``
        for connectivity problems and ``CommandCancelledError`` when
        *cancel* was set before the commit.  Nothing is persisted in any of
        these cases.
        """

    @abstractmethod
    def rollback(self) -> None:
        """Discard everything staged since the last commit."""

    def close(self) -> None:
        pass
