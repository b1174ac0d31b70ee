"""Abstract ledger of processed request ids."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ordering.domain.model.ledger import LedgerEntry

if TYPE_CHECKING:
    from ordering.application.unit_of_work import UnitOfWork


class RequestLedger(ABC):

    @property
    @abstractmethod
    def unit_of_work(self) -> UnitOfWork:
        """The unit of work recorded entries are committed with."""

    @abstractmethod
    def find(self, request_id: str) -> LedgerEntry | None:
        """Return the committed entry for *request_id*, or None."""

    @abstractmethod
    def record(self, entry: LedgerEntry) -> bool:
        """Claim the request id of *entry* in the current unit of work.

        The entry becomes durable with the next successful commit.  Returns
        False when another unit of work already committed the same request
        id; a claim held by an uncommitted unit of work blocks until that
        one commits or rolls back.
        """
