"""Abstract repository for the Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ordering.domain.model.order import Order

if TYPE_CHECKING:
    from ordering.application.unit_of_work import UnitOfWork


class OrderRepository(ABC):

    @property
    @abstractmethod
    def unit_of_work(self) -> UnitOfWork:
        """The unit of work that commits whatever this repository stages."""

    @abstractmethod
    def add(self, order: Order) -> Order:
        """Stage a new order; it gets its id when the unit of work commits."""

    @abstractmethod
    def get(self, order_id: int) -> Order | None:
        """Return the order with all of its items loaded, or None."""
