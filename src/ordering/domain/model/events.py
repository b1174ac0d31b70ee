"""Domain events raised by the Order aggregate.

Events are facts, named in the past tense.  The aggregate only records
them; turning them into integration events and persisting those in the
outbox is the unit of work's job.
"""

from __future__ import annotations

from dataclasses import dataclass


class DomainEvent:
    """Base class for all order domain events."""


@dataclass(frozen=True)
class OrderStarted(DomainEvent):
    buyer_id: str
    buyer_name: str


@dataclass(frozen=True)
class OrderStatusChangedToAwaitingValidation(DomainEvent):
    product_ids: tuple[int, ...]


@dataclass(frozen=True)
class OrderStatusChangedToStockConfirmed(DomainEvent):
    pass


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    product_ids: tuple[int, ...]


@dataclass(frozen=True)
class OrderShipped(DomainEvent):
    pass


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    previous_status: str
