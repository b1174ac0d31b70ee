"""Integration events — facts published to other services via the outbox.

Integration events are derived from the aggregate's domain events when
the unit of work commits, and are stored in the same transaction as the
state change they describe.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from ordering.domain.model.events import (
    DomainEvent,
    OrderCancelled,
    OrderPaid,
    OrderShipped,
    OrderStarted,
    OrderStatusChangedToAwaitingValidation,
    OrderStatusChangedToStockConfirmed,
)
from ordering.domain.model.order import Order


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class IntegrationEvent:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    creation_date: datetime = field(default_factory=_utcnow)

    @property
    def event_name(self) -> str:
        return type(self).__name__

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=_json_default, sort_keys=True)


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


@dataclass(frozen=True, kw_only=True)
class OrderStartedIntegrationEvent(IntegrationEvent):
    user_id: str


@dataclass(frozen=True, kw_only=True)
class OrderStatusChangedIntegrationEvent(IntegrationEvent):
    order_id: int
    order_status: str
    buyer_id: str
    buyer_name: str


@dataclass(frozen=True, kw_only=True)
class OrderStatusChangedToAwaitingValidationIntegrationEvent(
    OrderStatusChangedIntegrationEvent
):
    order_stock_items: tuple[int, ...] = ()


@dataclass(frozen=True, kw_only=True)
class OrderStatusChangedToStockConfirmedIntegrationEvent(
    OrderStatusChangedIntegrationEvent
):
    pass


@dataclass(frozen=True, kw_only=True)
class OrderStatusChangedToPaidIntegrationEvent(OrderStatusChangedIntegrationEvent):
    order_stock_items: tuple[int, ...] = ()


@dataclass(frozen=True, kw_only=True)
class OrderStatusChangedToShippedIntegrationEvent(OrderStatusChangedIntegrationEvent):
    pass


@dataclass(frozen=True, kw_only=True)
class OrderStatusChangedToCancelledIntegrationEvent(
    OrderStatusChangedIntegrationEvent
):
    previous_status: str


# ---------------------------------------------------------------------------
# Domain event -> integration event mapping
# ---------------------------------------------------------------------------

EventMapper = Callable[[Order, Sequence[DomainEvent]], list[IntegrationEvent]]


def _status_fields(order: Order) -> dict:
    return {
        "order_id": order.id,
        "order_status": order.status.value,
        "buyer_id": order.buyer_id,
        "buyer_name": order.buyer_name,
    }


def _map_one(order: Order, event: DomainEvent) -> IntegrationEvent:
    if isinstance(event, OrderStarted):
        return OrderStartedIntegrationEvent(user_id=event.buyer_id)
    if isinstance(event, OrderStatusChangedToAwaitingValidation):
        return OrderStatusChangedToAwaitingValidationIntegrationEvent(
            order_stock_items=event.product_ids, **_status_fields(order)
        )
    if isinstance(event, OrderStatusChangedToStockConfirmed):
        return OrderStatusChangedToStockConfirmedIntegrationEvent(**_status_fields(order))
    if isinstance(event, OrderPaid):
        return OrderStatusChangedToPaidIntegrationEvent(
            order_stock_items=event.product_ids, **_status_fields(order)
        )
    if isinstance(event, OrderShipped):
        return OrderStatusChangedToShippedIntegrationEvent(**_status_fields(order))
    if isinstance(event, OrderCancelled):
        return OrderStatusChangedToCancelledIntegrationEvent(
            previous_status=event.previous_status, **_status_fields(order)
        )
    raise TypeError(f"No integration event for {type(event).__name__}")


def to_integration_events(
    order: Order, events: Sequence[DomainEvent]
) -> list[IntegrationEvent]:
    """Map *order*'s pending domain events.

    Called after the order row is flushed so new orders already have an id.
    """
    return [_map_one(order, event) for event in events]
