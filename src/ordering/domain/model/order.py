"""Order aggregate — the core of the domain.

The Order is an aggregate root that owns its line items and is the only
thing allowed to change its status.  Every legal transition records a
domain event; the aggregate itself never performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from ordering.domain.exceptions import (
    InvalidStateError,
    InvalidTransitionError,
    ValidationError,
)
from ordering.domain.model.events import (
    DomainEvent,
    OrderCancelled,
    OrderPaid,
    OrderShipped,
    OrderStarted,
    OrderStatusChangedToAwaitingValidation,
    OrderStatusChangedToStockConfirmed,
)
from ordering.domain.model.value_objects import Address, Money, Quantity


class OrderStatus(Enum):
    SUBMITTED = "SUBMITTED"
    AWAITING_VALIDATION = "AWAITING_VALIDATION"
    STOCK_CONFIRMED = "STOCK_CONFIRMED"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.SHIPPED, OrderStatus.CANCELLED)


# Target status -> statuses it may be entered from.
LEGAL_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.AWAITING_VALIDATION: frozenset({OrderStatus.SUBMITTED}),
    OrderStatus.STOCK_CONFIRMED: frozenset({OrderStatus.AWAITING_VALIDATION}),
    OrderStatus.PAID: frozenset({OrderStatus.STOCK_CONFIRMED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.PAID}),
    OrderStatus.CANCELLED: frozenset(
        {
            OrderStatus.SUBMITTED,
            OrderStatus.AWAITING_VALIDATION,
            OrderStatus.STOCK_CONFIRMED,
            OrderStatus.PAID,
        }
    ),
}


def can_transition(source: OrderStatus, target: OrderStatus) -> bool:
    return source in LEGAL_TRANSITIONS.get(target, frozenset())


@dataclass(frozen=True)
class OrderItem:
    """A line on the order.

    Frozen: the aggregate replaces an item instead of mutating it, so
    nothing outside ``Order`` can change units or discount.
    """

    product_id: int
    product_name: str
    unit_price: Money
    units: Quantity
    discount: Money = field(default_factory=Money.zero)
    picture_url: str = ""

    def __post_init__(self) -> None:
        if self.discount > self.unit_price * self.units.value:
            raise ValidationError(
                f"Discount {self.discount} exceeds the total of "
                f"{self.product_name} ({self.unit_price * self.units.value})"
            )

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.units.value - self.discount


class Order:
    """Aggregate root for customer orders.

    Use ``Order.create()`` for new orders.  ``__init__`` stays permissive
    so the repository can reconstitute persisted orders without replaying
    the business rules or raising events.
    """

    def __init__(
        self,
        id: int | None,
        buyer_id: str,
        buyer_name: str,
        address: Address,
        items: list[OrderItem] | None = None,
        status: OrderStatus = OrderStatus.SUBMITTED,
        description: str = "",
        order_date: datetime | None = None,
        version: int = 0,
    ) -> None:
        self.id = id
        self.buyer_id = buyer_id
        self.buyer_name = buyer_name
        self.address = address
        self.description = description
        self.order_date = order_date or datetime.now(timezone.utc)
        self.version = version
        self._items: list[OrderItem] = list(items or [])
        self._status = status
        self._domain_events: list[DomainEvent] = []

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        buyer_id: str,
        buyer_name: str,
        address: Address,
        items: list[OrderItem],
    ) -> Order:
        """Create a submitted order and record ``OrderStarted``."""
        if not buyer_id or not buyer_id.strip():
            raise ValidationError("Buyer id is required")
        if not items:
            raise ValidationError("Order must contain at least one item")

        order = Order(
            id=None,
            buyer_id=buyer_id.strip(),
            buyer_name=buyer_name.strip(),
            address=address,
        )
        for item in items:
            order.add_order_item(
                product_id=item.product_id,
                product_name=item.product_name,
                unit_price=item.unit_price,
                units=item.units,
                discount=item.discount,
                picture_url=item.picture_url,
            )
        order._record(OrderStarted(buyer_id=order.buyer_id, buyer_name=order.buyer_name))
        return order

    # --- Read access ----------------------------------------------------------

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def items(self) -> tuple[OrderItem, ...]:
        return tuple(self._items)

    @property
    def domain_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._domain_events)

    @property
    def total(self) -> Money:
        currency = self._items[0].unit_price.currency if self._items else "USD"
        result = Money.zero(currency)
        for item in self._items:
            result = result + item.line_total
        return result

    # --- Line items -----------------------------------------------------------

    def add_order_item(
        self,
        product_id: int,
        product_name: str,
        unit_price: Money,
        units: Quantity,
        discount: Money | None = None,
        picture_url: str = "",
    ) -> None:
        """Append a line, or merge it into an existing line for the product.

        A repeated product adds its units and keeps the higher discount.
        """
        if self._status != OrderStatus.SUBMITTED:
            raise InvalidStateError(
                f"Cannot add items to order {self.id} in {self._status.value} status"
            )
        discount = discount or Money.zero(unit_price.currency)

        for index, existing in enumerate(self._items):
            if existing.product_id == product_id:
                self._items[index] = replace(
                    existing,
                    units=existing.units + units,
                    discount=discount if discount > existing.discount else existing.discount,
                )
                return

        self._items.append(
            OrderItem(
                product_id=product_id,
                product_name=product_name,
                unit_price=unit_price,
                units=units,
                discount=discount,
                picture_url=picture_url,
            )
        )

    # --- State transitions ----------------------------------------------------

    def set_awaiting_validation_status(self) -> None:
        self._change_status(
            OrderStatus.AWAITING_VALIDATION,
            OrderStatusChangedToAwaitingValidation(product_ids=self._product_ids()),
        )

    def set_stock_confirmed_status(self) -> None:
        self._change_status(
            OrderStatus.STOCK_CONFIRMED,
            OrderStatusChangedToStockConfirmed(),
        )
        self.description = "All the items were confirmed with available stock."

    def set_paid_status(self) -> None:
        """STOCK_CONFIRMED -> PAID.

        An order that is already PAID is rejected like any other illegal
        edge; redelivered pay commands are absorbed by the request ledger.
        """
        self._change_status(OrderStatus.PAID, OrderPaid(product_ids=self._product_ids()))
        self.description = "The payment was performed."

    def set_shipped_status(self) -> None:
        self._change_status(OrderStatus.SHIPPED, OrderShipped())
        self.description = "The order was shipped."

    def set_cancelled_status(self) -> None:
        previous = self._status
        self._change_status(
            OrderStatus.CANCELLED,
            OrderCancelled(previous_status=previous.value),
        )
        self.description = "The order was cancelled."

    # --- Domain events --------------------------------------------------------

    def pull_domain_events(self) -> list[DomainEvent]:
        events, self._domain_events = self._domain_events, []
        return events

    # --- Internal helpers -----------------------------------------------------

    def _change_status(self, target: OrderStatus, event: DomainEvent) -> None:
        if not can_transition(self._status, target):
            raise InvalidTransitionError(
                f"Cannot change order {self.id} from {self._status.value} "
                f"to {target.value}"
            )
        self._status = target
        self._record(event)

    def _record(self, event: DomainEvent) -> None:
        self._domain_events.append(event)

    def _product_ids(self) -> tuple[int, ...]:
        return tuple(item.product_id for item in self._items)

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id!r}, status={self._status.value}, "
            f"items={len(self._items)}, version={self.version})>"
        )
