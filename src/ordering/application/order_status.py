"""Application services: order status use cases.

Every status command follows the same shape: load the order (with its
items), apply exactly one state-machine operation, commit.  State-machine
rejections propagate unchanged so the command boundary can tell them
apart from a missing order or a failed commit.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from ordering.domain.exceptions import EntityNotFoundError
from ordering.domain.model.order import Order, OrderStatus
from ordering.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class OrderStatusHandler(ABC):
    """Base for handlers of commands that carry an ``order_number``."""

    target_status: OrderStatus

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, command, cancel: threading.Event | None = None) -> bool:
        target = self.target_status.value
        logger.info("Setting order %s as %s", command.order_number, target)

        order = self._order_repo.get(command.order_number)
        if order is None:
            logger.error(
                "Order %s not found when setting status to %s",
                command.order_number,
                target,
            )
            raise EntityNotFoundError(f"Order #{command.order_number} not found")

        self.apply(order)
        result = self._order_repo.unit_of_work.save_entities(cancel=cancel)

        if result:
            logger.info("Order %s successfully updated to %s", order.id, target)
        else:
            logger.error("Failed to update order %s to %s", order.id, target)
        return result

    @abstractmethod
    def apply(self, order: Order) -> None:
        """Run the one state-machine operation of this command."""


class SetAwaitingValidationOrderStatusHandler(OrderStatusHandler):
    """Grace period over: the order goes to stock validation."""

    target_status = OrderStatus.AWAITING_VALIDATION

    def apply(self, order: Order) -> None:
        order.set_awaiting_validation_status()


class SetStockConfirmedOrderStatusHandler(OrderStatusHandler):
    """The catalog confirmed stock for every line."""

    target_status = OrderStatus.STOCK_CONFIRMED

    def apply(self, order: Order) -> None:
        order.set_stock_confirmed_status()


class ShipOrderHandler(OrderStatusHandler):

    target_status = OrderStatus.SHIPPED

    def apply(self, order: Order) -> None:
        order.set_shipped_status()
