"""Application service: Create Order use case.

Builds a submitted Order from the checked-out basket and commits it
together with its ``OrderStarted`` integration event.
"""

from __future__ import annotations

import logging
import threading

from ordering.application.commands import CreateOrderCommand
from ordering.domain.model.order import Order, OrderItem
from ordering.domain.model.value_objects import Address, Money, Quantity
from ordering.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class CreateOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(
        self,
        command: CreateOrderCommand,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Create and persist a new order.

        Steps:
        1. Turn each basket line into an OrderItem (price snapshot).
        2. Let ``Order.create`` validate and merge the lines.
        3. Stage the aggregate and commit the unit of work.
        """
        logger.info(
            "Creating order for buyer %s with %d line(s)",
            command.user_id,
            len(command.items),
        )
        address = Address(
            street=command.street,
            city=command.city,
            state=command.state,
            country=command.country,
            zip_code=command.zip_code,
        )
        items = [
            OrderItem(
                product_id=spec.product_id,
                product_name=spec.product_name,
                unit_price=Money.of(spec.unit_price),
                units=Quantity(spec.units),
                discount=Money.of(spec.discount),
                picture_url=spec.picture_url,
            )
            for spec in command.items
        ]
        order = Order.create(
            buyer_id=command.user_id,
            buyer_name=command.user_name,
            address=address,
            items=items,
        )
        self._order_repo.add(order)

        result = self._order_repo.unit_of_work.save_entities(cancel=cancel)
        if result:
            logger.info("Order %s created for buyer %s", order.id, command.user_id)
        else:
            logger.error("Failed to save order for buyer %s", command.user_id)
        return result
