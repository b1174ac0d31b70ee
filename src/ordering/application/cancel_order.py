"""Application service: Cancel Order use case.

Cancelling is legal until the order ships.  A shipped or already
cancelled order raises ``InvalidTransitionError``, which is reported to
the caller as a rejected transition, never as "order not found".
"""

from __future__ import annotations

from ordering.application.order_status import OrderStatusHandler
from ordering.domain.model.order import Order, OrderStatus


class CancelOrderHandler(OrderStatusHandler):

    target_status = OrderStatus.CANCELLED

    def apply(self, order: Order) -> None:
        order.set_cancelled_status()
