"""Application service: Set Paid Order Status use case.

Triggered when the payment service confirms payment of a stock-confirmed
order.
"""

from __future__ import annotations

from ordering.application.order_status import OrderStatusHandler
from ordering.domain.model.order import Order, OrderStatus


class SetPaidOrderStatusHandler(OrderStatusHandler):

    target_status = OrderStatus.PAID

    def apply(self, order: Order) -> None:
        order.set_paid_status()
