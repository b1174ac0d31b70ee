"""Application service: Show Order use case (query)."""

from __future__ import annotations

from ordering.application.dto import OrderDTO, OrderItemDTO
from ordering.domain.exceptions import EntityNotFoundError
from ordering.domain.model.order import Order
from ordering.domain.repository.order_repository import OrderRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: int) -> OrderDTO:
        order = self._order_repo.get(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return self._to_dto(order)

    @staticmethod
    def _to_dto(order: Order) -> OrderDTO:
        address = order.address
        return OrderDTO(
            id=order.id,  # type: ignore[arg-type]
            buyer_name=order.buyer_name,
            status=order.status.value,
            description=order.description,
            address=f"{address.street}, {address.city}, {address.country}",
            items=[
                OrderItemDTO(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    units=item.units.value,
                    unit_price=str(item.unit_price),
                    discount=str(item.discount),
                    line_total=str(item.line_total),
                )
                for item in order.items
            ],
            total=str(order.total),
            order_date=order.order_date.strftime("%Y-%m-%d %H:%M UTC"),
        )
