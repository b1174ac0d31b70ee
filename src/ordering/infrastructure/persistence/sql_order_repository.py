"""SQLAlchemy implementation of OrderRepository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ordering.domain.model.order import Order, OrderItem, OrderStatus
from ordering.domain.model.value_objects import Address, Money, Quantity
from ordering.domain.repository.order_repository import OrderRepository
from ordering.infrastructure.persistence.models import OrderItemRecord, OrderRecord

if TYPE_CHECKING:
    from ordering.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork


class SqlOrderRepository(OrderRepository):

    def __init__(self, uow: SqlUnitOfWork) -> None:
        self._uow = uow

    # --- OrderRepository interface --------------------------------------------

    @property
    def unit_of_work(self) -> SqlUnitOfWork:
        return self._uow

    def add(self, order: Order) -> Order:
        self._uow.track(order)
        return order

    def get(self, order_id: int) -> Order | None:
        session = self._uow.session
        with self._uow.translate_errors():
            record = session.scalars(
                select(OrderRecord)
                .options(selectinload(OrderRecord.items))
                .where(OrderRecord.id == order_id)
            ).one_or_none()
        if record is None:
            return None

        order = record_to_order(record)
        # Writes go through versioned UPDATEs, not the identity map.
        session.expunge(record)
        self._uow.track(order)
        return order


# --- Mapping ------------------------------------------------------------------


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def item_to_record(item: OrderItem, order_id: int | None = None) -> OrderItemRecord:
    record = OrderItemRecord(
        product_id=item.product_id,
        product_name=item.product_name,
        unit_price=item.unit_price.amount,
        discount=item.discount.amount,
        currency=item.unit_price.currency,
        units=item.units.value,
        picture_url=item.picture_url,
    )
    if order_id is not None:
        record.order_id = order_id
    return record


def order_to_record(order: Order) -> OrderRecord:
    address = order.address
    return OrderRecord(
        buyer_id=order.buyer_id,
        buyer_name=order.buyer_name,
        street=address.street,
        city=address.city,
        state=address.state,
        country=address.country,
        zip_code=address.zip_code,
        status=order.status.value,
        description=order.description,
        order_date=order.order_date,
        version=order.version,
        items=[item_to_record(item) for item in order.items],
    )


def record_to_order(record: OrderRecord) -> Order:
    items = [
        OrderItem(
            product_id=i.product_id,
            product_name=i.product_name,
            unit_price=Money.of(i.unit_price, i.currency),
            units=Quantity(i.units),
            discount=Money.of(i.discount, i.currency),
            picture_url=i.picture_url,
        )
        for i in record.items
    ]
    return Order(
        id=record.id,
        buyer_id=record.buyer_id,
        buyer_name=record.buyer_name,
        address=Address(
            street=record.street,
            city=record.city,
            state=record.state,
            country=record.country,
            zip_code=record.zip_code,
        ),
        items=items,
        status=OrderStatus(record.status),
        description=record.description,
        order_date=_aware(record.order_date),
        version=record.version,
    )
