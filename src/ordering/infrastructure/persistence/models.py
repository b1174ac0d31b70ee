"""SQLAlchemy ORM models for the ordering store.

Tables:
    orders                 1--* order_items
    client_requests        request ledger, primary key on request_id
    integration_event_log  outbox, written in the same transaction as orders
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


class OrderRecord(Base):
    """Persisted Order aggregate root.

    ``version`` is the optimistic concurrency token: every update is issued
    as ``WHERE id = :id AND version = :loaded_version``.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    buyer_id: Mapped[str] = mapped_column(String(128), nullable=False)
    buyer_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    street: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    items: Mapped[list[OrderItemRecord]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItemRecord.id",
    )

    __table_args__ = (
        Index("ix_orders_buyer_id", "buyer_id"),
        Index("ix_orders_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<OrderRecord(id={self.id!r}, status={self.status!r}, "
            f"version={self.version!r})>"
        )


class OrderItemRecord(Base):

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    units: Mapped[int] = mapped_column(Integer, nullable=False)
    picture_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    order: Mapped[OrderRecord] = relationship(back_populates="items")


class ClientRequestRecord(Base):
    """Request ledger row; the primary key makes each request id unique."""

    __tablename__ = "client_requests"

    request_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    command_name: Mapped[str] = mapped_column(String(64), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(32), nullable=True)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class IntegrationEventLogRecord(Base):
    """Outbox row.  Created once per event; only ``state`` and
    ``times_sent`` change afterwards, as the publisher works through it."""

    __tablename__ = "integration_event_log"

    event_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    event_type_name: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(String(24), nullable=False)
    times_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    creation_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    transaction_id: Mapped[str] = mapped_column(String(36), nullable=False)

    __table_args__ = (
        Index("ix_integration_event_log_state", "state", "creation_time"),
    )
