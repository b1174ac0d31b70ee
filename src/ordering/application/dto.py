"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one basket line the buyer checked out."""

    product_id: int
    product_name: str
    unit_price: Decimal
    units: int
    discount: Decimal = Decimal("0")
    picture_url: str = ""


@dataclass(frozen=True)
class OrderItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: int
    product_name: str
    units: int
    unit_price: str  # formatted, e.g. "$15.00"
    discount: str
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    buyer_name: str
    status: str
    description: str
    address: str
    items: list[OrderItemDTO]
    total: str
    order_date: str
