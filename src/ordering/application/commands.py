"""Commands — immutable requests to change an order.

Commands are intentions and may fail.  Every command reaches the
handlers wrapped in an ``IdentifiedCommand`` carrying the caller's
request id, which is what the request ledger deduplicates on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ordering.application.dto import OrderItemSpec
from ordering.domain.exceptions import ValidationError


class CommandType(Enum):
    CREATE_ORDER = "CreateOrder"
    CANCEL_ORDER = "CancelOrder"
    SET_AWAITING_VALIDATION = "SetAwaitingValidationOrderStatus"
    SET_STOCK_CONFIRMED = "SetStockConfirmedOrderStatus"
    SET_PAID = "SetPaidOrderStatus"
    SHIP_ORDER = "ShipOrder"


class Command:
    """Base class for all order commands."""

    command_type: CommandType


@dataclass(frozen=True)
class CreateOrderCommand(Command):
    user_id: str
    user_name: str
    street: str
    city: str
    state: str
    country: str
    zip_code: str
    items: tuple[OrderItemSpec, ...]

    command_type = CommandType.CREATE_ORDER


@dataclass(frozen=True)
class CancelOrderCommand(Command):
    order_number: int

    command_type = CommandType.CANCEL_ORDER


@dataclass(frozen=True)
class SetAwaitingValidationOrderStatusCommand(Command):
    order_number: int

    command_type = CommandType.SET_AWAITING_VALIDATION


@dataclass(frozen=True)
class SetStockConfirmedOrderStatusCommand(Command):
    order_number: int

    command_type = CommandType.SET_STOCK_CONFIRMED


@dataclass(frozen=True)
class SetPaidOrderStatusCommand(Command):
    order_number: int

    command_type = CommandType.SET_PAID


@dataclass(frozen=True)
class ShipOrderCommand(Command):
    order_number: int

    command_type = CommandType.SHIP_ORDER


@dataclass(frozen=True)
class IdentifiedCommand:
    """A command plus the caller-supplied id of the logical request."""

    command: Command
    request_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.request_id, str) or not self.request_id.strip():
            raise ValidationError("A non-empty request id is required")

    @property
    def command_name(self) -> str:
        return self.command.command_type.value
