"""Inbound command envelope, as delivered by the transport layer.

    {"requestId": "...", "commandType": "CancelOrder",
     "aggregateId": 3, "payload": {...}}
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ordering.application.commands import (
    CancelOrderCommand,
    Command,
    CommandType,
    CreateOrderCommand,
    IdentifiedCommand,
    SetAwaitingValidationOrderStatusCommand,
    SetPaidOrderStatusCommand,
    SetStockConfirmedOrderStatusCommand,
    ShipOrderCommand,
)
from ordering.application.dto import OrderItemSpec
from ordering.domain.exceptions import ValidationError

_STATUS_COMMANDS: dict[CommandType, type[Command]] = {
    CommandType.CANCEL_ORDER: CancelOrderCommand,
    CommandType.SET_AWAITING_VALIDATION: SetAwaitingValidationOrderStatusCommand,
    CommandType.SET_STOCK_CONFIRMED: SetStockConfirmedOrderStatusCommand,
    CommandType.SET_PAID: SetPaidOrderStatusCommand,
    CommandType.SHIP_ORDER: ShipOrderCommand,
}


class BasketItemPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    product_name: str = Field(alias="productName", min_length=1)
    unit_price: Decimal = Field(alias="unitPrice", ge=0)
    units: int = Field(gt=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    picture_url: str = Field(default="", alias="pictureUrl")


class CreateOrderPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    user_name: str = Field(alias="userName", default="")
    street: str = ""
    city: str
    state: str = ""
    country: str
    zip_code: str = Field(alias="zipCode", default="")
    items: list[BasketItemPayload]


class CommandEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(alias="requestId", min_length=1)
    command_type: CommandType = Field(alias="commandType")
    aggregate_id: int | None = Field(default=None, alias="aggregateId")
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_identified_command(self) -> IdentifiedCommand:
        if self.command_type is CommandType.CREATE_ORDER:
            command: Command = self._create_order_command()
        else:
            if self.aggregate_id is None:
                raise ValidationError(
                    f"{self.command_type.value} requires an aggregateId"
                )
            command = _STATUS_COMMANDS[self.command_type](order_number=self.aggregate_id)
        return IdentifiedCommand(command=command, request_id=self.request_id)

    def _create_order_command(self) -> CreateOrderCommand:
        try:
            payload = CreateOrderPayload.model_validate(self.payload)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid CreateOrder payload: {exc}") from exc
        return CreateOrderCommand(
            user_id=payload.user_id,
            user_name=payload.user_name,
            street=payload.street,
            city=payload.city,
            state=payload.state,
            country=payload.country,
            zip_code=payload.zip_code,
            items=tuple(
                OrderItemSpec(
                    product_id=item.product_id,
                    product_name=item.product_name,
                    unit_price=item.unit_price,
                    units=item.units,
                    discount=item.discount,
                    picture_url=item.picture_url,
                )
                for item in payload.items
            ),
        )


def parse_envelope(raw: dict[str, Any] | str) -> IdentifiedCommand:
    """Validate a raw envelope (dict or JSON text) into an IdentifiedCommand."""
    try:
        if isinstance(raw, str):
            envelope = CommandEnvelope.model_validate_json(raw)
        else:
            envelope = CommandEnvelope.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid command envelope: {exc}") from exc
    return envelope.to_identified_command()
