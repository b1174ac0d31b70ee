"""CLI commands for the Order aggregate."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import click

from ordering.application.commands import (
    CancelOrderCommand,
    Command,
    CreateOrderCommand,
    IdentifiedCommand,
    SetAwaitingValidationOrderStatusCommand,
    SetPaidOrderStatusCommand,
    SetStockConfirmedOrderStatusCommand,
    ShipOrderCommand,
)
from ordering.application.dto import OrderDTO, OrderItemSpec
from ordering.application.envelope import parse_envelope
from ordering.application.results import CommandResult
from ordering.application.show_order import ShowOrderHandler
from ordering.domain.exceptions import DomainException, TransientStoreError
from ordering.infrastructure.bootstrap import command_bus, unit_of_work


def _parse_items(raw: str) -> tuple[OrderItemSpec, ...]:
    """Parse '1:Mug:12.50:2,7:Cap:20:1:5' (id:name:price:units[:discount])."""
    specs: list[OrderItemSpec] = []
    for chunk in raw.split(","):
        parts = [p.strip() for p in chunk.split(":")]
        if len(parts) not in (4, 5):
            raise click.BadParameter(
                f"Invalid item format '{chunk.strip()}'. "
                "Expected 'ProductId:Name:UnitPrice:Units[:Discount]'."
            )
        try:
            product_id = int(parts[0])
            units = int(parts[3])
            unit_price = Decimal(parts[2])
            discount = Decimal(parts[4]) if len(parts) == 5 else Decimal("0")
        except (ValueError, InvalidOperation):
            raise click.BadParameter(f"Invalid numbers in item '{chunk.strip()}'.")
        specs.append(
            OrderItemSpec(
                product_id=product_id,
                product_name=parts[1],
                unit_price=unit_price,
                units=units,
                discount=discount,
            )
        )
    return tuple(specs)


def _dispatch(identified: IdentifiedCommand) -> CommandResult:
    try:
        return command_bus().dispatch(identified)
    except TransientStoreError as exc:
        raise click.ClickException(f"Order store unavailable, retry later ({exc})")


def _report(result: CommandResult, request_id: str, done: str) -> None:
    if not result.success:
        reason = result.reason.value if result.reason else "FAILED"
        raise click.ClickException(f"{reason}: {result.message}" if result.message else reason)
    if result.duplicate:
        click.echo(f"Request {request_id} was already processed; nothing to do.")
    else:
        click.echo(done)


def _status_command(name: str, command_cls: type[Command], verb: str, help_text: str):
    @click.command(name, help=help_text)
    @click.option("--id", "order_id", required=True, type=int, help="Order number.")
    @click.option("--request-id", required=True, help="Caller-supplied request id.")
    def command(order_id: int, request_id: str) -> None:
        try:
            identified = IdentifiedCommand(command_cls(order_number=order_id), request_id)
        except DomainException as exc:
            raise click.ClickException(str(exc))
        result = _dispatch(identified)
        _report(result, request_id, f"Order #{order_id} {verb}.")

    return command


order_cancel = _status_command(
    "cancel", CancelOrderCommand, "cancelled", "Cancel an order that has not shipped."
)
order_await_validation = _status_command(
    "await-validation",
    SetAwaitingValidationOrderStatusCommand,
    "is awaiting stock validation",
    "Move a submitted order to stock validation.",
)
order_confirm_stock = _status_command(
    "confirm-stock",
    SetStockConfirmedOrderStatusCommand,
    "has stock confirmed",
    "Record that stock was confirmed for every line.",
)
order_pay = _status_command(
    "pay", SetPaidOrderStatusCommand, "paid", "Mark a stock-confirmed order as paid."
)
order_ship = _status_command("ship", ShipOrderCommand, "shipped", "Ship a paid order.")


@click.command("create")
@click.option("--request-id", required=True, help="Caller-supplied request id.")
@click.option("--buyer-id", required=True, help="Buyer identity.")
@click.option("--buyer-name", default="", help="Buyer display name.")
@click.option("--street", default="")
@click.option("--city", required=True)
@click.option("--state", default="")
@click.option("--country", required=True)
@click.option("--zip-code", default="")
@click.option(
    "--items",
    required=True,
    help="Lines as 'ProductId:Name:UnitPrice:Units[:Discount]', comma separated.",
)
def order_create(
    request_id: str,
    buyer_id: str,
    buyer_name: str,
    street: str,
    city: str,
    state: str,
    country: str,
    zip_code: str,
    items: str,
) -> None:
    """Submit a new order."""
    command = CreateOrderCommand(
        user_id=buyer_id,
        user_name=buyer_name,
        street=street,
        city=city,
        state=state,
        country=country,
        zip_code=zip_code,
        items=_parse_items(items),
    )
    try:
        identified = IdentifiedCommand(command, request_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    result = _dispatch(identified)
    _report(result, request_id, f"Order submitted for buyer {buyer_id}.")


def _display_order(dto: OrderDTO) -> None:
    click.echo(f"Order #{dto.id}  (status={dto.status})")
    click.echo(f"Buyer:    {dto.buyer_name}")
    click.echo(f"Ship to:  {dto.address}")
    click.echo(f"Created:  {dto.order_date}")
    if dto.description:
        click.echo(f"Note:     {dto.description}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Units':>5} {'Price':>10} {'Discount':>10} {'Total':>10}")
    click.echo(f"  {'-'*58}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.units:>5} {item.unit_price:>10} "
            f"{item.discount:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*58}")
    click.echo(f"  {'Order Total':<27} {dto.total:>31}")


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
def order_show(order_id: int) -> None:
    """Show details of an existing order."""
    try:
        with unit_of_work() as uow:
            dto = ShowOrderHandler(order_repo=uow.orders).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    except TransientStoreError as exc:
        raise click.ClickException(f"Order store unavailable, retry later ({exc})")

    _display_order(dto)


@click.command("dispatch")
@click.argument("envelope", type=click.File("r"), default="-")
def dispatch(envelope) -> None:
    """Dispatch a JSON command envelope (file path, or '-' for stdin)."""
    try:
        identified = parse_envelope(envelope.read())
    except DomainException as exc:
        raise click.ClickException(str(exc))
    result = _dispatch(identified)
    _report(result, identified.request_id, f"{identified.command_name} applied.")
