import click

from ordering.infrastructure.cli.event_commands import events_pending, events_publish
from ordering.infrastructure.cli.order_commands import (
    dispatch,
    order_await_validation,
    order_cancel,
    order_confirm_stock,
    order_create,
    order_pay,
    order_ship,
    order_show,
)
from ordering.infrastructure.config import get_settings
from ordering.infrastructure.log_setup import configure_logging


@click.group()
@click.option("--log-level", default=None, help="Override ORDERING_LOG_LEVEL.")
def cli(log_level: str | None) -> None:
    """Ordering — idempotent order command processing"""
    configure_logging(log_level or get_settings().log_level)


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def events() -> None:
    """Inspect and publish the integration event outbox."""


# Register subcommands
order.add_command(order_await_validation)
order.add_command(order_cancel)
order.add_command(order_confirm_stock)
order.add_command(order_create)
order.add_command(order_pay)
order.add_command(order_ship)
order.add_command(order_show)
events.add_command(events_pending)
events.add_command(events_publish)
cli.add_command(dispatch)
