"""CLI commands for the integration event outbox."""

from __future__ import annotations

import click

from ordering.infrastructure.bootstrap import event_log_service
from ordering.infrastructure.config import get_settings
from ordering.infrastructure.persistence.integration_event_log import (
    IntegrationEventLogEntry,
)


@click.command("pending")
@click.option("--limit", type=int, default=None, help="Maximum events to list.")
def events_pending(limit: int | None) -> None:
    """List integration events waiting to be published."""
    entries = event_log_service().pending(limit or get_settings().outbox_batch_size)
    if not entries:
        click.echo("No pending integration events.")
        return
    click.echo(f"  {'Event':<36}  {'Type':<55} {'Sent':>4}")
    click.echo(f"  {'-'*97}")
    for entry in entries:
        click.echo(f"  {entry.event_id:<36}  {entry.event_type_name:<55} {entry.times_sent:>4}")


@click.command("publish")
@click.option("--limit", type=int, default=None, help="Maximum events to publish.")
def events_publish(limit: int | None) -> None:
    """Publish pending events to stdout as JSON lines and mark them published."""

    def publish(entry: IntegrationEventLogEntry) -> None:
        click.echo(entry.content)

    count = event_log_service().publish_pending(
        publish, limit or get_settings().outbox_batch_size
    )
    click.echo(f"{count} integration event(s) published.", err=True)
