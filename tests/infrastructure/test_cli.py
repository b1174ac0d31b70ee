"""End-to-end tests for the command line, against a temporary SQLite file."""

import json

import pytest
from click.testing import CliRunner

from ordering.infrastructure import bootstrap
from ordering.infrastructure.cli.main import cli


@pytest.fixture
def run(tmp_path, monkeypatch):
    monkeypatch.setenv("ORDERING_DATABASE_URL", f"sqlite:///{tmp_path / 'ordering.db'}")
    monkeypatch.setenv("ORDERING_BACKOFF_SECONDS", "0")
    bootstrap.reset()
    runner = CliRunner()

    def invoke(*args, input=None):
        return runner.invoke(cli, ["--log-level", "WARNING", *args], input=input)

    yield invoke
    bootstrap.reset()


def _create(run, request_id="req-1"):
    return run(
        "order", "create",
        "--request-id", request_id,
        "--buyer-id", "buyer-1",
        "--buyer-name", "Alice",
        "--city", "Seattle",
        "--country", "US",
        "--items", "1:Mug:12.50:2,7:Cap:20:1:5",
    )


def test_create_and_show(run):
    created = _create(run)
    assert created.exit_code == 0, created.output
    assert "Order submitted for buyer buyer-1." in created.output

    shown = run("order", "show", "--id", "1")

    assert shown.exit_code == 0, shown.output
    assert "status=SUBMITTED" in shown.output
    assert "Mug" in shown.output
    assert "$40.00" in shown.output


def test_duplicate_create_is_acknowledged(run):
    _create(run)

    again = _create(run)

    assert again.exit_code == 0
    assert "Request req-1 was already processed" in again.output
    assert run("order", "show", "--id", "2").exit_code != 0


def test_lifecycle_to_shipped(run):
    _create(run)
    for step, request_id in (
        ("await-validation", "r1"),
        ("confirm-stock", "r2"),
        ("pay", "r3"),
        ("ship", "r4"),
    ):
        result = run("order", step, "--id", "1", "--request-id", request_id)
        assert result.exit_code == 0, result.output

    assert "status=SHIPPED" in run("order", "show", "--id", "1").output


def test_illegal_transition_reports_reason(run):
    _create(run)

    result = run("order", "ship", "--id", "1", "--request-id", "r1")

    assert result.exit_code == 1
    assert "INVALID_TRANSITION" in result.output


def test_unknown_order(run):
    result = run("order", "cancel", "--id", "99", "--request-id", "r1")

    assert result.exit_code == 1
    assert "NOT_FOUND" in result.output


def test_bad_items_are_rejected(run):
    result = run(
        "order", "create",
        "--request-id", "req-1",
        "--buyer-id", "buyer-1",
        "--city", "Seattle",
        "--country", "US",
        "--items", "1:Mug:abc:2",
    )

    assert result.exit_code == 2
    assert "Invalid numbers in item" in result.output


def test_dispatch_envelope_from_stdin(run):
    _create(run)
    envelope = {"requestId": "env-1", "commandType": "CancelOrder", "aggregateId": 1}

    result = run("dispatch", input=json.dumps(envelope))

    assert result.exit_code == 0, result.output
    assert "CancelOrder applied." in result.output
    assert "status=CANCELLED" in run("order", "show", "--id", "1").output


def test_dispatch_rejects_malformed_envelope(run):
    result = run("dispatch", input='{"commandType": "CancelOrder"}')

    assert result.exit_code == 1
    assert "Invalid command envelope" in result.output


def test_events_pending_and_publish(run):
    _create(run)
    run("order", "cancel", "--id", "1", "--request-id", "r1")

    pending = run("events", "pending")
    assert "OrderStartedIntegrationEvent" in pending.output
    assert "OrderStatusChangedToCancelledIntegrationEvent" in pending.output

    published = run("events", "publish")
    assert published.exit_code == 0
    assert "2 integration event(s) published." in published.output
    assert "No pending integration events." in run("events", "pending").output
