"""Tests for logging configuration."""

import io
import logging

from practice_ledger.app_logging import configure_logging
from tests.conftest import make_container, money


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("practice_ledger")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging()
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.propagate is False


def test_service_events_reach_the_handler() -> None:
    logger = logging.getLogger("practice_ledger")
    logger.handlers.clear()
    configure_logging()
    stream = io.StringIO()
    logger.handlers[0].setStream(stream)
    container = make_container()

    client = container.directory.create_client(name="Ayse Demir")
    container.ledger.record_payment(client.id, money(50))

    output = stream.getvalue()
    created = f"practice_ledger.services.directory: Created client {client.id}"
    assert f"INFO: {created}" in output
    assert "practice_ledger.services.ledger: Recorded payment" in output
    logger.handlers.clear()
