"""Tests for container wiring."""

from practice_ledger.adapters.supabase_ledger_store import SupabaseLedgerStore
from practice_ledger.containers import build_container
from practice_ledger.services.clock import SystemClock
from tests.conftest import make_settings


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.store, SupabaseLedgerStore)
    assert container.scheduler.ledger is container.ledger
    assert container.ledger.store is container.store
    assert isinstance(container.reporting.clock, SystemClock)


def test_build_container_applies_settings() -> None:
    container = build_container(
        make_settings(
            default_session_minutes=50,
            accounting_enabled=False,
            timezone="Europe/Istanbul",
        )
    )

    assert container.scheduler.default_duration_minutes == 50
    assert container.ledger.accounting_enabled is False
    assert container.reporting.timezone_name == "Europe/Istanbul"
