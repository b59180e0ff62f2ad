"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from practice_ledger.adapters.supabase_ledger_store import SupabaseLedgerStore
from practice_ledger.config import Settings
from practice_ledger.services.clock import (
    Clock,
    IdGenerator,
    SystemClock,
    UuidGenerator,
)
from practice_ledger.services.directory import PracticeDirectory
from practice_ledger.services.ledger import BillingLedger
from practice_ledger.services.reporting import ReportingAggregator
from practice_ledger.services.scheduler import SessionScheduler
from practice_ledger.services.store import LedgerStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: LedgerStore
    directory: PracticeDirectory
    ledger: BillingLedger
    scheduler: SessionScheduler
    reporting: ReportingAggregator


def build_services(
    settings: Settings,
    store: LedgerStore,
    clock: Clock | None = None,
    ids: IdGenerator | None = None,
) -> AppContainer:
    """Wire the services around a ledger store."""
    resolved_clock = clock or SystemClock()
    resolved_ids = ids or UuidGenerator()
    ledger = BillingLedger(
        store=store,
        clock=resolved_clock,
        ids=resolved_ids,
        accounting_enabled=settings.accounting_enabled,
    )
    return AppContainer(
        settings=settings,
        store=store,
        directory=PracticeDirectory(
            store=store, clock=resolved_clock, ids=resolved_ids
        ),
        ledger=ledger,
        scheduler=SessionScheduler(
            store=store,
            ledger=ledger,
            ids=resolved_ids,
            default_duration_minutes=settings.default_session_minutes,
        ),
        reporting=ReportingAggregator(
            clock=resolved_clock, timezone_name=settings.timezone
        ),
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    return build_services(resolved_settings, SupabaseLedgerStore(supabase_client))
