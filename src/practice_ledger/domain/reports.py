"""Read models produced by the reporting aggregator."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class WindowTotals:
    """Cash totals for a reporting window."""

    window: str
    charges: Decimal
    payments: Decimal
    expenses: Decimal
    net: Decimal


@dataclass(frozen=True)
class MonthlyIncome:
    """Payments collected in one calendar month."""

    year: int
    month: int
    total: Decimal


@dataclass(frozen=True)
class DailySessionCount:
    """Number of sessions scheduled on a calendar day."""

    day: date
    count: int


@dataclass(frozen=True)
class HistoryItem:
    """A transaction or expense in the merged cash history."""

    id: UUID
    source: str
    kind: str
    amount: Decimal
    occurred_at: datetime
    description: str
    client_id: UUID | None = None


@dataclass(frozen=True)
class BalanceDrift:
    """A cached client balance that disagreed with its transaction log."""

    client_id: UUID
    cached: Decimal
    expected: Decimal
