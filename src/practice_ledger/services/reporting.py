"""Read-only rollups over session and ledger snapshots."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from practice_ledger.domain.errors import ValidationError
from practice_ledger.domain.models import (
    CHARGE,
    PAYMENT,
    ZERO,
    Client,
    Expense,
    Session,
    Transaction,
)
from practice_ledger.domain.reports import (
    DailySessionCount,
    HistoryItem,
    MonthlyIncome,
    WindowTotals,
)
from practice_ledger.services.clock import Clock

DECEMBER = 12
WINDOWS = ("day", "week", "month", "all")


@dataclass
class ReportingAggregator:
    """Computes time-windowed totals and trends in the practice's timezone.

    Every method is a pure function of its arguments and the clock; nothing
    is persisted or mutated.
    """

    clock: Clock
    timezone_name: str = "UTC"

    def window_totals(
        self,
        transactions: Iterable[Transaction],
        expenses: Iterable[Expense],
        window: str,
    ) -> WindowTotals:
        """Return charges, payments, expenses and net cash for a window."""
        start, end = self._window_bounds(window)
        charges = payments = ZERO
        for tx in transactions:
            if not _within(tx.occurred_at, start, end):
                continue
            if tx.kind == CHARGE:
                charges += tx.amount
            elif tx.kind == PAYMENT:
                payments += tx.amount
        spent = sum(
            (e.amount for e in expenses if _within(e.occurred_at, start, end)), ZERO
        )
        return WindowTotals(
            window=window,
            charges=charges,
            payments=payments,
            expenses=spent,
            net=payments - spent,
        )

    def outstanding_balance(self, clients: Iterable[Client]) -> Decimal:
        """Return total receivables; credit balances count as zero."""
        return sum((max(client.balance, ZERO) for client in clients), ZERO)

    def monthly_income_trend(
        self, transactions: Iterable[Transaction], months_back: int = 6
    ) -> list[MonthlyIncome]:
        """Return payments per calendar month, oldest first, ending this month."""
        if months_back < 1:
            raise ValidationError("months_back must be at least 1")
        tz = ZoneInfo(self.timezone_name)
        totals: dict[tuple[int, int], Decimal] = {}
        for tx in transactions:
            if tx.kind != PAYMENT:
                continue
            local = tx.occurred_at.astimezone(tz)
            key = (local.year, local.month)
            totals[key] = totals.get(key, ZERO) + tx.amount
        today = self.clock.now().astimezone(tz)
        trend = []
        for offset in range(months_back - 1, -1, -1):
            year, month = _shift_month(today.year, today.month, -offset)
            trend.append(
                MonthlyIncome(
                    year=year, month=month, total=totals.get((year, month), ZERO)
                )
            )
        return trend

    def session_density(
        self, sessions: Iterable[Session], days_back: int = 7
    ) -> list[DailySessionCount]:
        """Return sessions per day for the last ``days_back`` days, oldest first."""
        if days_back < 1:
            raise ValidationError("days_back must be at least 1")
        tz = ZoneInfo(self.timezone_name)
        counts = Counter(s.scheduled_at.astimezone(tz).date() for s in sessions)
        today = self.clock.now().astimezone(tz).date()
        return [
            DailySessionCount(day=day, count=counts.get(day, 0))
            for day in (today - timedelta(days=n) for n in range(days_back - 1, -1, -1))
        ]

    def history(
        self,
        transactions: Iterable[Transaction],
        expenses: Iterable[Expense],
        window: str = "all",
    ) -> list[HistoryItem]:
        """Return transactions and expenses in the window, newest first."""
        start, end = self._window_bounds(window)
        items = [
            HistoryItem(
                id=tx.id,
                source="transaction",
                kind=tx.kind,
                amount=tx.amount,
                occurred_at=tx.occurred_at,
                description=tx.description,
                client_id=tx.client_id,
            )
            for tx in transactions
            if _within(tx.occurred_at, start, end)
        ]
        items.extend(
            HistoryItem(
                id=expense.id,
                source="expense",
                kind=expense.category or "expense",
                amount=expense.amount,
                occurred_at=expense.occurred_at,
                description=expense.description,
            )
            for expense in expenses
            if _within(expense.occurred_at, start, end)
        )
        return sorted(items, key=lambda item: item.occurred_at, reverse=True)

    def agenda(
        self, sessions: Iterable[Session], day: date | None = None
    ) -> list[Session]:
        """Return the sessions on a local calendar day, earliest first."""
        tz = ZoneInfo(self.timezone_name)
        target = day or self.clock.now().astimezone(tz).date()
        return sorted(
            (s for s in sessions if s.scheduled_at.astimezone(tz).date() == target),
            key=lambda s: s.scheduled_at,
        )

    def active_client_count(self, clients: Iterable[Client]) -> int:
        return sum(1 for client in clients if client.is_active)

    def _window_bounds(self, window: str) -> tuple[datetime | None, datetime | None]:
        if window not in WINDOWS:
            raise ValidationError(f"Unknown window: {window}")
        if window == "all":
            return None, None
        now = self.clock.now().astimezone(ZoneInfo(self.timezone_name))
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if window == "day":
            return midnight, midnight + timedelta(days=1)
        if window == "week":
            start = midnight - timedelta(days=now.weekday())
            return start, start + timedelta(days=7)
        start = midnight.replace(day=1)
        if start.month == DECEMBER:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return start, end


def _within(moment: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and moment < start:
        return False
    return end is None or moment < end


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1
