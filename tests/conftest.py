"""Shared test fixtures."""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from practice_ledger.config import Settings
from practice_ledger.containers import AppContainer, build_services
from practice_ledger.domain.errors import StaleWriteError, StoreError
from practice_ledger.domain.models import (
    Client,
    Expense,
    Group,
    Session,
    Transaction,
    ledger_balance,
)
from practice_ledger.domain.writes import (
    DeleteExpense,
    DeleteSession,
    DeleteTransaction,
    InsertExpense,
    InsertSession,
    InsertTransaction,
    RecomputeBalance,
    UpdateSession,
    UpsertClient,
    UpsertGroup,
    Write,
)
from practice_ledger.services.clock import Clock, IdGenerator
from practice_ledger.services.store import LedgerStore

BASE_TIME = datetime(2024, 3, 13, 9, 0, tzinfo=UTC)


@dataclass
class FixedClock(Clock):
    """Clock that returns a settable instant."""

    current: datetime = BASE_TIME

    def now(self) -> datetime:
        return self.current


@dataclass
class SequentialIds(IdGenerator):
    """Deterministic UUIDs counting up from 1."""

    counter: int = 0

    def new_id(self) -> UUID:
        self.counter += 1
        return UUID(int=self.counter)


@dataclass
class InMemoryLedgerStore(LedgerStore):
    """In-memory ledger store that applies batches all-or-nothing."""

    clients: dict[UUID, Client] = field(default_factory=dict)
    groups: dict[UUID, Group] = field(default_factory=dict)
    sessions: dict[UUID, Session] = field(default_factory=dict)
    transactions: dict[UUID, Transaction] = field(default_factory=dict)
    expenses: dict[UUID, Expense] = field(default_factory=dict)
    batches: list[list[Write]] = field(default_factory=list)
    batch_calls: int = 0
    fail_on_calls: set[int] = field(default_factory=set)

    def get_client(self, client_id: UUID) -> Client | None:
        return self.clients.get(client_id)

    def list_clients(self) -> list[Client]:
        return list(self.clients.values())

    def get_group(self, group_id: UUID) -> Group | None:
        return self.groups.get(group_id)

    def list_groups(self) -> list[Group]:
        return list(self.groups.values())

    def get_session(self, session_id: UUID) -> Session | None:
        return self.sessions.get(session_id)

    def list_sessions(self) -> list[Session]:
        return sorted(self.sessions.values(), key=lambda s: s.scheduled_at)

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        return self.transactions.get(transaction_id)

    def list_transactions(
        self,
        client_id: UUID | None = None,
        related_session_id: UUID | None = None,
    ) -> list[Transaction]:
        return [
            tx
            for tx in self.transactions.values()
            if (client_id is None or tx.client_id == client_id)
            and (
                related_session_id is None
                or tx.related_session_id == related_session_id
            )
        ]

    def get_expense(self, expense_id: UUID) -> Expense | None:
        return self.expenses.get(expense_id)

    def list_expenses(self) -> list[Expense]:
        return list(self.expenses.values())

    def apply_batch(self, writes: Sequence[Write]) -> None:  # noqa: PLR0912
        call = self.batch_calls
        self.batch_calls += 1
        if call in self.fail_on_calls:
            raise StoreError(f"injected failure on batch {call}")
        clients = dict(self.clients)
        groups = dict(self.groups)
        sessions = dict(self.sessions)
        transactions = dict(self.transactions)
        expenses = dict(self.expenses)
        recompute: list[UUID] = []
        for write in writes:
            if isinstance(write, UpsertClient):
                existing = clients.get(write.client.id)
                balance = existing.balance if existing else write.client.balance
                clients[write.client.id] = replace(write.client, balance=balance)
            elif isinstance(write, UpsertGroup):
                groups[write.group.id] = write.group
            elif isinstance(write, InsertSession):
                sessions[write.session.id] = write.session
            elif isinstance(write, UpdateSession):
                current = sessions.get(write.session.id)
                if write.expected_status is not None and (
                    current is None or current.status != write.expected_status
                ):
                    raise StaleWriteError(write.session.id, write.expected_status)
                sessions[write.session.id] = write.session
            elif isinstance(write, DeleteSession):
                sessions.pop(write.session_id, None)
                tagged = [
                    tx
                    for tx in transactions.values()
                    if tx.related_session_id == write.session_id
                ]
                for tx in tagged:
                    del transactions[tx.id]
                    recompute.append(tx.client_id)
            elif isinstance(write, InsertTransaction):
                transactions[write.transaction.id] = write.transaction
            elif isinstance(write, DeleteTransaction):
                transactions.pop(write.transaction_id, None)
            elif isinstance(write, RecomputeBalance):
                recompute.append(write.client_id)
            elif isinstance(write, InsertExpense):
                expenses[write.expense.id] = write.expense
            elif isinstance(write, DeleteExpense):
                expenses.pop(write.expense_id, None)
        for client_id in recompute:
            if client_id in clients:
                owned = [
                    tx for tx in transactions.values() if tx.client_id == client_id
                ]
                clients[client_id] = replace(
                    clients[client_id], balance=ledger_balance(owned)
                )
        self.clients = clients
        self.groups = groups
        self.sessions = sessions
        self.transactions = transactions
        self.expenses = expenses
        self.batches.append(list(writes))


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "supabase_url": "https://example.supabase.co",
        "supabase_service_key": "test.service.key",
        "admin_token": "admin-token",
    }
    values.update(overrides)
    return Settings(**values)


def make_container(**setting_overrides: object) -> AppContainer:
    """Fresh services over an empty in-memory store."""
    return build_services(
        make_settings(**setting_overrides),
        InMemoryLedgerStore(),
        clock=FixedClock(),
        ids=SequentialIds(),
    )


def money(value: str | int) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def container() -> AppContainer:
    return make_container()


@pytest.fixture
def store(container: AppContainer) -> InMemoryLedgerStore:
    assert isinstance(container.store, InMemoryLedgerStore)
    return container.store


@pytest.fixture
def clock(container: AppContainer) -> FixedClock:
    assert isinstance(container.ledger.clock, FixedClock)
    return container.ledger.clock
