"""Tests for the Supabase ledger store."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

import httpx
import pytest
from postgrest.exceptions import APIError

from practice_ledger.adapters.supabase_ledger_store import (
    STALE_WRITE_SQLSTATE,
    SupabaseLedgerStore,
)
from practice_ledger.domain.errors import StaleWriteError, StoreError
from practice_ledger.domain.models import (
    CHARGE,
    COMPLETED,
    GROUP,
    SCHEDULED,
    Session,
    Transaction,
)
from practice_ledger.domain.writes import (
    InsertTransaction,
    RecomputeBalance,
    UpdateSession,
)
from tests.conftest import money

WHEN = datetime(2024, 3, 13, 9, 0, tzinfo=UTC)


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    responses: list[list[dict[str, object]]] = field(default_factory=list)
    last_columns: str | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    last_order: tuple[str, bool] | None = None

    def queue(self, data: list[dict[str, object]]) -> None:
        self.responses.append(data)

    def select(self, columns: str) -> "FakeTable":
        self.last_columns = columns
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order = (column, desc)
        return self

    def execute(self) -> FakeResponse:
        return FakeResponse(data=self.responses.pop(0) if self.responses else [])


@dataclass
class FakeRpc:
    error: Exception | None = None

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        return FakeResponse(data=None)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    rpc_error: Exception | None = None

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, params: dict[str, object]) -> FakeRpc:
        self.rpc_calls.append((name, params))
        return FakeRpc(error=self.rpc_error)


def _completion_writes(session_id: UUID, client_id: UUID) -> list:
    session = Session(
        id=session_id,
        kind=GROUP,
        scheduled_at=WHEN,
        duration_minutes=90,
        status=COMPLETED,
        group_id=uuid4(),
        fee=money("100.00"),
    )
    charge = Transaction(
        id=uuid4(),
        client_id=client_id,
        amount=money("100.00"),
        kind=CHARGE,
        occurred_at=WHEN,
        description="Group session - Grief group",
        related_session_id=session_id,
    )
    return [
        UpdateSession(session, expected_status=SCHEDULED),
        InsertTransaction(charge),
        RecomputeBalance(client_id),
    ]


def test_get_client_parses_row() -> None:
    client = FakeSupabaseClient()
    client_id = uuid4()
    client.table("clients").queue(
        [
            {
                "id": str(client_id),
                "name": "Ayse Demir",
                "phone": None,
                "email": "ayse@example.com",
                "notes": None,
                "created_at": "2024-03-01T10:00:00+00:00",
                "default_fee": "300.00",
                "balance": 150.5,
                "is_active": True,
            }
        ]
    )

    fetched = SupabaseLedgerStore(client).get_client(client_id)

    assert fetched is not None
    assert fetched.default_fee == money("300.00")
    assert fetched.balance == money("150.5")
    assert fetched.notes == ""
    assert client.tables["clients"].last_filters == [("id", str(client_id))]


def test_get_missing_session_returns_none() -> None:
    store = SupabaseLedgerStore(FakeSupabaseClient())

    assert store.get_session(uuid4()) is None


def test_get_group_parses_members() -> None:
    client = FakeSupabaseClient()
    members = [uuid4(), uuid4()]
    client.table("groups").queue(
        [
            {
                "id": str(uuid4()),
                "name": "Grief group",
                "client_ids": [str(member) for member in members],
                "notes": "",
                "created_at": "2024-03-01T10:00:00+00:00",
                "default_fee": None,
                "is_active": False,
            }
        ]
    )

    (group,) = SupabaseLedgerStore(client).list_groups()

    assert group.member_ids == frozenset(members)
    assert group.default_fee is None
    assert not group.is_active


def test_list_transactions_applies_filters() -> None:
    client = FakeSupabaseClient()
    client_id, session_id = uuid4(), uuid4()
    client.table("transactions").queue(
        [
            {
                "id": str(uuid4()),
                "client_id": str(client_id),
                "amount": "300.00",
                "kind": CHARGE,
                "occurred_at": "2024-03-13T09:00:00+00:00",
                "description": "Session fee - 2024-03-13 09:00",
                "related_session_id": str(session_id),
            }
        ]
    )

    (transaction,) = SupabaseLedgerStore(client).list_transactions(
        client_id=client_id, related_session_id=session_id
    )

    table = client.tables["transactions"]
    assert table.last_filters == [
        ("client_id", str(client_id)),
        ("related_session_id", str(session_id)),
    ]
    assert table.last_order == ("occurred_at", False)
    assert transaction.amount == money("300.00")
    assert transaction.related_session_id == session_id


def test_apply_batch_sends_single_rpc() -> None:
    client = FakeSupabaseClient()
    session_id, client_id = uuid4(), uuid4()

    SupabaseLedgerStore(client).apply_batch(_completion_writes(session_id, client_id))

    ((name, params),) = client.rpc_calls
    assert name == "apply_ledger_batch"
    ops = params["ops"]
    assert [op["op"] for op in ops] == [
        "update_session",
        "insert_transaction",
        "recompute_balance",
    ]
    assert ops[0]["expected_status"] == SCHEDULED
    assert ops[0]["row"]["status"] == COMPLETED
    assert ops[0]["row"]["fee"] == "100.00"
    assert ops[1]["row"]["amount"] == "100.00"
    assert ops[1]["row"]["related_session_id"] == str(session_id)
    assert ops[2]["id"] == str(client_id)


def test_apply_empty_batch_is_noop() -> None:
    client = FakeSupabaseClient()

    SupabaseLedgerStore(client).apply_batch([])

    assert client.rpc_calls == []


def test_stale_guard_maps_to_stale_write() -> None:
    client = FakeSupabaseClient(
        rpc_error=APIError(
            {"message": "session status changed", "code": STALE_WRITE_SQLSTATE}
        )
    )
    session_id = uuid4()

    writes = _completion_writes(session_id, uuid4())

    with pytest.raises(StaleWriteError) as excinfo:
        SupabaseLedgerStore(client).apply_batch(writes)

    assert excinfo.value.session_id == session_id


@pytest.mark.parametrize(
    "error",
    [
        APIError({"message": "duplicate key", "code": "23505"}),
        httpx.ConnectError("connection refused"),
    ],
)
def test_other_failures_map_to_store_error(error) -> None:
    client = FakeSupabaseClient(rpc_error=error)

    with pytest.raises(StoreError):
        SupabaseLedgerStore(client).apply_batch([RecomputeBalance(uuid4())])
