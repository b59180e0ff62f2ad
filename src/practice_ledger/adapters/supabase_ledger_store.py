"""Supabase-backed ledger store."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

import httpx
from postgrest.exceptions import APIError
from supabase import Client as SupabaseClient

from practice_ledger.domain.errors import StaleWriteError, StoreError
from practice_ledger.domain.models import Client, Expense, Group, Session, Transaction
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
from practice_ledger.services.store import LedgerStore

# Raised by apply_ledger_batch when an expected_status guard does not match.
STALE_WRITE_SQLSTATE = "LG409"

_CLIENT_COLUMNS = (
    "id, name, phone, email, notes, created_at, default_fee, balance, is_active"
)
_GROUP_COLUMNS = "id, name, client_ids, notes, created_at, default_fee, is_active"
_SESSION_COLUMNS = (
    "id, kind, client_id, group_id, title, scheduled_at, duration_minutes, "
    "status, notes, fee"
)
_TRANSACTION_COLUMNS = (
    "id, client_id, amount, kind, occurred_at, description, related_session_id"
)
_EXPENSE_COLUMNS = "id, amount, occurred_at, description, category"


@dataclass
class SupabaseLedgerStore(LedgerStore):
    """Supabase implementation of the ledger store.

    Reads go through PostgREST table queries. Writes are sent as one RPC to
    the ``apply_ledger_batch`` Postgres function, which runs the whole batch
    inside a single database transaction.
    """

    client: SupabaseClient

    def get_client(self, client_id: UUID) -> Client | None:
        """Return a client by id, if present."""
        row = self._get_one("clients", _CLIENT_COLUMNS, client_id)
        return _parse_client(row) if row else None

    def list_clients(self) -> list[Client]:
        """Return all clients ordered by name."""
        response = (
            self.client.table("clients")
            .select(_CLIENT_COLUMNS)
            .order("name", desc=False)
            .execute()
        )
        return [_parse_client(row) for row in response.data or []]

    def get_group(self, group_id: UUID) -> Group | None:
        """Return a group by id, if present."""
        row = self._get_one("groups", _GROUP_COLUMNS, group_id)
        return _parse_group(row) if row else None

    def list_groups(self) -> list[Group]:
        """Return all groups ordered by name."""
        response = (
            self.client.table("groups")
            .select(_GROUP_COLUMNS)
            .order("name", desc=False)
            .execute()
        )
        return [_parse_group(row) for row in response.data or []]

    def get_session(self, session_id: UUID) -> Session | None:
        """Return a session by id, if present."""
        row = self._get_one("sessions", _SESSION_COLUMNS, session_id)
        return _parse_session(row) if row else None

    def list_sessions(self) -> list[Session]:
        """Return all sessions in schedule order."""
        response = (
            self.client.table("sessions")
            .select(_SESSION_COLUMNS)
            .order("scheduled_at", desc=False)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        """Return a transaction by id, if present."""
        row = self._get_one("transactions", _TRANSACTION_COLUMNS, transaction_id)
        return _parse_transaction(row) if row else None

    def list_transactions(
        self,
        client_id: UUID | None = None,
        related_session_id: UUID | None = None,
    ) -> list[Transaction]:
        """Return transactions, optionally filtered."""
        query = self.client.table("transactions").select(_TRANSACTION_COLUMNS)
        if client_id is not None:
            query = query.eq("client_id", str(client_id))
        if related_session_id is not None:
            query = query.eq("related_session_id", str(related_session_id))
        response = query.order("occurred_at", desc=False).execute()
        return [_parse_transaction(row) for row in response.data or []]

    def get_expense(self, expense_id: UUID) -> Expense | None:
        """Return an expense by id, if present."""
        row = self._get_one("expenses", _EXPENSE_COLUMNS, expense_id)
        return _parse_expense(row) if row else None

    def list_expenses(self) -> list[Expense]:
        """Return all expenses in date order."""
        response = (
            self.client.table("expenses")
            .select(_EXPENSE_COLUMNS)
            .order("occurred_at", desc=False)
            .execute()
        )
        return [_parse_expense(row) for row in response.data or []]

    def apply_batch(self, writes: Sequence[Write]) -> None:
        """Apply the writes atomically through the batch RPC."""
        if not writes:
            return
        ops = [_serialize_write(write) for write in writes]
        try:
            self.client.rpc("apply_ledger_batch", {"ops": ops}).execute()
        except APIError as exc:
            if exc.code == STALE_WRITE_SQLSTATE:
                guard = next(w for w in writes if isinstance(w, UpdateSession))
                raise StaleWriteError(
                    guard.session.id, str(guard.expected_status)
                ) from exc
            raise StoreError(f"Ledger batch failed: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Ledger batch failed: {exc}") from exc

    def _get_one(
        self, table: str, columns: str, row_id: UUID
    ) -> dict[str, object] | None:
        response = (
            self.client.table(table)
            .select(columns)
            .eq("id", str(row_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]


def _serialize_write(write: Write) -> dict[str, object]:  # noqa: PLR0911
    if isinstance(write, UpsertClient):
        client = write.client
        return {
            "op": "upsert_client",
            "row": {
                "id": str(client.id),
                "name": client.name,
                "phone": client.phone,
                "email": client.email,
                "notes": client.notes,
                "created_at": client.created_at.isoformat(),
                "default_fee": _money(client.default_fee),
                "is_active": client.is_active,
            },
        }
    if isinstance(write, UpsertGroup):
        group = write.group
        return {
            "op": "upsert_group",
            "row": {
                "id": str(group.id),
                "name": group.name,
                "client_ids": sorted(str(member) for member in group.member_ids),
                "notes": group.notes,
                "created_at": group.created_at.isoformat(),
                "default_fee": _money(group.default_fee),
                "is_active": group.is_active,
            },
        }
    if isinstance(write, InsertSession):
        return {"op": "insert_session", "row": _session_row(write.session)}
    if isinstance(write, UpdateSession):
        return {
            "op": "update_session",
            "row": _session_row(write.session),
            "expected_status": write.expected_status,
        }
    if isinstance(write, DeleteSession):
        return {"op": "delete_session", "id": str(write.session_id)}
    if isinstance(write, InsertTransaction):
        tx = write.transaction
        return {
            "op": "insert_transaction",
            "row": {
                "id": str(tx.id),
                "client_id": str(tx.client_id),
                "amount": _money(tx.amount),
                "kind": tx.kind,
                "occurred_at": tx.occurred_at.isoformat(),
                "description": tx.description,
                "related_session_id": _optional_id(tx.related_session_id),
            },
        }
    if isinstance(write, DeleteTransaction):
        return {"op": "delete_transaction", "id": str(write.transaction_id)}
    if isinstance(write, RecomputeBalance):
        return {"op": "recompute_balance", "id": str(write.client_id)}
    if isinstance(write, InsertExpense):
        expense = write.expense
        return {
            "op": "insert_expense",
            "row": {
                "id": str(expense.id),
                "amount": _money(expense.amount),
                "occurred_at": expense.occurred_at.isoformat(),
                "description": expense.description,
                "category": expense.category,
            },
        }
    if isinstance(write, DeleteExpense):
        return {"op": "delete_expense", "id": str(write.expense_id)}
    raise TypeError(f"Unsupported write: {write!r}")


def _session_row(session: Session) -> dict[str, object]:
    return {
        "id": str(session.id),
        "kind": session.kind,
        "client_id": _optional_id(session.client_id),
        "group_id": _optional_id(session.group_id),
        "title": session.title,
        "scheduled_at": session.scheduled_at.isoformat(),
        "duration_minutes": session.duration_minutes,
        "status": session.status,
        "notes": session.notes,
        "fee": _money(session.fee),
    }


def _money(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _optional_id(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def _decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def _uuid(value: object) -> UUID | None:
    return UUID(str(value)) if value else None


def _parse_client(row: dict[str, object]) -> Client:
    return Client(
        id=UUID(str(row["id"])),
        name=str(row["name"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        phone=row.get("phone"),
        email=row.get("email"),
        notes=str(row.get("notes") or ""),
        default_fee=_decimal(row.get("default_fee")),
        balance=_decimal(row.get("balance")) or Decimal("0"),
        is_active=bool(row.get("is_active", True)),
    )


def _parse_group(row: dict[str, object]) -> Group:
    return Group(
        id=UUID(str(row["id"])),
        name=str(row["name"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        member_ids=frozenset(
            UUID(str(member)) for member in row.get("client_ids") or []
        ),
        notes=str(row.get("notes") or ""),
        default_fee=_decimal(row.get("default_fee")),
        is_active=bool(row.get("is_active", True)),
    )


def _parse_session(row: dict[str, object]) -> Session:
    return Session(
        id=UUID(str(row["id"])),
        kind=str(row["kind"]),
        scheduled_at=datetime.fromisoformat(str(row["scheduled_at"])),
        duration_minutes=int(row["duration_minutes"]),
        status=str(row["status"]),
        client_id=_uuid(row.get("client_id")),
        group_id=_uuid(row.get("group_id")),
        title=row.get("title"),
        notes=row.get("notes"),
        fee=_decimal(row.get("fee")),
    )


def _parse_transaction(row: dict[str, object]) -> Transaction:
    return Transaction(
        id=UUID(str(row["id"])),
        client_id=UUID(str(row["client_id"])),
        amount=Decimal(str(row["amount"])),
        kind=str(row["kind"]),
        occurred_at=datetime.fromisoformat(str(row["occurred_at"])),
        description=str(row.get("description") or ""),
        related_session_id=_uuid(row.get("related_session_id")),
    )


def _parse_expense(row: dict[str, object]) -> Expense:
    return Expense(
        id=UUID(str(row["id"])),
        amount=Decimal(str(row["amount"])),
        occurred_at=datetime.fromisoformat(str(row["occurred_at"])),
        description=str(row.get("description") or ""),
        category=row.get("category"),
    )
