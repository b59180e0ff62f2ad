"""Persistence interface for the practice ledger."""

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from practice_ledger.domain.models import Client, Expense, Group, Session, Transaction
from practice_ledger.domain.writes import Write


class LedgerStore(Protocol):
    """Typed reads for the five entities plus an atomic write batch."""

    def get_client(self, client_id: UUID) -> Client | None:
        """Return a client by id, if present."""

    def list_clients(self) -> list[Client]:
        """Return all clients."""

    def get_group(self, group_id: UUID) -> Group | None:
        """Return a group by id, if present."""

    def list_groups(self) -> list[Group]:
        """Return all groups."""

    def get_session(self, session_id: UUID) -> Session | None:
        """Return a session by id, if present."""

    def list_sessions(self) -> list[Session]:
        """Return all sessions."""

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        """Return a transaction by id, if present."""

    def list_transactions(
        self,
        client_id: UUID | None = None,
        related_session_id: UUID | None = None,
    ) -> list[Transaction]:
        """Return transactions, optionally filtered by client and session."""

    def get_expense(self, expense_id: UUID) -> Expense | None:
        """Return an expense by id, if present."""

    def list_expenses(self) -> list[Expense]:
        """Return all expenses."""

    def apply_batch(self, writes: Sequence[Write]) -> None:
        """Apply every write or none of them.

        Raises StaleWriteError when an UpdateSession guard does not match and
        StoreError when the store fails; in both cases nothing is applied.
        """
