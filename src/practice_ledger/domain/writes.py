"""Write operations accepted by the ledger store's atomic batch."""

from dataclasses import dataclass
from uuid import UUID

from practice_ledger.domain.models import Client, Expense, Group, Session, Transaction


@dataclass(frozen=True)
class UpsertClient:
    client: Client


@dataclass(frozen=True)
class UpsertGroup:
    group: Group


@dataclass(frozen=True)
class InsertSession:
    session: Session


@dataclass(frozen=True)
class UpdateSession:
    """Replace a session row.

    When ``expected_status`` is set the whole batch is rejected unless the
    stored row still has that status.
    """

    session: Session
    expected_status: str | None = None


@dataclass(frozen=True)
class DeleteSession:
    """Remove a session together with every transaction tagged with it.

    The store recomputes the balance of each client whose transactions were
    removed, using the rows present when the batch applies.
    """

    session_id: UUID


@dataclass(frozen=True)
class InsertTransaction:
    transaction: Transaction


@dataclass(frozen=True)
class DeleteTransaction:
    transaction_id: UUID


@dataclass(frozen=True)
class RecomputeBalance:
    """Rebuild a client's cached balance from its transactions.

    Applied after every other write in the same batch.
    """

    client_id: UUID


@dataclass(frozen=True)
class InsertExpense:
    expense: Expense


@dataclass(frozen=True)
class DeleteExpense:
    expense_id: UUID


Write = (
    UpsertClient
    | UpsertGroup
    | InsertSession
    | UpdateSession
    | DeleteSession
    | InsertTransaction
    | DeleteTransaction
    | RecomputeBalance
    | InsertExpense
    | DeleteExpense
)
