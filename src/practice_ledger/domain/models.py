"""Domain models for clients, groups, sessions and the ledger."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from practice_ledger.domain.errors import ValidationError

INDIVIDUAL = "individual"
GROUP = "group"
OTHER = "other"
SESSION_KINDS = frozenset({INDIVIDUAL, GROUP, OTHER})

SCHEDULED = "scheduled"
COMPLETED = "completed"
CANCELLED = "cancelled"
SESSION_STATUSES = frozenset({SCHEDULED, COMPLETED, CANCELLED})

CHARGE = "charge"
PAYMENT = "payment"
TRANSACTION_KINDS = frozenset({CHARGE, PAYMENT})

ZERO = Decimal("0")


def _require_aware(value: datetime, name: str) -> None:
    if value.tzinfo is None:
        raise ValidationError(f"{name} must be timezone-aware")


def _require_fee(value: Decimal | None, name: str) -> None:
    if value is not None and value < ZERO:
        raise ValidationError(f"{name} must not be negative")


@dataclass(frozen=True)
class Client:
    """A counseling client and the cached balance of their ledger."""

    id: UUID
    name: str
    created_at: datetime
    phone: str | None = None
    email: str | None = None
    notes: str = ""
    default_fee: Decimal | None = None
    balance: Decimal = ZERO
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValidationError("Client name is required")
        _require_fee(self.default_fee, "default_fee")
        _require_aware(self.created_at, "created_at")


@dataclass(frozen=True)
class Group:
    """A therapy group billed per member."""

    id: UUID
    name: str
    created_at: datetime
    member_ids: frozenset[UUID] = field(default_factory=frozenset)
    notes: str = ""
    default_fee: Decimal | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValidationError("Group name is required")
        _require_fee(self.default_fee, "default_fee")
        _require_aware(self.created_at, "created_at")


@dataclass(frozen=True)
class Session:
    """A scheduled appointment.

    Exactly one of ``client_id``, ``group_id`` and ``title`` is set, matching
    ``kind``: individual sessions reference a client, group sessions a group,
    and other sessions carry a free-text title.
    """

    id: UUID
    kind: str
    scheduled_at: datetime
    duration_minutes: int
    status: str = SCHEDULED
    client_id: UUID | None = None
    group_id: UUID | None = None
    title: str | None = None
    notes: str | None = None
    fee: Decimal | None = None

    def __post_init__(self) -> None:
        if self.kind not in SESSION_KINDS:
            raise ValidationError(f"Unknown session kind: {self.kind}")
        if self.status not in SESSION_STATUSES:
            raise ValidationError(f"Unknown session status: {self.status}")
        if self.duration_minutes <= 0:
            raise ValidationError("duration_minutes must be positive")
        _require_fee(self.fee, "fee")
        _require_aware(self.scheduled_at, "scheduled_at")
        references = {
            INDIVIDUAL: self.client_id is not None,
            GROUP: self.group_id is not None,
            OTHER: bool(self.title and self.title.strip()),
        }
        if not references[self.kind] or sum(references.values()) != 1:
            raise ValidationError(
                f"A {self.kind} session needs exactly one of client_id, group_id "
                "or title, matching its kind"
            )


@dataclass(frozen=True)
class Transaction:
    """A charge or payment against one client's balance."""

    id: UUID
    client_id: UUID
    amount: Decimal
    kind: str
    occurred_at: datetime
    description: str
    related_session_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.kind not in TRANSACTION_KINDS:
            raise ValidationError(f"Unknown transaction kind: {self.kind}")
        if self.amount <= ZERO:
            raise ValidationError("Transaction amount must be positive")
        _require_aware(self.occurred_at, "occurred_at")

    @property
    def balance_effect(self) -> Decimal:
        """Signed change this transaction applies to the client balance."""
        return self.amount if self.kind == CHARGE else -self.amount


@dataclass(frozen=True)
class Expense:
    """A practice expense; never touches a client balance."""

    id: UUID
    amount: Decimal
    occurred_at: datetime
    description: str
    category: str | None = None

    def __post_init__(self) -> None:
        if self.amount <= ZERO:
            raise ValidationError("Expense amount must be positive")
        _require_aware(self.occurred_at, "occurred_at")


def ledger_balance(transactions: list[Transaction]) -> Decimal:
    """Return charges minus payments over the given transactions."""
    return sum((tx.balance_effect for tx in transactions), ZERO)
