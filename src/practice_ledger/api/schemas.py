"""Pydantic request bodies for the practice ledger API."""

from decimal import Decimal
from uuid import UUID

from pydantic import AwareDatetime, BaseModel


class RecurrenceBody(BaseModel):
    """Repeat settings for a scheduled session."""

    count: int
    interval_days: int


class ScheduleSessionBody(BaseModel):
    """Session scheduling payload."""

    kind: str
    scheduled_at: AwareDatetime
    duration_minutes: int | None = None
    client_id: UUID | None = None
    group_id: UUID | None = None
    title: str | None = None
    notes: str | None = None
    fee: Decimal | None = None
    recurrence: RecurrenceBody | None = None


class CompleteSessionBody(BaseModel):
    """Session completion payload."""

    notes: str | None = None
    fee: Decimal | None = None


class PaymentBody(BaseModel):
    """Manual payment payload."""

    client_id: UUID
    amount: Decimal
    description: str | None = None
    occurred_at: AwareDatetime | None = None


class ExpenseBody(BaseModel):
    """Practice expense payload."""

    amount: Decimal
    description: str
    category: str | None = None
    occurred_at: AwareDatetime | None = None


class ClientBody(BaseModel):
    """New client payload."""

    name: str
    phone: str | None = None
    email: str | None = None
    notes: str = ""
    default_fee: Decimal | None = None


class GroupBody(BaseModel):
    """New group payload."""

    name: str
    member_ids: list[UUID] = []
    notes: str = ""
    default_fee: Decimal | None = None


class ActiveBody(BaseModel):
    """Archive or restore payload."""

    active: bool
