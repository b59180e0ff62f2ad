"""Ledger API endpoints with simple token auth."""

from __future__ import annotations

from decimal import Decimal  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from practice_ledger.api.schemas import (
    ActiveBody,
    ClientBody,
    CompleteSessionBody,
    ExpenseBody,
    GroupBody,
    PaymentBody,
    ScheduleSessionBody,
)
from practice_ledger.services.scheduler import Recurrence, SessionRequest

if TYPE_CHECKING:
    from practice_ledger.containers import AppContainer
    from practice_ledger.domain.models import (
        Client,
        Expense,
        Group,
        Session,
        Transaction,
    )


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


router = APIRouter(
    prefix="/api", tags=["ledger"], dependencies=[Depends(require_admin)]
)


def _container(request: Request) -> AppContainer:
    return request.app.state.container


@router.post("/clients", status_code=status.HTTP_201_CREATED)
async def create_client(body: ClientBody, request: Request) -> dict[str, object]:
    """Create a client."""
    client = _container(request).directory.create_client(
        name=body.name,
        phone=body.phone,
        email=body.email,
        notes=body.notes,
        default_fee=body.default_fee,
    )
    return {"client": _serialize_client(client)}


@router.get("/clients")
async def list_clients(
    request: Request, active: bool | None = None
) -> dict[str, object]:
    """Return clients, optionally filtered by archive state."""
    clients = _container(request).directory.list_clients(active=active)
    return {"clients": [_serialize_client(client) for client in clients]}


@router.post("/clients/{client_id}/active")
async def set_client_active(
    client_id: UUID, body: ActiveBody, request: Request
) -> dict[str, object]:
    """Archive or restore a client."""
    client = _container(request).directory.set_client_active(client_id, body.active)
    return {"client": _serialize_client(client)}


@router.post("/groups", status_code=status.HTTP_201_CREATED)
async def create_group(body: GroupBody, request: Request) -> dict[str, object]:
    """Create a group."""
    group = _container(request).directory.create_group(
        name=body.name,
        member_ids=set(body.member_ids),
        notes=body.notes,
        default_fee=body.default_fee,
    )
    return {"group": _serialize_group(group)}


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def schedule_sessions(
    body: ScheduleSessionBody, request: Request
) -> dict[str, object]:
    """Schedule a session or a recurring series."""
    recurrence = (
        Recurrence(
            count=body.recurrence.count,
            interval_days=body.recurrence.interval_days,
        )
        if body.recurrence
        else None
    )
    sessions = _container(request).scheduler.schedule(
        SessionRequest(
            kind=body.kind,
            scheduled_at=body.scheduled_at,
            duration_minutes=body.duration_minutes,
            client_id=body.client_id,
            group_id=body.group_id,
            title=body.title,
            notes=body.notes,
            fee=body.fee,
        ),
        recurrence,
    )
    return {"sessions": [_serialize_session(session) for session in sessions]}


@router.post("/sessions/{session_id}/complete")
async def complete_session(
    session_id: UUID, body: CompleteSessionBody, request: Request
) -> dict[str, object]:
    """Complete a session and bill it."""
    container = _container(request)
    session = container.scheduler.complete(session_id, body.notes, fee=body.fee)
    charges = container.store.list_transactions(related_session_id=session_id)
    return {
        "session": _serialize_session(session),
        "charges": [_serialize_transaction(tx) for tx in charges],
    }


@router.post("/sessions/{session_id}/cancel")
async def cancel_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Cancel a scheduled session."""
    session = _container(request).scheduler.cancel(session_id)
    return {"session": _serialize_session(session)}


@router.post("/sessions/{session_id}/charge")
async def charge_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Retry billing for a completed session."""
    container = _container(request)
    session = container.store.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    charges = container.ledger.charge_for_session(session)
    return {"charges": [_serialize_transaction(tx) for tx in charges]}


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: UUID, request: Request) -> dict[str, object]:
    """Delete a session and reverse its charges."""
    deleted = _container(request).scheduler.delete(session_id)
    return {"deleted": deleted is not None}


@router.post("/payments", status_code=status.HTTP_201_CREATED)
async def record_payment(body: PaymentBody, request: Request) -> dict[str, object]:
    """Record a client payment."""
    transaction = _container(request).ledger.record_payment(
        body.client_id,
        body.amount,
        description=body.description,
        occurred_at=body.occurred_at,
    )
    return {"transaction": _serialize_transaction(transaction)}


@router.delete("/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: UUID, request: Request
) -> dict[str, object]:
    """Delete a transaction and reverse its balance effect."""
    deleted = _container(request).ledger.delete_transaction(transaction_id)
    return {"deleted": deleted is not None}


@router.post("/expenses", status_code=status.HTTP_201_CREATED)
async def record_expense(body: ExpenseBody, request: Request) -> dict[str, object]:
    """Record a practice expense."""
    expense = _container(request).ledger.record_expense(
        body.amount,
        body.description,
        category=body.category,
        occurred_at=body.occurred_at,
    )
    return {"expense": _serialize_expense(expense)}


@router.delete("/expenses/{expense_id}")
async def delete_expense(expense_id: UUID, request: Request) -> dict[str, object]:
    """Delete a practice expense."""
    deleted = _container(request).ledger.delete_expense(expense_id)
    return {"deleted": deleted is not None}


@router.post("/ledger/reconcile")
async def reconcile(request: Request) -> dict[str, object]:
    """Rebuild drifted client balances."""
    drifts = _container(request).ledger.reconcile_balances()
    return {
        "drifts": [
            {
                "client_id": str(drift.client_id),
                "cached": str(drift.cached),
                "expected": str(drift.expected),
            }
            for drift in drifts
        ]
    }


@router.get("/reports/totals")
async def window_totals(request: Request, window: str = "month") -> dict[str, object]:
    """Return cash totals for a window."""
    container = _container(request)
    totals = container.reporting.window_totals(
        container.store.list_transactions(), container.store.list_expenses(), window
    )
    return {
        "window": totals.window,
        "charges": str(totals.charges),
        "payments": str(totals.payments),
        "expenses": str(totals.expenses),
        "net": str(totals.net),
    }


@router.get("/reports/outstanding")
async def outstanding(request: Request) -> dict[str, object]:
    """Return total receivables across clients."""
    container = _container(request)
    clients = container.store.list_clients()
    return {
        "outstanding": str(container.reporting.outstanding_balance(clients)),
        "active_clients": container.reporting.active_client_count(clients),
    }


@router.get("/reports/income-trend")
async def income_trend(request: Request, months: int = 6) -> dict[str, object]:
    """Return payments per month, oldest first."""
    container = _container(request)
    trend = container.reporting.monthly_income_trend(
        container.store.list_transactions(), months
    )
    return {
        "months": [
            {"year": entry.year, "month": entry.month, "total": str(entry.total)}
            for entry in trend
        ]
    }


@router.get("/reports/session-density")
async def session_density(request: Request, days: int = 7) -> dict[str, object]:
    """Return sessions per day, oldest first."""
    container = _container(request)
    density = container.reporting.session_density(container.store.list_sessions(), days)
    return {
        "days": [
            {"day": entry.day.isoformat(), "count": entry.count}
            for entry in density
        ]
    }


@router.get("/reports/history")
async def history(request: Request, window: str = "all") -> dict[str, object]:
    """Return merged transactions and expenses, newest first."""
    container = _container(request)
    items = container.reporting.history(
        container.store.list_transactions(), container.store.list_expenses(), window
    )
    return {
        "items": [
            {
                "id": str(item.id),
                "source": item.source,
                "kind": item.kind,
                "amount": str(item.amount),
                "occurred_at": item.occurred_at.isoformat(),
                "description": item.description,
                "client_id": str(item.client_id) if item.client_id else None,
            }
            for item in items
        ]
    }


def _serialize_client(client: Client) -> dict[str, object]:
    return {
        "id": str(client.id),
        "name": client.name,
        "phone": client.phone,
        "email": client.email,
        "default_fee": _money(client.default_fee),
        "balance": str(client.balance),
        "is_active": client.is_active,
    }


def _serialize_group(group: Group) -> dict[str, object]:
    return {
        "id": str(group.id),
        "name": group.name,
        "member_ids": sorted(str(member) for member in group.member_ids),
        "default_fee": _money(group.default_fee),
        "is_active": group.is_active,
    }


def _serialize_session(session: Session) -> dict[str, object]:
    return {
        "id": str(session.id),
        "kind": session.kind,
        "client_id": str(session.client_id) if session.client_id else None,
        "group_id": str(session.group_id) if session.group_id else None,
        "title": session.title,
        "scheduled_at": session.scheduled_at.isoformat(),
        "duration_minutes": session.duration_minutes,
        "status": session.status,
        "notes": session.notes,
        "fee": _money(session.fee),
    }


def _serialize_transaction(transaction: Transaction) -> dict[str, object]:
    return {
        "id": str(transaction.id),
        "client_id": str(transaction.client_id),
        "amount": str(transaction.amount),
        "kind": transaction.kind,
        "occurred_at": transaction.occurred_at.isoformat(),
        "description": transaction.description,
        "related_session_id": str(transaction.related_session_id)
        if transaction.related_session_id
        else None,
    }


def _serialize_expense(expense: Expense) -> dict[str, object]:
    return {
        "id": str(expense.id),
        "amount": str(expense.amount),
        "occurred_at": expense.occurred_at.isoformat(),
        "description": expense.description,
        "category": expense.category,
    }


def _money(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None
