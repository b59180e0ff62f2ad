"""Billing ledger: charges, payments, expenses and client balances."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from practice_ledger.domain.errors import (
    AlreadyChargedError,
    NotFoundError,
    PartialChargeError,
    SessionStateError,
    StoreError,
    ValidationError,
)
from practice_ledger.domain.models import (
    CHARGE,
    COMPLETED,
    GROUP,
    INDIVIDUAL,
    PAYMENT,
    ZERO,
    Expense,
    Session,
    Transaction,
    ledger_balance,
)
from practice_ledger.domain.reports import BalanceDrift
from practice_ledger.domain.writes import (
    DeleteExpense,
    DeleteTransaction,
    InsertExpense,
    InsertTransaction,
    RecomputeBalance,
    Write,
)
from practice_ledger.services.clock import Clock, IdGenerator
from practice_ledger.services.store import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_DESCRIPTION = "Payment"


@dataclass
class BillingLedger:
    """Owns transactions and keeps every client balance equal to its log.

    Balances are never adjusted by arithmetic on a previously read value:
    each batch that touches a transaction carries a RecomputeBalance for the
    affected client, so the store rebuilds the balance inside the same unit.
    """

    store: LedgerStore
    clock: Clock
    ids: IdGenerator
    accounting_enabled: bool = True

    def resolve_fee(self, session: Session, override: Decimal | None = None) -> Decimal:
        """Return the amount to bill for a session, zero when unbillable."""
        if override is not None:
            return override
        if session.fee is not None:
            return session.fee
        if session.kind == INDIVIDUAL and session.client_id is not None:
            client = self.store.get_client(session.client_id)
            if client is not None and client.default_fee is not None:
                return client.default_fee
        if session.kind == GROUP and session.group_id is not None:
            group = self.store.get_group(session.group_id)
            if group is not None and group.default_fee is not None:
                return group.default_fee
        return ZERO

    def plan_charges(self, session: Session) -> list[Transaction]:
        """Build the charges a completed session still owes.

        Members that already hold a charge tagged with the session are
        skipped, so planning again after a partial fan-out only covers the
        remainder.
        """
        if not self.accounting_enabled:
            return []
        fee = self.resolve_fee(session)
        if fee <= ZERO:
            logger.info("Session %s completed without a billable fee", session.id)
            return []
        description = self._charge_description(session)
        charged = {
            tx.client_id
            for tx in self.store.list_transactions(related_session_id=session.id)
            if tx.kind == CHARGE
        }
        occurred_at = self.clock.now()
        return [
            Transaction(
                id=self.ids.new_id(),
                client_id=client_id,
                amount=fee,
                kind=CHARGE,
                occurred_at=occurred_at,
                description=description,
                related_session_id=session.id,
            )
            for client_id in self._billable_client_ids(session)
            if client_id not in charged
        ]

    def charge_for_session(self, session: Session) -> list[Transaction]:
        """Charge every billable member of a completed session not yet charged.

        Each member is written in its own batch. A failure after some members
        were charged raises PartialChargeError; calling again charges only
        the members still pending.
        """
        if session.status != COMPLETED:
            raise SessionStateError(session.id, session.status, "charge")
        pending = self.plan_charges(session)
        if not pending:
            if self._has_charges(session.id):
                raise AlreadyChargedError(session.id)
            return []

        created: list[Transaction] = []
        for transaction in pending:
            try:
                self.store.apply_batch(_transaction_writes(transaction))
            except StoreError as exc:
                if not created and not self._has_charges(session.id):
                    raise
                charged = [
                    tx.client_id
                    for tx in self.store.list_transactions(
                        related_session_id=session.id
                    )
                    if tx.kind == CHARGE
                ]
                remaining = [
                    tx.client_id for tx in pending if tx.client_id not in charged
                ]
                logger.warning(
                    "Session %s fan-out stopped with %d member(s) pending",
                    session.id,
                    len(remaining),
                )
                raise PartialChargeError(session.id, charged, remaining) from exc
            created.append(transaction)
        logger.info("Charged %d member(s) for session %s", len(created), session.id)
        return created

    def record_payment(
        self,
        client_id: UUID,
        amount: Decimal,
        description: str | None = None,
        occurred_at: datetime | None = None,
    ) -> Transaction:
        """Record a payment and lower the client's balance."""
        if amount <= ZERO:
            raise ValidationError("Payment amount must be positive")
        if self.store.get_client(client_id) is None:
            raise NotFoundError("Client", client_id)
        transaction = Transaction(
            id=self.ids.new_id(),
            client_id=client_id,
            amount=amount,
            kind=PAYMENT,
            occurred_at=occurred_at or self.clock.now(),
            description=description or DEFAULT_PAYMENT_DESCRIPTION,
        )
        self.store.apply_batch(_transaction_writes(transaction))
        logger.info("Recorded payment %s for client %s", transaction.id, client_id)
        return transaction

    def record_expense(
        self,
        amount: Decimal,
        description: str,
        category: str | None = None,
        occurred_at: datetime | None = None,
    ) -> Expense:
        """Record a practice expense."""
        if amount <= ZERO:
            raise ValidationError("Expense amount must be positive")
        expense = Expense(
            id=self.ids.new_id(),
            amount=amount,
            occurred_at=occurred_at or self.clock.now(),
            description=description,
            category=category,
        )
        self.store.apply_batch([InsertExpense(expense)])
        return expense

    def delete_transaction(self, transaction_id: UUID) -> Transaction | None:
        """Remove a transaction and reverse its balance effect.

        Returns None when the transaction is already gone.
        """
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            logger.info("Transaction %s already deleted", transaction_id)
            return None
        self.store.apply_batch(
            [
                DeleteTransaction(transaction.id),
                RecomputeBalance(transaction.client_id),
            ]
        )
        logger.info(
            "Reversed %s %s for client %s",
            transaction.kind,
            transaction.id,
            transaction.client_id,
        )
        return transaction

    def delete_expense(self, expense_id: UUID) -> Expense | None:
        """Remove an expense; returns None when it is already gone."""
        expense = self.store.get_expense(expense_id)
        if expense is None:
            return None
        self.store.apply_batch([DeleteExpense(expense.id)])
        return expense

    def reconcile_balances(self) -> list[BalanceDrift]:
        """Rebuild every cached balance that disagrees with its transactions."""
        drifts: list[BalanceDrift] = []
        for client in self.store.list_clients():
            expected = ledger_balance(
                self.store.list_transactions(client_id=client.id)
            )
            if client.balance == expected:
                continue
            logger.warning(
                "Client %s balance drifted: cached %s, ledger %s",
                client.id,
                client.balance,
                expected,
            )
            drifts.append(
                BalanceDrift(
                    client_id=client.id, cached=client.balance, expected=expected
                )
            )
        if drifts:
            self.store.apply_batch([RecomputeBalance(d.client_id) for d in drifts])
        return drifts

    def _billable_client_ids(self, session: Session) -> list[UUID]:
        if session.kind == INDIVIDUAL and session.client_id is not None:
            if self.store.get_client(session.client_id) is None:
                raise NotFoundError("Client", session.client_id)
            return [session.client_id]
        if session.kind == GROUP and session.group_id is not None:
            group = self.store.get_group(session.group_id)
            if group is None:
                raise NotFoundError("Group", session.group_id)
            members = []
            for member_id in sorted(group.member_ids, key=str):
                client = self.store.get_client(member_id)
                if client is None or not client.is_active:
                    logger.info(
                        "Skipping inactive or missing member %s of group %s",
                        member_id,
                        group.id,
                    )
                    continue
                members.append(member_id)
            return members
        return []

    def _charge_description(self, session: Session) -> str:
        if session.kind == GROUP and session.group_id is not None:
            group = self.store.get_group(session.group_id)
            if group is not None:
                return f"Group session - {group.name}"
        return f"Session fee - {session.scheduled_at:%Y-%m-%d %H:%M}"

    def _has_charges(self, session_id: UUID) -> bool:
        return any(
            tx.kind == CHARGE
            for tx in self.store.list_transactions(related_session_id=session_id)
        )


def _transaction_writes(transaction: Transaction) -> list[Write]:
    return [InsertTransaction(transaction), RecomputeBalance(transaction.client_id)]


def charge_writes(transactions: list[Transaction]) -> list[Write]:
    """Writes inserting charges and rebuilding each affected balance."""
    writes: list[Write] = [InsertTransaction(tx) for tx in transactions]
    for client_id in sorted({tx.client_id for tx in transactions}, key=str):
        writes.append(RecomputeBalance(client_id))
    return writes
