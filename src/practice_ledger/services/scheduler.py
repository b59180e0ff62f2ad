"""Session lifecycle: scheduling, recurrence, completion and cancellation."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from practice_ledger.domain.errors import (
    InactiveReferenceError,
    NotFoundError,
    SessionStateError,
    StaleWriteError,
    ValidationError,
)
from practice_ledger.domain.models import (
    CANCELLED,
    COMPLETED,
    GROUP,
    INDIVIDUAL,
    SCHEDULED,
    Session,
)
from practice_ledger.domain.writes import (
    DeleteSession,
    InsertSession,
    UpdateSession,
    Write,
)
from practice_ledger.services.clock import IdGenerator
from practice_ledger.services.ledger import BillingLedger, charge_writes
from practice_ledger.services.store import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION_MINUTES = 60


@dataclass(frozen=True)
class Recurrence:
    """Repeat a session ``count`` times, ``interval_days`` apart."""

    count: int
    interval_days: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValidationError("Recurrence count must be at least 1")
        if self.interval_days <= 0:
            raise ValidationError("Recurrence interval_days must be positive")


@dataclass(frozen=True)
class SessionRequest:
    """Fields supplied when scheduling a session."""

    kind: str
    scheduled_at: datetime
    duration_minutes: int | None = None
    client_id: UUID | None = None
    group_id: UUID | None = None
    title: str | None = None
    notes: str | None = None
    fee: Decimal | None = None


@dataclass
class SessionScheduler:
    """Creates sessions and advances them through their status lifecycle.

    scheduled -> completed (terminal, billed)
    scheduled -> cancelled (terminal, never billed)
    any state -> deleted (reverses every charge tagged with the session)
    """

    store: LedgerStore
    ledger: BillingLedger
    ids: IdGenerator
    default_duration_minutes: int = DEFAULT_SESSION_MINUTES

    def schedule(
        self, request: SessionRequest, recurrence: Recurrence | None = None
    ) -> list[Session]:
        """Create one session, or a recurring series, in a single batch."""
        count = recurrence.count if recurrence else 1
        interval = recurrence.interval_days if recurrence else 0
        duration = (
            request.duration_minutes
            if request.duration_minutes is not None
            else self.default_duration_minutes
        )
        sessions = [
            Session(
                id=self.ids.new_id(),
                kind=request.kind,
                scheduled_at=request.scheduled_at + timedelta(days=index * interval),
                duration_minutes=duration,
                client_id=request.client_id,
                group_id=request.group_id,
                title=request.title,
                notes=request.notes,
                fee=request.fee,
            )
            for index in range(count)
        ]
        self._check_reference(sessions[0])
        self.store.apply_batch([InsertSession(session) for session in sessions])
        logger.info(
            "Scheduled %d %s session(s) from %s",
            len(sessions),
            request.kind,
            request.scheduled_at.isoformat(),
        )
        return sessions

    def cancel(self, session_id: UUID) -> Session:
        """Cancel a scheduled session; cancelling twice is a no-op."""
        session = self._require_session(session_id)
        if session.status == CANCELLED:
            return session
        if session.status != SCHEDULED:
            raise SessionStateError(session_id, session.status, "cancel")
        cancelled = replace(session, status=CANCELLED)
        try:
            self.store.apply_batch(
                [UpdateSession(cancelled, expected_status=SCHEDULED)]
            )
        except StaleWriteError:
            current = self._require_session(session_id)
            if current.status == CANCELLED:
                return current
            raise SessionStateError(session_id, current.status, "cancel") from None
        logger.info("Cancelled session %s", session_id)
        return cancelled

    def complete(
        self, session_id: UUID, notes: str | None, fee: Decimal | None = None
    ) -> Session:
        """Complete a scheduled session and bill it in the same batch.

        The guarded status update is the serialization point: of two
        concurrent completions only one batch applies, the other raises
        SessionStateError and charges nothing.
        """
        session = self._require_session(session_id)
        if session.status != SCHEDULED:
            raise SessionStateError(session_id, session.status, "complete")
        completed = replace(
            session,
            status=COMPLETED,
            notes=notes,
            fee=self.ledger.resolve_fee(session, override=fee),
        )
        charges = self.ledger.plan_charges(completed)
        writes: list[Write] = [UpdateSession(completed, expected_status=SCHEDULED)]
        writes.extend(charge_writes(charges))
        try:
            self.store.apply_batch(writes)
        except StaleWriteError:
            current = self.store.get_session(session_id)
            status = current.status if current else "deleted"
            raise SessionStateError(session_id, status, "complete") from None
        logger.info(
            "Completed session %s with fee %s and %d charge(s)",
            session_id,
            completed.fee,
            len(charges),
        )
        return completed

    def delete(self, session_id: UUID) -> Session | None:
        """Hard-delete a session and reverse its charges.

        Returns None when the session is already gone.
        """
        session = self.store.get_session(session_id)
        if session is None:
            logger.info("Session %s already deleted", session_id)
            return None
        self.store.apply_batch([DeleteSession(session_id)])
        logger.info("Deleted session %s", session_id)
        return session

    def _require_session(self, session_id: UUID) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def _check_reference(self, session: Session) -> None:
        if session.kind == INDIVIDUAL and session.client_id is not None:
            client = self.store.get_client(session.client_id)
            if client is None:
                raise NotFoundError("Client", session.client_id)
            if not client.is_active:
                raise InactiveReferenceError("Client", client.id)
        if session.kind == GROUP and session.group_id is not None:
            group = self.store.get_group(session.group_id)
            if group is None:
                raise NotFoundError("Group", session.group_id)
            if not group.is_active:
                raise InactiveReferenceError("Group", group.id)
