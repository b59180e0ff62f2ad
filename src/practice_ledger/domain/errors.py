"""Typed errors raised by the session lifecycle and billing ledger.

Every error carries a machine-readable ``code`` so callers (and the HTTP
layer) can branch on the type instead of parsing messages:

    PracticeLedgerError
    +-- ValidationError          bad input shape, raised before any write
    |   +-- InactiveReferenceError
    +-- NotFoundError
    +-- ConflictError            terminal state or duplicate billing
    |   +-- SessionStateError
    |   +-- AlreadyChargedError
    |   +-- StaleWriteError
    +-- StoreError               persistence failed, nothing applied
    +-- PartialChargeError       fan-out stopped partway, safe to retry
"""

from uuid import UUID


class PracticeLedgerError(Exception):
    """Base error for the practice ledger."""

    code: str = "PRACTICE_LEDGER_ERROR"


class ValidationError(PracticeLedgerError):
    """Input rejected before any write was attempted."""

    code: str = "VALIDATION_ERROR"


class InactiveReferenceError(ValidationError):
    """Input references an archived client or group."""

    code: str = "INACTIVE_REFERENCE"

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} is archived")


class NotFoundError(PracticeLedgerError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: UUID):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConflictError(PracticeLedgerError):
    """Operation conflicts with the current state of the ledger."""

    code: str = "CONFLICT"


class SessionStateError(ConflictError):
    """Session status does not allow the requested transition."""

    code: str = "SESSION_TERMINAL"

    def __init__(self, session_id: UUID, status: str, action: str):
        self.session_id = session_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} session {session_id} in status {status}")


class AlreadyChargedError(ConflictError):
    """Every billable member already holds a charge for the session."""

    code: str = "ALREADY_CHARGED"

    def __init__(self, session_id: UUID):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already charged")


class StaleWriteError(ConflictError):
    """A guarded write found a different status than expected."""

    code: str = "STALE_WRITE"

    def __init__(self, session_id: UUID, expected_status: str):
        self.session_id = session_id
        self.expected_status = expected_status
        super().__init__(
            f"Session {session_id} is no longer {expected_status}; batch not applied"
        )


class StoreError(PracticeLedgerError):
    """Persistence call failed; the batch was not applied."""

    code: str = "STORE_ERROR"


class PartialChargeError(PracticeLedgerError):
    """Group fan-out charged some members before failing.

    Re-invoking ``charge_for_session`` charges only ``pending`` members.
    """

    code: str = "PARTIALLY_APPLIED"

    def __init__(self, session_id: UUID, charged: list[UUID], pending: list[UUID]):
        self.session_id = session_id
        self.charged = charged
        self.pending = pending
        super().__init__(
            f"Session {session_id} charged {len(charged)} of "
            f"{len(charged) + len(pending)} members; retry to charge the rest"
        )
