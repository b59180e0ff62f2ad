"""Clock and identifier providers."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID, uuid4


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime:
        """Return the current timezone-aware instant."""


class IdGenerator(Protocol):
    """Source of unique entity identifiers."""

    def new_id(self) -> UUID:
        """Return a fresh identifier."""


@dataclass
class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


@dataclass
class UuidGenerator(IdGenerator):
    """Random UUID identifiers."""

    def new_id(self) -> UUID:
        return uuid4()
