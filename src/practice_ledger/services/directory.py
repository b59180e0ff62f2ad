"""Client and group records."""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID

from practice_ledger.domain.errors import NotFoundError
from practice_ledger.domain.models import Client, Group
from practice_ledger.domain.writes import UpsertClient, UpsertGroup
from practice_ledger.services.clock import Clock, IdGenerator
from practice_ledger.services.store import LedgerStore

logger = logging.getLogger(__name__)

_CLIENT_PROFILE_FIELDS = {"name", "phone", "email", "notes", "default_fee"}
_GROUP_FIELDS = {"name", "notes", "default_fee"}


@dataclass
class PracticeDirectory:
    """Creates, edits and archives clients and groups.

    Profile edits never touch a client's balance; only the billing ledger
    changes it.
    """

    store: LedgerStore
    clock: Clock
    ids: IdGenerator

    def create_client(  # noqa: PLR0913
        self,
        name: str,
        phone: str | None = None,
        email: str | None = None,
        notes: str = "",
        default_fee: Decimal | None = None,
    ) -> Client:
        """Create an active client with a zero balance."""
        client = Client(
            id=self.ids.new_id(),
            name=name,
            created_at=self.clock.now(),
            phone=phone,
            email=email,
            notes=notes,
            default_fee=default_fee,
        )
        self.store.apply_batch([UpsertClient(client)])
        logger.info("Created client %s", client.id)
        return client

    def update_client_profile(self, client_id: UUID, **changes: object) -> Client:
        """Update profile fields; balance and archive flag are not editable here."""
        unknown = set(changes) - _CLIENT_PROFILE_FIELDS
        if unknown:
            raise TypeError(f"Unsupported client fields: {sorted(unknown)}")
        updated = replace(self.get_client(client_id), **changes)
        self.store.apply_batch([UpsertClient(updated)])
        return updated

    def set_client_active(self, client_id: UUID, active: bool) -> Client:
        """Archive or restore a client."""
        updated = replace(self.get_client(client_id), is_active=active)
        self.store.apply_batch([UpsertClient(updated)])
        logger.info("Client %s active=%s", client_id, active)
        return updated

    def get_client(self, client_id: UUID) -> Client:
        client = self.store.get_client(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    def list_clients(self, active: bool | None = None) -> list[Client]:
        clients = self.store.list_clients()
        if active is None:
            return clients
        return [client for client in clients if client.is_active == active]

    def create_group(
        self,
        name: str,
        member_ids: set[UUID] | frozenset[UUID] = frozenset(),
        notes: str = "",
        default_fee: Decimal | None = None,
    ) -> Group:
        """Create an active group from existing clients."""
        members = frozenset(member_ids)
        self._require_clients(members)
        group = Group(
            id=self.ids.new_id(),
            name=name,
            created_at=self.clock.now(),
            member_ids=members,
            notes=notes,
            default_fee=default_fee,
        )
        self.store.apply_batch([UpsertGroup(group)])
        logger.info("Created group %s with %d member(s)", group.id, len(members))
        return group

    def update_group(
        self,
        group_id: UUID,
        member_ids: set[UUID] | frozenset[UUID] | None = None,
        **changes: object,
    ) -> Group:
        """Update group fields or membership.

        Membership changes only affect sessions completed afterwards.
        """
        unknown = set(changes) - _GROUP_FIELDS
        if unknown:
            raise TypeError(f"Unsupported group fields: {sorted(unknown)}")
        group = self.get_group(group_id)
        if member_ids is not None:
            members = frozenset(member_ids)
            self._require_clients(members)
            changes["member_ids"] = members
        updated = replace(group, **changes)
        self.store.apply_batch([UpsertGroup(updated)])
        return updated

    def set_group_active(self, group_id: UUID, active: bool) -> Group:
        """Archive or restore a group."""
        updated = replace(self.get_group(group_id), is_active=active)
        self.store.apply_batch([UpsertGroup(updated)])
        logger.info("Group %s active=%s", group_id, active)
        return updated

    def get_group(self, group_id: UUID) -> Group:
        group = self.store.get_group(group_id)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group

    def list_groups(self, active: bool | None = None) -> list[Group]:
        groups = self.store.list_groups()
        if active is None:
            return groups
        return [group for group in groups if group.is_active == active]

    def _require_clients(self, client_ids: frozenset[UUID]) -> None:
        for client_id in client_ids:
            if self.store.get_client(client_id) is None:
                raise NotFoundError("Client", client_id)
