"""Collaborator interfaces consumed by the birthday scheduler."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from bdaybot.shared.models.birthday import BirthdayRecord

# Gateway handles are opaque to the scheduler apart from an ``id`` attribute.
Group = Any
Member = Any


class BirthdayStore(Protocol):
    async def list_all(self) -> Sequence[BirthdayRecord]: ...

    async def update_last_wished_year(self, record_id: int, year: int) -> None:
        """Raises ``PersistenceFailure`` when the write does not happen."""
        ...


class MembershipGateway(Protocol):
    async def list_groups(self) -> Sequence[Group]:
        """Guilds the bot is in, in a deterministic order."""
        ...

    async def find_member(self, group: Group, discord_id: int) -> Member | None: ...

    async def ensure_channel(self, channel_id: int) -> None:
        """Raises ``ChannelUnavailable`` if nothing can be posted there."""
        ...

    async def send_message(self, channel_id: int, text: str) -> None: ...

    def member_has_role(self, member: Member, role_id: int) -> bool: ...

    async def grant_role(self, member: Member, role_id: int) -> None:
        """Raises ``RoleOperationFailed``."""
        ...

    async def revoke_role(self, member: Member, role_id: int) -> None:
        """Raises ``RoleOperationFailed``."""
        ...

    async def list_role_holders(self, group: Group, role_id: int) -> Sequence[Member]: ...
