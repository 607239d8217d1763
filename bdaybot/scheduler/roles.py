"""Sweep phase: take the birthday role away once a member's local day is over."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime

from bdaybot.shared.models.birthday import BirthdayRecord

from .errors import InvalidTimezone, RoleOperationFailed
from .interfaces import Group, Member, MembershipGateway
from .timezones import is_birthday, resolve

logger = logging.getLogger(__name__)


class RoleLifecycleManager:
    """Revokes stale birthday roles, per holder and in the holder's own timezone."""

    def __init__(self, gateway: MembershipGateway, role_id: int | None = None):
        self.gateway = gateway
        self.role_id = role_id

    async def sweep(
        self,
        groups: Sequence[Group],
        records: Sequence[BirthdayRecord],
        instant: datetime,
        cancel: asyncio.Event | None = None,
    ) -> int:
        """Revoke the role from holders whose birthday is not today. Returns revocations."""
        role_id = self.role_id
        if role_id is None:
            return 0

        by_member = {record.discord_id: record for record in records}
        revoked = 0
        for group in groups:
            if cancel is not None and cancel.is_set():
                logger.info("Role sweep cancelled")
                break
            try:
                holders = await self.gateway.list_role_holders(group, role_id)
            except Exception:
                logger.exception(f"Error listing birthday role holders in guild {group.id}")
                continue

            for member in holders:
                reason = self._stale_reason(by_member.get(member.id), instant)
                if reason is None:
                    continue
                if await self._revoke(group, member, role_id, reason):
                    revoked += 1
        return revoked

    @staticmethod
    def _stale_reason(record: BirthdayRecord | None, instant: datetime) -> str | None:
        """Why the holder should lose the role, or None if it is still their birthday."""
        if record is None:
            return "no birthday record"
        try:
            local = resolve(record.timezone, instant)
        except InvalidTimezone:
            return f"invalid timezone {record.timezone!r}"
        if is_birthday(record.month, record.day, local):
            return None
        return "birthday over"

    async def _revoke(self, group: Group, member: Member, role_id: int, reason: str) -> bool:
        try:
            await self.gateway.revoke_role(member, role_id)
        except RoleOperationFailed as e:
            logger.error(
                f"Failed to remove birthday role from {member.id} in guild {group.id}: {e}"
            )
            return False
        except Exception:
            logger.exception(f"Error removing birthday role from {member.id} in guild {group.id}")
            return False
        logger.info(f"Removed birthday role from {member.id} ({reason})")
        return True
