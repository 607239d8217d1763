"""Announcement phase: wish members whose local birthday has started."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from bdaybot.config import POSTING_HOUR
from bdaybot.shared.models.birthday import BirthdayRecord

from .errors import (
    ChannelUnavailable,
    InvalidTimezone,
    MemberNotFound,
    PersistenceFailure,
    RoleOperationFailed,
)
from .interfaces import BirthdayStore, Group, Member, MembershipGateway
from .messages import RandomSource, pick_message
from .timezones import LocalTime, is_birthday, resolve

logger = logging.getLogger(__name__)


@dataclass
class AnnouncementReport:
    """Outcome of one announcement phase."""

    wished: int = 0
    not_found: int = 0
    failed: int = 0
    aborted: bool = False


def is_eligible(record: BirthdayRecord, local: LocalTime, posting_hour: int = POSTING_HOUR) -> bool:
    """Whether ``record`` should be wished at local time ``local``."""
    return (
        is_birthday(record.month, record.day, local)
        and local.hour >= posting_hour
        and record.last_wished_year != local.year
    )


class AnnouncementEngine:
    """Posts one birthday message per member per local year and grants the role."""

    def __init__(
        self,
        store: BirthdayStore,
        gateway: MembershipGateway,
        channel_id: int,
        role_id: int | None = None,
        rng: RandomSource | None = None,
        posting_hour: int = POSTING_HOUR,
    ):
        self.store = store
        self.gateway = gateway
        self.channel_id = channel_id
        self.role_id = role_id
        self.rng = rng
        self.posting_hour = posting_hour

    async def announce(
        self,
        records: Sequence[BirthdayRecord],
        groups: Sequence[Group],
        instant: datetime,
        cancel: asyncio.Event | None = None,
    ) -> AnnouncementReport:
        """Process every record once. Never raises for per-record problems."""
        report = AnnouncementReport()
        try:
            await self.gateway.ensure_channel(self.channel_id)
            for record in records:
                if cancel is not None and cancel.is_set():
                    logger.info("Announcement phase cancelled")
                    break
                await self._process(record, groups, instant, report)
        except ChannelUnavailable as e:
            logger.error(f"Aborting announcements for this pass: {e}")
            report.aborted = True
        return report

    async def _process(
        self,
        record: BirthdayRecord,
        groups: Sequence[Group],
        instant: datetime,
        report: AnnouncementReport,
    ) -> None:
        try:
            local = resolve(record.timezone, instant)
            if not is_eligible(record, local, self.posting_hour):
                return

            member = await self._find_member(record.discord_id, groups)
            if member is None:
                report.not_found += 1
                logger.warning(f"Skipping birthday: {MemberNotFound(record.discord_id)}")
                return

            message = pick_message(record.discord_id, local.year, self.rng)
            await self.gateway.send_message(self.channel_id, message)
            logger.info(f"Sent birthday wish to user {record.discord_id}")

            if self.role_id is not None:
                await self._grant_everywhere(record.discord_id, groups, self.role_id)

            report.wished += 1
            await self._mark_wished(record, local.year)
        except ChannelUnavailable:
            raise
        except InvalidTimezone as e:
            report.failed += 1
            logger.warning(f"Skipping birthday {record.id} for {record.discord_id}: {e}")
        except Exception:
            report.failed += 1
            logger.exception(f"Error processing birthday for {record.discord_id}")

    async def _find_member(self, discord_id: int, groups: Sequence[Group]) -> Member | None:
        """First guild (in ``groups`` order) that has the member wins."""
        for group in groups:
            member = await self._lookup(group, discord_id)
            if member is not None:
                return member
        return None

    async def _lookup(self, group: Group, discord_id: int) -> Member | None:
        try:
            return await self.gateway.find_member(group, discord_id)
        except Exception as e:
            logger.warning(f"Member lookup for {discord_id} failed in guild {group.id}: {e}")
            return None

    async def _grant_everywhere(
        self, discord_id: int, groups: Sequence[Group], role_id: int
    ) -> None:
        for group in groups:
            member = await self._lookup(group, discord_id)
            if member is None:
                continue
            try:
                if self.gateway.member_has_role(member, role_id):
                    continue
                await self.gateway.grant_role(member, role_id)
                logger.info(f"Added birthday role to {discord_id} in guild {group.id}")
            except RoleOperationFailed as e:
                logger.error(
                    f"Failed to add birthday role to {discord_id} in guild {group.id}: {e}"
                )
            except Exception:
                logger.exception(f"Error adding birthday role to {discord_id} in guild {group.id}")

    async def _mark_wished(self, record: BirthdayRecord, year: int) -> None:
        try:
            await self.store.update_last_wished_year(record.id, year)
        except PersistenceFailure as e:
            logger.error(f"Wished {record.discord_id} but could not record it, may repeat: {e}")
            return
        record.last_wished_year = year
