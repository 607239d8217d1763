from __future__ import annotations

import dataclasses
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest

from bdaybot.scheduler.errors import ChannelUnavailable, PersistenceFailure, RoleOperationFailed
from bdaybot.shared.models.birthday import BirthdayRecord

CHANNEL_ID = 555
ROLE_ID = 777


@dataclasses.dataclass(eq=False)
class FakeMember:
    id: int
    roles: Set[int] = dataclasses.field(default_factory=set)


@dataclasses.dataclass(eq=False)
class FakeGroup:
    id: int
    members: Dict[int, FakeMember] = dataclasses.field(default_factory=dict)

    def add(self, member_id: int, *roles: int) -> FakeMember:
        member = FakeMember(id=member_id, roles=set(roles))
        self.members[member_id] = member
        return member


class FakeGateway:
    """In-memory stand-in for Discord."""

    def __init__(self, groups: List[FakeGroup]):
        self.groups = groups
        self.channel_ok = True
        self.sent: List[tuple] = []
        self.find_calls: List[tuple] = []
        self.fail_find_in: Set[int] = set()
        self.fail_send_for: Set[str] = set()
        self.fail_grant_in: Set[int] = set()
        self.grant_error: Exception = RoleOperationFailed("Missing Permissions")
        self.fail_revoke_for: Set[int] = set()
        self.fail_holders_in: Set[int] = set()

    def _group_of(self, member: FakeMember) -> FakeGroup:
        return next(g for g in self.groups if g.members.get(member.id) is member)

    async def list_groups(self):
        return sorted(self.groups, key=lambda g: g.id)

    async def find_member(self, group, discord_id):
        self.find_calls.append((group.id, discord_id))
        if group.id in self.fail_find_in:
            raise RuntimeError("gateway timeout")
        return group.members.get(discord_id)

    async def ensure_channel(self, channel_id):
        if not self.channel_ok:
            raise ChannelUnavailable(channel_id)

    async def send_message(self, channel_id, text):
        if not self.channel_ok:
            raise ChannelUnavailable(channel_id)
        if any(marker in text for marker in self.fail_send_for):
            raise RuntimeError("500 Internal Server Error")
        self.sent.append((channel_id, text))

    def member_has_role(self, member, role_id):
        return role_id in member.roles

    async def grant_role(self, member, role_id):
        if self._group_of(member).id in self.fail_grant_in:
            raise self.grant_error
        member.roles.add(role_id)

    async def revoke_role(self, member, role_id):
        if member.id in self.fail_revoke_for:
            raise RoleOperationFailed("Missing Permissions")
        member.roles.discard(role_id)

    async def list_role_holders(self, group, role_id):
        if group.id in self.fail_holders_in:
            raise RuntimeError("gateway timeout")
        return [m for _, m in sorted(group.members.items()) if role_id in m.roles]


class FakeStore:
    def __init__(self, records: List[BirthdayRecord]):
        self.records = {r.id: r for r in records}
        self.fail_updates = False
        self.fail_list = False
        self.updates: List[tuple] = []

    async def list_all(self):
        if self.fail_list:
            raise PersistenceFailure("connection refused")
        # Copies, like rows fresh from the database
        return [dataclasses.replace(r) for r in sorted(self.records.values(), key=lambda r: r.id)]

    async def update_last_wished_year(self, record_id, year):
        if self.fail_updates:
            raise PersistenceFailure("connection reset")
        self.updates.append((record_id, year))
        self.records[record_id].last_wished_year = year


class FixedIndex:
    """Random source that always picks the same message index."""

    def __init__(self, index: int):
        self.index = index

    def randrange(self, stop: int) -> int:
        return self.index % stop


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture()
def record_with() -> Callable[..., BirthdayRecord]:
    counter = iter(range(1, 10_000))

    def factory_fn(**kwargs) -> BirthdayRecord:
        record_id = next(counter)
        fields = {
            "id": record_id,
            "discord_id": 1000 + record_id,
            "month": 3,
            "day": 9,
            "timezone": "America/New_York",
            "last_wished_year": None,
        }
        fields.update(kwargs)
        return BirthdayRecord(**fields)

    return factory_fn


@pytest.fixture()
def groups() -> List[FakeGroup]:
    return [FakeGroup(id=1), FakeGroup(id=2)]


@pytest.fixture()
def gateway(groups: List[FakeGroup]) -> FakeGateway:
    return FakeGateway(groups)


@pytest.fixture()
def store_with() -> Callable[..., FakeStore]:
    def factory_fn(*records: BirthdayRecord) -> FakeStore:
        return FakeStore(list(records))

    return factory_fn


@pytest.fixture()
def rng() -> Optional[FixedIndex]:
    return FixedIndex(0)
