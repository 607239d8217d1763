"""discord.py implementation of the membership gateway."""

from __future__ import annotations

import asyncio
import logging

import discord

from .errors import ChannelUnavailable, RoleOperationFailed

logger = logging.getLogger(__name__)


class DiscordGateway:
    """Talks to Discord on behalf of the birthday scheduler.

    Guilds are returned in ascending id order and role holders in ascending
    member id order so passes are reproducible.
    """

    def __init__(self, client: discord.Client, call_delay: float = 0.0):
        self.client = client
        self.call_delay = call_delay

    async def list_groups(self) -> list[discord.Guild]:
        return sorted(self.client.guilds, key=lambda guild: guild.id)

    async def find_member(self, group: discord.Guild, discord_id: int) -> discord.Member | None:
        """Cached member first, then an API fetch. None if not in the guild."""
        if member := group.get_member(discord_id):
            return member
        try:
            return await group.fetch_member(discord_id)
        except discord.NotFound:
            return None

    async def _get_channel(self, channel_id: int) -> discord.TextChannel:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(channel_id)
            except discord.NotFound as e:
                raise ChannelUnavailable(channel_id) from e
            except discord.Forbidden as e:
                raise ChannelUnavailable(channel_id, "no access") from e
        if not isinstance(channel, discord.TextChannel):
            raise ChannelUnavailable(channel_id, "not a text channel")
        return channel

    async def ensure_channel(self, channel_id: int) -> None:
        await self._get_channel(channel_id)

    async def send_message(self, channel_id: int, text: str) -> None:
        channel = await self._get_channel(channel_id)
        try:
            await channel.send(text, allowed_mentions=discord.AllowedMentions(users=True))
        except discord.NotFound as e:
            raise ChannelUnavailable(channel_id) from e
        except discord.Forbidden as e:
            raise ChannelUnavailable(channel_id, "missing permission to post") from e

    def member_has_role(self, member: discord.Member, role_id: int) -> bool:
        return member.get_role(role_id) is not None

    async def grant_role(self, member: discord.Member, role_id: int) -> None:
        try:
            await member.add_roles(discord.Object(id=role_id), reason="Birthday")
        except discord.HTTPException as e:
            raise RoleOperationFailed(f"add role {role_id} to {member.id}: {e}") from e
        await self._throttle()

    async def revoke_role(self, member: discord.Member, role_id: int) -> None:
        try:
            await member.remove_roles(discord.Object(id=role_id), reason="Birthday ended")
        except discord.HTTPException as e:
            raise RoleOperationFailed(f"remove role {role_id} from {member.id}: {e}") from e
        await self._throttle()

    async def list_role_holders(self, group: discord.Guild, role_id: int) -> list[discord.Member]:
        role = group.get_role(role_id)
        if role is None:
            return []
        return sorted(role.members, key=lambda member: member.id)

    async def _throttle(self) -> None:
        # Rate limit protection between role mutations
        if self.call_delay > 0:
            await asyncio.sleep(self.call_delay)
