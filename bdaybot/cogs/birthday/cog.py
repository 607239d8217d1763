"""Birthday feature cog."""

from __future__ import annotations

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from bdaybot.config import BotSettings
from bdaybot.scheduler import (
    AnnouncementEngine,
    BirthdayScheduler,
    DiscordGateway,
    RoleLifecycleManager,
)
from bdaybot.shared.repositories import BirthdayRepository

logger = logging.getLogger(__name__)


class BirthdayCog(commands.Cog):
    """Runs the birthday scheduler while the bot is connected."""

    def __init__(self, bot: commands.Bot, repo: BirthdayRepository, settings: BotSettings):
        self.bot = bot
        self.repo = repo
        self.settings = settings

        gateway = DiscordGateway(bot, call_delay=settings.api_call_delay)
        self.scheduler = BirthdayScheduler(
            store=repo,
            gateway=gateway,
            announcer=AnnouncementEngine(
                store=repo,
                gateway=gateway,
                channel_id=settings.birthday_channel_id,
                role_id=settings.birthday_role_id,
            ),
            sweeper=RoleLifecycleManager(gateway, role_id=settings.birthday_role_id),
        )
        self._start_task: asyncio.Task | None = None

    async def cog_load(self) -> None:
        # Non-blocking: the scheduler starts once the gateway connection is ready
        self._start_task = asyncio.create_task(self._start_when_ready())

    async def _start_when_ready(self) -> None:
        await self.bot.wait_until_ready()
        self.scheduler.start()
        if self.settings.birthday_role_id is None:
            logger.info("BIRTHDAY_ROLE_ID not set, birthday role lifecycle disabled")

    async def cog_unload(self) -> None:
        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()
        await self.scheduler.stop()

    # ==================== Commands ====================

    bday_group = app_commands.Group(name="birthday", description="Birthday announcements")

    @bday_group.command(name="check", description="Run a birthday check now")
    @app_commands.checks.has_permissions(manage_guild=True)
    async def birthday_check(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        ran = await self.scheduler.run_pass()
        if ran:
            await interaction.followup.send("Birthday check complete", ephemeral=True)
        else:
            await interaction.followup.send("A birthday check is already running", ephemeral=True)
