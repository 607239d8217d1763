"""
Birthday Discord Bot
discord.py 2.x entry point
"""

import asyncio
import logging

import discord
from discord.ext import commands
from dotenv import load_dotenv
from pydantic import ValidationError

from bdaybot.config import ENV_FILE, BotSettings, get_settings
from bdaybot.core.logging import setup_logging
from bdaybot.seed import seed_if_empty
from bdaybot.shared.database import DatabaseManager
from bdaybot.shared.migrations import MigrationRunner
from bdaybot.shared.repositories import BirthdayRepository

logger = logging.getLogger("bdaybot")


class BirthdayBot(commands.Bot):
    """Birthday bot client"""

    def __init__(self, settings: BotSettings):
        intents = discord.Intents.default()
        intents.members = True  # role.members and member lookups

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.settings = settings
        self.db = DatabaseManager(settings.database_url)
        self.initial_extensions = [
            "bdaybot.cogs.birthday",
        ]

    async def setup_hook(self) -> None:
        """Connect the database, migrate, seed, then load cogs"""
        await self.db.connect()
        await MigrationRunner(self.db.pool).run_pending()
        if self.settings.seed_on_startup:
            await seed_if_empty(BirthdayRepository(self.db.pool))

        for extension in self.initial_extensions:
            await self.load_extension(extension)
        logger.info(f"Loaded extensions: {', '.join(self.initial_extensions)}")

        synced = await self.tree.sync()
        logger.info(f"Synced {len(synced)} application command(s)")

    async def on_ready(self) -> None:
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Serving {len(self.guilds)} guild(s) | discord.py {discord.__version__}")

    async def close(self) -> None:
        """Unload cogs (stopping the scheduler) before closing the pool"""
        logger.info("Shutting down...")
        await super().close()
        await self.db.disconnect()


async def main() -> None:
    """Bot entry point"""
    load_dotenv(dotenv_path=ENV_FILE, encoding="utf-8")
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(1) from e

    setup_logging(settings.log_level)

    async with BirthdayBot(settings) as bot:
        try:
            await bot.start(settings.discord_token)
        except (KeyboardInterrupt, asyncio.CancelledError):
            if not bot.is_closed():
                await bot.close()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped manually")


if __name__ == "__main__":
    run()
