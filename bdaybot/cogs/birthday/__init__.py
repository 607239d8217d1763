"""Birthday feature module."""

from discord.ext import commands

from bdaybot.config import get_settings
from bdaybot.shared.repositories import BirthdayRepository

from .cog import BirthdayCog

__all__ = ["BirthdayCog", "setup"]


async def setup(bot: commands.Bot) -> None:
    """Extension entry point."""
    db = bot.db  # type: ignore[attr-defined]
    await bot.add_cog(BirthdayCog(bot, BirthdayRepository(db.pool), get_settings()))
