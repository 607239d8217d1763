"""Initial birthday data and seeding routines.

Usage:
    bdaybot-seed          # Add any missing initial birthdays
    bdaybot-seed --check  # Only validate the seed list
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections import Counter
from dataclasses import dataclass
from typing import Protocol

from bdaybot.scheduler.timezones import is_valid_timezone
from bdaybot.shared.models.birthday import BirthdayRecord, validate_birthday

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedEntry:
    discord_id: int
    month: int
    day: int
    timezone: str


INITIAL_BIRTHDAYS: tuple[SeedEntry, ...] = (
    SeedEntry(150711612423012363, 2, 16, "America/Los_Angeles"),
    SeedEntry(167108321428504586, 3, 9, "America/Los_Angeles"),
    SeedEntry(1016368688502411274, 1, 26, "America/Chicago"),
    SeedEntry(131191301864554496, 3, 26, "America/Chicago"),
    SeedEntry(208659800949653515, 3, 28, "America/New_York"),
    SeedEntry(209432863710380033, 3, 31, "America/Chicago"),
    SeedEntry(105034949786091520, 4, 7, "America/Los_Angeles"),
    SeedEntry(177933208682364928, 4, 13, "America/Chicago"),
    SeedEntry(111205906041098240, 4, 25, "America/New_York"),
    SeedEntry(273429846711992320, 5, 1, "Europe/Paris"),
    SeedEntry(219133210238517248, 5, 6, "America/New_York"),
    SeedEntry(189181827817144320, 5, 11, "America/Chicago"),
    SeedEntry(320722539322015744, 5, 12, "America/New_York"),
    SeedEntry(231089147958263821, 5, 19, "Europe/London"),
    SeedEntry(125506981338415104, 7, 25, "America/New_York"),
    SeedEntry(127622649290555393, 8, 9, "America/Denver"),
    SeedEntry(254058668717375494, 8, 18, "America/Chicago"),
    SeedEntry(216835764951056384, 9, 10, "America/Los_Angeles"),
    SeedEntry(1141916630750875800, 9, 18, "America/Chicago"),
    SeedEntry(249987402708287508, 9, 21, "America/New_York"),
    SeedEntry(165130833798234112, 10, 7, "America/New_York"),
    SeedEntry(131191338556194817, 10, 9, "America/Chicago"),
    SeedEntry(114084392757886984, 10, 14, "America/New_York"),
    SeedEntry(127201675718033409, 11, 7, "America/New_York"),
    SeedEntry(930623358507302922, 11, 8, "America/New_York"),
    SeedEntry(234551124860862464, 11, 10, "America/Chicago"),
    SeedEntry(230091781268701194, 11, 19, "America/Los_Angeles"),
    SeedEntry(267494088016658433, 11, 29, "America/Los_Angeles"),
    SeedEntry(163130061879377921, 12, 21, "America/New_York"),
)


class SeedTarget(Protocol):
    async def count(self) -> int: ...

    async def get_by_discord_id(self, discord_id: int) -> BirthdayRecord | None: ...

    async def create(
        self, discord_id: int, month: int, day: int, timezone: str
    ) -> BirthdayRecord: ...


def find_duplicates(entries: tuple[SeedEntry, ...]) -> list[int]:
    """Discord ids that appear more than once."""
    counts = Counter(entry.discord_id for entry in entries)
    return sorted(discord_id for discord_id, n in counts.items() if n > 1)


def validate_entries(entries: tuple[SeedEntry, ...]) -> list[str]:
    """Human-readable problems with the seed list; empty when it is usable."""
    problems = [f"Duplicate Discord id {d}" for d in find_duplicates(entries)]
    for entry in entries:
        try:
            validate_birthday(entry.month, entry.day)
        except ValueError as e:
            problems.append(f"{entry.discord_id}: {e}")
        if not is_valid_timezone(entry.timezone):
            problems.append(f"{entry.discord_id}: unknown timezone {entry.timezone!r}")
    return problems


async def seed_missing(
    repo: SeedTarget, entries: tuple[SeedEntry, ...] = INITIAL_BIRTHDAYS
) -> tuple[int, int]:
    """Insert entries that are not stored yet. Returns ``(added, skipped)``."""
    added = skipped = 0
    for entry in entries:
        try:
            if await repo.get_by_discord_id(entry.discord_id) is not None:
                logger.debug(f"Skipping {entry.discord_id} - already exists")
                skipped += 1
                continue
            await repo.create(entry.discord_id, entry.month, entry.day, entry.timezone)
            logger.info(f"Added birthday: {entry.discord_id} - {entry.month}/{entry.day}")
            added += 1
        except Exception:
            logger.exception(f"Failed to add birthday for {entry.discord_id}")
    logger.info(f"Seeding complete! Added: {added}, Skipped: {skipped}")
    return added, skipped


async def seed_if_empty(
    repo: SeedTarget, entries: tuple[SeedEntry, ...] = INITIAL_BIRTHDAYS
) -> int:
    """Seed the table only when it holds no birthdays. Returns the number added."""
    count = await repo.count()
    if count > 0:
        logger.info(f"Found {count} birthdays in database")
        return 0
    logger.info("Seeding birthdays...")
    added, _ = await seed_missing(repo, entries)
    return added


async def _main(check_only: bool) -> int:
    from dotenv import load_dotenv

    from bdaybot.config import ENV_FILE, get_settings
    from bdaybot.core.logging import setup_logging
    from bdaybot.shared.database import DatabaseManager
    from bdaybot.shared.migrations import MigrationRunner
    from bdaybot.shared.repositories import BirthdayRepository

    load_dotenv(dotenv_path=ENV_FILE, encoding="utf-8")
    setup_logging()

    problems = validate_entries(INITIAL_BIRTHDAYS)
    for problem in problems:
        logger.error(problem)
    if problems:
        return 1
    if check_only:
        logger.info(f"Seed list OK ({len(INITIAL_BIRTHDAYS)} entries)")
        return 0

    settings = get_settings()
    db = DatabaseManager(settings.database_url)
    await db.connect()
    try:
        await MigrationRunner(db.pool).run_pending()
        await seed_missing(BirthdayRepository(db.pool))
    finally:
        await db.disconnect()
    return 0


def run() -> None:
    parser = argparse.ArgumentParser(description="Seed the initial birthday list")
    parser.add_argument("--check", action="store_true", help="validate the seed list only")
    args = parser.parse_args()
    sys.exit(asyncio.run(_main(args.check)))


if __name__ == "__main__":
    run()
