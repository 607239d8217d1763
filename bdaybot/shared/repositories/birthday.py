"""Repository for the birthdays table."""

from __future__ import annotations

import asyncio
import logging

import asyncpg

from bdaybot.scheduler.errors import PersistenceFailure
from bdaybot.shared.models.birthday import BirthdayRecord, validate_birthday

logger = logging.getLogger(__name__)

_COLUMNS = "id, discord_id, month, day, timezone, last_wished_year, created_at, updated_at"

# Errors that mean "the database did not do what we asked"
_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class BirthdayRepository:
    """Pure SQL operations for birthday records."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    # ==================== Scheduler Operations ====================

    async def list_all(self) -> list[BirthdayRecord]:
        """Return every birthday record, ordered by id."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(f"SELECT {_COLUMNS} FROM birthdays ORDER BY id")
        except _DB_ERRORS as e:
            raise PersistenceFailure(f"Could not load birthdays: {e}") from e

        records: list[BirthdayRecord] = []
        for row in rows:
            try:
                records.append(BirthdayRecord(**dict(row)))
            except ValueError as e:
                logger.error(f"Skipping stored birthday {row['id']} ({row['discord_id']}): {e}")
        return records

    async def update_last_wished_year(self, record_id: int, year: int) -> None:
        """Record that the member was wished in ``year``."""
        try:
            async with self.pool.acquire() as conn:
                result: str = await conn.execute(
                    """
                    UPDATE birthdays
                    SET last_wished_year = $1, updated_at = NOW()
                    WHERE id = $2
                    """,
                    year,
                    record_id,
                )
        except _DB_ERRORS as e:
            raise PersistenceFailure(f"Could not update birthday {record_id}: {e}") from e
        if result != "UPDATE 1":
            raise PersistenceFailure(f"Birthday {record_id} no longer exists")

    # ==================== Administrative Operations ====================

    async def count(self) -> int:
        """Number of stored birthdays."""
        async with self.pool.acquire() as conn:
            value = await conn.fetchval("SELECT COUNT(*) FROM birthdays")
        return int(value or 0)

    async def get_by_discord_id(self, discord_id: int) -> BirthdayRecord | None:
        """Get a member's birthday record."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM birthdays WHERE discord_id = $1",
                discord_id,
            )
        return BirthdayRecord(**dict(row)) if row else None

    async def create(self, discord_id: int, month: int, day: int, timezone: str) -> BirthdayRecord:
        """Insert a new birthday record with ``last_wished_year`` unset."""
        validate_birthday(month, day)
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO birthdays (discord_id, month, day, timezone)
                VALUES ($1, $2, $3, $4)
                RETURNING {_COLUMNS}
                """,
                discord_id,
                month,
                day,
                timezone,
            )
        return BirthdayRecord(**dict(row))
