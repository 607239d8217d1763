"""Schema migration runner for the birthday bot."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

# Arbitrary key for pg_advisory_lock so two bot instances never migrate at once
_ADVISORY_LOCK_KEY = 0x62646179


class MigrationRunner:
    """Apply ``versions/NNN_name.sql`` files once each, in filename order.

    Applied versions are recorded in ``schema_migrations``.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, versions_dir: Path | None = None) -> None:
        self.pool = pool
        self.versions_dir = versions_dir or VERSIONS_DIR

    def discover(self) -> list[Path]:
        """Return migration files sorted by version prefix."""
        return sorted(self.versions_dir.glob("*.sql"))

    async def run_pending(self) -> list[str]:
        """Apply every pending migration and return the applied versions."""
        files = self.discover()
        if not files:
            logger.info("No migration files found in %s", self.versions_dir)
            return []

        newly_applied: list[str] = []
        async with self.pool.acquire() as conn:
            await conn.execute("SELECT pg_advisory_lock($1)", _ADVISORY_LOCK_KEY)
            try:
                await self._ensure_table(conn)
                applied = await self._applied(conn)
                for path in files:
                    if path.stem in applied:
                        continue
                    await self._apply(conn, path)
                    newly_applied.append(path.stem)
            finally:
                await conn.execute("SELECT pg_advisory_unlock($1)", _ADVISORY_LOCK_KEY)

        if newly_applied:
            logger.info("Applied %d migration(s): %s", len(newly_applied), ", ".join(newly_applied))
        else:
            logger.info("Database schema is up to date")
        return newly_applied

    async def _ensure_table(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                version    TEXT PRIMARY KEY,
                name       TEXT NOT NULL,
                applied_at TIMESTAMPTZ DEFAULT NOW()
            )
            """
        )

    async def _applied(self, conn: asyncpg.Connection) -> set[str]:
        rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
        return {row["version"] for row in rows}

    async def _apply(self, conn: asyncpg.Connection, path: Path) -> None:
        logger.info("Applying migration: %s", path.stem)
        sql = path.read_text(encoding="utf-8")
        async with conn.transaction():
            await conn.execute(sql)
            await conn.execute(
                f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",
                path.stem,
                path.name,
            )
