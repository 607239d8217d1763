"""Birthday scheduler: hourly passes plus one catch-up run after startup."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from bdaybot.config import POLL_CADENCE, STARTUP_GRACE_DELAY

from .announcements import AnnouncementEngine
from .interfaces import BirthdayStore, MembershipGateway
from .roles import RoleLifecycleManager

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_tick(now: datetime, cadence: timedelta = POLL_CADENCE) -> datetime:
    """Next cadence boundary strictly after ``now`` (on the hour for an hourly cadence)."""
    elapsed = now - _EPOCH
    periods = elapsed // cadence
    return _EPOCH + (periods + 1) * cadence


class BirthdayScheduler:
    """Drives birthday passes and guarantees at most one runs at a time.

    A pass takes one snapshot (instant, records, guilds), runs the announcement
    phase and then the role sweep. Ticks that fire while a pass is still running
    are dropped, not queued.
    """

    def __init__(
        self,
        store: BirthdayStore,
        gateway: MembershipGateway,
        announcer: AnnouncementEngine,
        sweeper: RoleLifecycleManager,
        *,
        cadence: timedelta = POLL_CADENCE,
        startup_delay: float = STARTUP_GRACE_DELAY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.gateway = gateway
        self.announcer = announcer
        self.sweeper = sweeper
        self.cadence = cadence
        self.startup_delay = startup_delay
        self.clock = clock

        self._lock = asyncio.Lock()
        self._cancel = asyncio.Event()
        self._ticker: asyncio.Task | None = None
        self._startup: asyncio.Task | None = None
        self._passes: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        """Whether a pass is in flight."""
        return self._lock.locked()

    @property
    def started(self) -> bool:
        return self._ticker is not None

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Arm the periodic ticker and the one-shot startup run."""
        if self.started:
            logger.warning("Birthday scheduler already started")
            return

        self._cancel.clear()
        self._ticker = asyncio.create_task(self._tick_loop(), name="birthday-ticker")
        self._startup = asyncio.create_task(self._startup_run(), name="birthday-startup")
        logger.info(
            f"Birthday scheduler started (every {self.cadence}, "
            f"first run in {self.startup_delay}s)"
        )

    async def stop(self) -> None:
        """Disarm timers, ask the in-flight pass to stop, and wait for it."""
        self._cancel.set()
        for task in (self._ticker, self._startup):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._ticker = None
        self._startup = None

        if self._passes:
            await asyncio.gather(*self._passes, return_exceptions=True)
        logger.info("Birthday scheduler stopped")

    async def _tick_loop(self) -> None:
        target = next_tick(self.clock(), self.cadence)
        while True:
            delay = max(0.0, (target - self.clock()).total_seconds())
            await asyncio.sleep(delay)
            self._spawn_pass("hourly", target)
            # sleep() may wake a hair early; never fire the same boundary twice
            target = next_tick(max(self.clock(), target), self.cadence)

    async def _startup_run(self) -> None:
        await asyncio.sleep(self.startup_delay)
        self._spawn_pass("startup")

    def _spawn_pass(self, trigger: str, at: datetime | None = None) -> None:
        if self._cancel.is_set():
            return
        logger.info(f"Checking for birthdays ({trigger})...")
        task = asyncio.create_task(self.run_pass(at), name=f"birthday-pass-{trigger}")
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)

    # ==================== Pass ====================

    async def run_pass(self, at: datetime | None = None) -> bool:
        """Run one full pass. Returns False if dropped because another is running.

        ``at`` is the boundary a timer fired for; the snapshot instant is never
        earlier than it, even if the sleep woke slightly early.
        """
        if self._lock.locked():
            logger.debug("Birthday pass already running, dropping this tick")
            return False

        async with self._lock:
            try:
                await self._execute_pass(at)
            except Exception:
                # Never let a pass kill the timers
                logger.exception("Unexpected error during birthday pass")
        return True

    async def _execute_pass(self, at: datetime | None) -> None:
        instant = self.clock()
        if at is not None and at > instant:
            instant = at
        try:
            records = list(await self.store.list_all())
            groups = list(await self.gateway.list_groups())
        except Exception:
            logger.exception("Could not load birthday pass snapshot, skipping pass")
            return

        try:
            report = await self.announcer.announce(records, groups, instant, self._cancel)
            logger.info(
                f"Announcement phase done: wished={report.wished}, "
                f"not_found={report.not_found}, failed={report.failed}, aborted={report.aborted}"
            )
        except Exception:
            logger.exception("Error checking birthdays")

        try:
            revoked = await self.sweeper.sweep(groups, records, instant, self._cancel)
            if revoked:
                logger.info(f"Role sweep done: revoked={revoked}")
        except Exception:
            logger.exception("Error removing birthday roles")
