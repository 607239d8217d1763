import asyncio
from datetime import timedelta
from typing import Callable, List

import pytest

from bdaybot.scheduler.announcements import AnnouncementEngine, AnnouncementReport
from bdaybot.scheduler.roles import RoleLifecycleManager
from bdaybot.scheduler.service import BirthdayScheduler, next_tick
from bdaybot.shared.models.birthday import BirthdayRecord

from .conftest import CHANNEL_ID, ROLE_ID, FakeGateway, FakeStore, FixedIndex, utc

INSTANT = utc(2024, 3, 9, 7, 15)


class RecordingAnnouncer:
    def __init__(self, calls: List[tuple], error: Exception | None = None):
        self.calls = calls
        self.error = error
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.block = False
        self.cancel_seen: asyncio.Event | None = None

    async def announce(self, records, groups, instant, cancel=None):
        self.calls.append(("announce", records, groups, instant))
        self.cancel_seen = cancel
        self.entered.set()
        if self.block:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return AnnouncementReport()


class RecordingSweeper:
    def __init__(self, calls: List[tuple], error: Exception | None = None):
        self.calls = calls
        self.error = error

    async def sweep(self, groups, records, instant, cancel=None):
        self.calls.append(("sweep", records, groups, instant))
        if self.error is not None:
            raise self.error
        return 0


def make_scheduler(store, gateway, announcer, sweeper, **kwargs) -> BirthdayScheduler:
    kwargs.setdefault("clock", lambda: INSTANT)
    return BirthdayScheduler(store, gateway, announcer, sweeper, **kwargs)


class TestNextTick:
    @pytest.mark.parametrize(
        "now, cadence, expected",
        (
            (utc(2024, 3, 9, 7, 15, 30), timedelta(hours=1), utc(2024, 3, 9, 8)),
            (utc(2024, 3, 9, 8), timedelta(hours=1), utc(2024, 3, 9, 9)),
            (utc(2024, 12, 31, 23, 59, 59), timedelta(hours=1), utc(2025, 1, 1)),
            (utc(2024, 3, 9, 7, 15, 30), timedelta(minutes=15), utc(2024, 3, 9, 7, 30)),
        ),
    )
    def test_boundaries(self, now, cadence, expected):
        assert next_tick(now, cadence) == expected


class TestRunPass:
    @pytest.mark.asyncio
    async def test_announce_then_sweep_on_one_snapshot(
        self,
        record_with: Callable[..., BirthdayRecord],
        store_with: Callable[..., FakeStore],
        gateway: FakeGateway,
    ):
        calls: List[tuple] = []
        store = store_with(record_with(), record_with())
        scheduler = make_scheduler(
            store, gateway, RecordingAnnouncer(calls), RecordingSweeper(calls)
        )

        assert await scheduler.run_pass() is True

        assert [c[0] for c in calls] == ["announce", "sweep"]
        (_, a_records, a_groups, a_instant), (_, s_records, s_groups, s_instant) = calls
        assert a_records is s_records
        assert a_groups is s_groups
        assert a_instant == s_instant == INSTANT
        assert [g.id for g in a_groups] == [1, 2]

    @pytest.mark.asyncio
    async def test_timer_boundary_never_moves_backwards(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        scheduler = make_scheduler(
            store_with(), gateway, RecordingAnnouncer(calls), RecordingSweeper(calls)
        )

        await scheduler.run_pass(at=utc(2024, 3, 9, 8))
        await scheduler.run_pass(at=utc(2024, 3, 9, 7))

        # Early wakeup uses the boundary, a late one uses the clock
        assert [c[3] for c in calls if c[0] == "announce"] == [utc(2024, 3, 9, 8), INSTANT]

    @pytest.mark.asyncio
    async def test_overlapping_pass_is_dropped(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        announcer = RecordingAnnouncer(calls)
        announcer.block = True
        scheduler = make_scheduler(store_with(), gateway, announcer, RecordingSweeper(calls))

        first = asyncio.create_task(scheduler.run_pass())
        await announcer.entered.wait()
        assert scheduler.running

        assert await scheduler.run_pass() is False

        announcer.release.set()
        assert await first is True
        assert [c[0] for c in calls] == ["announce", "sweep"]
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_phase_errors_never_escape(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        scheduler = make_scheduler(
            store_with(),
            gateway,
            RecordingAnnouncer(calls, error=RuntimeError("boom")),
            RecordingSweeper(calls, error=RuntimeError("boom again")),
        )

        assert await scheduler.run_pass() is True
        # The sweep still ran after the announcement phase blew up
        assert [c[0] for c in calls] == ["announce", "sweep"]
        # And the lock was released
        assert await scheduler.run_pass() is True

    @pytest.mark.asyncio
    async def test_snapshot_failure_skips_pass(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        store = store_with()
        store.fail_list = True
        scheduler = make_scheduler(
            store, gateway, RecordingAnnouncer(calls), RecordingSweeper(calls)
        )

        assert await scheduler.run_pass() is True
        assert calls == []


class TestFullPass:
    @pytest.mark.asyncio
    async def test_channel_unavailable_still_sweeps(
        self,
        record_with: Callable[..., BirthdayRecord],
        store_with: Callable[..., FakeStore],
        gateway: FakeGateway,
        groups: list,
    ):
        record = record_with()
        groups[0].add(record.discord_id)
        orphan = groups[1].add(31337, ROLE_ID)
        gateway.channel_ok = False
        store = store_with(record)
        scheduler = make_scheduler(
            store,
            gateway,
            AnnouncementEngine(store, gateway, CHANNEL_ID, ROLE_ID, rng=FixedIndex(1)),
            RoleLifecycleManager(gateway, ROLE_ID),
        )

        await scheduler.run_pass()

        assert gateway.sent == []
        assert store.updates == []
        assert ROLE_ID not in orphan.roles

    @pytest.mark.asyncio
    async def test_repeated_passes_wish_once(
        self,
        record_with: Callable[..., BirthdayRecord],
        store_with: Callable[..., FakeStore],
        gateway: FakeGateway,
        groups: list,
    ):
        record = record_with(last_wished_year=2023)
        member = groups[0].add(record.discord_id)
        store = store_with(record)
        scheduler = make_scheduler(
            store,
            gateway,
            AnnouncementEngine(store, gateway, CHANNEL_ID, ROLE_ID, rng=FixedIndex(2)),
            RoleLifecycleManager(gateway, ROLE_ID),
        )

        for _ in range(3):
            await scheduler.run_pass()

        assert len(gateway.sent) == 1
        assert store.records[record.id].last_wished_year == 2024
        assert ROLE_ID in member.roles


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_startup_run(self, store_with: Callable[..., FakeStore], gateway: FakeGateway):
        calls: List[tuple] = []
        scheduler = make_scheduler(
            store_with(),
            gateway,
            RecordingAnnouncer(calls),
            RecordingSweeper(calls),
            startup_delay=0.01,
        )

        scheduler.start()
        try:
            await asyncio.sleep(0.1)
        finally:
            await scheduler.stop()

        assert [c[0] for c in calls] == ["announce", "sweep"]

    @pytest.mark.asyncio
    async def test_ticker_fires_on_cadence_and_stop_disarms(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        scheduler = BirthdayScheduler(
            store_with(),
            gateway,
            RecordingAnnouncer(calls),
            RecordingSweeper(calls),
            cadence=timedelta(milliseconds=20),
            startup_delay=60,
        )

        scheduler.start()
        await asyncio.sleep(0.15)
        await scheduler.stop()
        fired = len(calls)
        await asyncio.sleep(0.06)

        assert fired >= 4  # at least two passes of announce + sweep
        assert len(calls) == fired
        assert not scheduler.started

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_pass_cooperatively(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        announcer = RecordingAnnouncer(calls)
        announcer.block = True
        scheduler = make_scheduler(
            store_with(), gateway, announcer, RecordingSweeper(calls), startup_delay=0
        )

        scheduler.start()
        await announcer.entered.wait()
        assert announcer.cancel_seen is not None and not announcer.cancel_seen.is_set()

        stopping = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0)
        assert announcer.cancel_seen.is_set()
        assert not stopping.done()

        announcer.release.set()
        await stopping
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        scheduler = make_scheduler(
            store_with(),
            gateway,
            RecordingAnnouncer(calls),
            RecordingSweeper(calls),
            startup_delay=60,
        )

        scheduler.start()
        ticker = scheduler._ticker
        scheduler.start()
        assert scheduler._ticker is ticker
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_early_wakeup_snapshots_the_boundary(
        self, store_with: Callable[..., FakeStore], gateway: FakeGateway
    ):
        calls: List[tuple] = []
        scheduler = make_scheduler(
            store_with(),
            gateway,
            RecordingAnnouncer(calls),
            RecordingSweeper(calls),
            clock=lambda: utc(2024, 3, 9, 7, 59, 59, 999000),
            startup_delay=60,
        )

        scheduler.start()
        try:
            await asyncio.sleep(0.1)
        finally:
            await scheduler.stop()

        assert [c[0] for c in calls] == ["announce", "sweep"]
        assert calls[0][3] == utc(2024, 3, 9, 8)
