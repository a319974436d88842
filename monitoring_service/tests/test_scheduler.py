"""Tests for the monitoring scheduler: cycles, overlap guard, retention, triggers."""

import asyncio
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

import statuswatch.database as db_module
import statuswatch.scheduler as scheduler_module
from statuswatch.config import ConfigProvider
from statuswatch.database import get_total_snapshots, init_db, insert_snapshot, list_snapshots
from statuswatch.scheduler import CycleState, MonitoringScheduler
from statuswatch.snapshots import LogCheckResult, ProbeResult, Snapshot

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
LOG_OK = LogCheckResult(success=True, found_entries=4)


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def use_temp_db(tmp_path, monkeypatch):
    test_db = tmp_path / "test.db"
    monkeypatch.setattr(db_module, "DB_PATH", test_db)
    monkeypatch.setenv("DB_RESET_ON_START", "false")
    init_db()
    yield test_db


@pytest.fixture
def config(tmp_path):
    provider = ConfigProvider(tmp_path / "config.json")
    provider.load()
    return provider


class StubProber:
    """Answers every endpoint with a fixed status; can be held mid-cycle."""

    def __init__(self, status=200, hold=False):
        self.status = status
        self.hold = hold
        self.release = None
        self.calls = 0

    async def probe_all(self, endpoints):
        self.calls += 1
        if self.hold:
            if self.release is None:
                self.release = asyncio.Event()
            await self.release.wait()
        return [ProbeResult(e.url, self.status, 42) for e in endpoints]


class FailingProber:
    async def probe_all(self, endpoints):
        raise RuntimeError("network stack exploded")


def _scheduler(config, prober=None, clock=lambda: NOW, log_inspector=lambda path: LOG_OK):
    return MonitoringScheduler(
        config=config,
        prober=prober or StubProber(),
        log_inspector=log_inspector,
        clock=clock,
    )


# ── run_cycle ─────────────────────────────────────────────────────

class TestRunCycle:
    def test_persists_one_snapshot(self, config):
        scheduler = _scheduler(config)

        snapshot = asyncio.run(scheduler.run_cycle())

        assert snapshot.id is not None
        assert snapshot.timestamp == NOW
        assert [r.endpoint for r in snapshot.ping_results] == ["https://google.com", "https://example.com"]
        assert snapshot.log_check == LOG_OK
        assert get_total_snapshots() == 1
        assert scheduler.state is CycleState.IDLE

    def test_reads_log_path_from_current_config(self, config):
        seen = []
        config.update({"logFilePath": "/srv/app/server.log"})
        scheduler = _scheduler(config, log_inspector=lambda path: seen.append(path) or LOG_OK)

        asyncio.run(scheduler.run_cycle())

        assert seen == ["/srv/app/server.log"]

    def test_endpoint_changes_apply_to_next_cycle(self, config):
        scheduler = _scheduler(config)
        config.update({"endpoints": [{"url": "https://only.test", "name": "Only"}]})

        snapshot = asyncio.run(scheduler.run_cycle())

        assert [r.endpoint for r in snapshot.ping_results] == ["https://only.test"]

    def test_overlapping_cycle_is_skipped(self, config, caplog):
        prober = StubProber(hold=True)
        scheduler = _scheduler(config, prober=prober)

        async def scenario():
            first = asyncio.create_task(scheduler.run_cycle())
            # let the first cycle take the guard and block in the prober
            while prober.release is None:
                await asyncio.sleep(0)
            assert scheduler.state is CycleState.RUNNING

            skipped = await scheduler.run_cycle()
            prober.release.set()
            return await first, skipped

        completed, skipped = asyncio.run(scenario())

        assert skipped is None
        assert completed is not None
        assert prober.calls == 1
        assert get_total_snapshots() == 1
        assert "Previous monitoring cycle still running" in caplog.text
        assert scheduler.state is CycleState.IDLE

    def test_probe_failure_releases_guard(self, config):
        scheduler = _scheduler(config, prober=FailingProber())

        assert asyncio.run(scheduler.run_cycle()) is None
        assert scheduler.state is CycleState.IDLE
        assert get_total_snapshots() == 0

    def test_persistence_failure_releases_guard(self, config, monkeypatch, caplog):
        def broken_insert(snapshot):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(scheduler_module, "insert_snapshot", broken_insert)
        scheduler = _scheduler(config)

        assert asyncio.run(scheduler.run_cycle()) is None
        assert scheduler.state is CycleState.IDLE
        assert "Failed to persist snapshot" in caplog.text

        monkeypatch.setattr(scheduler_module, "insert_snapshot", insert_snapshot)
        assert asyncio.run(scheduler.run_cycle()) is not None
        assert get_total_snapshots() == 1


# ── run_retention ─────────────────────────────────────────────────

class TestRunRetention:
    def _seed(self):
        for age in (timedelta(0), timedelta(days=1), timedelta(days=4), timedelta(days=10)):
            insert_snapshot(Snapshot.capture([], LOG_OK, timestamp=NOW - age))

    def test_uses_configured_retention(self, config):
        self._seed()
        scheduler = _scheduler(config)

        assert asyncio.run(scheduler.run_retention()) == 2
        assert get_total_snapshots() == 2

    def test_explicit_days(self, config):
        self._seed()
        scheduler = _scheduler(config)

        assert asyncio.run(scheduler.run_retention(days=7)) == 1

    def test_failure_is_logged_not_raised(self, config, monkeypatch, caplog):
        def broken_purge(days, now):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(scheduler_module, "purge_older_than", broken_purge)
        scheduler = _scheduler(config)

        assert asyncio.run(scheduler.run_retention()) is None
        assert "Error in data retention task" in caplog.text


# ── start / stop ──────────────────────────────────────────────────

class TestLifecycle:
    def test_start_runs_both_tasks_immediately(self, config):
        insert_snapshot(Snapshot.capture([], LOG_OK, timestamp=NOW - timedelta(days=10)))
        scheduler = _scheduler(config)

        async def scenario():
            await scheduler.start("0 0 * * * *", 3)
            started = scheduler.started
            scheduler.stop()
            return started

        assert asyncio.run(scenario()) is True
        # the stale snapshot is purged, the fresh one from the first cycle stays
        assert [s.timestamp for s in list_snapshots()] == [NOW]
        assert not scheduler.started

    def test_restart_replaces_triggers(self, config):
        scheduler = _scheduler(config)

        async def scenario():
            await scheduler.start("0 0 * * * *")
            old_triggers = list(scheduler._triggers)
            await scheduler.start("0 30 * * * *")
            new_triggers = list(scheduler._triggers)
            scheduler.stop()
            return old_triggers, new_triggers

        old_triggers, new_triggers = asyncio.run(scenario())

        assert len(new_triggers) == 2
        assert all(t.cancelled() for t in old_triggers)
        assert not set(old_triggers) & set(new_triggers)

    def test_concurrent_starts_leave_one_set_of_triggers(self, config):
        scheduler = _scheduler(config)

        async def scenario():
            await asyncio.gather(
                scheduler.start("0 0 * * * *", 3),
                scheduler.start("0 30 * * * *", 3),
            )
            scheduler.stop()
            await asyncio.sleep(0)
            return [
                t.get_name()
                for t in asyncio.all_tasks()
                if t.get_name().endswith("-trigger") and not t.done()
            ]

        assert asyncio.run(scenario()) == []
        # the second start waits for the first, so neither cycle is skipped
        assert get_total_snapshots() == 2

    def test_invalid_cadence_raises_before_running(self, config):
        scheduler = _scheduler(config)

        with pytest.raises(ValueError):
            asyncio.run(scheduler.start("not a cron"))

        assert get_total_snapshots() == 0
        assert not scheduler.started

    def test_trigger_fires_cycles(self, config):
        scheduler = _scheduler(config, clock=lambda: datetime.now(timezone.utc))

        async def scenario():
            await scheduler.start("* * * * * *")
            await asyncio.sleep(2.2)
            scheduler.stop()
            await asyncio.gather(*scheduler._in_flight)

        asyncio.run(scenario())

        # one immediate cycle plus at least one per elapsed second
        assert get_total_snapshots() >= 3

    def test_stop_without_start_is_noop(self, config):
        scheduler = _scheduler(config)
        scheduler.stop()
        assert not scheduler.started
