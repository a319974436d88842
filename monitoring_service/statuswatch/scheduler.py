"""
Background monitoring scheduler.

Two independent repeating triggers run on the event loop:

  * the monitoring trigger fires on the configured cron cadence and runs a
    monitoring cycle: probe every endpoint and inspect the log file
    concurrently, then persist one snapshot;
  * the retention trigger fires daily at midnight UTC and deletes
    snapshots older than the retention window.

Only one monitoring cycle may run at a time. A trigger that fires while a
cycle is still running is skipped and logged; it is neither queued nor
retried. Failures inside a cycle are logged and the scheduler keeps going.
"""

import asyncio
import logging
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable

from opentelemetry import trace

from statuswatch.config import ConfigProvider, get_config_provider
from statuswatch.database import insert_snapshot, purge_older_than
from statuswatch.log_inspector import LogInspector, inspect_log_file
from statuswatch.prober import Prober
from statuswatch.schedule import DAILY_AT_MIDNIGHT, CronSchedule
from statuswatch.snapshots import Snapshot
from statuswatch.telemetry import CYCLE_DURATION, MONITORING_CYCLES, SNAPSHOTS_PURGED

logger = logging.getLogger("scheduler")


class CycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class MonitoringScheduler:
    """Owns the monitoring and retention triggers and the overlap guard.

    Args:
        config: Source of endpoints, log path and retention settings; read
            afresh at the start of every cycle.
        prober: Endpoint prober used for the fan-out.
        log_inspector: Callable returning a ``LogCheckResult`` for a path.
            It runs in a worker thread.
        clock: Returns the current aware UTC datetime.
    """

    def __init__(
        self,
        config: ConfigProvider | None = None,
        prober: Prober | None = None,
        log_inspector: LogInspector = inspect_log_file,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config or get_config_provider()
        self.prober = prober or Prober()
        self.log_inspector = log_inspector
        self._clock = clock

        self._state = CycleState.IDLE
        self._state_lock = threading.Lock()
        self._triggers: list[asyncio.Task] = []
        self._start_lock = asyncio.Lock()
        self._in_flight: set[asyncio.Task] = set()
        self._retention_days: int | None = None

    # ── overlap guard ────────────────────────────────────────────

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def started(self) -> bool:
        return any(not t.done() for t in self._triggers)

    def _acquire(self) -> bool:
        with self._state_lock:
            if self._state is CycleState.RUNNING:
                return False
            self._state = CycleState.RUNNING
            return True

    def _release(self) -> None:
        with self._state_lock:
            self._state = CycleState.IDLE

    # ── cycles ───────────────────────────────────────────────────

    async def run_cycle(self) -> Snapshot | None:
        """Run one monitoring cycle unless another one is in progress.

        Returns the persisted snapshot, or ``None`` when the cycle was
        skipped or failed.
        """
        if not self._acquire():
            MONITORING_CYCLES.labels(outcome="skipped").inc()
            logger.warning("Previous monitoring cycle still running, skipping this execution")
            return None

        started = time.monotonic()
        tracer = trace.get_tracer(__name__)
        try:
            with tracer.start_as_current_span("monitoring cycle") as span:
                logger.info("Starting monitoring cycle")
                settings = self.config.get()
                span.set_attribute("monitoring.endpoint_count", len(settings.endpoints))

                ping_results, log_check = await asyncio.gather(
                    self.prober.probe_all(settings.endpoints),
                    asyncio.to_thread(self.log_inspector, settings.log_file_path),
                )
                snapshot = Snapshot.capture(ping_results, log_check, timestamp=self._clock())

                try:
                    snapshot_id = await asyncio.to_thread(insert_snapshot, snapshot)
                except Exception:
                    MONITORING_CYCLES.labels(outcome="failed").inc()
                    logger.exception("Failed to persist snapshot; next cycle will try again")
                    return None

                span.set_attribute("monitoring.snapshot_id", snapshot_id)
                MONITORING_CYCLES.labels(outcome="completed").inc()
                logger.info(
                    "Monitoring cycle completed (snapshot=%s, endpoints=%d, log_ok=%s)",
                    snapshot_id,
                    len(ping_results),
                    log_check.success,
                )
                return snapshot.with_id(snapshot_id)
        except Exception:
            MONITORING_CYCLES.labels(outcome="failed").inc()
            logger.exception("Error in monitoring cycle")
            return None
        finally:
            CYCLE_DURATION.observe(time.monotonic() - started)
            self._release()

    async def run_retention(self, days: int | None = None) -> int | None:
        """Delete snapshots older than the retention window.

        Returns the number deleted, or ``None`` if the purge failed.
        """
        if days is None:
            days = self._retention_days or self.config.get().data_retention_days
        logger.info("Starting data retention task (days=%d)", days)
        try:
            deleted = await asyncio.to_thread(purge_older_than, days, self._clock())
        except Exception:
            logger.exception("Error in data retention task")
            return None

        SNAPSHOTS_PURGED.inc(deleted)
        logger.info("Data retention task completed: deleted %d old snapshots", deleted)
        return deleted

    # ── lifecycle ────────────────────────────────────────────────

    async def start(self, cadence: str | None = None, retention_days: int | None = None) -> None:
        """Run one monitoring and one retention cycle, then arm both triggers.

        Calling ``start`` again replaces the running triggers. Concurrent
        calls run one after another, so only the last caller's triggers
        survive.

        Raises:
            ValueError: if ``cadence`` is not a valid cron expression.
        """
        settings = self.config.get()
        monitoring_schedule = CronSchedule.parse(cadence or settings.ping_interval)
        retention_schedule = CronSchedule.parse(DAILY_AT_MIDNIGHT)

        async with self._start_lock:
            self.stop()
            self._retention_days = retention_days

            await self.run_cycle()
            await self.run_retention()

            self._triggers = [
                asyncio.create_task(
                    self._trigger_loop("monitoring", monitoring_schedule, self.run_cycle),
                    name="statuswatch-monitoring-trigger",
                ),
                asyncio.create_task(
                    self._trigger_loop("retention", retention_schedule, self.run_retention),
                    name="statuswatch-retention-trigger",
                ),
            ]
        logger.info(
            "Scheduled monitoring task with interval %r and daily data retention",
            monitoring_schedule.expression,
        )

    def stop(self) -> None:
        """Cancel both triggers. A cycle already running is left to finish."""
        if not self._triggers:
            return
        for task in self._triggers:
            task.cancel()
        self._triggers = []
        logger.info("Stopped monitoring and data retention triggers")

    async def _trigger_loop(
        self,
        name: str,
        schedule: CronSchedule,
        job: Callable[[], Awaitable],
    ) -> None:
        last_fire = self._clock()
        while True:
            now = self._clock()
            fire_at = schedule.next_fire_time(max(now, last_fire))
            await asyncio.sleep(max((fire_at - now).total_seconds(), 0))
            last_fire = fire_at

            # Each firing runs as its own task so a slow cycle cannot delay
            # the next trigger; the overlap guard decides whether it runs.
            task = asyncio.create_task(job(), name=f"statuswatch-{name}-job")
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)


_scheduler: MonitoringScheduler | None = None


def get_scheduler() -> MonitoringScheduler:
    """Lazily create the process-wide scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = MonitoringScheduler()
    return _scheduler
