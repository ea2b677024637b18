"""Daily advice scheduler via APScheduler.

Wraps APScheduler's ``AsyncIOScheduler`` to run the advice pipeline once a
day at a fixed wall-clock time.  Each run is a one-shot ``DateTrigger`` job;
when the run finishes (however it finishes) the next one is armed.  At most
one run executes at a time: a trigger that fires while a run is in progress
is dropped, not queued.

The "already ran today" check behind the start-up catch-up is per process;
a restart inside the grace window runs the day again.

APScheduler is imported lazily (only when arming) so the module can be
imported without a running event loop.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

from stockwise.core.config_schema import SchedulerConfig

from .models import RunReport

RunFn = Callable[[], Awaitable[RunReport]]
"""Async callable running one orchestration cycle, typically ``AdvicePipeline.run``."""

JOB_ID = "advice_run"


def next_fire_time(now: datetime, hour: int, minute: int = 0) -> datetime:
    """Today at ``hour:minute`` if that is still ahead of *now*, else tomorrow."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


@dataclass
class SchedulerState:
    """Mutable state owned by one :class:`AdviceScheduler`."""

    next_fire_time: datetime | None = None
    is_executing: bool = False
    armed: bool = False
    interval_minutes: float | None = None
    # In-memory only; not carried across process restarts.
    last_run_date: date | None = None
    last_report: RunReport | None = None
    last_error: str | None = None

    def disarm(self) -> None:
        self.next_fire_time = None
        self.armed = False
        self.interval_minutes = None


@dataclass(frozen=True)
class SchedulerStatus:
    """Snapshot returned by :meth:`AdviceScheduler.get_status`."""

    armed: bool
    running: bool
    next_fire_time: datetime | None
    interval_minutes: float | None = None
    last_run_date: date | None = None

    def minutes_until_next(self, now: datetime) -> int | None:
        if self.next_fire_time is None:
            return None
        return max(0, round((self.next_fire_time - now).total_seconds() / 60))


class AdviceScheduler:
    """Single-flight daily scheduler for the advice pipeline.

    Args:
        run_fn: Async callable running one cycle.  Dependency-injected so the
            scheduler is decoupled from the pipeline.
        hour: Local hour of the daily run.
        minute: Minute of the daily run.
        grace_minutes: If started within this many minutes after the daily
            run time and nothing ran today yet, run immediately.
        timezone: IANA timezone for the run time; local time when None.
        clock: Returns "now" (injectable for tests).
    """

    def __init__(
        self,
        run_fn: RunFn,
        *,
        hour: int = 10,
        minute: int = 0,
        grace_minutes: int = 5,
        timezone: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid run time {hour:02d}:{minute:02d}")
        self._run_fn = run_fn
        self.hour = hour
        self.minute = minute
        self.grace = timedelta(minutes=grace_minutes)
        self._timezone = timezone
        self._clock = clock or self._default_clock
        self._scheduler: Any = None  # AsyncIOScheduler, lazily created
        self.state = SchedulerState()

    @classmethod
    def from_config(cls, run_fn: RunFn, config: SchedulerConfig, **kwargs: Any) -> AdviceScheduler:
        return cls(
            run_fn,
            hour=config.hour,
            minute=config.minute,
            grace_minutes=config.grace_minutes,
            timezone=config.timezone,
            **kwargs,
        )

    def _default_clock(self) -> datetime:
        if self._timezone:
            return datetime.now(ZoneInfo(self._timezone))
        return datetime.now()

    # ── Lifecycle ──────────────────────────────────────────────────

    def start(self) -> None:
        """Arm the daily trigger, or run right away inside the grace window.

        Must be called from a running asyncio event loop.
        """
        if self.state.armed:
            logger.warning("Advice scheduler already started")
            return

        self._ensure_scheduler()
        now = self._clock()
        if self._in_grace_window(now):
            logger.info(f"Started within {self.grace} of the daily run time, running now")
            self.state.armed = True
            self.state.next_fire_time = now
            self._scheduler.add_job(self._fire, id=JOB_ID, replace_existing=True, misfire_grace_time=None)
        else:
            self._arm()
        logger.info(f"Advice scheduler started, daily at {self.hour:02d}:{self.minute:02d}")

    def start_with_interval(self, minutes: float) -> None:
        """Run now and then every *minutes* minutes (for verifying the pipeline)."""
        if minutes <= 0:
            raise ValueError("Interval must be positive")
        from apscheduler.triggers.interval import IntervalTrigger

        self.stop()
        self._ensure_scheduler()
        now = self._clock()
        self.state.interval_minutes = minutes
        self.state.armed = True
        self.state.next_fire_time = now
        self._scheduler.add_job(
            self._fire,
            trigger=IntervalTrigger(minutes=minutes),
            id=JOB_ID,
            next_run_time=now,
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
        logger.info(f"Advice scheduler started in interval mode, every {minutes:g} minute(s)")

    def stop(self) -> None:
        """Disarm: remove the pending trigger.  A run already in progress finishes but does not re-arm."""
        if self._scheduler is not None and self._scheduler.get_job(JOB_ID) is not None:
            self._scheduler.remove_job(JOB_ID)
        was_armed = self.state.armed
        self.state.disarm()
        if was_armed:
            logger.info("Advice scheduler stopped")

    def shutdown(self) -> None:
        """Stop and tear down the APScheduler instance."""
        self.stop()
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

    async def execute_now(self) -> RunReport | None:
        """Run one cycle immediately, outside the schedule.

        Returns:
            The run report, or None if another run was in progress (the
            request is dropped) or the run aborted.
        """
        logger.info("Manual advice run requested")
        return await self._execute("manual")

    def get_status(self) -> SchedulerStatus:
        return SchedulerStatus(
            armed=self.state.armed,
            running=self.state.is_executing,
            next_fire_time=self.state.next_fire_time,
            interval_minutes=self.state.interval_minutes,
            last_run_date=self.state.last_run_date,
        )

    @property
    def apscheduler(self) -> Any:
        """The raw APScheduler instance, or None before the first start."""
        return self._scheduler

    # ── Internal ───────────────────────────────────────────────────

    def _ensure_scheduler(self) -> None:
        if self._scheduler is not None:
            return
        from apscheduler.schedulers.asyncio import AsyncIOScheduler

        kwargs = {"timezone": self._timezone} if self._timezone else {}
        self._scheduler = AsyncIOScheduler(**kwargs)
        self._scheduler.start()

    def _in_grace_window(self, now: datetime) -> bool:
        """True if a missed run for today should fire now.

        "Already ran today" comes from ``state.last_run_date``, which lives in
        memory only: after a process restart inside the grace window the run
        fires again.  The same-day upsert keeps the ledger to one entry per
        provider in that case.
        """
        target = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if self.state.last_run_date == now.date():
            return False
        return target <= now <= target + self.grace

    def _arm(self) -> None:
        """Schedule the next daily run."""
        from apscheduler.triggers.date import DateTrigger

        now = self._clock()
        fire_at = next_fire_time(now, self.hour, self.minute)
        self.state.next_fire_time = fire_at
        self.state.armed = True
        self._scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=fire_at),
            id=JOB_ID,
            replace_existing=True,
            misfire_grace_time=None,
        )
        minutes = round((fire_at - now).total_seconds() / 60)
        logger.info(f"Next advice run at {fire_at:%Y-%m-%d %H:%M} (in {minutes} min)")

    def _rearm(self) -> None:
        if not self.state.armed or self._scheduler is None:
            return
        if self.state.interval_minutes:
            job = self._scheduler.get_job(JOB_ID)
            if job is not None and job.next_run_time is not None:
                self.state.next_fire_time = job.next_run_time
            return
        self._arm()

    async def _fire(self) -> None:
        await self._execute("scheduled")

    async def _execute(self, reason: str) -> RunReport | None:
        if self.state.is_executing:
            logger.warning(f"Advice run already in progress, dropping {reason} trigger")
            return None

        self.state.is_executing = True
        report: RunReport | None = None
        logger.info(f"Advice run starting ({reason})")
        try:
            report = await self._run_fn()
            self.state.last_report = report
            self.state.last_error = None
            self._log_report(report)
        except Exception as e:
            self.state.last_error = f"{type(e).__name__}: {e}"
            logger.error(f"Advice run aborted: {self.state.last_error}")
        finally:
            self.state.is_executing = False
            self.state.last_run_date = self._clock().date()
            self._rearm()
        return report

    @staticmethod
    def _log_report(report: RunReport) -> None:
        if report.success:
            logger.info(f"Advice run complete: {report.summary()}")
        else:
            logger.error(f"Advice run failed: {report.summary()}")
        for result in report.results:
            if result.succeeded:
                logger.info(f"  {result.describe()}")
            else:
                logger.error(f"  {result.describe()}")
