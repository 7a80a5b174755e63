"""
Job scheduler built on APScheduler's AsyncIOScheduler.

A single dispatcher services a job store ordered by next fire time;
ScheduleTrigger holds the next-fire arithmetic for once / hourly / daily /
weekly / monthly schedules. Each fire runs as its own asyncio task.
"""

import calendar
import inspect
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Union
from datetime import datetime, date, timedelta, timezone as dt_timezone, tzinfo
from zoneinfo import ZoneInfo
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import STATE_RUNNING, STATE_PAUSED, STATE_STOPPED
from apscheduler.triggers.base import BaseTrigger
from apscheduler.jobstores.base import JobLookupError
from core.config import settings
from schemas.jobs import Schedule, ScheduledJob
from schemas.enums import (
    ScheduleFrequency,
    ScheduledJobState,
    AlertType,
    AlertSeverity,
    AlertCategory,
)
from etl.alerts import AlertRegistry

logger = logging.getLogger(__name__)

JobHandler = Callable[[str], Union[Awaitable[None], None]]

HOUR = timedelta(hours=1)


def _weekday_sunday_first(day: date) -> int:
    """Python weekday (0=Monday) -> 0=Sunday .. 6=Saturday"""
    return (day.weekday() + 1) % 7


def _add_months(year: int, month: int, count: int):
    index = year * 12 + (month - 1) + count
    return index // 12, index % 12 + 1


class ScheduleTrigger(BaseTrigger):
    """
    APScheduler trigger for a Schedule.

    The first fire time is strictly after `now` (except a once schedule whose
    start_date has passed, which fires immediately) and never before a
    future start_date. Later fire times are strictly after the previous one.
    """

    def __init__(self, schedule: Schedule, timezone: tzinfo, registered_at: datetime):
        self.schedule = schedule
        self.timezone = timezone
        self.registered_at = registered_at.astimezone(timezone)
        self.start_date = self._localize(schedule.start_date) if schedule.start_date else None
        self.clock = schedule.clock_time()

        anchor = self.start_date or self.registered_at
        self.day_of_month = anchor.astimezone(timezone).day

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self.timezone)
        return value.astimezone(self.timezone)

    def get_next_fire_time(self, previous_fire_time, now):
        frequency = self.schedule.frequency

        if frequency == ScheduleFrequency.ONCE:
            if previous_fire_time is not None:
                return None
            return self.start_date if self.start_date > now else now

        if previous_fire_time is None:
            if self.start_date is not None and self.start_date > now:
                reference, inclusive = self.start_date, True
            else:
                reference, inclusive = now, False
        else:
            reference, inclusive = previous_fire_time, False

        if frequency == ScheduleFrequency.HOURLY:
            return self._next_hourly(previous_fire_time, reference, inclusive)
        elif frequency == ScheduleFrequency.DAILY:
            return self._next_daily(reference, inclusive)
        elif frequency == ScheduleFrequency.WEEKLY:
            return self._next_weekly(reference, inclusive)
        elif frequency == ScheduleFrequency.MONTHLY:
            return self._next_monthly(reference, inclusive)
        else:
            raise ValueError(f"Unsupported frequency: {frequency}")

    @staticmethod
    def _accept(candidate: datetime, reference: datetime, inclusive: bool) -> bool:
        return candidate >= reference if inclusive else candidate > reference

    def _at(self, day: date) -> datetime:
        return datetime.combine(day, self.clock, tzinfo=self.timezone)

    def _plus_hour(self, value: datetime) -> datetime:
        # elapsed time, not wall-clock time, across DST changes
        return (value.astimezone(dt_timezone.utc) + HOUR).astimezone(self.timezone)

    def _next_hourly(self, previous_fire_time, reference, inclusive):
        if previous_fire_time is not None:
            return self._plus_hour(previous_fire_time)
        if inclusive:
            return reference

        candidate = self._plus_hour(self.registered_at)
        while candidate <= reference:
            candidate = self._plus_hour(candidate)
        return candidate

    def _next_daily(self, reference, inclusive):
        local = reference.astimezone(self.timezone)
        candidate = self._at(local.date())
        if not self._accept(candidate, reference, inclusive):
            candidate = self._at(local.date() + timedelta(days=1))
        return candidate

    def _next_weekly(self, reference, inclusive):
        local = reference.astimezone(self.timezone)
        days = set(self.schedule.days_of_week)
        for offset in range(8):
            day = local.date() + timedelta(days=offset)
            if _weekday_sunday_first(day) not in days:
                continue
            candidate = self._at(day)
            if self._accept(candidate, reference, inclusive):
                return candidate
        return None

    def _next_monthly(self, reference, inclusive):
        local = reference.astimezone(self.timezone)
        for offset in range(13):
            year, month = _add_months(local.year, local.month, offset)
            last_day = calendar.monthrange(year, month)[1]
            candidate = self._at(date(year, month, min(self.day_of_month, last_day)))
            if self._accept(candidate, reference, inclusive):
                return candidate
        return None

    def __str__(self):
        return f"schedule[{self.schedule.frequency.value}]"

    def __repr__(self):
        return f"<ScheduleTrigger (frequency='{self.schedule.frequency.value}', timezone='{self.timezone}')>"


class JobScheduler:
    """
    Time-based trigger service for ETL jobs.

    Per-registration states: scheduled -> firing -> scheduled (recurring)
    or removed (once, or unschedule_job).
    """

    def __init__(self, alerts: Optional[AlertRegistry] = None, timezone: Optional[str] = None):
        self.timezone = ZoneInfo(timezone or settings.SCHEDULER_TIMEZONE)
        self.alerts = alerts
        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": True,
                "misfire_grace_time": None,
                # Overlap is rejected by the pipeline manager, not dropped here
                "max_instances": 100,
            }
        )
        self._jobs: Dict[str, ScheduledJob] = {}
        self._handlers: Dict[str, JobHandler] = {}
        self._shut_down = False

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def start(self) -> None:
        """Arm timers. Must be called with a running event loop."""
        if self._shut_down:
            logger.warning("Job scheduler was shut down and cannot be restarted")
            return
        if self.scheduler.state == STATE_STOPPED:
            self.scheduler.start()
        elif self.scheduler.state == STATE_PAUSED:
            self.scheduler.resume()
        logger.info(f"Job scheduler started ({len(self._jobs)} scheduled jobs)")

    def stop(self) -> None:
        """Stop future fires; executions already in flight keep running"""
        if self.scheduler.state == STATE_RUNNING:
            self.scheduler.pause()
            logger.info("Job scheduler stopped")

    def shutdown(self) -> None:
        """
        Stop the scheduler for good. Safe to call more than once.

        APScheduler may finish its own shutdown on the next loop iteration,
        so the flag, not the APScheduler state, is authoritative.
        """
        if self._shut_down:
            return
        self._shut_down = True
        if self.scheduler.state != STATE_STOPPED:
            self.scheduler.shutdown(wait=False)
        logger.info("Job scheduler shut down")

    @property
    def is_running(self) -> bool:
        return not self._shut_down and self.scheduler.state == STATE_RUNNING

    # ========================================================================
    # Registrations
    # ========================================================================

    def schedule_job(self, job_id: str, name: str, schedule: Schedule, handler: JobHandler) -> ScheduledJob:
        """
        Register (or replace) a schedule for `job_id`.

        Returns:
            Snapshot of the registration with its first fire time
        """
        if job_id in self._jobs:
            self.unschedule_job(job_id)

        registered_at = datetime.now(self.timezone)
        trigger = ScheduleTrigger(schedule, self.timezone, registered_at)

        self._jobs[job_id] = ScheduledJob(
            job_id=job_id,
            name=name,
            schedule=schedule,
            registered_at=registered_at
        )
        self._handlers[job_id] = handler

        self.scheduler.add_job(
            self._fire,
            trigger=trigger,
            args=[job_id],
            id=job_id,
            name=name,
            replace_existing=True
        )

        snapshot = self._snapshot(self._jobs[job_id])
        logger.info(f"Scheduled job {job_id} ({schedule.frequency.value}), next fire at {snapshot.next_fire_at}")
        return snapshot

    def unschedule_job(self, job_id: str) -> bool:
        if job_id not in self._jobs:
            return False

        del self._jobs[job_id]
        self._handlers.pop(job_id, None)
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            # once schedules leave the job store as soon as they are dispatched
            pass

        logger.info(f"Unscheduled job {job_id}")
        return True

    def get_scheduled_job(self, job_id: str) -> Optional[ScheduledJob]:
        entry = self._jobs.get(job_id)
        return self._snapshot(entry) if entry else None

    def get_all_scheduled_jobs(self) -> List[ScheduledJob]:
        return [self._snapshot(entry) for entry in self._jobs.values()]

    def _snapshot(self, entry: ScheduledJob) -> ScheduledJob:
        aps_job = self.scheduler.get_job(entry.job_id)
        next_fire_at = None
        if aps_job is not None:
            if hasattr(aps_job, "next_run_time"):
                next_fire_at = aps_job.next_run_time
            else:
                # Pending until the scheduler starts
                next_fire_at = aps_job.trigger.get_next_fire_time(None, datetime.now(self.timezone))
        return entry.model_copy(update={"next_fire_at": next_fire_at}, deep=True)

    # ========================================================================
    # Dispatch
    # ========================================================================

    async def _fire(self, job_id: str) -> None:
        entry = self._jobs.get(job_id)
        handler = self._handlers.get(job_id)
        if entry is None or handler is None:
            return

        entry.state = ScheduledJobState.FIRING
        entry.fire_count += 1
        entry.last_fired_at = datetime.now(self.timezone)
        logger.info(f"Firing scheduled job {job_id} (fire #{entry.fire_count})")

        try:
            result = handler(job_id)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception(f"Scheduled handler for job {job_id} raised")
            if self.alerts is not None:
                self.alerts.emit(
                    AlertType.ERROR,
                    AlertSeverity.HIGH,
                    AlertCategory.JOB,
                    title=f"Scheduled run of {entry.name} crashed",
                    message=f"{type(e).__name__}: {e}",
                    job_id=job_id
                )
        finally:
            if entry.schedule.frequency == ScheduleFrequency.ONCE:
                if self._jobs.get(job_id) is entry:
                    del self._jobs[job_id]
                    self._handlers.pop(job_id, None)
                    logger.info(f"One-time job {job_id} completed and unscheduled")
            else:
                entry.state = ScheduledJobState.SCHEDULED
