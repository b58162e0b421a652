"""Background scheduler for the daily recurring and habit jobs."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from .context import AppContext

logger = logging.getLogger("finsync.scheduler")

PROCESS_JOB_ID = "recurring_process"
STARTUP_JOB_ID = "recurring_process_startup"
HABIT_CLOSE_OUT_JOB_ID = "habit_close_out"

_TRIGGERS = {"cron": CronTrigger, "interval": IntervalTrigger, "date": DateTrigger}


class BackgroundScheduler:
    """Runs the recurring processor daily and closes out yesterday's habits."""

    def __init__(self, ctx: AppContext, *, clock: Callable[[], date] = date.today):
        self.ctx = ctx
        self.clock = clock
        self.scheduler: Optional[APScheduler] = None

    def start(self, *, run_immediately: bool = True) -> None:
        """Start the background scheduler.

        With ``run_immediately`` the processor also runs once right away, so a
        host started after the cron time still catches up today.
        """
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = APScheduler()
        hour, minute = self.ctx.config.PROCESS_HOUR, self.ctx.config.PROCESS_MINUTE

        self.scheduler.add_job(
            func=self._run_processor,
            trigger=CronTrigger(hour=hour, minute=minute),
            id=PROCESS_JOB_ID,
            name="Recurring Schedule Processing",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(f"Scheduled recurring processing at {hour:02d}:{minute:02d}")

        # Yesterday's habits are closed ten minutes after processing.
        close_out = (hour * 60 + minute + 10) % (24 * 60)
        self.scheduler.add_job(
            func=self._close_out_habits,
            trigger=CronTrigger(hour=close_out // 60, minute=close_out % 60),
            id=HABIT_CLOSE_OUT_JOB_ID,
            name="Habit Close-out",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        if run_immediately:
            self.scheduler.add_job(
                func=self._run_processor,
                trigger=DateTrigger(),
                id=STARTUP_JOB_ID,
                name="Recurring Processing at Startup",
                replace_existing=True,
            )

        self.scheduler.start()
        logger.info("Background scheduler started")

    def stop(self) -> None:
        """Shut down, waiting for a running job to finish."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def _run_processor(self) -> None:
        try:
            result = self.ctx.processor.process_scheduled_transactions()
            logger.info("Scheduled processing finished", extra=result.as_dict())
        except Exception as exc:
            logger.error(f"Scheduled processing failed: {exc}", exc_info=True)

    def _close_out_habits(self) -> None:
        yesterday = self.clock() - timedelta(days=1)
        try:
            self.ctx.habit_rules.evaluate_day(yesterday)
        except Exception as exc:
            logger.error(f"Habit close-out for {yesterday.isoformat()} failed: {exc}", exc_info=True)

    def add_job(
        self,
        func: Callable,
        trigger: str,
        *,
        job_id: str,
        name: str | None = None,
        **trigger_args,
    ) -> None:
        """Register an extra job next to the built-in ones.

        ``trigger`` is one of ``cron``, ``interval`` or ``date``; the keyword
        arguments go to that APScheduler trigger. Jobs added before
        ``start()`` are ignored with a warning.
        """
        if self.scheduler is None:
            logger.warning(f"Cannot add job {job_id}: scheduler not started")
            return

        trigger_cls = _TRIGGERS.get(trigger)
        if trigger_cls is None:
            raise ValueError(f"Unknown trigger type: {trigger}")

        self.scheduler.add_job(
            func=func,
            trigger=trigger_cls(**trigger_args),
            id=job_id,
            name=name or job_id,
            replace_existing=True,
        )
        logger.info(f"Added job {job_id} ({trigger})")

    def remove_job(self, job_id: str) -> None:
        if self.scheduler is not None:
            self.scheduler.remove_job(job_id)
            logger.info(f"Removed job: {job_id}")

    def job_ids(self) -> list[str]:
        if self.scheduler is None:
            return []
        return [job.id for job in self.scheduler.get_jobs()]


def create_scheduler(ctx: AppContext, *, auto_start: bool = False) -> BackgroundScheduler:
    """Create and optionally start a background scheduler."""

    scheduler = BackgroundScheduler(ctx)
    if auto_start:
        scheduler.start()
    return scheduler
