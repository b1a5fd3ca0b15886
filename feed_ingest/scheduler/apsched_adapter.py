"""APScheduler wrapper for the recurring refresh job."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType
from ..logging_conf import configure_logging

REFRESH_JOB_ID = "refresh::all"


class APSchedulerAdapter:
    """Manage the APScheduler job driving periodic refreshes."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_refresh(self, schedule: ScheduleConfig, callback: Callable[[], object]) -> None:
        trigger = self._build_trigger(schedule)
        kwargs: dict[str, object] = {}
        if schedule.run_on_start:
            kwargs["next_run_time"] = datetime.now(trigger.timezone)
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **kwargs,
        )
        self.logger.info(
            "job_scheduled",
            job=REFRESH_JOB_ID,
            schedule=schedule.model_dump(mode="json"),
        )

    def remove_refresh(self) -> None:
        try:
            self.scheduler.remove_job(REFRESH_JOB_ID)
        except Exception:  # noqa: BLE001
            self.logger.warning("job_remove_failed", job=REFRESH_JOB_ID)

    def _build_trigger(self, schedule: ScheduleConfig):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value))
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "REFRESH_JOB_ID"]
