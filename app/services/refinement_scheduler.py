"""
Daily refinement job.

One APScheduler cron job at local midnight (configurable) that calls
ValuationRefiner.scheduled_run. max_instances=1 keeps runs from
overlapping: a long batch finishes before the next one may start, and a run
missed while the previous one was busy is coalesced into a single catch-up.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.services.valuation_refinement import ValuationRefiner

logger = structlog.get_logger()

JOB_ID = "daily_valuation_refinement"


def build_daily_trigger(hour: int = 0, minute: int = 0, timezone: Optional[str] = None) -> CronTrigger:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid refinement time {hour:02d}:{minute:02d}")
    return CronTrigger(hour=hour, minute=minute, timezone=timezone)


def next_run_after(trigger: CronTrigger, now: datetime) -> Optional[datetime]:
    return trigger.get_next_fire_time(None, now)


def _run_job(refiner: ValuationRefiner) -> None:
    summary = refiner.scheduled_run()
    logger.info("scheduled_refinement_finished", **summary.model_dump())


def build_refinement_scheduler(
    refiner: ValuationRefiner,
    hour: int = 0,
    minute: int = 0,
    timezone: Optional[str] = None,
) -> BackgroundScheduler:
    trigger = build_daily_trigger(hour, minute, timezone)
    scheduler = BackgroundScheduler(timezone=timezone) if timezone else BackgroundScheduler()
    scheduler.add_job(
        _run_job,
        trigger=trigger,
        args=[refiner],
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("refinement_scheduler_configured", hour=hour, minute=minute, timezone=timezone or "local")
    return scheduler
