"""APScheduler job definitions."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from battracker.config import settings
from battracker.worker.tasks import task_runner

logger = logging.getLogger(__name__)


def setup_scheduler() -> AsyncIOScheduler:
    """
    Setup and configure APScheduler.

    Returns:
        Configured scheduler instance
    """
    scheduler = AsyncIOScheduler()
    amazon_interval = max(1, settings.amazon_run_interval_hours)
    justbats_interval = max(1, settings.justbats_run_interval_hours)

    scheduler.add_job(
        task_runner.run_amazon_pipeline,
        IntervalTrigger(hours=amazon_interval),
        id="amazon_prices",
        name="Refresh Amazon bat prices",
        max_instances=1,  # Prevent overlapping runs
        coalesce=True,
        misfire_grace_time=600,
        replace_existing=True,
    )

    scheduler.add_job(
        task_runner.run_justbats_pipeline,
        IntervalTrigger(hours=justbats_interval),
        id="justbats_prices",
        name="Refresh JustBats bat prices",
        max_instances=1,
        coalesce=True,
        misfire_grace_time=600,
        replace_existing=True,
    )

    logger.info(
        "Scheduler configured: Amazon every %d hours, JustBats every %d hours",
        amazon_interval,
        justbats_interval,
    )
    return scheduler
