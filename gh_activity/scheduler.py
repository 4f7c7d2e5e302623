"""APScheduler-based interval scheduling for organization syncs."""

from __future__ import annotations

import logging
import time

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from gh_activity.config import IngestionConfig
from gh_activity.db import Database
from gh_activity.errors import SyncCancelled
from gh_activity.orchestrator import run_sync

logger = logging.getLogger("gh_activity.scheduler")

BACKOFF_BASE_S = 30


def sync_job(config: IngestionConfig, db: Database) -> None:
    """Run one sync, retrying the whole run with exponential backoff."""
    max_retries = config.scheduler.max_retries

    for attempt in range(max_retries + 1):
        try:
            result = run_sync(config, db)
            logger.info(
                "Scheduled sync produced %d user entries", len(result.stats),
                extra={"run_id": result.run_id, "failures": len(result.failures)},
            )
            return
        except SyncCancelled as exc:
            logger.error("Scheduled sync cancelled: %s", exc)
            return
        except Exception as exc:
            if attempt < max_retries:
                delay = BACKOFF_BASE_S * (2 ** attempt)
                logger.warning(
                    "Sync failed (attempt %d/%d), retrying in %ds: %s",
                    attempt + 1, max_retries, delay, exc,
                )
                time.sleep(delay)
            else:
                logger.error("Sync failed after %d retries: %s", max_retries, exc)


def _on_job_error(event) -> None:
    """Log job execution errors."""
    logger.error(
        "Job %s raised an exception: %s",
        event.job_id,
        event.exception,
    )


def start_scheduler(config: IngestionConfig, db: Database) -> None:
    """Start the blocking scheduler with the interval sync job."""
    scheduler = BlockingScheduler()
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    sched = config.scheduler

    scheduler.add_job(
        sync_job,
        "interval",
        minutes=sched.sync_interval_min,
        args=[config, db],
        id="github_activity",
        max_instances=1,
        misfire_grace_time=sched.misfire_grace_time,
    )

    logger.info("Starting scheduler with jobs: %s",
                [j.id for j in scheduler.get_jobs()])
    scheduler.start()
