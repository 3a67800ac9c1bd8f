"""
Background scheduler for periodic article ingestion.

Runs the NewsAPI ingestion pass on an interval using APScheduler's asyncio
scheduler, sharing the application's cache client so every run can
invalidate the feed caches it makes stale.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging
from datetime import datetime

from src.web.cache import CacheClient
from src.web.database import SessionLocal
from src.web.services import ingestion_service

logger = logging.getLogger(__name__)

INGEST_JOB_ID = "article_ingestion"

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def run_ingestion(cache: CacheClient) -> int:
    """
    Run one ingestion pass with a fresh DB session.

    Returns:
        Number of articles stored (0 on failure)
    """
    logger.info("Starting scheduled article ingestion")

    db = SessionLocal()
    try:
        stored = await ingestion_service.fetch_and_store_articles(db, cache)
        logger.info(f"Scheduled ingestion complete: {stored} articles stored")
        return stored
    except Exception as e:
        # Log any critical errors so the next interval still runs
        logger.error(f"Critical error in scheduled ingestion: {e}", exc_info=True)
        return 0
    finally:
        db.close()


def schedule_ingestion(cache: CacheClient, interval_minutes: int = 60, run_now: bool = True):
    """
    Schedule periodic ingestion.

    Args:
        cache: Cache client passed to every run
        interval_minutes: Minutes between runs
        run_now: Also run once immediately (on startup)
    """
    # replace_existing only applies once the scheduler has started, so a job
    # still pending from an earlier call is removed explicitly
    if scheduler.get_job(INGEST_JOB_ID):
        scheduler.remove_job(INGEST_JOB_ID)

    job_kwargs = {}
    if run_now:
        job_kwargs["next_run_time"] = datetime.now()

    scheduler.add_job(
        func=run_ingestion,
        args=[cache],
        trigger=IntervalTrigger(minutes=interval_minutes),
        id=INGEST_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **job_kwargs,
    )


def start_scheduler(config: dict, cache: CacheClient):
    """
    Start scheduler with configuration.

    Args:
        config: Configuration dictionary with keys:
            - SCHEDULER_ENABLED: bool (default True)
            - INGEST_INTERVAL_MINUTES: int (default 60)
        cache: Application cache client
    """
    if not config.get("SCHEDULER_ENABLED", True):
        logger.info("Scheduler disabled via configuration")
        return

    interval = config.get("INGEST_INTERVAL_MINUTES", 60)

    schedule_ingestion(cache, interval_minutes=interval)

    scheduler.start()
    logger.info(f"Scheduler started: article ingestion every {interval} minutes")


def stop_scheduler():
    """Stop scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def get_status() -> dict:
    """Scheduler running status and jobs with their next run times."""
    jobs_info = []
    for job in scheduler.get_jobs():
        # Jobs added before start() have no next_run_time yet
        next_run = getattr(job, "next_run_time", None)
        jobs_info.append(
            {
                "id": job.id,
                "next_run": next_run.isoformat() if next_run else None,
                "name": job.name,
            }
        )

    return {
        "running": scheduler.running,
        "jobs": jobs_info,
        "job_count": len(jobs_info),
    }
