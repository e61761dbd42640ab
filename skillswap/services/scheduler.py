"""
APScheduler Configuration

Periodic maintenance jobs. The only job today rebuilds the derived user
counters (rating, total_swaps) from their source rows so that concurrent
review writes converge once traffic quiesces.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from skillswap import config
from skillswap.database import Database
from skillswap.services.rating_aggregator import get_rating_aggregator

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def reconcile_user_stats(database: Database):
    """
    Recompute every rating and total_swaps counter.

    Runs every RECONCILE_INTERVAL_MINUTES. Logs how many rows changed.
    """
    logger.info("Starting user stats reconciliation")

    try:
        async with database.transaction() as session:
            summary = await get_rating_aggregator().reconcile_user_stats(session)

        logger.info(
            f"User stats reconciled: {summary['ratings_updated']} ratings recomputed, "
            f"{summary['swaps_corrected']} swap counters corrected"
        )
        if summary["swaps_corrected"]:
            logger.warning(f"{summary['swaps_corrected']} total_swaps counters had drifted")

    except Exception as e:
        logger.error(f"Failed to reconcile user stats: {e}", exc_info=True)


def configure_scheduler(database: Database, interval_minutes: Optional[int] = None):
    """Register all jobs against the given persistence handle"""
    scheduler.add_job(
        reconcile_user_stats,
        trigger=IntervalTrigger(minutes=interval_minutes or config.RECONCILE_INTERVAL_MINUTES),
        args=[database],
        id="reconcile_user_stats",
        name="Reconcile User Ratings and Swap Counts",
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1,
    )

    logger.info("Scheduler configured with user stats reconciliation job")


def start_scheduler(database: Database):
    """Start the APScheduler"""
    configure_scheduler(database)
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
