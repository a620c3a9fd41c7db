import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()
_session_factory: Any = None
_settings: Any = None


async def _refresh_invoice_statuses() -> None:
    """Job: move invoices to due_soon/overdue as their due dates approach."""
    try:
        async with _session_factory() as db:
            from crewhours.invoicing.service import refresh_invoice_statuses

            count = await refresh_invoice_statuses(db, due_soon_days=_settings.due_soon_days)
            if count > 0:
                logger.info("Updated the status of %d invoices", count)
    except Exception:
        logger.exception("Error refreshing invoice statuses")


async def _purge_refresh_tokens() -> None:
    """Job: drop revoked and expired refresh tokens."""
    try:
        async with _session_factory() as db:
            from crewhours.auth.service import purge_refresh_tokens

            count = await purge_refresh_tokens(db)
            if count > 0:
                logger.info("Purged %d refresh tokens", count)
    except Exception:
        logger.exception("Error purging refresh tokens")


def setup_scheduler(session_factory: Any, settings: Any) -> None:
    """Register all periodic jobs and start the scheduler."""
    global _session_factory, _settings
    _session_factory = session_factory
    _settings = settings

    scheduler.add_job(
        _refresh_invoice_statuses,
        CronTrigger(hour=2, minute=0),
        id="refresh_invoice_statuses",
        replace_existing=True,
    )
    scheduler.add_job(
        _purge_refresh_tokens,
        IntervalTrigger(hours=6),
        id="purge_refresh_tokens",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Background scheduler started with %d jobs", len(scheduler.get_jobs()))


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
