from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from bulkpay.core.config import settings
from bulkpay.tasks.draft_cleanup import run_draft_cleanup_job

logger = logging.getLogger(__name__)
_scheduler: BackgroundScheduler | None = None


def start_scheduler() -> None:
    global _scheduler
    if _scheduler is not None or not settings.draft_cleanup_enabled:
        if not settings.draft_cleanup_enabled:
            logger.info("Draft cleanup scheduler disabled (DRAFT_CLEANUP_ENABLED=false)")
        return

    _scheduler = BackgroundScheduler(timezone="UTC")
    _scheduler.add_job(
        run_draft_cleanup_job,
        IntervalTrigger(minutes=settings.draft_cleanup_interval_minutes),
        id="draft_cleanup",
        max_instances=1,
        replace_existing=True,
        coalesce=True,
    )
    _scheduler.start()
    logger.info("Scheduler started")


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
        _scheduler = None
