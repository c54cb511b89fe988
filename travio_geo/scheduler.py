"""
Scheduler module using APScheduler.
Drives the globe's clock: the auto-rotation tick and the animation frame.
Jobs are coroutines so they run on the same event loop as the API handlers.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from travio_geo.config import get_settings
from travio_geo.navigation import NavigationController

logger = logging.getLogger(__name__)

SPIN_JOB_ID = "globe_spin_tick"
FRAME_JOB_ID = "globe_frame"

_scheduler: AsyncIOScheduler | None = None


def create_scheduler(navigation: NavigationController) -> AsyncIOScheduler:
    """Create and configure the APScheduler instance for one globe view."""
    global _scheduler
    config = navigation.config

    async def _spin_job():
        navigation.tick()

    async def _frame_job():
        navigation.advance()

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        _spin_job,
        trigger=IntervalTrigger(seconds=config.spin_interval),
        id=SPIN_JOB_ID,
        name="Globe rotation tick",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.add_job(
        _frame_job,
        trigger=IntervalTrigger(seconds=config.frame_interval),
        id=FRAME_JOB_ID,
        name="Globe animation frame",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    logger.info("Scheduler configured: rotation tick every %.2fs, frame every %.2fs",
                config.spin_interval, config.frame_interval)
    return _scheduler


def start_scheduler(navigation: NavigationController) -> None:
    """Start the scheduler (non-blocking). Must be called with a running event loop."""
    settings = get_settings().scheduler
    if not settings.enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler = create_scheduler(navigation)
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler gracefully."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
        _scheduler = None


def is_running() -> bool:
    return _scheduler is not None and _scheduler.running
