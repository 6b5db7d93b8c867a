"""Background scheduler for the optional challenge retention job."""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from reportgate.clock import SystemClock
from reportgate.config import settings
from reportgate.context import RequestContext
from reportgate.services.challenge_service import purge_expired_challenges
from reportgate.services.discord_service import send_error_alert_sync
from reportgate.services.store import Store

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def cleanup_job(ctx: RequestContext | None = None) -> None:
    """Purge expired, never-redeemed challenges."""
    ctx = ctx or RequestContext(store=Store(), clock=SystemClock())
    try:
        purged = purge_expired_challenges(ctx)
        if purged:
            logger.info(f"Cleanup: purged {purged} expired challenges")
    except Exception as e:
        logger.error(f"Cleanup failed: {e!r}")
        send_error_alert_sync(
            error_type=type(e).__name__,
            message="Expired challenge cleanup failed",
            context={"job": "cleanup_expired_challenges"},
        )


def start_scheduler() -> None:
    """Start the background scheduler if challenge retention is enabled."""
    if not settings.challenge_cleanup_enabled:
        logger.info("Scheduler disabled - expired challenges are retained")
        return

    scheduler.add_job(
        cleanup_job,
        trigger=IntervalTrigger(hours=settings.cleanup_interval_hours),
        id="cleanup_expired_challenges",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started - cleanup runs every {settings.cleanup_interval_hours} hour(s)")


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
