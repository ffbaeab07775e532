"""
Background scheduler - runs periodic jobs inside the FastAPI process.

Jobs:
  - Top sweep (every SWEEP_INTERVAL_MINUTES, default hourly): completes tops
    older than 7 days and freezes their week snapshot
"""
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from topledger.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_top_sweep():
    from topledger.infrastructure.db.session import get_session_factory
    from topledger.application.tops import sweep_expired_tops

    Session = get_session_factory()
    db = Session()
    try:
        sweep_expired_tops(db)
    except Exception:
        logger.exception("Top sweep job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    settings = get_settings()

    scheduler.add_job(
        _run_top_sweep,
        "interval",
        minutes=settings.SWEEP_INTERVAL_MINUTES,
        id="top_sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),  # first run at startup
    )

    scheduler.start()
    logger.info("Scheduler started: top_sweep (every %d min)", settings.SWEEP_INTERVAL_MINUTES)


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
