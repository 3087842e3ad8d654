"""APScheduler service for background maintenance jobs."""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from typing import Any, Dict, Optional
import logging

from app.config import settings
from app.database import SessionLocal
from app.services.auth_service import AuthService
from app.services.logging_service import app_metrics, logger

logging.getLogger('apscheduler').setLevel(logging.WARNING)

SESSION_CLEANUP_JOB_ID = "session_cleanup"

# Global scheduler instance
scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> Optional[BackgroundScheduler]:
    """Get the global scheduler instance."""
    return scheduler


def session_cleanup_job() -> int:
    """
    Delete expired login sessions.

    Returns:
        Number of sessions removed
    """
    db = SessionLocal()
    try:
        removed = AuthService.cleanup_expired_sessions(db)
        app_metrics.increment_background_job(SESSION_CLEANUP_JOB_ID, success=True)
        if removed:
            logger.info("Expired sessions removed", count=removed)
        return removed
    except Exception as e:
        db.rollback()
        app_metrics.increment_background_job(SESSION_CLEANUP_JOB_ID, success=False)
        logger.exception("Session cleanup failed", error=str(e))
        raise
    finally:
        db.close()


def start_scheduler():
    """Initialize and start the APScheduler with the maintenance jobs."""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return

    executors = {
        'default': ThreadPoolExecutor(settings.SCHEDULER_EXECUTORS_DEFAULT_MAX_WORKERS)
    }

    job_defaults = {
        'coalesce': True,
        'max_instances': 1
    }

    scheduler = BackgroundScheduler(
        executors=executors,
        job_defaults=job_defaults,
        timezone='UTC'
    )

    scheduler.add_job(
        func=session_cleanup_job,
        trigger='interval',
        minutes=settings.SESSION_CLEANUP_INTERVAL_MINUTES,
        id=SESSION_CLEANUP_JOB_ID,
        replace_existing=True
    )

    scheduler.start()
    logger.info("APScheduler started", jobs=[job.id for job in scheduler.get_jobs()])


def shutdown_scheduler():
    """Shutdown the APScheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("APScheduler shut down")


def get_job_status(job_id: str = SESSION_CLEANUP_JOB_ID) -> Dict[str, Any]:
    """Whether a job is scheduled, and when it runs next. Served under /metrics."""
    if scheduler is None:
        return {"exists": False, "error": "Scheduler not running"}

    job = scheduler.get_job(job_id)
    if not job:
        return {"exists": False}

    return {
        "exists": True,
        "job_id": job.id,
        "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        "trigger": str(job.trigger)
    }
