"""Health check and monitoring endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from datetime import datetime
import os

from app.database import get_db
from app.services.redis_service import is_redis_available
from app.services.logging_service import app_metrics
from app.services.scheduler_service import get_scheduler, get_job_status
from app.config import settings

router = APIRouter()


@router.get("/api/health")
async def api_health():
    """Minimal health probe used by the browser client."""
    return {"ok": True}


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if application is running.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "vector_store": settings.vector_store_configured
    }


@router.get("/health/live")
async def liveness_check():
    """Liveness probe: the process is up."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "pid": os.getpid()
    }


@router.get("/health/ready")
async def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness probe.

    The database must answer; Redis and the scheduler are only checked when
    they are enabled in settings.
    """
    checks = {"database": False}
    errors = []

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        errors.append(f"Database: {e}")

    if settings.REDIS_URL:
        checks["redis"] = is_redis_available()
        if not checks["redis"]:
            errors.append("Redis: Not available")

    if settings.SCHEDULER_ENABLED:
        scheduler = get_scheduler()
        checks["scheduler"] = scheduler is not None and scheduler.running
        if not checks["scheduler"]:
            errors.append("Scheduler: Not running")

    if all(checks.values()):
        return {
            "status": "ready",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat()
        }

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "not_ready",
            "checks": checks,
            "errors": errors,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@router.get("/metrics")
async def application_metrics():
    """
    Application metrics endpoint.

    Request, pipeline, upload and cache counters plus scheduler status.
    """
    metrics = app_metrics.get_metrics()

    return {
        **metrics,
        "cache": {**metrics["cache"], "hit_rate_percent": app_metrics.get_cache_hit_rate()},
        "requests": {**metrics["requests"], "error_rate_percent": app_metrics.get_error_rate()},
        "scheduler": get_job_status()
    }
