"""Structured logging and in-memory application metrics."""

import json
import logging
import threading
import traceback
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class JsonLineFormatter(logging.Formatter):
    """Renders a record as one JSON object; context travels in ``record.context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        entry.update(getattr(record, "context", None) or {})
        return json.dumps(entry, default=str)


class StructuredLogger:
    """
    Structured JSON logger.

    Keyword arguments passed to the level methods become top-level keys of the
    emitted JSON line::

        logger.info("Video created", video_id=3, creator_id=1)
    """

    def __init__(self, name: str, log_file: Optional[str] = None, level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        # Re-imports must not stack handlers
        if not self.logger.handlers:
            handlers = [logging.StreamHandler()]
            if log_file:
                handlers.append(logging.FileHandler(log_file))
            for handler in handlers:
                handler.setFormatter(JsonLineFormatter())
                self.logger.addHandler(handler)

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        self.logger.log(level, message, extra={"context": context})

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, kwargs)

    def exception(self, message: str, exc_info: bool = True, **kwargs):
        """Log at ERROR with the active exception's traceback under ``traceback``."""
        if exc_info:
            kwargs["traceback"] = traceback.format_exc()
        self._log(logging.ERROR, message, kwargs)


class ApplicationMetrics:
    """
    Process-local counters served by ``/metrics``.

    Sync route handlers run in a threadpool, so every update takes the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.start_time = datetime.utcnow()
        self.metrics: Dict[str, Any] = {
            "requests": {"total": 0, "success": 0, "error": 0, "by_endpoint": {}},
            "background_jobs": {"total_runs": 0, "successful_runs": 0, "failed_runs": 0, "by_job": {}},
            "ai_pipeline": {"runs": 0, "success": 0, "failed": 0, "chunks_embedded": 0},
            "uploads": {"total": 0, "bytes": 0},
            "cache": {"hits": 0, "misses": 0},
            "uptime_seconds": 0,
            "last_updated": self.start_time.isoformat(),
        }

    def _touch(self):
        now = datetime.utcnow()
        self.metrics["last_updated"] = now.isoformat()
        self.metrics["uptime_seconds"] = (now - self.start_time).total_seconds()

    def increment_request(self, endpoint: str, success: bool = True):
        """Count a request overall and under its ``"METHOD /route/{template}"`` key."""
        outcome = "success" if success else "error"
        with self._lock:
            requests = self.metrics["requests"]
            requests["total"] += 1
            requests[outcome] += 1

            per_endpoint = requests["by_endpoint"].setdefault(endpoint, {"total": 0, "success": 0, "error": 0})
            per_endpoint["total"] += 1
            per_endpoint[outcome] += 1
            self._touch()

    def increment_background_job(self, job: str, success: bool = True):
        with self._lock:
            jobs = self.metrics["background_jobs"]
            per_job = jobs["by_job"].setdefault(job, {"success": 0, "failed": 0})
            jobs["total_runs"] += 1
            if success:
                jobs["successful_runs"] += 1
                per_job["success"] += 1
            else:
                jobs["failed_runs"] += 1
                per_job["failed"] += 1
            self._touch()

    def record_ai_pipeline(self, success: bool = True, chunks: int = 0):
        """Record one summary pipeline run and the chunks it embedded."""
        with self._lock:
            pipeline = self.metrics["ai_pipeline"]
            pipeline["runs"] += 1
            pipeline["success" if success else "failed"] += 1
            pipeline["chunks_embedded"] += chunks
            self._touch()

    def record_upload(self, size_bytes: int):
        with self._lock:
            self.metrics["uploads"]["total"] += 1
            self.metrics["uploads"]["bytes"] += size_bytes
            self._touch()

    def increment_cache(self, hit: bool = True):
        with self._lock:
            self.metrics["cache"]["hits" if hit else "misses"] += 1
            self._touch()

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of all counters."""
        with self._lock:
            self._touch()
            return deepcopy(self.metrics)

    @staticmethod
    def _percent(part: int, total: int) -> float:
        return (part / total) * 100 if total else 0.0

    def get_cache_hit_rate(self) -> float:
        cache = self.metrics["cache"]
        return self._percent(cache["hits"], cache["hits"] + cache["misses"])

    def get_error_rate(self) -> float:
        requests = self.metrics["requests"]
        return self._percent(requests["error"], requests["total"])


# Global instances
app_logger = StructuredLogger("edureels")
logger = app_logger
app_metrics = ApplicationMetrics()
