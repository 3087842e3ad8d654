"""
Sentry reporting for unexpected failures.

Reporting is off unless SENTRY_DSN is set; captured exceptions are always
written to the structured log as well.
"""

from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from app.config import settings
from app.services.logging_service import logger

# Probe and scrape traffic never produces useful events
_IGNORED_PATHS = ("/health", "/metrics", "/api/health")


def drop_noise(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """``before_send`` hook: skip probe requests and expected HTTP errors."""
    url = (event.get("request") or {}).get("url", "")
    if any(path in url for path in _IGNORED_PATHS):
        return None

    for value in (event.get("exception") or {}).get("values", []):
        if "HTTPException" in (value.get("type") or ""):
            return None

    return event


class ErrorTracker:
    """Thin wrapper over the Sentry SDK that no-ops while disabled."""

    def __init__(self, dsn: Optional[str] = None):
        self.sentry_enabled = False

        dsn = settings.SENTRY_DSN if dsn is None else dsn
        if dsn:
            self._init_sentry(dsn)

    def _init_sentry(self, dsn: str):
        try:
            sentry_sdk.init(
                dsn=dsn,
                environment=settings.ENVIRONMENT,
                release=f"edureels-api@{settings.APP_VERSION}",
                traces_sample_rate=0.1,
                integrations=[FastApiIntegration(), SqlalchemyIntegration(), RedisIntegration()],
                before_send=drop_noise,
                attach_stacktrace=True,
                send_default_pii=False,
            )
        except Exception as e:
            # A bad DSN must not stop the API from starting
            logger.error("Sentry init failed", error=str(e))
            return

        self.sentry_enabled = True
        logger.info("Sentry error tracking enabled", environment=settings.ENVIRONMENT)

    def capture_exception(
        self,
        exception: Exception,
        context: Optional[Dict[str, Any]] = None,
        level: str = "error",
        tags: Optional[Dict[str, str]] = None
    ):
        """
        Log ``exception`` and, when Sentry is on, report it.

        ``context`` entries become named Sentry contexts; ``tags`` become
        searchable tags and extra log fields.
        """
        logger.error(
            "Exception captured",
            error_type=type(exception).__name__,
            error=str(exception),
            **(tags or {})
        )

        if not self.sentry_enabled:
            return

        with sentry_sdk.new_scope() as scope:
            for name, data in (context or {}).items():
                scope.set_context(name, data)
            for name, value in (tags or {}).items():
                scope.set_tag(name, value)
            scope.set_level(level)
            sentry_sdk.capture_exception(exception)

    def set_user_context(self, user_id: int):
        """Attach the authenticated user id to later events on this scope."""
        if self.sentry_enabled:
            sentry_sdk.set_user({"id": str(user_id)})


error_tracker = ErrorTracker()


def capture_exception(exception: Exception, **kwargs):
    """Module-level shortcut for ``error_tracker.capture_exception``."""
    error_tracker.capture_exception(exception, **kwargs)
