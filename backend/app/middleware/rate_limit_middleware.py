"""Rate limiting and request metrics middleware."""

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
import json
import time

from app.services.logging_service import app_metrics, logger
from app.services.redis_service import is_redis_available, rate_limiter

# Metric key suffix for requests no route matched (404 scans)
UNMATCHED_ROUTE = "<unmatched>"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware using Redis.

    Limits requests per bearer token or client IP. Passes everything through
    when Redis is not configured.
    """

    def __init__(
        self,
        app,
        max_requests: int = 60,
        window_seconds: int = 60,
        exempt_paths: list = None
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.exempt_paths = exempt_paths or ["/health", "/api/health", "/metrics"]

    def _get_identifier(self, request: Request) -> str:
        """Token when present, otherwise client IP."""
        authorization = request.headers.get("authorization", "")
        if authorization.lower().startswith("bearer "):
            # Tail of the token is unique per session and keeps keys short
            return f"token:{authorization[-32:]}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if any(path.startswith(prefix) for prefix in self.exempt_paths) or not is_redis_available():
            return await call_next(request)

        identifier = self._get_identifier(request)

        if not rate_limiter.is_allowed(identifier):
            logger.warning("Rate limit exceeded", identifier=identifier, path=path)
            return Response(
                content=json.dumps({
                    "message": "Rate limit exceeded",
                    "retry_after": self.window_seconds
                }),
                status_code=429,
                headers={
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(self.window_seconds)
                },
                media_type="application/json"
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(rate_limiter.get_remaining(identifier))
        response.headers["X-RateLimit-Reset"] = str(self.window_seconds)

        return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests per route template and adds a processing-time header."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        # Route template keeps ids out of the metric keys; unmatched paths share one key
        route = request.scope.get("route")
        endpoint = f"{request.method} {getattr(route, 'path', UNMATCHED_ROUTE)}"
        app_metrics.increment_request(endpoint, success=response.status_code < 500)

        response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.1f}"
        return response
