"""Security middleware: response headers, request validation and audit logging."""

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.config import settings
from app.services.logging_service import logger


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers on every response; HSTS only in production."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"

        # Never cache token-bearing responses
        if request.url.path.startswith("/api/auth"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
            response.headers["Pragma"] = "no-cache"

        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """
    Reject oversized bodies and suspicious paths before routing.
    """

    suspicious_patterns = [
        "../",
        "..\\",
        "<script",
        "javascript:",
        "vbscript:",
    ]

    def __init__(self, app, max_content_length: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_content_length = max_content_length

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_content_length:
                logger.warning(
                    "Rejected oversized request",
                    path=request.url.path,
                    content_length=int(content_length)
                )
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"message": f"Request body too large. Maximum: {self.max_content_length} bytes"}
                )

        path_lower = request.url.path.lower()
        for pattern in self.suspicious_patterns:
            if pattern in path_lower:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"message": "Invalid request path"}
                )

        return await call_next(request)


class AuditLogMiddleware(BaseHTTPMiddleware):
    """One "audit" log line per auth call and per state-changing API call."""

    def _should_log(self, path: str, method: str) -> bool:
        if path.startswith("/api/auth"):
            return True

        return method in ("POST", "PUT", "PATCH", "DELETE") and path.startswith("/api/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._should_log(request.url.path, request.method):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        response = await call_next(request)

        logger.info(
            "audit",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            ip=client_ip,
            authenticated=bool(request.headers.get("authorization"))
        )

        return response
