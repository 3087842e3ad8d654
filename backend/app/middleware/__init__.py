"""Middleware modules for FastAPI application."""

from app.middleware.rate_limit_middleware import RateLimitMiddleware, RequestMetricsMiddleware
from app.middleware.security_middleware import (
    SecurityHeadersMiddleware,
    RequestValidationMiddleware,
    AuditLogMiddleware
)

__all__ = [
    "RateLimitMiddleware",
    "RequestMetricsMiddleware",
    "SecurityHeadersMiddleware",
    "RequestValidationMiddleware",
    "AuditLogMiddleware"
]
