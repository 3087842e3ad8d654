"""FastAPI main application."""

import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import init_db
from app.routers import auth, users, videos, ai, health
from app.middleware import (
    RateLimitMiddleware,
    RequestMetricsMiddleware,
    SecurityHeadersMiddleware,
    RequestValidationMiddleware,
    AuditLogMiddleware
)
from app.services.error_tracking import capture_exception
from app.services.logging_service import logger

app = FastAPI(
    title="EduReels API",
    description="Short-form educational videos with follows, playlists and AI summaries",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Middleware added last runs first
app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.RATE_LIMIT_PER_MINUTE,
    window_seconds=60
)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(RequestValidationMiddleware, max_content_length=settings.MAX_UPLOAD_BYTES)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials="*" not in settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Error handlers: every error body carries "message"
# ============================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(content),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"message": "Validation error", "errors": exc.errors()})
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        error=str(exc)
    )
    capture_exception(exc, tags={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server error"}
    )


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    init_db()

    if settings.SCHEDULER_ENABLED:
        from app.services.scheduler_service import start_scheduler
        start_scheduler()

    logger.info(
        "EduReels API started",
        environment=settings.ENVIRONMENT,
        database=settings.DATABASE_URL.split('@')[-1],
        scheduler=settings.SCHEDULER_ENABLED,
        vector_store=settings.vector_store_configured
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    from app.services.scheduler_service import shutdown_scheduler
    shutdown_scheduler()

    logger.info("EduReels API shutting down")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "EduReels API",
        "version": settings.APP_VERSION,
        "status": "operational",
        "environment": settings.ENVIRONMENT,
        "documentation": "/docs"
    }


# Uploaded videos are served as static files
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers
app.include_router(health.router, tags=["Health & Monitoring"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(videos.router, prefix="/api/videos", tags=["Videos"])
app.include_router(ai.router, prefix="/api/ai", tags=["AI"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.DEBUG
    )
