"""API routers."""

from app.routers import auth, users, videos, ai, health

__all__ = ["auth", "users", "videos", "ai", "health"]
