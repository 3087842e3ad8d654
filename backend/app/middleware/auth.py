"""Authentication dependencies for protected routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.error_tracking import error_tracker
from app.utils.security import decode_access_token

# auto_error is off so a missing header yields our own 401 body
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """Extract the raw bearer token or fail with 401 "No token"."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("No token")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user.

    Usage in routes:
        @router.get("/protected")
        def protected_route(current_user: User = Depends(get_current_user)):
            return {"user": current_user.name}

    Raises:
        HTTPException: 401 when the token is missing, invalid, revoked or
        belongs to a deleted user
    """
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        raise _unauthorized("Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token")

    if AuthService.get_user_by_id(db, user_id) is None:
        raise _unauthorized("Invalid token (user missing)")

    user, error = AuthService.validate_session(db, token)
    if error or not user:
        raise _unauthorized(error or "Invalid token")

    error_tracker.set_user_context(user.id)
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Dependency to get the current active user.

    Raises:
        HTTPException: If user is inactive
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    return current_user


def get_current_creator(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Dependency restricting a route to creator accounts.

    Raises:
        HTTPException: 403 for learners
    """
    if not current_user.is_creator:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only creators can upload"
        )
    return current_user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Dependency to optionally get the current user.

    Returns None if no valid authentication is provided.
    """
    if credentials is None:
        return None

    token = credentials.credentials
    if not decode_access_token(token):
        return None

    user, _ = AuthService.validate_session(db, token)
    return user
