"""Authentication endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.schemas import (
    UserCreate,
    UserLogin,
    UserResponse,
    MeResponse,
    Token,
    MessageResponse
)
from app.models.user import User
from app.services.auth_service import AuthService
from app.middleware.auth import get_current_active_user, get_bearer_token

router = APIRouter()


def _issue_token(db: Session, user: User, request: Request) -> Token:
    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")

    token = AuthService.create_user_session(
        db=db,
        user=user,
        ip_address=ip_address,
        user_agent=user_agent
    )

    return Token(token=token, token_type="bearer", user=UserResponse.model_validate(user))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Create an account and sign it in.

    ``role`` is "learner" (default) or "creator"; anything else is a 422.
    """
    user, error = AuthService.register_user(db, user_data)

    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error
        )

    return _issue_token(db, user, request)


@router.post("/login", response_model=Token)
async def login(
    login_data: UserLogin,
    request: Request,
    db: Session = Depends(get_db)
):
    """Exchange email and password for a new bearer token."""
    user, error = AuthService.authenticate_user(db, login_data)

    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error
        )

    return _issue_token(db, user, request)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db)
):
    """Revoke the presented token by deleting its session row."""
    if not AuthService.logout_user(db, token):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )

    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
):
    """The account behind the bearer token."""
    return MeResponse(user=UserResponse.model_validate(current_user))
