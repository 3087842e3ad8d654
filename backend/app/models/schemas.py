"""Pydantic schemas for request/response validation."""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List

from app.models.user import ROLES


# ============================================
# User Schemas
# ============================================

class UserCreate(BaseModel):
    """Schema for user registration.

    Fields are optional at the schema level so missing values are reported
    as a single 400 by the auth service.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: Optional[str]) -> Optional[str]:
        """Only learner and creator accounts can self-register."""
        if value is None or value == "":
            return None
        if value not in ROLES:
            raise ValueError(f"role must be one of: {', '.join(ROLES)}")
        return value


class UserLogin(BaseModel):
    """Schema for user login."""
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    """Schema for user response."""
    id: int
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class MeResponse(BaseModel):
    """Wrapped current-user response."""
    user: UserResponse


class UserProfileResponse(BaseModel):
    """Public profile with social counters."""
    user: UserResponse
    followers: int
    following: int
    videos: int
    is_following: Optional[bool] = None  # None for anonymous viewers


class FollowResponse(BaseModel):
    """Result of a follow toggle."""
    following: bool


class FollowingListResponse(BaseModel):
    """Ids of users the caller follows."""
    following: List[int]


# ============================================
# Authentication Schemas
# ============================================

class Token(BaseModel):
    """Schema for JWT token response."""
    token: str
    token_type: str = "bearer"
    user: UserResponse


# ============================================
# Generic Response Schemas
# ============================================

class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Generic error response."""
    message: str
    error: Optional[str] = Field(None, description="Underlying error message, when safe to expose")
