"""Account registration, login and token-backed sessions."""

from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional, Tuple

from app.models.user import User, ROLE_LEARNER
from app.models.session import UserSession
from app.models.schemas import UserCreate, UserLogin
from app.utils.security import hash_password, verify_password, create_access_token
from app.utils.validators import validate_email, sanitize_input
from app.config import settings
from app.services.logging_service import logger

INVALID_CREDENTIALS = "Invalid credentials"

AuthResult = Tuple[Optional[User], Optional[str]]


def _normalize_email(raw: Optional[str]) -> str:
    return (raw or "").strip().lower()


class AuthService:
    """
    Account and session operations.

    Methods that can fail for user-facing reasons return ``(user, error)``;
    routes turn a non-empty ``error`` into an HTTP 400 or 401.
    """

    @staticmethod
    def register_user(db: Session, user_data: UserCreate) -> AuthResult:
        """
        Create a learner (default) or creator account.

        Emails are stored lowercased so uniqueness ignores case.
        """
        name = sanitize_input(user_data.name or "", max_length=100)
        email = _normalize_email(user_data.email)
        if not (name and email and user_data.password):
            return None, "Missing fields"

        email_ok, email_error = validate_email(email)
        if not email_ok:
            return None, email_error

        if db.query(User.id).filter(User.email == email).first() is not None:
            return None, "Email already registered"

        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(user_data.password),
            role=user_data.role or ROLE_LEARNER,
            is_active=True
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info("User registered", user_id=user.id, role=user.role)
        return user, None

    @staticmethod
    def authenticate_user(db: Session, login_data: UserLogin) -> AuthResult:
        """
        Check an email/password pair and stamp ``last_login``.

        Unknown email and wrong password share one message. The deactivated
        check runs only once the password is known to be right.
        """
        email = _normalize_email(login_data.email)
        user = db.query(User).filter(User.email == email).first() if email else None

        if user is None or not verify_password(login_data.password or "", user.hashed_password):
            logger.info("Login rejected", email_domain=email.rpartition("@")[2] or None)
            return None, INVALID_CREDENTIALS

        if not user.is_active:
            return None, "Account is deactivated"

        user.last_login = datetime.utcnow()
        db.commit()
        return user, None

    @staticmethod
    def create_user_session(
        db: Session,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> str:
        """Issue a JWT and persist the session row that makes it usable."""
        token = create_access_token({"sub": str(user.id)})

        db.add(UserSession(
            user_id=user.id,
            session_token=token,
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        ))
        db.commit()
        return token

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def _find_session(db: Session, token: str) -> Optional[UserSession]:
        return db.query(UserSession).filter(UserSession.session_token == token).first()

    @staticmethod
    def validate_session(db: Session, token: str) -> AuthResult:
        """
        Resolve a bearer token to its user through the session table.

        An expired session is deleted as soon as it is seen.
        """
        session = AuthService._find_session(db, token)
        if session is None:
            return None, "Invalid session"

        now = datetime.utcnow()
        if session.expires_at < now:
            db.delete(session)
            db.commit()
            return None, "Session expired"

        session.last_activity = now
        db.commit()

        user = AuthService.get_user_by_id(db, session.user_id)
        if user is None:
            return None, "Invalid token (user missing)"
        if not user.is_active:
            return None, "User inactive"

        return user, None

    @staticmethod
    def logout_user(db: Session, token: str) -> bool:
        """Delete the token's session. False when there was none."""
        session = AuthService._find_session(db, token)
        if session is None:
            return False

        db.delete(session)
        db.commit()
        return True

    @staticmethod
    def cleanup_expired_sessions(db: Session) -> int:
        """Bulk-delete sessions past ``expires_at``; returns how many went."""
        removed = (
            db.query(UserSession)
            .filter(UserSession.expires_at < datetime.utcnow())
            .delete(synchronize_session=False)
        )
        db.commit()
        return removed
