"""Social graph operations: follows and public profiles."""

from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Tuple

from app.models.user import User, Follow
from app.models.video import Video
from app.services.logging_service import logger


class UserService:
    """Service for user profile and follow operations."""

    @staticmethod
    def toggle_follow(db: Session, follower_id: int, followee_id: int) -> Tuple[Optional[bool], Optional[str]]:
        """
        Follow a user, or unfollow if already following.

        Args:
            db: Database session
            follower_id: Acting user
            followee_id: User being (un)followed

        Returns:
            Tuple of (now_following, error_message)
        """
        if follower_id == followee_id:
            return None, "Cannot follow yourself"

        if db.query(User.id).filter(User.id == followee_id).first() is None:
            return None, "User not found"

        existing = db.query(Follow).filter(
            Follow.follower_id == follower_id,
            Follow.followee_id == followee_id
        ).first()

        if existing:
            db.delete(existing)
            db.commit()
            logger.info("Unfollowed user", follower_id=follower_id, followee_id=followee_id)
            return False, None

        db.add(Follow(follower_id=follower_id, followee_id=followee_id))
        db.commit()
        logger.info("Followed user", follower_id=follower_id, followee_id=followee_id)
        return True, None

    @staticmethod
    def get_following_ids(db: Session, user_id: int) -> List[int]:
        """Ids of every user that user_id follows."""
        rows = db.query(Follow.followee_id).filter(Follow.follower_id == user_id).all()
        return [followee_id for (followee_id,) in rows]

    @staticmethod
    def is_following(db: Session, follower_id: int, followee_id: int) -> bool:
        return db.query(Follow.id).filter(
            Follow.follower_id == follower_id,
            Follow.followee_id == followee_id
        ).first() is not None

    @staticmethod
    def get_profile_counts(db: Session, user_id: int) -> Dict[str, Any]:
        """Follower, following and uploaded-video counts for a user."""
        return {
            "followers": db.query(Follow).filter(Follow.followee_id == user_id).count(),
            "following": db.query(Follow).filter(Follow.follower_id == user_id).count(),
            "videos": db.query(Video).filter(Video.creator_id == user_id).count(),
        }
