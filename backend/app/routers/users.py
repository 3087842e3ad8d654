"""User endpoints: current user, profiles, follows and playlists."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.middleware.auth import get_current_active_user, get_optional_user
from app.models.schemas import (
    FollowResponse,
    FollowingListResponse,
    MeResponse,
    UserProfileResponse,
    UserResponse,
)
from app.models.user import User
from app.models.video import Video
from app.models.video_schemas import (
    PlaylistAdd,
    PlaylistAddResponse,
    PlaylistListResponse,
)
from app.services import playlist_service
from app.services.user_service import UserService
from app.services.video_service import serialize_video
from app.utils.validators import sanitize_input

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: User = Depends(get_current_active_user)):
    """Get the authenticated user."""
    return MeResponse(user=UserResponse.model_validate(current_user))


@router.get("/me/following", response_model=FollowingListResponse)
async def get_my_following(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Ids of the users the caller follows."""
    return FollowingListResponse(following=UserService.get_following_ids(db, current_user.id))


@router.get("/me/playlists", response_model=PlaylistListResponse)
async def get_my_playlists(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """The caller's playlists with their videos in the order they were added."""
    playlists = playlist_service.list_playlists(db, current_user.id)

    return {
        "playlists": [
            {
                "id": playlist.id,
                "title": playlist.title,
                "created_at": playlist.created_at,
                "videos": [serialize_video(entry.video) for entry in playlist.entries if entry.video],
            }
            for playlist in playlists
        ]
    }


@router.post("/playlist", response_model=PlaylistAddResponse)
async def add_to_playlist(
    payload: PlaylistAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Add a video to one of the caller's playlists.

    The playlist is created when no playlist with that title exists yet.
    """
    title = sanitize_input(payload.title or "", max_length=255)
    if not title or not payload.videoId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing title or videoId")

    if db.query(Video.id).filter(Video.id == payload.videoId).first() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    playlist_id = playlist_service.add_to_playlist(db, current_user.id, title, payload.videoId)
    return PlaylistAddResponse(playlistId=playlist_id)


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_user_profile(
    user_id: int,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_optional_user)
):
    """Public profile with follower, following and video counts."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    counts = UserService.get_profile_counts(db, user.id)
    is_following = UserService.is_following(db, viewer.id, user.id) if viewer else None

    return UserProfileResponse(
        user=UserResponse.model_validate(user),
        is_following=is_following,
        **counts
    )


@router.post("/{user_id}/follow", response_model=FollowResponse)
async def toggle_follow(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Follow the user, or unfollow when already following."""
    following, error = UserService.toggle_follow(db, current_user.id, user_id)

    if error:
        status_code = status.HTTP_404_NOT_FOUND if error == "User not found" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=status_code, detail=error)

    return FollowResponse(following=following)
