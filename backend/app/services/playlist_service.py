"""Playlist operations."""

from sqlalchemy.orm import Session, joinedload
from typing import List

from app.models.playlist import Playlist, PlaylistVideo
from app.models.video import Video
from app.services.logging_service import logger


def get_or_create_playlist(db: Session, user_id: int, title: str) -> Playlist:
    """Return the user's playlist with this title, creating it when absent."""
    playlist = db.query(Playlist).filter(
        Playlist.user_id == user_id,
        Playlist.title == title
    ).first()

    if playlist is None:
        playlist = Playlist(user_id=user_id, title=title)
        db.add(playlist)
        db.flush()
        logger.info("Playlist created", user_id=user_id, playlist_id=playlist.id)

    return playlist


def add_to_playlist(db: Session, user_id: int, title: str, video_id: int) -> int:
    """
    Add a video to the user's playlist named ``title``.

    The playlist is created on first use and adding the same video twice is a
    no-op.

    Returns:
        The playlist id
    """
    playlist = get_or_create_playlist(db, user_id, title)

    already_added = db.query(PlaylistVideo.id).filter(
        PlaylistVideo.playlist_id == playlist.id,
        PlaylistVideo.video_id == video_id
    ).first()

    if already_added is None:
        db.add(PlaylistVideo(playlist_id=playlist.id, video_id=video_id))

    db.commit()
    return playlist.id


def list_playlists(db: Session, user_id: int) -> List[Playlist]:
    return (
        db.query(Playlist)
        .options(
            joinedload(Playlist.entries)
            .joinedload(PlaylistVideo.video)
            .joinedload(Video.creator)
        )
        .filter(Playlist.user_id == user_id)
        .order_by(Playlist.created_at.asc(), Playlist.id.asc())
        .all()
    )
