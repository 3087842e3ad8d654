"""Video storage, feed assembly and comments."""

import os
import time
import uuid
from typing import Any, BinaryIO, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models.video import Video, Comment
from app.services.logging_service import logger

FOLLOWED_FEED_LIMIT = 40
DEFAULT_FEED_LIMIT = 80

_COPY_CHUNK_BYTES = 1024 * 1024


class UploadTooLargeError(Exception):
    """Raised when an uploaded file exceeds MAX_UPLOAD_BYTES."""


def make_stored_filename(original_name: Optional[str]) -> str:
    """
    Unique on-disk name: ``<epoch-ms>-<uuid4><ext>`` keeping the original extension.
    """
    ext = os.path.splitext(original_name or "")[1].lower()
    return f"{int(time.time() * 1000)}-{uuid.uuid4()}{ext}"


def video_path(filename: str) -> str:
    """Absolute path of a stored upload."""
    return os.path.abspath(os.path.join(settings.UPLOAD_DIR, os.path.basename(filename)))


def save_upload(source: BinaryIO, original_name: Optional[str], max_bytes: Optional[int] = None) -> Dict[str, Any]:
    """
    Stream an uploaded file into UPLOAD_DIR.

    A failed copy never leaves a partial file behind.

    Args:
        source: Readable binary file object
        original_name: Client-side file name, used for its extension
        max_bytes: Size cap (defaults to MAX_UPLOAD_BYTES)

    Returns:
        Dict with ``filename``, ``url`` and ``size``

    Raises:
        UploadTooLargeError: The file is larger than the cap
    """
    limit = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    filename = make_stored_filename(original_name)
    destination = video_path(filename)
    size = 0

    try:
        with open(destination, "wb") as out:
            while True:
                chunk = source.read(_COPY_CHUNK_BYTES)
                if not chunk:
                    break
                size += len(chunk)
                if size > limit:
                    raise UploadTooLargeError(f"File exceeds {limit} bytes")
                out.write(chunk)
    except Exception:
        remove_stored_file(filename)
        raise

    logger.info("Stored upload", filename=filename, size=size)
    return {"filename": filename, "url": f"/uploads/{filename}", "size": size}


def remove_stored_file(filename: str) -> None:
    """Delete a stored upload if it exists."""
    try:
        os.remove(video_path(filename))
    except FileNotFoundError:
        return
    logger.info("Removed stored upload", filename=filename)


def create_video(
    db: Session,
    creator_id: int,
    title: str,
    filename: str,
    url: str,
    tags: Optional[List[str]] = None,
    concepts: Optional[List[str]] = None,
    level: Optional[str] = None,
    duration_sec: Optional[int] = None,
) -> Video:
    video = Video(
        creator_id=creator_id,
        title=title,
        filename=filename,
        url=url,
        tags=tags or [],
        concepts=concepts or [],
        level=level or "beginner",
        duration_sec=duration_sec,
    )
    db.add(video)
    db.commit()
    db.refresh(video)

    logger.info("Video created", video_id=video.id, creator_id=creator_id)
    return video


def get_video(db: Session, video_id: int) -> Optional[Video]:
    return db.query(Video).options(joinedload(Video.creator)).filter(Video.id == video_id).first()


def _latest_first(query):
    return query.options(joinedload(Video.creator)).order_by(Video.created_at.desc(), Video.id.desc())


def get_feed(
    db: Session,
    following_ids: Sequence[int],
    limit: int = DEFAULT_FEED_LIMIT,
    followed_limit: int = FOLLOWED_FEED_LIMIT,
) -> List[Video]:
    """
    Build a learner's feed.

    Videos from followed creators come first (latest first, at most
    ``followed_limit``), then everyone else's videos (latest first, at most
    ``limit``). Without follows the feed is simply the latest ``limit`` videos.
    """
    if not following_ids:
        return _latest_first(db.query(Video)).limit(limit).all()

    followed = _latest_first(
        db.query(Video).filter(Video.creator_id.in_(following_ids))
    ).limit(followed_limit).all()

    others = _latest_first(
        db.query(Video).filter(Video.creator_id.notin_(following_ids))
    ).limit(limit).all()

    return followed + others


def add_comment(db: Session, video_id: int, user_id: int, text: str) -> Comment:
    comment = Comment(video_id=video_id, user_id=user_id, text=text)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def get_comments(db: Session, video_id: int) -> List[Comment]:
    """Comments on a video, oldest first."""
    return (
        db.query(Comment)
        .options(joinedload(Comment.user))
        .filter(Comment.video_id == video_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


def serialize_video(video: Video) -> Dict[str, Any]:
    """Wire shape used by the feed, video detail and playlists."""
    return {
        "id": video.id,
        "title": video.title,
        "url": video.url,
        "creator": {"id": video.creator_id, "name": video.creator_name},
        "tags": list(video.tags or []),
        "concepts": list(video.concepts or []),
        "level": video.level,
        "durationSec": video.duration_sec,
        "createdAt": video.created_at,
    }


def serialize_comment(comment: Comment) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "video_id": comment.video_id,
        "user_id": comment.user_id,
        "user_name": comment.user.name if comment.user else None,
        "text": comment.text,
        "created_at": comment.created_at,
    }
