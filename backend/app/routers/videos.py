"""Video endpoints: upload, feed, detail and comments."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.middleware.auth import get_current_active_user, get_current_creator
from app.models.user import User
from app.models.video_schemas import (
    CommentCreate,
    CommentListResponse,
    CommentPostResponse,
    FeedResponse,
    SummaryResponse,
    UploadResponse,
    VideoDetailResponse,
    VideoResponse,
)
from app.routers.ai import SUMMARY_ERROR_RESPONSES, summarize_video
from app.services import video_service
from app.services.logging_service import app_metrics
from app.services.rag_service import SummaryPipeline, get_summary_pipeline
from app.services.user_service import UserService
from app.utils.validators import parse_csv_list, parse_optional_int, sanitize_input

router = APIRouter()


def _require_video(db: Session, video_id: int):
    video = video_service.get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


@router.post("/upload", response_model=UploadResponse)
def upload_video(
    video: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    concepts: Optional[str] = Form(None),
    level: Optional[str] = Form(None),
    durationSec: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_creator)
):
    """
    Upload a video file (multipart field ``video``).

    ``tags`` and ``concepts`` are comma-separated lists. ``durationSec`` is
    stored when numeric and ignored otherwise.
    """
    if video is None or not video.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file")

    clean_title = sanitize_input(title or "", max_length=255)
    if not clean_title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing title")

    try:
        stored = video_service.save_upload(video.file, video.filename)
    except video_service.UploadTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
    finally:
        video.file.close()

    app_metrics.record_upload(stored["size"])

    try:
        created = video_service.create_video(
            db,
            creator_id=current_user.id,
            title=clean_title,
            filename=stored["filename"],
            url=stored["url"],
            tags=parse_csv_list(tags),
            concepts=parse_csv_list(concepts),
            level=sanitize_input(level or "", max_length=50) or None,
            duration_sec=parse_optional_int(durationSec),
        )
    except Exception:
        # No row points at the file, so it would never be served or cleaned up
        video_service.remove_stored_file(stored["filename"])
        raise

    return UploadResponse(video=VideoResponse.model_validate(created))


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    limit: int = Query(video_service.DEFAULT_FEED_LIMIT, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Personalized feed: followed creators first, then everyone else, latest first.
    """
    following_ids = UserService.get_following_ids(db, current_user.id)
    videos = video_service.get_feed(db, following_ids, limit=limit)

    return {"feed": [video_service.serialize_video(video) for video in videos]}


@router.get("/{video_id}", response_model=VideoDetailResponse)
async def get_video_detail(
    video_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Video with its comments, oldest first."""
    video = _require_video(db, video_id)
    comments = video_service.get_comments(db, video.id)

    return {
        "video": video_service.serialize_video(video),
        "comments": [video_service.serialize_comment(comment) for comment in comments],
    }


@router.get("/{video_id}/comments", response_model=CommentListResponse)
async def list_comments(
    video_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    _require_video(db, video_id)
    comments = video_service.get_comments(db, video_id)
    return {"comments": [video_service.serialize_comment(comment) for comment in comments]}


@router.post("/{video_id}/comment", response_model=CommentPostResponse)
async def post_comment(
    video_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Comment on a video.

    Returns the refreshed comment thread under both ``comments`` and
    ``videoComments``.
    """
    text = sanitize_input(payload.text or "", max_length=2000)
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No text")

    _require_video(db, video_id)
    video_service.add_comment(db, video_id, current_user.id, text)

    thread = [video_service.serialize_comment(comment) for comment in video_service.get_comments(db, video_id)]
    return {"video": {"id": video_id}, "comments": thread, "videoComments": thread}


@router.get("/{video_id}/summary", response_model=SummaryResponse, responses=SUMMARY_ERROR_RESPONSES)
def get_summary_alias(
    video_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    pipeline: SummaryPipeline = Depends(get_summary_pipeline)
):
    """Same as ``GET /api/ai/video/{id}/summary``."""
    return summarize_video(video_id, db, pipeline)
