"""Pydantic schemas for videos, comments, playlists and AI summaries."""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


# Video Schemas
class CreatorRef(BaseModel):
    """Creator reference embedded in video payloads."""
    id: int
    name: Optional[str]


class VideoResponse(BaseModel):
    """Video as returned by upload."""
    id: int
    title: str
    filename: str
    url: str
    creator_id: int
    tags: List[str]
    concepts: List[str]
    level: str
    duration_sec: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class UploadResponse(BaseModel):
    video: VideoResponse


class FeedVideo(BaseModel):
    """Feed item. Field names follow the browser client's camelCase."""
    id: int
    title: str
    url: str
    creator: CreatorRef
    tags: List[str]
    concepts: List[str]
    level: str
    durationSec: Optional[int]
    createdAt: Optional[datetime] = None


class FeedResponse(BaseModel):
    feed: List[FeedVideo]


# Comment Schemas
class CommentCreate(BaseModel):
    """Schema for posting a comment."""
    text: Optional[str] = None


class CommentResponse(BaseModel):
    """Comment with its author's display name."""
    id: int
    video_id: int
    user_id: int
    user_name: Optional[str]
    text: str
    created_at: datetime


class VideoRef(BaseModel):
    id: int


class CommentPostResponse(BaseModel):
    """Response after posting a comment: the full, refreshed thread."""
    video: VideoRef
    comments: List[CommentResponse]
    videoComments: List[CommentResponse]


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]


class VideoDetailResponse(BaseModel):
    video: FeedVideo
    comments: List[CommentResponse]


# Playlist Schemas
class PlaylistAdd(BaseModel):
    """Schema for adding a video to a (possibly new) playlist."""
    title: Optional[str] = None
    videoId: Optional[int] = None


class PlaylistAddResponse(BaseModel):
    playlistId: int


class PlaylistResponse(BaseModel):
    id: int
    title: str
    created_at: datetime
    videos: List[FeedVideo]


class PlaylistListResponse(BaseModel):
    playlists: List[PlaylistResponse]


# AI Schemas
class SummaryResponse(BaseModel):
    """AI summary + quiz. Quiz items are passed through as the model produced them."""
    summary: str
    quiz: list
