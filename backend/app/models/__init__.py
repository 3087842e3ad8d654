"""Database models."""

from app.models.user import User, Follow
from app.models.session import UserSession
from app.models.video import Video, Comment, VideoEmbedding
from app.models.playlist import Playlist, PlaylistVideo

__all__ = ["User", "Follow", "UserSession", "Video", "Comment", "VideoEmbedding", "Playlist", "PlaylistVideo"]
