"""Playlist models."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.database import Base


class Playlist(Base):
    """Named collection of videos owned by a user."""

    __tablename__ = "playlists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="playlists")
    entries = relationship(
        "PlaylistVideo",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistVideo.id"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "title", name="uq_playlists_user_title"),
    )

    def __repr__(self):
        return f"<Playlist(id={self.id}, user_id={self.user_id}, title='{self.title}')>"


class PlaylistVideo(Base):
    """Membership of a video in a playlist."""

    __tablename__ = "playlist_videos"

    id = Column(Integer, primary_key=True, index=True)
    playlist_id = Column(Integer, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)

    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    playlist = relationship("Playlist", back_populates="entries")
    video = relationship("Video")

    __table_args__ = (
        UniqueConstraint("playlist_id", "video_id", name="uq_playlist_videos_playlist_video"),
    )
