"""Video, comment and embedding-mapping database models."""

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from app.database import Base


class Video(Base):
    """Short educational video uploaded by a creator."""
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    filename = Column(String(255), nullable=False)  # Name of the stored file in UPLOAD_DIR
    url = Column(String(500), nullable=False)  # /uploads/<filename>

    # Learning metadata
    tags = Column(JSON, default=list, nullable=False)
    concepts = Column(JSON, default=list, nullable=False)
    level = Column(String(50), default="beginner", nullable=False)
    duration_sec = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    creator = relationship("User", back_populates="videos")
    comments = relationship("Comment", back_populates="video", cascade="all, delete-orphan")
    embedding = relationship("VideoEmbedding", back_populates="video", uselist=False, cascade="all, delete-orphan")

    @property
    def creator_name(self):
        return self.creator.name if self.creator else None

    def __repr__(self):
        return f"<Video(id={self.id}, title='{self.title}', creator_id={self.creator_id})>"


class Comment(Base):
    """Comment left on a video."""
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    text = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    video = relationship("Video", back_populates="comments")
    user = relationship("User", back_populates="comments")

    def __repr__(self):
        return f"<Comment(id={self.id}, video_id={self.video_id}, user_id={self.user_id})>"


class VideoEmbedding(Base):
    """Maps a video to the vectors stored for it in the vector store."""
    __tablename__ = "embeddings"

    id = Column(Integer, primary_key=True, index=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)

    vector_id = Column(String(100), nullable=False)  # Prefix of the "<video_id>-<chunk>" vector ids
    namespace = Column(String(100), nullable=True)
    chunk_count = Column(Integer, default=0, nullable=False)
    model = Column(String(128), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    video = relationship("Video", back_populates="embedding")

    def __repr__(self):
        return f"<VideoEmbedding(video_id={self.video_id}, chunks={self.chunk_count})>"
