"""
Bookmark, collection and spaced-review models

Every bookmark carries its own SM-2 schedule (ease_factor / interval_days /
next_review_at) so the review queue is a single indexed query.
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey, Text, Index, Date, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid

DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL_DAYS = 1


class BookmarkContentType(str, enum.Enum):
    NOTE = "note"
    VIDEO = "video"
    QUESTION = "question"
    TOPIC = "topic"
    MINDMAP = "mindmap"
    PYQ = "pyq"
    CUSTOM = "custom"


class ReviewResponse(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    AGAIN = "again"


class BookmarkCollection(Base):
    __tablename__ = "bookmark_collections"

    __table_args__ = (
        Index('ix_bookmark_collections_user_name', 'user_id', 'name', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(16), default="📁", nullable=False)
    color = Column(String(16), default="#3B82F6", nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookmarks = relationship("Bookmark", back_populates="collection")

    def __repr__(self):
        return f"<BookmarkCollection {self.name}>"


class Bookmark(Base):
    __tablename__ = "bookmarks"

    __table_args__ = (
        Index('ix_bookmarks_user_type', 'user_id', 'content_type'),
        Index('ix_bookmarks_user_content', 'user_id', 'content_type', 'content_id'),
        Index('ix_bookmarks_next_review', 'user_id', 'next_review_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    collection_id = Column(GUID, ForeignKey("bookmark_collections.id", ondelete="SET NULL"), nullable=True)

    content_type = Column(String(20), nullable=False)
    content_id = Column(String(100), nullable=True)
    title = Column(String(500), nullable=False)
    snippet = Column(Text, nullable=True)
    full_content = Column(Text, nullable=True)
    url = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    context = Column(JSON, default=dict, nullable=False)  # video position, highlight, page...

    # Access stats
    access_count = Column(Integer, default=0, nullable=False)
    last_accessed_at = Column(DateTime, nullable=True)

    # SM-2 schedule
    ease_factor = Column(Float, default=DEFAULT_EASE_FACTOR, nullable=False)
    interval_days = Column(Integer, default=DEFAULT_INTERVAL_DAYS, nullable=False)
    repetitions = Column(Integer, default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    next_review_at = Column(DateTime, nullable=True)
    last_reviewed_at = Column(DateTime, nullable=True)

    bookmarked_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    collection = relationship("BookmarkCollection", back_populates="bookmarks")

    def __repr__(self):
        return f"<Bookmark {self.content_type}:{self.title[:30]}>"


class ReviewStreak(Base):
    """One row per user: consecutive review days"""
    __tablename__ = "review_streaks"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    last_review_date = Column(Date, nullable=True)

    def __repr__(self):
        return f"<ReviewStreak {self.user_id} {self.current_streak}d>"


class BookmarkReviewLog(Base):
    """Individual review events"""
    __tablename__ = "bookmark_review_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    bookmark_id = Column(GUID, ForeignKey("bookmarks.id", ondelete="CASCADE"), nullable=False)
    response = Column(String(10), nullable=False)
    review_time_seconds = Column(Integer, nullable=True)
    interval_before = Column(Integer, nullable=False)
    interval_after = Column(Integer, nullable=False)
    reviewed_at = Column(DateTime, default=datetime.utcnow, nullable=False)
