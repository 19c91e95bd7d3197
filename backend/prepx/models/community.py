from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, Text, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid

DISCUSSION_CATEGORIES = [
    "general", "polity", "history", "geography", "economy",
    "environment", "science", "ethics", "current affairs",
]


class Discussion(Base):
    """Community forum thread"""
    __tablename__ = "discussions"

    __table_args__ = (
        Index('ix_discussions_category_created', 'category', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(50), default="general", nullable=False)
    tags = Column(JSON, default=list)

    is_pinned = Column(Boolean, default=False, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    reply_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User", lazy="joined")
    replies = relationship("DiscussionReply", back_populates="discussion", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Discussion {self.title[:40]}>"


class DiscussionReply(Base):
    __tablename__ = "discussion_replies"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    discussion_id = Column(GUID, ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_answer = Column(Boolean, default=False, nullable=False)
    upvotes = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    author = relationship("User", lazy="joined")
    discussion = relationship("Discussion", back_populates="replies")
