"""
Weekly documentary models

render_status walks: pending -> aggregating -> extracting -> scripting
-> rendering -> published (or failed at any step).
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, Index, Date, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class RenderStatus(str, enum.Enum):
    PENDING = "pending"
    AGGREGATING = "aggregating"
    EXTRACTING = "extracting"
    SCRIPTING = "scripting"
    RENDERING = "rendering"
    PUBLISHED = "published"
    FAILED = "failed"


class ScheduleStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class DailyCurrentAffairs(Base):
    """Daily CA video; the weekly documentary aggregates a week of these"""
    __tablename__ = "daily_current_affairs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    ca_date = Column(Date, nullable=False, index=True)
    topic = Column(String(255), nullable=False)
    category = Column(String(50), nullable=True)
    news_items = Column(JSON, default=list)
    video_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WeeklyDocumentary(Base):
    __tablename__ = "weekly_documentaries"

    __table_args__ = (
        Index('ix_weekly_docs_year_week', 'year', 'week_number'),
        Index('ix_weekly_docs_status_published', 'render_status', 'published_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)
    week_number = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    render_status = Column(String(20), default=RenderStatus.PENDING.value, nullable=False)
    render_priority = Column(Integer, nullable=True)
    render_started_at = Column(DateTime, nullable=True)

    # Pipeline outputs
    daily_ca_ids = Column(JSON, default=list)
    source_news_count = Column(Integer, default=0, nullable=False)
    top_topics = Column(JSON, default=list)
    script_content = Column(JSON, nullable=True)
    segments = Column(JSON, default=list)
    total_duration_seconds = Column(Integer, nullable=True)
    manim_scenes = Column(JSON, default=list)

    # Publish
    video_url = Column(Text, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    published_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    clips = relationship("DocumentaryClip", back_populates="documentary", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<WeeklyDocumentary {self.year}-W{self.week_number} {self.render_status}>"


class WeeklyDocSchedule(Base):
    """One row per pipeline run"""
    __tablename__ = "weekly_doc_schedule"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    documentary_id = Column(GUID, ForeignKey("weekly_documentaries.id", ondelete="CASCADE"), nullable=False, index=True)
    scheduled_time = Column(DateTime, default=datetime.utcnow, nullable=False)
    triggered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    triggered_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), default=ScheduleStatus.RUNNING.value, nullable=False)
    error_message = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)


class DocumentaryClip(Base):
    """60-second social clip cut from a published documentary"""
    __tablename__ = "documentary_clips"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    documentary_id = Column(GUID, ForeignKey("weekly_documentaries.id", ondelete="CASCADE"), nullable=False, index=True)
    clip_key = Column(String(20), nullable=False)  # clip_1, clip_2, clip_3
    topic = Column(String(255), nullable=False)
    title = Column(String(300), nullable=False)
    duration_seconds = Column(Integer, default=60, nullable=False)
    platform = Column(String(30), nullable=False)
    url = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    documentary = relationship("WeeklyDocumentary", back_populates="clips")
