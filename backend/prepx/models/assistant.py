"""
AI teaching-assistant models

- AssistantConversation: one row per chat turn (message + response)
- AssistantUsage: per-user, per-day message counter
- AssistantPreferences / AssistantPreset: teaching style customisation
- StudyCheckin: daily motivational check-ins
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, ForeignKey, Text, Index, Date, JSON
from datetime import datetime

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid

DEFAULT_PREFERENCES = {
    "teaching_style": "detailed",
    "tone": "friendly",
    "depth_level": 3,
    "language": "english",
    "active_preset": None,
    "use_examples": True,
    "include_mnemonics": True,
    "suggest_practice": True,
}


class AssistantConversation(Base):
    __tablename__ = "assistant_conversations"

    __table_args__ = (
        Index('ix_assistant_conv_user_session', 'user_id', 'session_id', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(36), nullable=False)

    message_text = Column(Text, nullable=False)
    response_text = Column(Text, nullable=True)
    context_json = Column(JSON, default=dict)
    follow_up_suggestions = Column(JSON, default=list)
    sources_used = Column(JSON, default=list)
    confidence_score = Column(Float, nullable=True)
    response_time_ms = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<AssistantConversation {self.session_id}>"


class AssistantUsage(Base):
    __tablename__ = "assistant_usage"

    __table_args__ = (
        Index('ix_assistant_usage_user_date', 'user_id', 'usage_date', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    usage_date = Column(Date, nullable=False)
    message_count = Column(Integer, default=0, nullable=False)


class AssistantPreset(Base):
    """Named bundle of teaching preferences"""
    __tablename__ = "assistant_presets"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    slug = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    icon = Column(String(16), nullable=True)

    teaching_style = Column(String(20), nullable=False)
    tone = Column(String(20), nullable=False)
    depth_level = Column(Integer, nullable=False)
    language = Column(String(20), default="english", nullable=False)
    use_examples = Column(Boolean, default=True, nullable=False)
    include_mnemonics = Column(Boolean, default=True, nullable=False)
    suggest_practice = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<AssistantPreset {self.slug}>"


class AssistantPreferences(Base):
    __tablename__ = "assistant_preferences"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    teaching_style = Column(String(20), default="detailed", nullable=False)
    tone = Column(String(20), default="friendly", nullable=False)
    depth_level = Column(Integer, default=3, nullable=False)
    language = Column(String(20), default="english", nullable=False)
    active_preset = Column(String(50), nullable=True)
    use_examples = Column(Boolean, default=True, nullable=False)
    include_mnemonics = Column(Boolean, default=True, nullable=False)
    suggest_practice = Column(Boolean, default=True, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {key: getattr(self, key) for key in DEFAULT_PREFERENCES}


class StudyCheckin(Base):
    __tablename__ = "study_checkins"

    __table_args__ = (
        Index('ix_study_checkins_user_date', 'user_id', 'checkin_date'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    checkin_date = Column(Date, nullable=False)
    mood = Column(Integer, nullable=False)  # 1 (struggling) .. 5 (great)
    study_hours = Column(Float, default=0, nullable=False)
    note = Column(Text, nullable=True)
    checkin_type = Column(String(20), default="daily", nullable=False)
    message = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<StudyCheckin {self.user_id} {self.checkin_date} mood={self.mood}>"
