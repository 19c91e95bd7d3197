"""
Adaptive difficulty models

DifficultyProgress keeps a running tally per (user, difficulty); badges are
seeded definitions awarded once per user.
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Index
from datetime import datetime

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class DifficultyProgress(Base):
    __tablename__ = "difficulty_progress"

    __table_args__ = (
        Index('ix_difficulty_progress_user_level', 'user_id', 'difficulty', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    difficulty = Column(String(10), nullable=False)

    total_attempts = Column(Integer, default=0, nullable=False)
    correct_attempts = Column(Integer, default=0, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    best_streak = Column(Integer, default=0, nullable=False)
    total_time_seconds = Column(Integer, default=0, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def accuracy(self) -> float:
        if not self.total_attempts:
            return 0.0
        return self.correct_attempts / self.total_attempts


class Badge(Base):
    __tablename__ = "badges"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    slug = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    icon = Column(String(16), nullable=True)
    # criteria: total_correct | hard_correct | streak | total_attempts
    criteria_type = Column(String(30), nullable=False)
    requirement = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<Badge {self.slug}>"


class UserBadge(Base):
    __tablename__ = "user_badges"

    __table_args__ = (
        Index('ix_user_badges_user_badge', 'user_id', 'badge_id', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id = Column(GUID, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    earned_at = Column(DateTime, default=datetime.utcnow, nullable=False)
