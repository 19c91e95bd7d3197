"""
Topic-difficulty predictor models

A TopicPrediction row is the current forecast for one syllabus topic. Its
pyq_history column ({"2019": 3, "2020": 5, ...}) is the training input for
the refresh job; everything else is derived from it.
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, ForeignKey, Text, Index, Date, JSON
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid

SUBJECTS = ["polity", "history", "geography", "economics", "science", "environment", "ethics"]


class TrendDirection(str, enum.Enum):
    RISING = "rising"
    STABLE = "stable"
    DECLINING = "declining"


class Proficiency(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    MASTERED = "mastered"


class TopicPrediction(Base):
    __tablename__ = "topic_predictions"

    __table_args__ = (
        Index('ix_topic_predictions_subject', 'subject'),
        Index('ix_topic_predictions_trending', 'is_trending', 'predicted_probability'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    subject = Column(String(50), nullable=False)
    topic = Column(String(255), nullable=False)
    paper = Column(String(20), nullable=True)

    pyq_history = Column(JSON, default=dict, nullable=False)

    difficulty_score = Column(Float, default=5.0, nullable=False)  # 1-10
    predicted_probability = Column(Float, default=0.5, nullable=False)
    confidence_score = Column(Float, default=0.5, nullable=False)
    time_recommendation_hours = Column(Float, default=5.0, nullable=False)
    trend = Column(String(20), default=TrendDirection.STABLE.value, nullable=False)
    year_over_year_change = Column(Float, default=0.0, nullable=False)
    is_trending = Column(Boolean, default=False, nullable=False)

    prediction_date = Column(Date, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def priority(self) -> str:
        if self.is_trending:
            return "HIGH"
        if self.trend == TrendDirection.RISING.value:
            return "MEDIUM"
        return "NORMAL"

    def __repr__(self):
        return f"<TopicPrediction {self.subject}/{self.topic} {self.difficulty_score}>"


class TopicPerformance(Base):
    """A user's cumulative record on one predicted topic"""
    __tablename__ = "topic_user_performance"

    __table_args__ = (
        Index('ix_topic_perf_user_topic', 'user_id', 'topic_id', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    topic_id = Column(GUID, ForeignKey("topic_predictions.id", ondelete="CASCADE"), nullable=False)

    questions_attempted = Column(Integer, default=0, nullable=False)
    questions_correct = Column(Integer, default=0, nullable=False)
    study_hours = Column(Float, default=0.0, nullable=False)
    proficiency_level = Column(String(20), default=Proficiency.BEGINNER.value, nullable=False)
    last_attempt_date = Column(Date, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PredictionReport(Base):
    __tablename__ = "prediction_reports"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    report_type = Column(String(20), default="full", nullable=False)
    filter_criteria = Column(JSON, default=dict)
    status = Column(String(20), default="generating", nullable=False)
    content = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PredictionModelHistory(Base):
    """One row per refresh run"""
    __tablename__ = "prediction_model_history"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    model_version = Column(String(20), nullable=False)
    training_data_start = Column(Date, nullable=True)
    training_data_end = Column(Date, nullable=True)
    topics_count = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
