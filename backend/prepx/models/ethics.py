"""
Ethics simulator models

A scenario is a fixed sequence of stages (decision -> consequence -> adjustment).
A session walks one user through those stages; each answered stage is an
EthicsResponse carrying the AI evaluation. Completing a session writes an
EthicsReportCard and rolls the result into the user's EthicsProfile.
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey, Text, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class EthicsSessionStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class EthicsScenario(Base):
    __tablename__ = "ethics_scenarios"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    context = Column(Text, nullable=False)
    category = Column(String(100), default="General Ethics", nullable=False)
    difficulty = Column(String(10), default="medium", nullable=False, index=True)
    stakeholders = Column(JSON, default=list)
    is_active = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    stages = relationship("EthicsStage", back_populates="scenario", order_by="EthicsStage.stage_number")

    def __repr__(self):
        return f"<EthicsScenario {self.title[:40]}>"


class EthicsStage(Base):
    __tablename__ = "ethics_stages"

    __table_args__ = (
        Index('ix_ethics_stages_scenario_number', 'scenario_id', 'stage_number', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    scenario_id = Column(GUID, ForeignKey("ethics_scenarios.id", ondelete="CASCADE"), nullable=False)
    stage_number = Column(Integer, nullable=False)
    stage_type = Column(String(20), default="decision", nullable=False)  # decision, consequence, adjustment
    prompt = Column(Text, nullable=False)
    options = Column(JSON, default=list)
    evaluation_criteria = Column(JSON, default=dict)

    scenario = relationship("EthicsScenario", back_populates="stages")


class EthicsSession(Base):
    __tablename__ = "ethics_sessions"

    __table_args__ = (
        Index('ix_ethics_sessions_user', 'user_id', 'created_at'),
        Index('ix_ethics_sessions_scenario_status', 'scenario_id', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    scenario_id = Column(GUID, ForeignKey("ethics_scenarios.id", ondelete="CASCADE"), nullable=False)

    status = Column(String(20), default=EthicsSessionStatus.IN_PROGRESS.value, nullable=False)
    current_stage_number = Column(Integer, default=1, nullable=False)
    retry_of = Column(GUID, ForeignKey("ethics_sessions.id", ondelete="SET NULL"), nullable=True)
    retry_context = Column(Text, nullable=True)

    dimension_scores = Column(JSON, nullable=True)
    ethical_tendency = Column(JSON, nullable=True)
    total_score = Column(Integer, nullable=True)

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    responses = relationship("EthicsResponse", back_populates="session", order_by="EthicsResponse.created_at")

    def __repr__(self):
        return f"<EthicsSession {self.id} {self.status}>"


class EthicsResponse(Base):
    __tablename__ = "ethics_responses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    session_id = Column(GUID, ForeignKey("ethics_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    stage_id = Column(GUID, ForeignKey("ethics_stages.id", ondelete="CASCADE"), nullable=False)

    response_text = Column(Text, nullable=False)
    selected_option = Column(String(255), nullable=True)
    time_taken_seconds = Column(Integer, default=0, nullable=False)

    dimension_scores = Column(JSON, default=dict)
    ethical_indicators = Column(JSON, default=dict)
    ai_score = Column(Float, nullable=True)
    ai_feedback = Column(Text, nullable=True)
    evaluation_details = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    session = relationship("EthicsSession", back_populates="responses")


class EthicsReportCard(Base):
    __tablename__ = "ethics_report_cards"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    session_id = Column(GUID, ForeignKey("ethics_sessions.id", ondelete="CASCADE"), nullable=False, unique=True)
    content = Column(JSON, default=dict, nullable=False)
    percentile = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class EthicsProfile(Base):
    __tablename__ = "ethics_profiles"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    simulations_completed = Column(Integer, default=0, nullable=False)
    average_score = Column(Float, default=0.0, nullable=False)
    primary_tendency = Column(String(20), nullable=True)
    secondary_tendency = Column(String(20), nullable=True)
    tendency_scores = Column(JSON, default=dict)
    profile_video_status = Column(String(20), nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
