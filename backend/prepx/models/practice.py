from sqlalchemy import Column, String, DateTime, Integer, Float, ForeignKey, Index, JSON
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class PracticeSessionType(str, enum.Enum):
    PYQ_PRACTICE = "pyq_practice"
    GENERATED_PRACTICE = "generated_practice"
    MIXED = "mixed"


class PracticeSessionStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class PracticeSession(Base):
    """A timed run through a fixed, ordered list of question ids"""
    __tablename__ = "practice_sessions"

    __table_args__ = (
        Index('ix_practice_sessions_user_status', 'user_id', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    session_type = Column(String(30), nullable=False)
    session_config = Column(JSON, default=dict, nullable=False)
    questions = Column(JSON, default=list, nullable=False)  # ordered question ids
    answers = Column(JSON, default=dict, nullable=False)  # "index" or question id -> answer
    question_times = Column(JSON, default=dict, nullable=False)

    status = Column(String(20), default=PracticeSessionStatus.ACTIVE.value, nullable=False)
    current_question_index = Column(Integer, default=0, nullable=False)
    elapsed_seconds = Column(Integer, default=0, nullable=False)

    score = Column(Integer, nullable=True)
    accuracy = Column(Float, nullable=True)
    time_taken_seconds = Column(Integer, nullable=True)
    weak_topics = Column(JSON, default=list)
    strong_topics = Column(JSON, default=list)

    paused_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<PracticeSession {self.session_type} {self.status}>"
