"""
Question bank models

- PYQuestion: previous-year exam questions (read-only seed data)
- GeneratedQuestion: AI-generated questions owned by a user
- QuestionAttempt: one answered question, from practice or the difficulty engine
- QuestionGenerationUsage: daily generation counter per user
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, ForeignKey, Text, Index, Date, JSON
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class QuestionType(str, enum.Enum):
    MCQ = "mcq"
    MAINS_150 = "mains_150"
    MAINS_250 = "mains_250"
    ESSAY = "essay"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionSource(str, enum.Enum):
    GENERATED = "generated"
    PYQ = "pyq"


class PYQuestion(Base):
    __tablename__ = "pyq_questions"

    __table_args__ = (
        Index('ix_pyq_subject_year', 'subject', 'year'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    year = Column(Integer, nullable=False)
    paper = Column(String(50), nullable=True)  # GS1, GS2, CSAT...
    subject = Column(String(50), nullable=False)
    topic = Column(String(255), nullable=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), default=QuestionType.MCQ.value, nullable=False)
    difficulty = Column(String(10), default=Difficulty.MEDIUM.value, nullable=False)
    options = Column(JSON, default=list)
    correct_answer = Column(String(10), nullable=True)
    explanation = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<PYQuestion {self.year} {self.subject}>"


class GeneratedQuestion(Base):
    __tablename__ = "generated_questions"

    __table_args__ = (
        Index('ix_generated_questions_user_created', 'user_id', 'created_at'),
        Index('ix_generated_questions_difficulty', 'difficulty'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    topic = Column(String(255), nullable=False)
    subject = Column(String(50), nullable=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(20), nullable=False)
    difficulty = Column(String(10), nullable=False)

    # mcq only: {options: [...], correct_answer: "A", explanations: {...}}
    options_json = Column(JSON, nullable=True)
    model_answer = Column(Text, nullable=True)
    key_points = Column(JSON, default=list)

    generation_metadata = Column(JSON, default=dict)
    quality_score = Column(Float, default=0.8, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def options(self):
        return (self.options_json or {}).get("options", [])

    @property
    def correct_answer(self):
        return (self.options_json or {}).get("correct_answer")

    @property
    def explanations(self):
        return (self.options_json or {}).get("explanations", {})

    def __repr__(self):
        return f"<GeneratedQuestion {self.question_type} {self.topic[:30]}>"


class QuestionAttempt(Base):
    __tablename__ = "question_attempts"

    __table_args__ = (
        Index('ix_question_attempts_user_created', 'user_id', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(String(36), nullable=False)
    question_source = Column(String(20), default=QuestionSource.GENERATED.value, nullable=False)
    difficulty = Column(String(10), nullable=False)
    is_correct = Column(Boolean, nullable=False)
    time_taken_seconds = Column(Integer, default=0, nullable=False)
    topic = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<QuestionAttempt {self.question_id} correct={self.is_correct}>"


class QuestionGenerationUsage(Base):
    __tablename__ = "question_generation_usage"

    __table_args__ = (
        Index('ix_question_gen_usage_user_date', 'user_id', 'usage_date', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    usage_date = Column(Date, nullable=False)
    questions_generated = Column(Integer, default=0, nullable=False)
    last_topic = Column(String(255), nullable=True)
    last_question_type = Column(String(20), nullable=True)
