"""
Question generation, adaptive difficulty and practice session schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime


# ============== Question Generation Schemas ==============

class QuestionGenerateRequest(BaseModel):
    """All fields optional here; the service returns the combined missing-fields message"""
    topic: Optional[str] = None
    subject: Optional[str] = None
    question_type: Optional[str] = None
    difficulty: Optional[str] = None
    count: Optional[int] = None


# ============== Difficulty Engine Schemas ==============

class DifficultyPredictRequest(BaseModel):
    question_text: Optional[str] = None
    question_type: Optional[str] = None
    use_ai: bool = False


class AttemptCreate(BaseModel):
    question_id: str
    question_source: str = "generated"
    difficulty: str = Field(..., pattern=r'^(easy|medium|hard)$')
    is_correct: bool
    time_taken_seconds: int = Field(0, ge=0)
    topic: Optional[str] = None


# ============== Practice Session Schemas ==============

class PracticeConfig(BaseModel):
    count: Optional[int] = Field(None, ge=1, le=100)
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    question_type: Optional[str] = None
    time_limit_minutes: Optional[int] = None


class PracticeSessionStart(BaseModel):
    session_type: Optional[str] = Field(None, description="pyq_practice, generated_practice or mixed")
    config: PracticeConfig = Field(default_factory=PracticeConfig)


class PracticeProgress(BaseModel):
    current_question_index: int = Field(0, ge=0)
    answers: Dict[str, Any] = Field(default_factory=dict)
    question_times: Dict[str, Any] = Field(default_factory=dict)
    elapsed_seconds: int = Field(0, ge=0)


class PracticeComplete(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    question_times: Dict[str, Any] = Field(default_factory=dict)
    time_taken_seconds: int = Field(0, ge=0)


class PracticeSessionResponse(BaseModel):
    id: str
    session_type: str
    session_config: Dict[str, Any] = {}
    questions: List[str] = []
    answers: Dict[str, Any] = {}
    status: str
    current_question_index: int = 0
    elapsed_seconds: int = 0
    score: Optional[int] = None
    accuracy: Optional[float] = None
    time_taken_seconds: Optional[int] = None
    weak_topics: List[str] = []
    strong_topics: List[str] = []
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
