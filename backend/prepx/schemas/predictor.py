from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import date, datetime


class PerformanceUpdate(BaseModel):
    topic_id: str
    attempts: int = Field(0, ge=0)
    correct: int = Field(0, ge=0)
    study_hours: float = Field(0, ge=0)


class ReportCreate(BaseModel):
    report_type: str = "full"
    filters: Dict[str, Any] = Field(default_factory=dict)
    subject: Optional[str] = None


class PerformanceResponse(BaseModel):
    id: str
    topic_id: str
    questions_attempted: int
    questions_correct: int
    study_hours: float
    proficiency_level: str
    last_attempt_date: Optional[date] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    id: str
    report_type: str
    filter_criteria: Dict[str, Any] = {}
    status: str
    content: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
