"""
Teaching-assistant chat, preference and check-in schemas

Preference values are validated in the service so an invalid style returns
the plain 400 message the dashboard displays.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime


class AssistantMessageRequest(BaseModel):
    message: Optional[str] = None
    session_id: Optional[str] = Field(None, max_length=36)


class PreferencesUpdate(BaseModel):
    teaching_style: Optional[str] = None
    tone: Optional[str] = None
    depth_level: Optional[int] = None
    language: Optional[str] = None
    use_examples: Optional[bool] = None
    include_mnemonics: Optional[bool] = None
    suggest_practice: Optional[bool] = None


class PreferencesPreviewRequest(PreferencesUpdate):
    question: Optional[str] = None


class CheckinCreate(BaseModel):
    mood: int = Field(..., ge=1, le=5, description="1 = struggling, 5 = great")
    study_hours: float = Field(0, ge=0, le=24)
    note: Optional[str] = Field(None, max_length=2000)


class ConversationTurnResponse(BaseModel):
    id: str
    session_id: str
    message_text: str
    response_text: Optional[str] = None
    follow_up_suggestions: List[str] = []
    sources_used: List[Dict[str, Any]] = []
    confidence_score: Optional[float] = None
    response_time_ms: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PresetResponse(BaseModel):
    slug: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    teaching_style: str
    tone: str
    depth_level: int
    language: str = "english"
    use_examples: bool = True
    include_mnemonics: bool = True
    suggest_practice: bool = True

    class Config:
        from_attributes = True


class CheckinResponse(BaseModel):
    id: str
    checkin_date: date
    mood: int
    study_hours: float
    note: Optional[str] = None
    message: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
