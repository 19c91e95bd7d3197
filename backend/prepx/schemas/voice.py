"""
Voice / TTS schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class VoicePreferencesUpdate(BaseModel):
    voice_option_id: Optional[str] = None
    speed: Optional[float] = Field(None, ge=0.75, le=1.5)
    style: Optional[str] = None
    pitch_adjustment: Optional[float] = Field(None, ge=-10, le=10)
    accessibility: Optional[Dict[str, Any]] = None
    apply_globally: Optional[bool] = None


class TTSGenerateRequest(BaseModel):
    text: Optional[str] = None
    voice_id: Optional[str] = None
    speed: Optional[float] = Field(None, ge=0.75, le=1.5)
    context_type: str = "other"
    context_id: Optional[str] = None


class VoiceCloneCreate(BaseModel):
    name: str = Field("My Voice", max_length=100)
    source_audio_url: Optional[str] = None
    source_duration_seconds: int = Field(..., ge=0)
    consent_given: bool = False


class StylePreviewRequest(BaseModel):
    style: str
    text: Optional[str] = None


class VoiceRating(BaseModel):
    voice_id: str
    rating: int
