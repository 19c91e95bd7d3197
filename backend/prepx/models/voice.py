"""
Voice / TTS customisation models
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, ForeignKey, Text, Index, JSON
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid

ACCESSIBILITY_DEFAULTS = {
    "enhanced_clarity": False,
    "bass_boost": False,
    "noise_reduction": True,
    "auto_captions": True,
    "sign_language_overlay": False,
}


class CloneStatus(str, enum.Enum):
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class GenerationStatus(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class TTSProvider(Base):
    __tablename__ = "tts_providers"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    slug = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    is_premium = Column(Boolean, default=False, nullable=False)
    features = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)


class VoiceOption(Base):
    __tablename__ = "voice_options"

    __table_args__ = (
        Index('ix_voice_options_active_order', 'is_active', 'display_order'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    provider_id = Column(GUID, ForeignKey("tts_providers.id", ondelete="SET NULL"), nullable=True)
    voice_id = Column(String(100), nullable=False)  # provider-side identifier
    name = Column(String(100), nullable=False)
    gender = Column(String(20), nullable=False)  # male, female, neutral
    accent = Column(String(30), nullable=False)  # indian_english, american, british, australian
    style = Column(String(30), nullable=False)  # professor, mentor, peer, narrator, enthusiastic
    description = Column(Text, nullable=True)
    sample_audio_url = Column(Text, nullable=True)

    is_premium = Column(Boolean, default=False, nullable=False)
    required_tier = Column(String(20), default="free", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    use_count = Column(Integer, default=0, nullable=False)
    avg_rating = Column(Float, default=0.0, nullable=False)

    def __repr__(self):
        return f"<VoiceOption {self.name} ({self.style})>"


class VoiceStylePreset(Base):
    __tablename__ = "voice_style_presets"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    style_type = Column(String(30), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    prompt_prefix = Column(Text, nullable=False)
    ssml_config = Column(JSON, default=dict)
    display_order = Column(Integer, default=0, nullable=False)


class VoicePreference(Base):
    __tablename__ = "voice_preferences"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    voice_option_id = Column(GUID, ForeignKey("voice_options.id", ondelete="SET NULL"), nullable=True)
    speed = Column(Float, default=1.0, nullable=False)
    style = Column(String(30), default="mentor", nullable=False)
    pitch_adjustment = Column(Float, default=0.0, nullable=False)
    accessibility = Column(JSON, default=lambda: dict(ACCESSIBILITY_DEFAULTS))
    apply_globally = Column(Boolean, default=True, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class VoiceClone(Base):
    __tablename__ = "voice_clones"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(GUID, ForeignKey("tts_providers.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(100), default="My Voice", nullable=False)
    source_audio_url = Column(Text, nullable=True)
    source_duration_seconds = Column(Integer, nullable=False)

    status = Column(String(20), default=CloneStatus.PROCESSING.value, nullable=False)
    processing_progress = Column(Integer, default=0, nullable=False)
    provider_voice_id = Column(String(100), nullable=True)

    consent_given = Column(Boolean, default=False, nullable=False)
    consent_timestamp = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TTSGenerationLog(Base):
    __tablename__ = "tts_generation_log"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    voice_option_id = Column(GUID, ForeignKey("voice_options.id", ondelete="SET NULL"), nullable=True)
    text_length = Column(Integer, nullable=False)
    context_type = Column(String(30), default="other", nullable=False)
    context_id = Column(String(100), nullable=True)

    status = Column(String(20), default=GenerationStatus.PENDING.value, nullable=False)
    characters_billed = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
