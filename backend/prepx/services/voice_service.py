"""
Voice Service - TTS voice catalogue, per-user voice settings, generation and cloning

Premium voices are gated by subscription tier: `pro` unlocks premium voices
except those marked `annual`, `annual` unlocks everything.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
import asyncio
import base64
import logging
import math

from prepx.core.config import settings
from prepx.core.database import background_session
from prepx.core.exceptions import (
    ExternalServiceError,
    ResourceNotFoundError,
    UpgradeRequiredError,
    ValidationError,
)
from prepx.models.voice import (
    ACCESSIBILITY_DEFAULTS,
    CloneStatus,
    GenerationStatus,
    TTSGenerationLog,
    TTSProvider,
    VoiceClone,
    VoiceOption,
    VoicePreference,
    VoiceStylePreset,
)
from prepx.services.subscription_service import subscription_service
from prepx.utils.http_client import http_client

logger = logging.getLogger(__name__)

FILTERS = {
    "genders": ["male", "female", "neutral"],
    "accents": ["indian_english", "american", "british", "australian"],
    "styles": ["professor", "mentor", "peer", "narrator", "enthusiastic"],
}

STYLE_DESCRIPTIONS = {
    "professor": "Formal, detailed explanations with academic precision",
    "mentor": "Warm, encouraging guidance with motivational elements",
    "peer": "Casual, relatable explanations like a friend",
}

DEFAULT_STYLE_PRESETS = [
    {
        "style_type": "professor",
        "name": "Professor",
        "prompt_prefix": "In a formal, precise academic tone, explain:",
        "ssml_config": {"rate": "95%", "pitch": "-2%", "emphasis": "moderate"},
    },
    {
        "style_type": "mentor",
        "name": "Mentor",
        "prompt_prefix": "In a warm, encouraging voice, guide the aspirant through:",
        "ssml_config": {"rate": "100%", "pitch": "0%", "emphasis": "moderate"},
    },
    {
        "style_type": "peer",
        "name": "Peer",
        "prompt_prefix": "Casually, like a friend who just studied this, explain:",
        "ssml_config": {"rate": "105%", "pitch": "+2%", "emphasis": "none"},
    },
    {
        "style_type": "narrator",
        "name": "Narrator",
        "prompt_prefix": "As a documentary narrator, present:",
        "ssml_config": {"rate": "92%", "pitch": "-3%", "emphasis": "reduced"},
    },
    {
        "style_type": "enthusiastic",
        "name": "Enthusiastic",
        "prompt_prefix": "With high energy and excitement, share:",
        "ssml_config": {"rate": "110%", "pitch": "+4%", "emphasis": "strong"},
    },
]

SPEED_OPTIONS = {
    "speeds": [
        {"value": 0.75, "label": "0.75x (Slow)", "description": "For complex topics"},
        {"value": 0.9, "label": "0.9x", "description": "Slightly slower"},
        {"value": 1.0, "label": "1.0x (Normal)", "description": "Default speed"},
        {"value": 1.1, "label": "1.1x", "description": "Slightly faster"},
        {"value": 1.25, "label": "1.25x (Fast)", "description": "For review"},
        {"value": 1.5, "label": "1.5x (Very Fast)", "description": "Quick revision"},
    ],
    "default": 1.0,
    "min": 0.75,
    "max": 1.5,
    "step": 0.05,
}

ACCESSIBILITY_OPTIONS = {
    "enhanced_clarity": {"label": "Enhanced Clarity", "description": "Clearer pronunciation for better understanding"},
    "bass_boost": {"label": "Bass Boost", "description": "Deeper voice for hearing comfort"},
    "noise_reduction": {"label": "Noise Reduction", "description": "Reduce background noise in generated audio"},
    "auto_captions": {"label": "Auto Captions", "description": "Generate captions for all voice content"},
    "sign_language_overlay": {"label": "Sign Language Overlay", "description": "Add sign language interpretation (when available)"},
}

CLONE_REQUIREMENTS = {
    "min_duration_seconds": 60,
    "max_file_size_mb": 50,
    "supported_formats": ["mp3", "wav", "m4a", "ogg"],
}

SAMPLE_TEXT = (
    "Welcome to your personalized UPSC learning journey. I'll be your guide as we explore "
    "the fascinating world of Indian polity and governance."
)
STYLE_SAMPLE_TEXT = (
    "The Indian Constitution was adopted on November 26, 1949 and came into effect on "
    "January 26, 1950, making India a sovereign democratic republic."
)

MAX_TEXT_LENGTH = 5000
CHARS_PER_SECOND = 15
DEFAULT_PROVIDER_VOICE = "alloy"
CLONE_VALIDITY = timedelta(days=365)
CLONE_PROCESSING_DELAY = 5  # seconds
POPULAR_LIMIT = 5


def has_voice_access(is_premium: bool, required_tier: Optional[str], user_tier: str) -> bool:
    """Premium voices need a paid tier; voices marked `annual` need the annual plan"""
    if not is_premium:
        return True
    if user_tier == "annual":
        return True
    return user_tier in settings.PRO_TIERS and required_tier != "annual"


def estimate_duration(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_SECOND)


def updated_rating(avg_rating: float, use_count: int, rating: int) -> float:
    if not avg_rating:
        return float(rating)
    return round((avg_rating * use_count + rating) / (use_count + 1), 2)


class VoiceService:
    """TTS customisation for the spoken AI tutor"""

    # ==================== CATALOGUE ====================

    @staticmethod
    def serialize_voice(voice: VoiceOption, user_tier: Optional[str] = None) -> Dict[str, Any]:
        data = {
            "id": voice.id,
            "voice_id": voice.voice_id,
            "name": voice.name,
            "gender": voice.gender,
            "accent": voice.accent,
            "style": voice.style,
            "description": voice.description,
            "sample_audio_url": voice.sample_audio_url,
            "is_premium": voice.is_premium,
            "required_tier": voice.required_tier,
            "use_count": voice.use_count,
            "avg_rating": voice.avg_rating,
        }
        if user_tier is not None:
            data["has_access"] = has_voice_access(voice.is_premium, voice.required_tier, user_tier)
        return data

    async def _get_voice(self, db: AsyncSession, voice_id: str) -> VoiceOption:
        result = await db.execute(select(VoiceOption).where(VoiceOption.id == voice_id))
        voice = result.scalar_one_or_none()
        if not voice:
            raise ResourceNotFoundError("Voice", voice_id, message="Voice not found")
        return voice

    async def list_voices(
        self,
        db: AsyncSession,
        user_id: Optional[str] = None,
        gender: Optional[str] = None,
        accent: Optional[str] = None,
        style: Optional[str] = None,
    ) -> Dict[str, Any]:
        tier = await subscription_service.get_user_tier(db, user_id) if user_id else "free"
        query = select(VoiceOption).where(VoiceOption.is_active == True)  # noqa: E712
        if gender:
            query = query.where(VoiceOption.gender == gender)
        if accent:
            query = query.where(VoiceOption.accent == accent)
        if style:
            query = query.where(VoiceOption.style == style)
        result = await db.execute(query.order_by(VoiceOption.display_order))
        return {
            "success": True,
            "voices": [self.serialize_voice(v, tier) for v in result.scalars().all()],
            "user_tier": tier,
            "filters": FILTERS,
        }

    async def preview(self, db: AsyncSession, user_id: Optional[str], voice_id: Optional[str]) -> Dict[str, Any]:
        if not voice_id:
            raise ValidationError("Voice ID required", field="voice_id")
        voice = await self._get_voice(db, voice_id)

        if voice.is_premium and user_id:
            tier = await subscription_service.get_user_tier(db, user_id)
            if not has_voice_access(voice.is_premium, voice.required_tier, tier):
                return {
                    "success": True,
                    "voice": self.serialize_voice(voice),
                    "preview_available": False,
                    "upgrade_required": True,
                    "required_tier": voice.required_tier,
                }
        return {
            "success": True,
            "voice": self.serialize_voice(voice),
            "preview_available": True,
            "sample_url": voice.sample_audio_url,
            "sample_text": SAMPLE_TEXT,
        }

    async def popular(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(VoiceOption)
            .where(VoiceOption.is_active == True)  # noqa: E712
            .order_by(VoiceOption.use_count.desc(), VoiceOption.avg_rating.desc())
            .limit(POPULAR_LIMIT)
        )
        return [self.serialize_voice(v) for v in result.scalars().all()]

    async def providers(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(select(TTSProvider).where(TTSProvider.is_active == True))  # noqa: E712
        return [
            {"id": p.id, "name": p.name, "slug": p.slug, "is_premium": p.is_premium, "features": p.features or []}
            for p in result.scalars().all()
        ]

    @staticmethod
    def speed_options() -> Dict[str, Any]:
        return SPEED_OPTIONS

    @staticmethod
    def accessibility_options() -> Dict[str, Any]:
        return {
            key: {**option, "default": ACCESSIBILITY_DEFAULTS[key]}
            for key, option in ACCESSIBILITY_OPTIONS.items()
        }

    # ==================== STYLES ====================

    async def _ensure_style_presets(self, db: AsyncSession) -> List[VoiceStylePreset]:
        result = await db.execute(select(VoiceStylePreset).order_by(VoiceStylePreset.display_order))
        presets = list(result.scalars().all())
        if presets:
            return presets

        for order, preset in enumerate(DEFAULT_STYLE_PRESETS):
            row = VoiceStylePreset(display_order=order, **preset)
            db.add(row)
            presets.append(row)
        await db.commit()
        logger.info(f"Seeded {len(presets)} voice style presets")
        return presets

    async def list_styles(self, db: AsyncSession) -> Dict[str, Any]:
        presets = await self._ensure_style_presets(db)
        return {
            "success": True,
            "styles": [
                {
                    "style_type": p.style_type,
                    "name": p.name,
                    "prompt_prefix": p.prompt_prefix,
                    "ssml_config": p.ssml_config or {},
                }
                for p in presets
            ],
            "descriptions": STYLE_DESCRIPTIONS,
        }

    async def preview_style(self, db: AsyncSession, style: str, text: Optional[str] = None) -> Dict[str, Any]:
        presets = await self._ensure_style_presets(db)
        preset = next((p for p in presets if p.style_type == style), None)
        if not preset:
            raise ResourceNotFoundError("Style", style, message="Style not found")
        sample = text or STYLE_SAMPLE_TEXT
        return {
            "success": True,
            "style": {"style_type": preset.style_type, "name": preset.name},
            "preview_text": sample,
            "styled_prompt": f"{preset.prompt_prefix} {sample}",
            "ssml_config": preset.ssml_config or {},
        }

    # ==================== PREFERENCES ====================

    async def _get_preference(self, db: AsyncSession, user_id: str) -> Optional[VoicePreference]:
        result = await db.execute(select(VoicePreference).where(VoicePreference.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_preferences(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        pref = await self._get_preference(db, user_id)
        if not pref:
            return {
                "voice": None,
                "speed": 1.0,
                "style": "mentor",
                "pitch_adjustment": 0.0,
                "accessibility": dict(ACCESSIBILITY_DEFAULTS),
                "apply_globally": True,
            }

        voice = None
        if pref.voice_option_id:
            result = await db.execute(select(VoiceOption).where(VoiceOption.id == pref.voice_option_id))
            option = result.scalar_one_or_none()
            voice = self.serialize_voice(option) if option else None
        return {
            "voice": voice,
            "speed": pref.speed,
            "style": pref.style,
            "pitch_adjustment": pref.pitch_adjustment,
            "accessibility": {**ACCESSIBILITY_DEFAULTS, **(pref.accessibility or {})},
            "apply_globally": pref.apply_globally,
        }

    async def _require_access(self, db: AsyncSession, user_id: str, voice: VoiceOption) -> None:
        if not voice.is_premium:
            return
        tier = await subscription_service.get_user_tier(db, user_id)
        if not has_voice_access(voice.is_premium, voice.required_tier, tier):
            raise UpgradeRequiredError(
                "Premium voice requires subscription upgrade",
                required_tier=voice.required_tier,
            )

    async def save_preferences(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        """
        Raises:
            UpgradeRequiredError: premium voice not covered by the user's tier
        """
        if data.voice_option_id:
            voice = await self._get_voice(db, data.voice_option_id)
            await self._require_access(db, user_id, voice)
        if data.style and data.style not in FILTERS["styles"]:
            raise ValidationError("Invalid style", field="style")

        pref = await self._get_preference(db, user_id)
        if not pref:
            pref = VoicePreference(user_id=user_id, accessibility=dict(ACCESSIBILITY_DEFAULTS))
            db.add(pref)

        updates = data.model_dump(exclude_unset=True)
        if "accessibility" in updates:
            pref.accessibility = {**ACCESSIBILITY_DEFAULTS, **(updates.pop("accessibility") or {})}
        for field, value in updates.items():
            if value is not None:
                setattr(pref, field, value)
        await db.commit()

        return {
            "success": True,
            "preferences": await self.get_preferences(db, user_id),
            "message": "Voice preferences saved",
        }

    # ==================== GENERATION ====================

    async def generate(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        """
        Synthesize speech for `text` with the requested or preferred voice.

        Raises:
            ValidationError: empty or over-long text
            ExternalServiceError: TTS provider failure (logged as failed)
        """
        text = data.text or ""
        if not text:
            raise ValidationError("Text required", field="text")
        if len(text) > MAX_TEXT_LENGTH:
            raise ValidationError(f"Text too long (max {MAX_TEXT_LENGTH} chars)", field="text")

        pref = await self._get_preference(db, user_id)
        voice = None
        voice_option_id = data.voice_id or (pref.voice_option_id if pref else None)
        if voice_option_id:
            voice = await self._get_voice(db, voice_option_id)
            await self._require_access(db, user_id, voice)
        speed = data.speed or (pref.speed if pref else 1.0)

        log = TTSGenerationLog(
            user_id=user_id,
            voice_option_id=voice.id if voice else None,
            text_length=len(text),
            context_type=data.context_type or "other",
            context_id=data.context_id,
            status=GenerationStatus.PENDING.value,
        )
        db.add(log)
        await db.flush()

        try:
            audio = await http_client.post_for_bytes(
                "tts",
                settings.TTS_API_URL,
                {
                    "model": settings.TTS_MODEL,
                    "input": text,
                    "voice": voice.voice_id if voice else DEFAULT_PROVIDER_VOICE,
                    "speed": speed,
                },
                headers={"Authorization": f"Bearer {settings.TTS_API_KEY}"},
            )
        except ExternalServiceError as e:
            log.status = GenerationStatus.FAILED.value
            log.error_message = e.message
            await db.commit()
            raise

        log.status = GenerationStatus.READY.value
        log.characters_billed = len(text)
        if voice:
            voice.use_count = (voice.use_count or 0) + 1
        await db.commit()

        return {
            "success": True,
            "audio_base64": base64.b64encode(audio).decode(),
            "duration_seconds": estimate_duration(text),
            "log_id": log.id,
        }

    # ==================== CLONES ====================

    @staticmethod
    def serialize_clone(clone: VoiceClone) -> Dict[str, Any]:
        return {
            "id": clone.id,
            "name": clone.name,
            "status": clone.status,
            "processing_progress": clone.processing_progress,
            "provider_voice_id": clone.provider_voice_id,
            "source_duration_seconds": clone.source_duration_seconds,
            "is_active": clone.is_active,
            "expires_at": clone.expires_at,
            "created_at": clone.created_at,
        }

    async def list_clones(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(VoiceClone).where(VoiceClone.user_id == user_id).order_by(VoiceClone.created_at.desc())
        )
        return {
            "success": True,
            "clones": [self.serialize_clone(c) for c in result.scalars().all()],
            "clone_limit": settings.VOICE_CLONE_LIMIT,
            "requirements": CLONE_REQUIREMENTS,
        }

    async def create_clone(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        """
        Register a clone request; processing finishes in the background.

        Raises:
            UpgradeRequiredError: free tier
            ValidationError: no consent, short sample or clone limit reached
        """
        tier = await subscription_service.get_user_tier(db, user_id)
        if tier == "free":
            raise UpgradeRequiredError("Voice cloning requires Pro subscription", required_tier="pro")
        if not data.consent_given:
            raise ValidationError("Consent required for voice cloning", field="consent_given")
        if data.source_duration_seconds < CLONE_REQUIREMENTS["min_duration_seconds"]:
            raise ValidationError("Minimum 60 seconds of audio required for voice cloning", field="source_duration_seconds")

        active = await db.execute(
            select(func.count(VoiceClone.id)).where(
                VoiceClone.user_id == user_id,
                VoiceClone.is_active == True,  # noqa: E712
            )
        )
        if (active.scalar() or 0) >= settings.VOICE_CLONE_LIMIT:
            raise ValidationError(
                f"Maximum {settings.VOICE_CLONE_LIMIT} voice clones allowed. Delete an existing clone to create a new one."
            )

        provider = await db.execute(select(TTSProvider).where(TTSProvider.slug == "elevenlabs"))
        provider_row = provider.scalar_one_or_none()
        now = datetime.utcnow()
        clone = VoiceClone(
            user_id=user_id,
            provider_id=provider_row.id if provider_row else None,
            name=data.name or "My Voice",
            source_audio_url=data.source_audio_url,
            source_duration_seconds=data.source_duration_seconds,
            status=CloneStatus.PROCESSING.value,
            consent_given=True,
            consent_timestamp=now,
            expires_at=now + CLONE_VALIDITY,
        )
        db.add(clone)
        await db.commit()
        logger.info(f"Voice clone {clone.id} started for user {user_id}")

        return {
            "success": True,
            "clone": self.serialize_clone(clone),
            "message": "Voice cloning started. This typically takes 2-5 minutes.",
            "estimated_time_seconds": 300,
        }

    async def finish_clone(self, clone_id: str, delay: float = CLONE_PROCESSING_DELAY) -> None:
        """Background task: mark a processing clone ready in its own DB session"""
        await asyncio.sleep(delay)
        async with background_session() as db:
            result = await db.execute(select(VoiceClone).where(VoiceClone.id == clone_id))
            clone = result.scalar_one_or_none()
            if not clone or clone.status != CloneStatus.PROCESSING.value:
                return
            clone.status = CloneStatus.READY.value
            clone.processing_progress = 100
            clone.provider_voice_id = f"clone_{clone.id[:8]}"
            await db.commit()
            logger.info(f"Voice clone {clone_id} ready")

    async def delete_clone(self, db: AsyncSession, user_id: str, clone_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(VoiceClone).where(VoiceClone.id == clone_id, VoiceClone.user_id == user_id)
        )
        clone = result.scalar_one_or_none()
        if not clone:
            raise ResourceNotFoundError("Voice clone", clone_id)
        clone.is_active = False
        await db.commit()
        return {"success": True, "message": "Voice clone deleted"}

    # ==================== RATINGS ====================

    async def rate_voice(self, db: AsyncSession, voice_id: str, rating: int) -> Dict[str, Any]:
        if rating < 1 or rating > 5:
            raise ValidationError("Rating must be 1-5", field="rating")
        voice = await self._get_voice(db, voice_id)
        voice.avg_rating = updated_rating(voice.avg_rating, voice.use_count or 0, rating)
        await db.commit()
        return {"success": True, "new_rating": voice.avg_rating}


# Singleton instance
voice_service = VoiceService()
