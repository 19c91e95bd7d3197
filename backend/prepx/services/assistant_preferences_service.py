"""
Assistant preferences, presets and motivational check-ins
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import date, timedelta
from typing import Optional, List, Dict, Any
import random
import logging

from prepx.core.exceptions import AIServiceError, ResourceNotFoundError, ValidationError
from prepx.models.assistant import AssistantPreferences, AssistantPreset, StudyCheckin, DEFAULT_PREFERENCES
from prepx.utils.claude_client import claude_client

logger = logging.getLogger(__name__)

TEACHING_STYLES = {
    "concise": "Give brief, to-the-point explanations with key facts only. Use bullet points.",
    "detailed": "Provide comprehensive explanations covering all aspects with full context.",
    "example_heavy": "Use lots of real-world examples, stories, and analogies to explain concepts.",
    "socratic": "Ask guiding questions to help the student discover answers themselves. Be inquiry-based.",
}
TONES = {
    "formal": "Be professional and academic in your responses.",
    "friendly": "Be warm, approachable, and conversational.",
    "motivational": "Be encouraging, positive, and inspiring. Celebrate progress.",
    "strict": "Be direct and demanding like a serious mentor. Push for excellence.",
}
DEPTH_LEVELS = {
    1: "Explain like I am a complete beginner with no prior knowledge (ELI5).",
    2: "Explain for someone starting their UPSC preparation with basic understanding.",
    3: "Explain for an intermediate UPSC aspirant with foundational knowledge.",
    4: "Explain at an advanced level for serious aspirants with solid preparation.",
    5: "Explain at postgraduate/expert level with academic depth and nuance.",
}
LANGUAGES = {
    "english": "Respond in English.",
    "hindi": "Respond in Hindi (Devanagari script).",
    "hinglish": "Respond in Hinglish (mix of Hindi and English, as commonly spoken).",
}

PREFERENCE_OPTIONS = {
    "teaching_styles": [
        {"id": "concise", "name": "Concise", "description": "Brief, to-the-point explanations"},
        {"id": "detailed", "name": "Detailed", "description": "Comprehensive with full context"},
        {"id": "example_heavy", "name": "Example-Heavy", "description": "Lots of real-world examples"},
        {"id": "socratic", "name": "Socratic", "description": "Question-driven, discovery-based"},
    ],
    "tones": [
        {"id": "formal", "name": "Formal", "description": "Professional and academic"},
        {"id": "friendly", "name": "Friendly", "description": "Warm and conversational"},
        {"id": "motivational", "name": "Motivational", "description": "Encouraging and inspiring"},
        {"id": "strict", "name": "Strict", "description": "Direct and demanding"},
    ],
    "languages": [
        {"id": "english", "name": "English"},
        {"id": "hindi", "name": "Hindi"},
        {"id": "hinglish", "name": "Hinglish"},
    ],
}

DEFAULT_PRESETS = [
    {"slug": "beginner_friendly", "name": "Beginner Friendly", "icon": "🌱",
     "description": "Simple explanations with lots of examples",
     "teaching_style": "example_heavy", "tone": "friendly", "depth_level": 1},
    {"slug": "advanced_scholar", "name": "Advanced Scholar", "icon": "🎓",
     "description": "In-depth academic explanations",
     "teaching_style": "detailed", "tone": "formal", "depth_level": 5},
    {"slug": "quick_revision", "name": "Quick Revision", "icon": "⚡",
     "description": "Concise bullet points for fast review",
     "teaching_style": "concise", "tone": "friendly", "depth_level": 3, "use_examples": False},
    {"slug": "motivational_coach", "name": "Motivational Coach", "icon": "💪",
     "description": "Encouraging and goal-oriented",
     "teaching_style": "detailed", "tone": "motivational", "depth_level": 3},
]

PREVIEW_QUESTION = "What is the significance of the Preamble to the Indian Constitution?"
PREVIEW_STYLE_INTROS = {
    "concise": (
        "**Key Points:**\n"
        "• The Preamble declares India as a Sovereign, Socialist, Secular, Democratic Republic\n"
        "• Contains ideals of Justice, Liberty, Equality, and Fraternity\n"
        "• Amended once in 1976 (42nd Amendment)"
    ),
    "detailed": (
        "The Preamble to the Indian Constitution serves as an introduction and guiding light for the "
        "entire document. Adopted on November 26, 1949, it encapsulates the fundamental values and "
        "philosophy that our nation aspires to achieve..."
    ),
    "example_heavy": (
        "Think of the Preamble like a company's mission statement - it tells everyone what India stands "
        "for! Just like a founding charter guides an organisation's decisions, our Preamble guides our laws..."
    ),
    "socratic": (
        "Before we discuss the Preamble's significance, let me ask you: What do you think defines a "
        "nation's identity? What values would you want in your ideal country's founding document?"
    ),
}
PREVIEW_TONE_ADDITIONS = {
    "formal": "\n\nThis constitutional provision has been the subject of extensive judicial interpretation.",
    "friendly": "\n\nPretty fascinating, right? The founders really thought this through!",
    "motivational": "\n\nRemember, understanding this deeply will give you an edge in both Prelims and Mains! You've got this!",
    "strict": "\n\nMake sure you memorize these key terms. There's no shortcut to success.",
}

# mood 1 (struggling) .. 5 (great)
CHECKIN_MESSAGES = {
    1: [
        "Tough days are part of every UPSC journey. Rest, reset, and tomorrow try just one small topic. We're in this together. 💙",
        "It's okay to feel low. Even toppers had days like this. Be kind to yourself and take it one step at a time.",
    ],
    2: [
        "Not your best day, and that's fine. A short 20-minute revision session can lift your confidence.",
        "Progress isn't always visible. Pick one weak area and spend a little time on it today.",
    ],
    3: [
        "Steady effort wins this marathon. Keep showing up and the results will follow!",
        "A balanced day! Try a quick set of PYQs to keep your momentum going.",
    ],
    4: [
        "Great energy today! Channel it into a topic you've been postponing.",
        "You're doing well! Consistency like this builds strong foundations.",
    ],
    5: [
        "Fantastic! You're on fire today. Keep this momentum going! 🔥",
        "Brilliant mood! This is the perfect day to attempt a full mock test. 🌟",
    ],
}
CHECKIN_HISTORY_LIMIT = 30


def build_preference_lines(preferences: Dict[str, Any]) -> List[str]:
    """Prompt bullet lines for a preferences dict; unknown values use the defaults"""
    prefs = preferences or {}
    lines = [
        f"- {TEACHING_STYLES.get(prefs.get('teaching_style'), TEACHING_STYLES['detailed'])}",
        f"- {TONES.get(prefs.get('tone'), TONES['friendly'])}",
        f"- {DEPTH_LEVELS.get(prefs.get('depth_level'), DEPTH_LEVELS[3])}",
        f"- {LANGUAGES.get(prefs.get('language'), LANGUAGES['english'])}",
    ]
    if prefs.get("use_examples", True):
        lines.append("- Include relevant examples and analogies.")
    if prefs.get("include_mnemonics", True):
        lines.append("- Use mnemonics or memory aids when helpful.")
    if prefs.get("suggest_practice", True):
        lines.append("- Suggest practice questions at the end.")
    return lines


def mock_preview(style: Optional[str], tone: Optional[str]) -> str:
    return PREVIEW_STYLE_INTROS.get(style, PREVIEW_STYLE_INTROS["detailed"]) + PREVIEW_TONE_ADDITIONS.get(tone, "")


def validate_preferences(data: Dict[str, Any]) -> None:
    if data.get("teaching_style") is not None and data["teaching_style"] not in TEACHING_STYLES:
        raise ValidationError("Invalid teaching style", field="teaching_style")
    if data.get("tone") is not None and data["tone"] not in TONES:
        raise ValidationError("Invalid tone", field="tone")
    if data.get("depth_level") is not None and not 1 <= data["depth_level"] <= 5:
        raise ValidationError("Depth level must be 1-5", field="depth_level")
    if data.get("language") is not None and data["language"] not in LANGUAGES:
        raise ValidationError("Invalid language", field="language")


def checkin_streak(dates: List[date], today: Optional[date] = None) -> int:
    """Consecutive check-in days ending today (or yesterday)"""
    today = today or date.today()
    days = set(dates)
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


class AssistantPreferencesService:
    """Teaching-style preferences, presets, preview and check-ins"""

    # ==================== PREFERENCES ====================

    async def _get_row(self, db: AsyncSession, user_id: str) -> Optional[AssistantPreferences]:
        result = await db.execute(select(AssistantPreferences).where(AssistantPreferences.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_preferences(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        row = await self._get_row(db, user_id)
        return row.to_dict() if row else dict(DEFAULT_PREFERENCES)

    async def _upsert(self, db: AsyncSession, user_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        row = await self._get_row(db, user_id)
        if not row:
            row = AssistantPreferences(user_id=user_id, **DEFAULT_PREFERENCES)
            db.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        await db.commit()
        return row.to_dict()

    async def save_preferences(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        values = data.model_dump(exclude_none=True)
        validate_preferences(values)
        values["active_preset"] = None
        preferences = await self._upsert(db, user_id, values)
        return {"success": True, "message": "Preferences saved", "preferences": preferences}

    async def reset_preferences(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        preferences = await self._upsert(db, user_id, dict(DEFAULT_PREFERENCES))
        return {"success": True, "message": "Preferences reset to defaults", "preferences": preferences}

    # ==================== PRESETS ====================

    async def list_presets(self, db: AsyncSession) -> List[AssistantPreset]:
        result = await db.execute(select(AssistantPreset).order_by(AssistantPreset.name))
        presets = list(result.scalars().all())
        if presets:
            return presets

        for definition in DEFAULT_PRESETS:
            db.add(AssistantPreset(**definition))
        await db.commit()
        result = await db.execute(select(AssistantPreset).order_by(AssistantPreset.name))
        return list(result.scalars().all())

    async def apply_preset(self, db: AsyncSession, user_id: str, slug: str) -> Dict[str, Any]:
        presets = {p.slug: p for p in await self.list_presets(db)}
        preset = presets.get(slug)
        if not preset:
            raise ResourceNotFoundError("Preset", slug, message="Preset not found")

        preferences = await self._upsert(db, user_id, {
            "teaching_style": preset.teaching_style,
            "tone": preset.tone,
            "depth_level": preset.depth_level,
            "language": preset.language or "english",
            "active_preset": preset.slug,
            "use_examples": preset.use_examples,
            "include_mnemonics": preset.include_mnemonics,
            "suggest_practice": preset.suggest_practice,
        })
        logger.info(f"User {user_id} applied assistant preset {slug}")
        return {"success": True, "message": f'Preset "{preset.name}" applied', "preferences": preferences}

    # ==================== PREVIEW ====================

    async def preview(self, data) -> Dict[str, Any]:
        values = data.model_dump(exclude_none=True)
        validate_preferences(values)
        question = values.pop("question", None) or PREVIEW_QUESTION
        style_applied = {k: values.get(k) for k in ("teaching_style", "tone", "depth_level", "language")}

        if claude_client.is_configured:
            system_prompt = (
                "You are a UPSC teaching assistant.\n\nSTYLE INSTRUCTIONS:\n"
                + "\n".join(build_preference_lines(values)[:4])
                + "\n\nKeep your response brief (150-200 words) for this preview. "
                "This is a preview of your teaching style."
            )
            try:
                result = await claude_client.generate(
                    question, system_prompt=system_prompt, model="haiku", max_tokens=400, temperature=0.7
                )
                return {
                    "preview": result["content"],
                    "style_applied": style_applied,
                    "sample_question": question,
                    "source": "ai",
                }
            except AIServiceError as e:
                logger.warning(f"Preference preview fell back to mock: {e.message}")

        return {
            "preview": mock_preview(values.get("teaching_style"), values.get("tone")),
            "style_applied": style_applied,
            "sample_question": question,
            "source": "mock",
        }

    # ==================== CHECK-INS ====================

    async def _checkin_dates(self, db: AsyncSession, user_id: str) -> List[date]:
        result = await db.execute(select(StudyCheckin.checkin_date).where(StudyCheckin.user_id == user_id))
        return list(result.scalars().all())

    async def create_checkin(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        """One check-in per day; a second one the same day replaces the first"""
        today = date.today()
        message = random.choice(CHECKIN_MESSAGES[data.mood])

        result = await db.execute(
            select(StudyCheckin).where(StudyCheckin.user_id == user_id, StudyCheckin.checkin_date == today)
        )
        checkin = result.scalar_one_or_none()
        if checkin:
            checkin.mood = data.mood
            checkin.study_hours = data.study_hours
            checkin.note = data.note
            checkin.message = message
        else:
            checkin = StudyCheckin(
                user_id=user_id,
                checkin_date=today,
                mood=data.mood,
                study_hours=data.study_hours,
                note=data.note,
                message=message,
            )
            db.add(checkin)
        await db.commit()

        streak = checkin_streak(await self._checkin_dates(db, user_id), today)
        return {"success": True, "checkin": checkin, "message": message, "streak": streak}

    async def get_checkins(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(StudyCheckin)
            .where(StudyCheckin.user_id == user_id)
            .order_by(StudyCheckin.checkin_date.desc())
            .limit(CHECKIN_HISTORY_LIMIT)
        )
        checkins = list(result.scalars().all())
        return {
            "checkins": checkins,
            "streak": checkin_streak(await self._checkin_dates(db, user_id)),
            "average_mood": round(sum(c.mood for c in checkins) / len(checkins), 1) if checkins else None,
        }


# Singleton instance
assistant_preferences_service = AssistantPreferencesService()
