# API endpoints
from . import (
    auth, health, subscriptions, entitlements, referrals, bookmarks, assistant, questions,
    difficulty, practice, predictor, ethics, social, community, voice, documentary,
)

__all__ = [
    "auth", "health", "subscriptions", "entitlements", "referrals", "bookmarks", "assistant", "questions",
    "difficulty", "practice", "predictor", "ethics", "social", "community", "voice", "documentary",
]
