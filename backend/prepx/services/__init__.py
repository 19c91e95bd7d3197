from prepx.services.subscription_service import SubscriptionService, subscription_service
from prepx.services.referral_service import ReferralService, referral_service
from prepx.services.bookmark_service import BookmarkService, bookmark_service

# AI-backed study services
from prepx.services.assistant_service import AssistantService, assistant_service
from prepx.services.assistant_preferences_service import AssistantPreferencesService, assistant_preferences_service
from prepx.services.question_service import QuestionService, question_service
from prepx.services.difficulty_service import DifficultyService, difficulty_service
from prepx.services.practice_service import PracticeService, practice_service
from prepx.services.predictor_service import PredictorService, predictor_service
from prepx.services.ethics_service import EthicsService, ethics_service

# Community and media
from prepx.services.community_service import CommunityService, community_service
from prepx.services.social_service import SocialService, social_service
from prepx.services.voice_service import VoiceService, voice_service
from prepx.services.documentary_service import DocumentaryService, documentary_service

__all__ = [
    "SubscriptionService", "subscription_service",
    "ReferralService", "referral_service",
    "BookmarkService", "bookmark_service",
    "AssistantService", "assistant_service",
    "AssistantPreferencesService", "assistant_preferences_service",
    "QuestionService", "question_service",
    "DifficultyService", "difficulty_service",
    "PracticeService", "practice_service",
    "PredictorService", "predictor_service",
    "EthicsService", "ethics_service",
    "CommunityService", "community_service",
    "SocialService", "social_service",
    "VoiceService", "voice_service",
    "DocumentaryService", "documentary_service",
]
