# Re-export all models for convenient imports
from prepx.models.user import User, UserRole
from prepx.models.subscription import (
    Subscription, SubscriptionTier, SubscriptionStatus, SubscriptionEvent, Entitlement, LimitType,
)
from prepx.models.audit_log import AuditLog
from prepx.models.referral import Referral, ReferralStatus, RewardType
from prepx.models.bookmark import (
    Bookmark, BookmarkCollection, BookmarkContentType, ReviewResponse, ReviewStreak, BookmarkReviewLog,
)
from prepx.models.assistant import (
    AssistantConversation, AssistantUsage, AssistantPreferences, AssistantPreset, StudyCheckin,
)
from prepx.models.question import (
    PYQuestion, GeneratedQuestion, QuestionAttempt, QuestionGenerationUsage,
    QuestionType, Difficulty, QuestionSource,
)
from prepx.models.practice import PracticeSession, PracticeSessionType, PracticeSessionStatus
from prepx.models.difficulty import DifficultyProgress, Badge, UserBadge
from prepx.models.prediction import (
    TopicPrediction, TopicPerformance, PredictionReport, PredictionModelHistory, TrendDirection, Proficiency,
)
from prepx.models.ethics import (
    EthicsScenario, EthicsStage, EthicsSession, EthicsResponse, EthicsReportCard, EthicsProfile,
    EthicsSessionStatus,
)
from prepx.models.social import (
    SocialTeamMember, SocialAccount, SocialPost, PublishQueue, PostAnalytics, SocialDisclaimer,
    PostStatus, AccountStatus, QueueStatus,
)
from prepx.models.community import Discussion, DiscussionReply
from prepx.models.voice import (
    VoiceOption, VoiceStylePreset, VoicePreference, VoiceClone, TTSProvider, TTSGenerationLog,
    CloneStatus, GenerationStatus,
)
from prepx.models.documentary import (
    DailyCurrentAffairs, WeeklyDocumentary, WeeklyDocSchedule, DocumentaryClip, RenderStatus, ScheduleStatus,
)

__all__ = [
    # User
    "User",
    "UserRole",
    # Billing
    "Subscription",
    "SubscriptionTier",
    "SubscriptionStatus",
    "SubscriptionEvent",
    "Entitlement",
    "LimitType",
    "AuditLog",
    # Referrals
    "Referral",
    "ReferralStatus",
    "RewardType",
    # Bookmarks
    "Bookmark",
    "BookmarkCollection",
    "BookmarkContentType",
    "ReviewResponse",
    "ReviewStreak",
    "BookmarkReviewLog",
    # Assistant
    "AssistantConversation",
    "AssistantUsage",
    "AssistantPreferences",
    "AssistantPreset",
    "StudyCheckin",
    # Questions / practice / difficulty
    "PYQuestion",
    "GeneratedQuestion",
    "QuestionAttempt",
    "QuestionGenerationUsage",
    "QuestionType",
    "Difficulty",
    "QuestionSource",
    "PracticeSession",
    "PracticeSessionType",
    "PracticeSessionStatus",
    "DifficultyProgress",
    "Badge",
    "UserBadge",
    # Predictor
    "TopicPrediction",
    "TopicPerformance",
    "PredictionReport",
    "PredictionModelHistory",
    "TrendDirection",
    "Proficiency",
    # Ethics
    "EthicsScenario",
    "EthicsStage",
    "EthicsSession",
    "EthicsResponse",
    "EthicsReportCard",
    "EthicsProfile",
    "EthicsSessionStatus",
    # Social
    "SocialTeamMember",
    "SocialAccount",
    "SocialPost",
    "PublishQueue",
    "PostAnalytics",
    "SocialDisclaimer",
    "PostStatus",
    "AccountStatus",
    "QueueStatus",
    # Community
    "Discussion",
    "DiscussionReply",
    # Voice
    "VoiceOption",
    "VoiceStylePreset",
    "VoicePreference",
    "VoiceClone",
    "TTSProvider",
    "TTSGenerationLog",
    "CloneStatus",
    "GenerationStatus",
    # Documentary
    "DailyCurrentAffairs",
    "WeeklyDocumentary",
    "WeeklyDocSchedule",
    "DocumentaryClip",
    "RenderStatus",
    "ScheduleStatus",
]
