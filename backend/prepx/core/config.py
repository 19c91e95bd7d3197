from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


def parse_csv_list(v: Any) -> List[str]:
    """Parse a comma-separated setting into a list of lowercase values"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        return [item.strip().lower() for item in v.split(',') if item.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "PrepX AI"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"
    SITE_URL: str = "http://localhost:3000"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # ==========================================
    # Claude AI
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    CLAUDE_HAIKU_MODEL: str = "claude-3-5-haiku-20241022"
    CLAUDE_SONNET_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 2000
    CLAUDE_TEMPERATURE: float = 0.7
    CLAUDE_REQUEST_TIMEOUT: int = 120
    CLAUDE_CONNECT_TIMEOUT: int = 30
    CLAUDE_MAX_RETRIES: int = 3
    CLAUDE_RETRY_BASE_DELAY: float = 2.0  # seconds
    CLAUDE_RETRY_MAX_DELAY: float = 30.0  # seconds

    # ==========================================
    # External services (TTS, render VPS, RAG)
    # ==========================================
    TTS_API_URL: str = "https://api.a4f.co/v1/audio/speech"
    TTS_API_KEY: str = ""
    TTS_MODEL: str = "tts-1"
    VPS_MANIM_URL: str = "http://localhost:8101"
    VPS_REVIDEO_URL: str = "http://localhost:8102"
    VPS_RAG_URL: str = "http://localhost:8103"
    EXTERNAL_HTTP_TIMEOUT: float = 30.0
    RAG_SEARCH_TIMEOUT: float = 5.0

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)
    INTERNAL_SERVICE_KEY: str = ""  # Shared secret for service-to-service hooks

    # ==========================================
    # Social publishing OAuth
    # ==========================================
    YOUTUBE_CLIENT_ID: str = ""
    YOUTUBE_CLIENT_SECRET: str = ""
    META_APP_ID: str = ""  # Instagram + Facebook
    META_APP_SECRET: str = ""
    TWITTER_CLIENT_ID: str = ""
    TWITTER_CLIENT_SECRET: str = ""
    TELEGRAM_BOT_TOKEN: str = ""
    SOCIAL_OAUTH_REDIRECT_URI: str = "http://localhost:3000/admin/social/callback"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:3001,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = "memory://"  # e.g. redis://localhost:6379/1
    MAX_REQUEST_SIZE: int = 10485760  # 10MB

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # ==========================================
    # Feature limits
    # ==========================================
    ASSISTANT_FREE_DAILY_LIMIT: int = 50
    ASSISTANT_PRO_DAILY_LIMIT: int = 9999
    QUESTION_GEN_FREE_DAILY_LIMIT: int = 5
    QUESTION_GEN_PRO_DAILY_LIMIT: int = 9999
    FREE_ENTITLEMENT_DAILY_LIMIT: int = 3
    REFERRAL_MONTHLY_REWARD_CAP: int = 10
    REFERRAL_REWARD_DAYS: int = 30
    REFERRAL_MAX_PER_SOURCE: int = 3  # referrals allowed per IP / device fingerprint
    VOICE_CLONE_LIMIT: int = 3
    PRO_TIERS_STR: str = "pro,premium,annual"

    @property
    def PRO_TIERS(self) -> List[str]:
        """Subscription tiers that unlock pro features"""
        return parse_csv_list(self.PRO_TIERS_STR)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
