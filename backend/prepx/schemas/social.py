"""
Social auto-publisher schemas (admin team)
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime


# ============== Post Schemas ==============

class SocialPostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    caption: str = ""
    hashtags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(default_factory=list)
    platforms: List[str] = Field(..., min_length=1)
    content_type: Optional[str] = None
    source_content_id: Optional[str] = None
    account_id: Optional[str] = None
    schedule: bool = False
    scheduled_at: Optional[datetime] = None

    @field_validator('hashtags')
    @classmethod
    def strip_hash(cls, v):
        return [h.strip().lstrip('#') for h in v if h and h.strip()]


class SocialPostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    caption: Optional[str] = None
    hashtags: Optional[List[str]] = None
    media_urls: Optional[List[str]] = None
    account_id: Optional[str] = None


class ScheduleRequest(BaseModel):
    scheduled_at: Optional[datetime] = None


# ============== Account Schemas ==============

class ConnectAccountRequest(BaseModel):
    platform: str
    code: Optional[str] = None
    bot_token: Optional[str] = None
    channel_id: Optional[str] = None
    redirect_uri: Optional[str] = None


# ============== Team Schemas ==============

class TeamMemberAdd(BaseModel):
    email: str
    role: str = "editor"
    can_publish: bool = False
    can_schedule: bool = True
    can_connect_accounts: bool = False
    can_manage_team: bool = False


class DisclaimerUpdate(BaseModel):
    platform: str
    content_type: Optional[str] = None
    disclaimer_text: str = Field(..., min_length=1)
    is_required: bool = True
    placement: str = "end"


class AnalyticsSync(BaseModel):
    views: int = Field(0, ge=0)
    likes: int = Field(0, ge=0)
    comments: int = Field(0, ge=0)
    shares: int = Field(0, ge=0)
    saves: int = Field(0, ge=0)
    platform_metrics: Dict[str, Any] = Field(default_factory=dict)
