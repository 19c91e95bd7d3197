"""
Subscription, entitlement and referral schemas
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any
from datetime import datetime


# ============== Subscription Schemas ==============

class SubscriptionResponse(BaseModel):
    id: str
    tier: str
    status: str
    trial_expires_at: Optional[datetime] = None
    subscription_expires_at: Optional[datetime] = None
    auto_renew: bool
    canceled_at: Optional[datetime] = None
    created_at: datetime

    @field_validator('tier', 'status', mode='before')
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)

    class Config:
        from_attributes = True


class EntitlementCheckRequest(BaseModel):
    """feature_slug is checked in the service so a blank value gets the 400 message"""
    feature_slug: Optional[str] = None
    increment_usage: bool = False


class EntitlementCheckResult(BaseModel):
    allowed: bool
    reason: str
    upgrade_required: bool = False
    usage: Optional[Dict[str, Any]] = None


# ============== Referral Schemas ==============

class ReferralTrackRequest(BaseModel):
    code: Optional[str] = None
    device_fingerprint: Optional[str] = Field(None, max_length=255)


class ReferralRewardRequest(BaseModel):
    referred_user_id: str
