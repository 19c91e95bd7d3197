"""
Subscription and entitlement models

- Subscription: one row per user holding tier + lifecycle status
- SubscriptionEvent: append-only history (canceled, extended, reactivated...)
- Entitlement: per-feature usage counters for free-tier users
"""
from sqlalchemy import Column, String, DateTime, Integer, Boolean, ForeignKey, Enum as SQLEnum, JSON, Index
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class SubscriptionTier(str, enum.Enum):
    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"
    ANNUAL = "annual"


class SubscriptionStatus(str, enum.Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"


class LimitType(str, enum.Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    UNLIMITED = "unlimited"


class Subscription(Base):
    """User subscription"""
    __tablename__ = "subscriptions"

    __table_args__ = (
        Index('ix_subscriptions_user_status', 'user_id', 'status'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    tier = Column(SQLEnum(SubscriptionTier), default=SubscriptionTier.PRO, nullable=False)
    status = Column(SQLEnum(SubscriptionStatus), default=SubscriptionStatus.TRIAL, nullable=False)

    trial_expires_at = Column(DateTime, nullable=True)
    subscription_expires_at = Column(DateTime, nullable=True)
    auto_renew = Column(Boolean, default=True, nullable=False)
    canceled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_currently_active(self) -> bool:
        """Active and not past its expiry"""
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        return self.subscription_expires_at is None or self.subscription_expires_at > datetime.utcnow()

    def __repr__(self):
        return f"<Subscription {self.user_id} {self.tier.value}/{self.status.value}>"


class SubscriptionEvent(Base):
    """Subscription lifecycle history"""
    __tablename__ = "subscription_events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    subscription_id = Column(GUID, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_type = Column(String(50), nullable=False)  # canceled, extended, reactivated, created
    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    event_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SubscriptionEvent {self.event_type} {self.subscription_id}>"


class Entitlement(Base):
    """Per-feature usage counter for free tier"""
    __tablename__ = "entitlements"

    __table_args__ = (
        Index('ix_entitlements_user_feature', 'user_id', 'feature_slug', unique=True),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    feature_slug = Column(String(100), nullable=False)
    limit_type = Column(SQLEnum(LimitType), default=LimitType.DAILY, nullable=False)
    limit_value = Column(Integer, default=3, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    last_reset_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Entitlement {self.feature_slug} {self.usage_count}/{self.limit_value}>"
