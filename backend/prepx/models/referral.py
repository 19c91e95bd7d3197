"""
Referral model

A referral is created when a newly signed-up user arrives with ?ref=CODE.
The referrer is rewarded once, when the referred user subscribes.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum, Index
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    SIGNED_UP = "signed_up"
    SUBSCRIBED = "subscribed"
    REWARDED = "rewarded"


class RewardType(str, enum.Enum):
    SUBSCRIPTION_EXTENSION = "subscription_extension"
    FREE_MONTH = "free_month"


class Referral(Base):
    __tablename__ = "referrals"

    __table_args__ = (
        Index('ix_referrals_referrer', 'referrer_id'),
        Index('ix_referrals_ip', 'ip_address'),
        Index('ix_referrals_device', 'device_fingerprint'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    referrer_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    referred_user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    referral_code = Column(String(16), nullable=False)

    status = Column(SQLEnum(ReferralStatus), default=ReferralStatus.SIGNED_UP, nullable=False)
    reward_type = Column(SQLEnum(RewardType), nullable=True)
    rewarded_at = Column(DateTime, nullable=True)

    # Abuse checks
    ip_address = Column(String(45), nullable=True)
    device_fingerprint = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Referral {self.referral_code} -> {self.referred_user_id} ({self.status.value})>"
