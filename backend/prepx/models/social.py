"""
Social auto-publisher models (admin team tool)

Platforms and content types are static catalogues in the service layer; rows
here reference them by slug.
"""
from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, ForeignKey, Text, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from prepx.core.database import Base
from prepx.core.types import GUID, generate_uuid


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class QueueStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    CANCELLED = "cancelled"


class SocialTeamMember(Base):
    __tablename__ = "social_team_members"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    role = Column(String(20), default="editor", nullable=False)  # owner, admin, editor

    can_publish = Column(Boolean, default=False, nullable=False)
    can_schedule = Column(Boolean, default=True, nullable=False)
    can_connect_accounts = Column(Boolean, default=False, nullable=False)
    can_manage_team = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    invited_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def has_permission(self, permission: str) -> bool:
        if not self.is_active:
            return False
        flags = {
            "schedule": self.can_schedule,
            "publish": self.can_publish,
            "connect": self.can_connect_accounts,
            "manage_team": self.can_manage_team,
        }
        return bool(flags.get(permission, False))

    def __repr__(self):
        return f"<SocialTeamMember {self.user_id} {self.role}>"


class SocialAccount(Base):
    """A connected platform account (OAuth tokens or Telegram bot token)"""
    __tablename__ = "social_connected_accounts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    platform = Column(String(20), nullable=False, index=True)
    account_name = Column(String(255), nullable=False)
    account_handle = Column(String(255), nullable=True)
    external_account_id = Column(String(255), nullable=True)

    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    scopes = Column(JSON, default=list)
    status = Column(String(20), default=AccountStatus.ACTIVE.value, nullable=False)

    connected_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SocialAccount {self.platform} {self.account_name}>"


class SocialPost(Base):
    __tablename__ = "social_posts"

    __table_args__ = (
        Index('ix_social_posts_status_scheduled', 'status', 'scheduled_at'),
        Index('ix_social_posts_platform', 'platform'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    content_type = Column(String(50), nullable=True)
    source_content_id = Column(String(100), nullable=True)

    title = Column(String(500), nullable=False)
    caption = Column(Text, default="", nullable=False)
    hashtags = Column(JSON, default=list)
    media_urls = Column(JSON, default=list)

    platform = Column(String(20), nullable=False)
    account_id = Column(GUID, ForeignKey("social_connected_accounts.id", ondelete="SET NULL"), nullable=True)
    formatted_content = Column(JSON, default=dict)
    disclaimer = Column(Text, nullable=True)

    status = Column(String(20), default=PostStatus.DRAFT.value, nullable=False)
    scheduled_at = Column(DateTime, nullable=True)
    published_at = Column(DateTime, nullable=True)
    platform_post_id = Column(String(255), nullable=True)
    platform_url = Column(Text, nullable=True)

    approved_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    analytics = relationship("PostAnalytics", back_populates="post", uselist=False)

    def __repr__(self):
        return f"<SocialPost {self.platform} {self.status}>"


class PublishQueue(Base):
    __tablename__ = "social_publishing_queue"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    post_id = Column(GUID, ForeignKey("social_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)
    status = Column(String(20), default=QueueStatus.PENDING.value, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    next_attempt_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PostAnalytics(Base):
    __tablename__ = "social_post_analytics"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    post_id = Column(GUID, ForeignKey("social_posts.id", ondelete="CASCADE"), nullable=False, unique=True)
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    comments = Column(Integer, default=0, nullable=False)
    shares = Column(Integer, default=0, nullable=False)
    saves = Column(Integer, default=0, nullable=False)
    engagement_rate = Column(Float, default=0.0, nullable=False)
    platform_metrics = Column(JSON, default=dict)
    synced_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    post = relationship("SocialPost", back_populates="analytics")


class SocialDisclaimer(Base):
    __tablename__ = "social_disclaimers"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    platform = Column(String(20), nullable=False)
    content_type = Column(String(50), nullable=True)
    disclaimer_text = Column(Text, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)
    placement = Column(String(20), default="end", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
