"""
Subscription Service - tier lookup, cancellation and feature entitlements

Handles:
- Resolving a user's effective tier (free unless an active paid subscription exists)
- Cancelling a subscription with an event + audit trail
- Free-tier per-feature usage counters (entitlements)
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import logging

from prepx.core.config import settings
from prepx.core.exceptions import ResourceNotFoundError, ValidationError
from prepx.core.types import enum_value
from prepx.models.subscription import (
    Subscription,
    SubscriptionTier,
    SubscriptionStatus,
    SubscriptionEvent,
    Entitlement,
    LimitType,
)
from prepx.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

CANCEL_MESSAGE = "Subscription cancelled. You will have access until the end of your billing period."


class SubscriptionService:
    """Subscription lifecycle and entitlement checks"""

    # ==================== LOOKUPS ====================

    async def get_latest_subscription(self, db: AsyncSession, user_id: str) -> Optional[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_user_tier(self, db: AsyncSession, user_id: str) -> str:
        """Tier of the most recent active subscription, else 'free'"""
        result = await db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        subscription = result.scalar_one_or_none()
        if not subscription:
            return SubscriptionTier.FREE.value
        return enum_value(subscription.tier)

    async def is_pro(self, db: AsyncSession, user_id: str) -> bool:
        tier = await self.get_user_tier(db, user_id)
        return tier in settings.PRO_TIERS

    async def get_subscription_summary(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        subscription = await self.get_latest_subscription(db, user_id)
        return {
            "subscription": subscription,
            "is_pro": await self.is_pro(db, user_id),
        }

    # ==================== CANCEL ====================

    async def cancel(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        """
        Cancel the user's current subscription.

        Raises:
            ResourceNotFoundError: user has no subscription
            ValidationError: subscription is not active
        """
        subscription = await self.get_latest_subscription(db, user_id)
        if not subscription:
            raise ResourceNotFoundError("Subscription", message="No subscription found")

        if subscription.status != SubscriptionStatus.ACTIVE:
            raise ValidationError(
                f"Cannot cancel a subscription with status '{enum_value(subscription.status)}'",
                field="status",
            )

        previous_status = enum_value(subscription.status)
        now = datetime.utcnow()
        subscription.status = SubscriptionStatus.CANCELED
        subscription.canceled_at = now
        subscription.auto_renew = False

        db.add(SubscriptionEvent(
            subscription_id=subscription.id,
            user_id=user_id,
            event_type="canceled",
            previous_status=previous_status,
            new_status=SubscriptionStatus.CANCELED.value,
            event_metadata={"canceled_at": now.isoformat()},
        ))
        db.add(AuditLog(
            actor_id=user_id,
            action="subscription_canceled",
            target_type="subscription",
            target_id=subscription.id,
            details={"previous_status": previous_status, "tier": enum_value(subscription.tier)},
        ))
        await db.commit()
        await db.refresh(subscription)

        logger.info(f"Subscription {subscription.id} canceled by user {user_id}")
        return {
            "success": True,
            "message": CANCEL_MESSAGE,
            "subscription": subscription,
        }

    # ==================== ENTITLEMENTS ====================

    async def check_entitlement(
        self,
        db: AsyncSession,
        user_id: str,
        feature_slug: Optional[str],
        increment_usage: bool = False,
    ) -> Dict[str, Any]:
        """
        Decide whether the user may use a feature.

        Paid (trial/active, unexpired) subscriptions always pass. Expired ones
        are flipped to 'expired' and fall through to the free-tier counters.
        """
        if not feature_slug or not feature_slug.strip():
            raise ValidationError("feature_slug is required", field="feature_slug")

        subscription = await self.get_latest_subscription(db, user_id)
        if not subscription:
            return {"allowed": False, "reason": "No subscription found"}

        now = datetime.utcnow()

        if subscription.status == SubscriptionStatus.TRIAL:
            if subscription.trial_expires_at and subscription.trial_expires_at > now:
                return {"allowed": True, "reason": "trial_active"}
            subscription.status = SubscriptionStatus.EXPIRED
            await db.commit()
            logger.info(f"Trial expired for user {user_id}")

        elif subscription.status == SubscriptionStatus.ACTIVE:
            if not subscription.subscription_expires_at or subscription.subscription_expires_at > now:
                return {"allowed": True, "reason": "subscription_active"}
            subscription.status = SubscriptionStatus.EXPIRED
            await db.commit()
            logger.info(f"Subscription expired for user {user_id}")

        return await self._check_free_tier(db, user_id, feature_slug.strip(), increment_usage)

    async def _check_free_tier(
        self,
        db: AsyncSession,
        user_id: str,
        feature_slug: str,
        increment_usage: bool,
    ) -> Dict[str, Any]:
        result = await db.execute(
            select(Entitlement).where(
                Entitlement.user_id == user_id,
                Entitlement.feature_slug == feature_slug,
            )
        )
        entitlement = result.scalar_one_or_none()
        now = datetime.utcnow()

        if not entitlement:
            entitlement = Entitlement(
                user_id=user_id,
                feature_slug=feature_slug,
                limit_type=LimitType.DAILY,
                limit_value=settings.FREE_ENTITLEMENT_DAILY_LIMIT,
                usage_count=1 if increment_usage else 0,
                last_reset_at=now,
            )
            db.add(entitlement)
            await db.commit()
            return {
                "allowed": True,
                "reason": "free_tier_within_limit",
                "usage": self._usage(entitlement),
            }

        if entitlement.limit_type == LimitType.UNLIMITED:
            return {"allowed": True, "reason": "unlimited"}

        if entitlement.limit_type == LimitType.DAILY and now - entitlement.last_reset_at > timedelta(days=1):
            entitlement.usage_count = 1 if increment_usage else 0
            entitlement.last_reset_at = now
            await db.commit()
            return {
                "allowed": True,
                "reason": "daily_limit_reset",
                "usage": self._usage(entitlement),
            }

        if entitlement.usage_count < entitlement.limit_value:
            if increment_usage:
                entitlement.usage_count += 1
                await db.commit()
            return {
                "allowed": True,
                "reason": "within_limit",
                "usage": self._usage(entitlement),
            }

        logger.info(f"Entitlement limit reached: user={user_id} feature={feature_slug}")
        return {
            "allowed": False,
            "reason": "limit_reached",
            "upgrade_required": True,
            "usage": self._usage(entitlement),
        }

    @staticmethod
    def _usage(entitlement: Entitlement) -> Dict[str, Any]:
        return {
            "used": entitlement.usage_count,
            "limit": entitlement.limit_value,
            "limit_type": enum_value(entitlement.limit_type),
        }


# Singleton instance
subscription_service = SubscriptionService()
