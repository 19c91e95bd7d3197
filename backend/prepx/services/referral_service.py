"""
Referral Service - referral codes, signup tracking and reward grants

A referrer is rewarded once per referral, when the referred user subscribes,
and at most REFERRAL_MONTHLY_REWARD_CAP times per calendar month.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import logging

from prepx.core.config import settings
from prepx.core.security import generate_referral_code
from prepx.core.types import enum_value
from prepx.models.user import User
from prepx.models.referral import Referral, ReferralStatus, RewardType
from prepx.models.subscription import Subscription, SubscriptionStatus, SubscriptionTier, SubscriptionEvent
from prepx.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class ReferralService:
    """Referral program"""

    async def ensure_referral_code(self, db: AsyncSession, user: User) -> str:
        """Return the user's code, generating a unique one on first use"""
        if user.referral_code:
            return user.referral_code

        for _ in range(10):
            code = generate_referral_code()
            taken = await db.execute(select(User.id).where(User.referral_code == code))
            if taken.scalar_one_or_none() is None:
                user.referral_code = code
                await db.commit()
                logger.info(f"Generated referral code for user {user.id}")
                return code

        raise RuntimeError("Could not generate a unique referral code")

    async def _monthly_reward_count(self, db: AsyncSession, referrer_id: str) -> int:
        result = await db.execute(
            select(func.count(Referral.id)).where(
                Referral.referrer_id == referrer_id,
                Referral.status == ReferralStatus.REWARDED,
                Referral.rewarded_at >= month_start(),
            )
        )
        return result.scalar() or 0

    async def get_my_referrals(self, db: AsyncSession, user: User) -> Dict[str, Any]:
        code = await self.ensure_referral_code(db, user)

        result = await db.execute(select(Referral).where(Referral.referrer_id == user.id))
        referrals = list(result.scalars().all())

        counts = {status.value: 0 for status in ReferralStatus}
        for referral in referrals:
            counts[enum_value(referral.status)] += 1

        return {
            "referral_code": code,
            "referral_link": f"{settings.SITE_URL}/signup?ref={code}",
            "stats": {
                "total": len(referrals),
                "signed_up": counts[ReferralStatus.SIGNED_UP.value],
                "subscribed": counts[ReferralStatus.SUBSCRIBED.value] + counts[ReferralStatus.REWARDED.value],
                "rewarded": counts[ReferralStatus.REWARDED.value],
                "pending": counts[ReferralStatus.PENDING.value],
            },
            "monthly_rewards": await self._monthly_reward_count(db, user.id),
            "max_monthly_rewards": settings.REFERRAL_MONTHLY_REWARD_CAP,
        }

    async def validate_code(self, db: AsyncSession, code: Optional[str]) -> Dict[str, Any]:
        if not code or not code.strip():
            return {"valid": False}
        result = await db.execute(select(User).where(User.referral_code == code.strip().upper()))
        referrer = result.scalar_one_or_none()
        if not referrer:
            return {"valid": False}
        return {"valid": True, "referrer_name": referrer.display_name}

    async def track_referral(
        self,
        db: AsyncSession,
        user: User,
        code: Optional[str],
        ip_address: Optional[str] = None,
        device_fingerprint: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Link a newly signed-up user to their referrer"""
        if not code or not code.strip():
            return {"success": False, "message": "Invalid referral code"}
        code = code.strip().upper()

        result = await db.execute(select(User).where(User.referral_code == code))
        referrer = result.scalar_one_or_none()
        if not referrer:
            return {"success": False, "message": "Invalid referral code"}

        if referrer.id == user.id:
            return {"success": False, "message": "Cannot refer yourself"}

        existing = await db.execute(select(Referral.id).where(Referral.referred_user_id == user.id))
        if existing.scalar_one_or_none() is not None or user.referred_by:
            return {"success": False, "message": "User already referred"}

        # Abuse check: too many signups from the same IP or device
        source_filters = []
        if ip_address:
            source_filters.append(Referral.ip_address == ip_address)
        if device_fingerprint:
            source_filters.append(Referral.device_fingerprint == device_fingerprint)
        if source_filters:
            same_source = await db.execute(select(func.count(Referral.id)).where(or_(*source_filters)))
            if (same_source.scalar() or 0) >= settings.REFERRAL_MAX_PER_SOURCE:
                logger.warning(f"Referral blocked for user {user.id}: too many from same source")
                return {"success": False, "message": "Too many referrals from this device or network"}

        referral = Referral(
            referrer_id=referrer.id,
            referred_user_id=user.id,
            referral_code=code,
            status=ReferralStatus.SIGNED_UP,
            ip_address=ip_address,
            device_fingerprint=device_fingerprint,
        )
        db.add(referral)
        user.referred_by = referrer.id
        await db.commit()

        logger.info(f"Referral tracked: {referrer.id} -> {user.id}")
        return {"success": True, "message": "Referral tracked", "referral_id": referral.id}

    async def grant_reward(self, db: AsyncSession, referred_user_id: str) -> Dict[str, Any]:
        """
        Reward the referrer of a user who just subscribed.

        Called by the payment flow through the service-key hook.
        """
        result = await db.execute(select(Referral).where(Referral.referred_user_id == referred_user_id))
        referral = result.scalar_one_or_none()
        if not referral:
            return {"success": True, "message": "No referral found for this user"}

        if referral.status == ReferralStatus.REWARDED:
            return {"success": True, "message": "Referral already rewarded"}

        referrer_id = referral.referrer_id
        if await self._monthly_reward_count(db, referrer_id) >= settings.REFERRAL_MONTHLY_REWARD_CAP:
            referral.status = ReferralStatus.SUBSCRIBED
            await db.commit()
            logger.info(f"Monthly reward cap reached for referrer {referrer_id}")
            return {"success": False, "message": "Monthly referral reward limit reached"}

        now = datetime.utcnow()
        extension = timedelta(days=settings.REFERRAL_REWARD_DAYS)

        sub_result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == referrer_id)
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        subscription = sub_result.scalar_one_or_none()

        if subscription and subscription.status == SubscriptionStatus.ACTIVE:
            base = subscription.subscription_expires_at
            if not base or base < now:
                base = now
            subscription.subscription_expires_at = base + extension
            reward_type = RewardType.SUBSCRIPTION_EXTENSION
            event_type = "extended"
        elif subscription is None:
            subscription = Subscription(
                user_id=referrer_id,
                tier=SubscriptionTier.PRO,
                status=SubscriptionStatus.ACTIVE,
                subscription_expires_at=now + extension,
                auto_renew=False,
            )
            db.add(subscription)
            await db.flush()
            reward_type = RewardType.FREE_MONTH
            event_type = "created"
        else:
            # trial, expired or canceled: reactivate for the reward period
            subscription.status = SubscriptionStatus.ACTIVE
            subscription.subscription_expires_at = now + extension
            subscription.canceled_at = None
            reward_type = RewardType.FREE_MONTH
            event_type = "reactivated"

        db.add(SubscriptionEvent(
            subscription_id=subscription.id,
            user_id=referrer_id,
            event_type=event_type,
            new_status=SubscriptionStatus.ACTIVE.value,
            event_metadata={"source": "referral", "referral_id": referral.id},
        ))

        referral.status = ReferralStatus.REWARDED
        referral.reward_type = reward_type
        referral.rewarded_at = now

        db.add(AuditLog(
            actor_id=None,
            action="referral_rewarded",
            target_type="referral",
            target_id=referral.id,
            details={
                "referrer_id": referrer_id,
                "referred_user_id": referred_user_id,
                "reward_type": reward_type.value,
            },
        ))
        await db.commit()

        logger.info(f"Referral reward granted to {referrer_id} ({reward_type.value})")
        return {
            "success": True,
            "message": "Referral reward granted",
            "reward_type": reward_type.value,
            "subscription_expires_at": subscription.subscription_expires_at,
        }


# Singleton instance
referral_service = ReferralService()
