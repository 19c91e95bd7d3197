"""
Unit Tests for subscription entitlements and the referral program (database backed)
"""
import pytest
from datetime import datetime, timedelta
from sqlalchemy import select

from prepx.core.exceptions import ResourceNotFoundError, ValidationError
from prepx.models.referral import Referral, ReferralStatus
from prepx.models.subscription import Entitlement, LimitType, Subscription, SubscriptionStatus, SubscriptionEvent
from prepx.services.subscription_service import subscription_service
from prepx.services.referral_service import referral_service, month_start


class TestEntitlements:
    """check_entitlement() decisions"""

    @pytest.mark.asyncio
    async def test_slug_required(self, db_session, test_user):
        with pytest.raises(ValidationError):
            await subscription_service.check_entitlement(db_session, test_user.id, "  ")

    @pytest.mark.asyncio
    async def test_no_subscription(self, db_session, test_user):
        result = await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")
        assert result == {"allowed": False, "reason": "No subscription found"}

    @pytest.mark.asyncio
    async def test_active_subscription_allowed(self, db_session, test_user, pro_subscription):
        result = await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")
        assert result == {"allowed": True, "reason": "subscription_active"}

    @pytest.mark.asyncio
    async def test_active_trial_allowed(self, db_session, test_user):
        db_session.add(Subscription(
            user_id=test_user.id,
            status=SubscriptionStatus.TRIAL,
            trial_expires_at=datetime.utcnow() + timedelta(days=3),
        ))
        await db_session.commit()

        result = await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")
        assert result["reason"] == "trial_active"

    @pytest.mark.asyncio
    async def test_expired_trial_uses_free_counter(self, db_session, test_user, expired_subscription):
        result = await subscription_service.check_entitlement(
            db_session, test_user.id, "mock_test", increment_usage=True
        )

        assert result["allowed"] is True
        assert result["reason"] == "free_tier_within_limit"
        assert result["usage"] == {"used": 1, "limit": 3, "limit_type": "daily"}

        await db_session.refresh(expired_subscription)
        assert expired_subscription.status == SubscriptionStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_free_limit_reached(self, db_session, test_user, expired_subscription):
        for _ in range(3):
            result = await subscription_service.check_entitlement(
                db_session, test_user.id, "mock_test", increment_usage=True
            )
            assert result["allowed"] is True

        result = await subscription_service.check_entitlement(
            db_session, test_user.id, "mock_test", increment_usage=True
        )

        assert result["allowed"] is False
        assert result["reason"] == "limit_reached"
        assert result["upgrade_required"] is True
        assert result["usage"]["used"] == 3

    @pytest.mark.asyncio
    async def test_check_without_increment(self, db_session, test_user, expired_subscription):
        await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")
        result = await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")

        assert result["reason"] == "within_limit"
        assert result["usage"]["used"] == 0

    @pytest.mark.asyncio
    async def test_daily_counter_rolls_over(self, db_session, test_user, expired_subscription):
        db_session.add(Entitlement(
            user_id=test_user.id,
            feature_slug="mock_test",
            limit_type=LimitType.DAILY,
            limit_value=3,
            usage_count=3,
            last_reset_at=datetime.utcnow() - timedelta(days=1, hours=2),
        ))
        await db_session.commit()

        result = await subscription_service.check_entitlement(
            db_session, test_user.id, "mock_test", increment_usage=True
        )

        assert result["allowed"] is True
        assert result["reason"] == "daily_limit_reset"
        assert result["usage"] == {"used": 1, "limit": 3, "limit_type": "daily"}

    @pytest.mark.asyncio
    async def test_counter_not_reset_within_a_day(self, db_session, test_user, expired_subscription):
        db_session.add(Entitlement(
            user_id=test_user.id,
            feature_slug="mock_test",
            limit_type=LimitType.DAILY,
            limit_value=3,
            usage_count=3,
            last_reset_at=datetime.utcnow() - timedelta(hours=20),
        ))
        await db_session.commit()

        result = await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")

        assert result["reason"] == "limit_reached"

    @pytest.mark.asyncio
    async def test_lapsed_paid_subscription_expires(self, db_session, test_user):
        subscription = Subscription(
            user_id=test_user.id,
            status=SubscriptionStatus.ACTIVE,
            subscription_expires_at=datetime.utcnow() - timedelta(hours=1),
        )
        db_session.add(subscription)
        await db_session.commit()

        result = await subscription_service.check_entitlement(db_session, test_user.id, "mock_test")

        assert result["reason"] == "free_tier_within_limit"
        await db_session.refresh(subscription)
        assert subscription.status == SubscriptionStatus.EXPIRED


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_active(self, db_session, test_user, pro_subscription):
        result = await subscription_service.cancel(db_session, test_user.id)

        assert result["success"] is True
        assert result["subscription"].status == SubscriptionStatus.CANCELED
        assert result["subscription"].auto_renew is False

        events = await db_session.execute(select(SubscriptionEvent).where(SubscriptionEvent.user_id == test_user.id))
        assert [e.event_type for e in events.scalars().all()] == ["canceled"]

    @pytest.mark.asyncio
    async def test_cancel_without_subscription(self, db_session, test_user):
        with pytest.raises(ResourceNotFoundError):
            await subscription_service.cancel(db_session, test_user.id)

    @pytest.mark.asyncio
    async def test_cancel_inactive(self, db_session, test_user, expired_subscription):
        with pytest.raises(ValidationError):
            await subscription_service.cancel(db_session, test_user.id)


class TestReferrals:
    """Referral tracking and rewards"""

    def test_month_start(self):
        assert month_start(datetime(2024, 3, 17, 10, 30)) == datetime(2024, 3, 1)

    @pytest.mark.asyncio
    async def test_code_generated_once(self, db_session, test_user):
        first = await referral_service.ensure_referral_code(db_session, test_user)
        second = await referral_service.ensure_referral_code(db_session, test_user)

        assert first == second
        assert len(first) == 8

    @pytest.mark.asyncio
    async def test_validate_code(self, db_session, test_user):
        code = await referral_service.ensure_referral_code(db_session, test_user)

        assert (await referral_service.validate_code(db_session, code.lower()))["valid"] is True
        assert await referral_service.validate_code(db_session, "NOPE0000") == {"valid": False}
        assert await referral_service.validate_code(db_session, "") == {"valid": False}

    @pytest.mark.asyncio
    async def test_track_and_reward(self, db_session, test_user, other_user):
        code = await referral_service.ensure_referral_code(db_session, test_user)

        tracked = await referral_service.track_referral(db_session, other_user, code, ip_address="10.0.0.1")
        assert tracked["success"] is True
        assert other_user.referred_by == test_user.id

        again = await referral_service.track_referral(db_session, other_user, code)
        assert again == {"success": False, "message": "User already referred"}

        reward = await referral_service.grant_reward(db_session, other_user.id)
        assert reward["success"] is True

        referral = (await db_session.execute(
            select(Referral).where(Referral.referred_user_id == other_user.id)
        )).scalar_one()
        assert referral.status == ReferralStatus.REWARDED

        # referrer had no subscription, so the reward creates one
        assert await subscription_service.is_pro(db_session, test_user.id) is True

        repeat = await referral_service.grant_reward(db_session, other_user.id)
        assert repeat["message"] == "Referral already rewarded"

    @pytest.mark.asyncio
    async def test_self_referral_rejected(self, db_session, test_user):
        code = await referral_service.ensure_referral_code(db_session, test_user)

        result = await referral_service.track_referral(db_session, test_user, code)
        assert result == {"success": False, "message": "Cannot refer yourself"}

    @pytest.mark.asyncio
    async def test_invalid_code(self, db_session, test_user):
        result = await referral_service.track_referral(db_session, test_user, "ZZZZZZZZ")
        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_reward_without_referral(self, db_session, test_user):
        result = await referral_service.grant_reward(db_session, test_user.id)
        assert result == {"success": True, "message": "No referral found for this user"}
