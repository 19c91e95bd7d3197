"""
Unit Tests for subscription, entitlement and referral endpoints
"""
import pytest
from httpx import AsyncClient

SERVICE_HEADERS = {'X-Service-Key': 'test-service-key'}


class TestSubscriptionEndpoints:

    @pytest.mark.asyncio
    async def test_me_without_subscription(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/subscriptions/me', headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {'subscription': None, 'is_pro': False}

    @pytest.mark.asyncio
    async def test_me_with_pro(self, client: AsyncClient, auth_headers, pro_subscription):
        response = await client.get('/api/v1/subscriptions/me', headers=auth_headers)

        data = response.json()
        assert data['is_pro'] is True
        assert data['subscription']['tier'] == 'pro'
        assert data['subscription']['status'] == 'active'

    @pytest.mark.asyncio
    async def test_cancel(self, client: AsyncClient, auth_headers, pro_subscription):
        response = await client.post('/api/v1/subscriptions/cancel', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['success'] is True
        assert data['subscription']['status'] == 'canceled'

    @pytest.mark.asyncio
    async def test_cancel_without_subscription(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/subscriptions/cancel', headers=auth_headers)

        assert response.status_code == 404
        assert response.json()['success'] is False

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get('/api/v1/subscriptions/me')
        assert response.status_code == 401


class TestEntitlementEndpoint:
    """POST /entitlements/check"""

    @pytest.mark.asyncio
    async def test_missing_slug(self, client: AsyncClient, auth_headers, expired_subscription):
        response = await client.post('/api/v1/entitlements/check', headers=auth_headers, json={})

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_pro_allowed(self, client: AsyncClient, auth_headers, pro_subscription):
        response = await client.post(
            '/api/v1/entitlements/check', headers=auth_headers, json={'feature_slug': 'mock_test'}
        )

        assert response.status_code == 200
        assert response.json()['allowed'] is True

    @pytest.mark.asyncio
    async def test_free_limit_shows_paywall(self, client: AsyncClient, auth_headers, expired_subscription):
        body = {'feature_slug': 'mock_test', 'increment_usage': True}
        for _ in range(3):
            response = await client.post('/api/v1/entitlements/check', headers=auth_headers, json=body)
            assert response.status_code == 200

        response = await client.post('/api/v1/entitlements/check', headers=auth_headers, json=body)

        assert response.status_code == 403
        data = response.json()
        assert data['reason'] == 'limit_reached'
        assert data['show_paywall'] is True
        assert data['upgrade_cta'] == 'Upgrade to Pro for unlimited access'

    @pytest.mark.asyncio
    async def test_lapsed_trial_marked_expired(self, client: AsyncClient, auth_headers, expired_subscription):
        response = await client.post(
            '/api/v1/entitlements/check', headers=auth_headers, json={'feature_slug': 'mock_test'}
        )

        assert response.status_code == 200
        assert response.json()['reason'] == 'free_tier_within_limit'

        me = (await client.get('/api/v1/subscriptions/me', headers=auth_headers)).json()
        assert me['subscription']['status'] == 'expired'
        assert me['is_pro'] is False


class TestReferralEndpoints:
    """Referral program endpoints"""

    @pytest.mark.asyncio
    async def test_my_referrals(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/referrals/me', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data['referral_code']) == 8
        assert data['referral_link'].endswith(f"?ref={data['referral_code']}")
        assert data['stats']['total'] == 0

    @pytest.mark.asyncio
    async def test_track_validate_and_reward(
        self, client: AsyncClient, auth_headers, other_user, other_auth_headers
    ):
        code = (await client.get('/api/v1/referrals/me', headers=auth_headers)).json()['referral_code']

        validate = await client.get('/api/v1/referrals/validate', params={'code': code})
        assert validate.json()['valid'] is True

        tracked = await client.post(
            '/api/v1/referrals/track',
            headers=other_auth_headers,
            json={'code': code, 'device_fingerprint': 'fp-1'},
        )
        assert tracked.json()['success'] is True

        reward = await client.post(
            '/api/v1/referrals/reward',
            headers=SERVICE_HEADERS,
            json={'referred_user_id': str(other_user.id)},
        )
        assert reward.status_code == 200
        assert reward.json()['success'] is True

        stats = (await client.get('/api/v1/referrals/me', headers=auth_headers)).json()
        assert stats['stats']['rewarded'] == 1
        assert stats['monthly_rewards'] == 1

    @pytest.mark.asyncio
    async def test_reward_requires_service_key(self, client: AsyncClient, other_user):
        response = await client.post(
            '/api/v1/referrals/reward',
            headers={'X-Service-Key': 'wrong'},
            json={'referred_user_id': str(other_user.id)},
        )
        assert response.status_code == 401
        assert response.json()['error']['code'] == 'AUTH_FAILED'

    @pytest.mark.asyncio
    async def test_validate_unknown(self, client: AsyncClient):
        response = await client.get('/api/v1/referrals/validate', params={'code': 'XXXXXXXX'})
        assert response.json() == {'valid': False}
