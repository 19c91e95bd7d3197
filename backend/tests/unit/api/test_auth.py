"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()


class TestUserRegistration:
    """Test user registration endpoint"""

    @pytest.mark.asyncio
    async def test_register_success(self, client: AsyncClient):
        """Test successful user registration"""
        user_data = {
            'email': fake.email(),
            'password': 'securePassword123!',
            'full_name': fake.name(),
            'exam_stage': 'mains'
        }

        response = await client.post('/api/v1/auth/register', json=user_data)

        assert response.status_code == 201
        data = response.json()
        assert data['email'] == user_data['email']
        assert data['full_name'] == user_data['full_name']
        assert data['role'] == 'student'
        assert data['exam_stage'] == 'mains'
        assert 'id' in data
        assert 'hashed_password' not in data  # Should not expose password

    @pytest.mark.asyncio
    async def test_register_defaults_to_prelims(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'securePassword123!'
        })

        assert response.status_code == 201
        assert response.json()['exam_stage'] == 'prelims'

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, test_user):
        """Test registration with duplicate email fails"""
        response = await client.post('/api/v1/auth/register', json={
            'email': test_user.email,
            'password': 'securePassword123!'
        })

        assert response.status_code == 409
        assert 'already registered' in response.json()['detail'].lower()

    @pytest.mark.asyncio
    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': 'not-an-email',
            'password': 'securePassword123!'
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_short_password(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'short'
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_invalid_exam_stage(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'securePassword123!',
            'exam_stage': 'optional'
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_with_referral_code(self, client: AsyncClient, test_user, auth_headers):
        code = (await client.get('/api/v1/referrals/me', headers=auth_headers)).json()['referral_code']

        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'securePassword123!',
            'referral_code': code.lower()
        })
        assert response.status_code == 201

        stats = (await client.get('/api/v1/referrals/me', headers=auth_headers)).json()['stats']
        assert stats['total'] == 1

    @pytest.mark.asyncio
    async def test_register_with_unknown_referral_code(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'securePassword123!',
            'referral_code': 'NOPE0000'
        })

        assert response.status_code == 201


class TestUserLogin:
    """Test login endpoint"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, test_user):
        response = await client.post('/api/v1/auth/login', json={
            'email': test_user.email,
            'password': 'testpassword123'
        })

        assert response.status_code == 200
        data = response.json()
        assert data['token_type'] == 'bearer'
        assert data['access_token']
        assert data['user']['email'] == test_user.email

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, test_user):
        response = await client.post('/api/v1/auth/login', json={
            'email': test_user.email,
            'password': 'wrongpassword'
        })

        assert response.status_code == 401
        assert response.json()['detail'] == 'Incorrect email or password'

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/login', json={
            'email': fake.email(),
            'password': 'whatever123'
        })

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_inactive_user(self, client: AsyncClient, test_user, db_session):
        test_user.is_active = False
        await db_session.commit()

        response = await client.post('/api/v1/auth/login', json={
            'email': test_user.email,
            'password': 'testpassword123'
        })

        assert response.status_code == 403


class TestCurrentUser:
    """Test /me endpoint"""

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, test_user, auth_headers):
        response = await client.get('/api/v1/auth/me', headers=auth_headers)

        assert response.status_code == 200
        assert response.json()['id'] == str(test_user.id)

    @pytest.mark.asyncio
    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me')
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_with_bad_token(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me', headers={'Authorization': 'Bearer not-a-token'})
        assert response.status_code == 401
