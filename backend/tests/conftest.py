"""
PrepX AI - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['ANTHROPIC_API_KEY'] = ''  # AI features use their fallbacks
os.environ['INTERNAL_SERVICE_KEY'] = 'test-service-key'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'

from prepx.main import app
from prepx.core.database import Base, get_db
from prepx.models.user import User, UserRole
from prepx.models.subscription import Subscription, SubscriptionTier, SubscriptionStatus
from prepx.core.security import get_password_hash, create_access_token

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, password: str, role: UserRole) -> User:
    user = User(
        email=fake.unique.email(),
        hashed_password=get_password_hash(password),
        full_name=fake.name(),
        role=role,
        is_active=True,
        is_verified=True
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user"""
    return await _make_user(db_session, 'testpassword123', UserRole.STUDENT)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second student, for ownership checks"""
    return await _make_user(db_session, 'otherpassword123', UserRole.STUDENT)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await _make_user(db_session, 'adminpassword123', UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return _headers_for(test_user)


@pytest.fixture
def other_auth_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Generate authentication headers for admin user"""
    return _headers_for(admin_user)


@pytest.fixture
async def pro_subscription(db_session: AsyncSession, test_user: User) -> Subscription:
    """Active pro subscription for test_user"""
    subscription = Subscription(
        user_id=test_user.id,
        tier=SubscriptionTier.PRO,
        status=SubscriptionStatus.ACTIVE,
        subscription_expires_at=datetime.utcnow() + timedelta(days=30),
    )
    db_session.add(subscription)
    await db_session.commit()
    await db_session.refresh(subscription)
    return subscription


@pytest.fixture
async def expired_subscription(db_session: AsyncSession, test_user: User) -> Subscription:
    """Lapsed trial, so test_user falls back to free-tier counters"""
    subscription = Subscription(
        user_id=test_user.id,
        tier=SubscriptionTier.PRO,
        status=SubscriptionStatus.TRIAL,
        trial_expires_at=datetime.utcnow() - timedelta(days=1),
    )
    db_session.add(subscription)
    await db_session.commit()
    await db_session.refresh(subscription)
    return subscription
