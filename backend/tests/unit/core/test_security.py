"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, referral codes, service key guard
"""
import pytest
from datetime import timedelta
from jose import jwt
from fastapi import HTTPException

from prepx.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_token,
    generate_referral_code,
    generate_state_token,
    verify_service_key,
    REFERRAL_CODE_ALPHABET,
)
from prepx.core.config import settings


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        """Test that hashing returns a different value than input"""
        password = "testpassword123"
        hashed = get_password_hash(password)

        assert hashed != password
        assert len(hashed) > 0

    def test_hash_password_different_each_time(self):
        """Test that hashing same password returns different hashes"""
        password = "testpassword123"

        # Bcrypt generates different salts
        assert get_password_hash(password) != get_password_hash(password)

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("wrongpassword", hashed) is False

    def test_hash_long_password_truncated(self):
        """Test that long passwords are truncated to bcrypt limit"""
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True


class TestJWTTokens:
    """Test access token creation and decoding"""

    def test_create_access_token_round_trip(self):
        token = create_access_token({"sub": "user-123", "role": "student"})
        payload = decode_token(token)

        assert payload["sub"] == "user-123"
        assert payload["role"] == "student"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_custom_expiry(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(minutes=5))
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        assert payload["sub"] == "user-123"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(minutes=-1))

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401

    def test_tampered_token_rejected(self):
        token = jwt.encode({"sub": "user-123"}, "some-other-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401


class TestReferralCodes:
    """Test referral code and OAuth state generation"""

    def test_referral_code_shape(self):
        code = generate_referral_code()

        assert len(code) == 8
        assert all(ch in REFERRAL_CODE_ALPHABET for ch in code)
        assert code == code.upper()

    def test_referral_code_custom_length(self):
        assert len(generate_referral_code(12)) == 12

    def test_referral_codes_vary(self):
        codes = {generate_referral_code() for _ in range(20)}
        assert len(codes) > 1

    def test_state_token_is_url_safe(self):
        token = generate_state_token()

        assert len(token) >= 24
        assert "/" not in token and "+" not in token


class TestServiceKey:
    """Test the internal service-to-service guard"""

    @pytest.mark.asyncio
    async def test_valid_key_passes(self):
        assert await verify_service_key("test-service-key") is None

    @pytest.mark.asyncio
    async def test_missing_key_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            await verify_service_key(None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_key_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            await verify_service_key("not-the-key")
        assert exc_info.value.status_code == 401
