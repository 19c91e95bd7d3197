from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
import hmac
import secrets
import string
from fastapi import HTTPException, status, Header

from prepx.core.config import settings
from prepx.core.exceptions import AuthenticationError

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def generate_referral_code(length: int = 8) -> str:
    """Random uppercase alphanumeric referral code"""
    return ''.join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def generate_state_token() -> str:
    """Opaque state value for OAuth round-trips"""
    return secrets.token_urlsafe(24)


async def verify_service_key(x_service_key: Optional[str] = Header(None)) -> None:
    """Guard for internal service-to-service hooks (e.g. payment webhook -> referral reward)"""
    expected = settings.INTERNAL_SERVICE_KEY
    if not expected or not x_service_key or not hmac.compare_digest(x_service_key, expected):
        raise AuthenticationError("Invalid service key")
