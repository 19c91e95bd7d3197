from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime

from prepx.core.database import get_db
from prepx.core.security import verify_password, get_password_hash, create_access_token
from prepx.core.logging_config import logger, set_user_id
from prepx.models.user import User, UserRole
from prepx.schemas.auth import UserRegister, UserLogin, LoginResponse, UserResponse
from prepx.modules.auth.dependencies import get_current_user
from prepx.core.rate_limiter import limiter, auth_rate_limit
from prepx.services.referral_service import referral_service


router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _reject(event: str, email: str, client_ip: str, status_code: int, detail: str, reason: str) -> HTTPException:
    logger.log_auth_event(event=event, success=False, user_email=email, reason=reason, client_ip=client_ip)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new aspirant (rate limited: 3/min).

    A `referral_code` from a ?ref= link is tracked right away; an invalid
    code never blocks the signup.
    """
    client_ip = _client_ip(request)

    existing = await db.execute(select(User.id).where(User.email == user_data.email))
    if existing.scalar_one_or_none() is not None:
        raise _reject(
            "register", user_data.email, client_ip,
            status.HTTP_409_CONFLICT, "Email already registered", "Email already registered",
        )

    user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        role=UserRole.STUDENT,
        exam_stage=user_data.exam_stage,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    if user_data.referral_code:
        tracked = await referral_service.track_referral(db, user, user_data.referral_code, ip_address=client_ip)
        if not tracked["success"]:
            logger.info(f"Signup referral ignored for {user.email}: {tracked['message']}")

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        exam_stage=user.exam_stage,
        referred=bool(user.referred_by),
    )
    return user


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password (rate limited: 5/min)"""
    client_ip = _client_ip(request)

    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password or not verify_password(credentials.password, user.hashed_password):
        raise _reject(
            "login", credentials.email, client_ip,
            status.HTTP_401_UNAUTHORIZED, "Incorrect email or password", "Invalid credentials",
        )
    if not user.is_active:
        raise _reject(
            "login", credentials.email, client_ip,
            status.HTTP_403_FORBIDDEN, "User account is inactive", "Account inactive",
        )

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))
    logger.log_auth_event(event="login", success=True, user_email=user.email, client_ip=client_ip)

    access_token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return LoginResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user
