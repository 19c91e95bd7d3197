"""
Referral program endpoints
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.core.security import verify_service_key
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.billing import ReferralTrackRequest, ReferralRewardRequest
from prepx.services.referral_service import referral_service


router = APIRouter()


@router.get("/me")
async def get_my_referrals(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Referral code, share link and conversion stats"""
    return await referral_service.get_my_referrals(db, current_user)


@router.get("/validate")
async def validate_referral_code(
    code: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    return await referral_service.validate_code(db, code)


@router.post("/track")
async def track_referral(
    request: Request,
    payload: ReferralTrackRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Attach the signed-up user to the owner of the code"""
    return await referral_service.track_referral(
        db,
        current_user,
        payload.code,
        ip_address=request.client.host if request.client else None,
        device_fingerprint=payload.device_fingerprint,
    )


@router.post("/reward", dependencies=[Depends(verify_service_key)])
async def reward_referrer(
    payload: ReferralRewardRequest,
    db: AsyncSession = Depends(get_db)
):
    """Internal hook called by the payment flow once a referred user subscribes"""
    return await referral_service.grant_reward(db, payload.referred_user_id)
