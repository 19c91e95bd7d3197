"""
Subscription endpoints - current plan and cancellation
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.billing import SubscriptionResponse
from prepx.services.subscription_service import subscription_service


router = APIRouter()


def _serialize(subscription):
    return SubscriptionResponse.model_validate(subscription).model_dump() if subscription else None


@router.get("/me")
async def get_my_subscription(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current subscription (or null) and whether it unlocks pro features"""
    summary = await subscription_service.get_subscription_summary(db, current_user.id)
    return {
        "subscription": _serialize(summary["subscription"]),
        "is_pro": summary["is_pro"],
    }


@router.post("/cancel")
async def cancel_subscription(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Cancel the active subscription; access continues until the period ends"""
    result = await subscription_service.cancel(db, current_user.id)
    return {
        "success": result["success"],
        "message": result["message"],
        "subscription": _serialize(result["subscription"]),
    }
