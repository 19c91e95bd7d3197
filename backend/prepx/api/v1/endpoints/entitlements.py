"""
Feature entitlement checks (trial / paid / free-tier daily counters)
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.billing import EntitlementCheckRequest, EntitlementCheckResult
from prepx.services.subscription_service import subscription_service


router = APIRouter()


@router.post("/check", response_model=EntitlementCheckResult)
async def check_entitlement(
    payload: EntitlementCheckRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Check (and optionally consume) a feature use.

    A free user over their daily limit gets 403 with paywall hints so the
    client can show the upgrade prompt.
    """
    result = await subscription_service.check_entitlement(
        db,
        current_user.id,
        payload.feature_slug,
        increment_usage=payload.increment_usage,
    )

    if result.get("reason") == "limit_reached":
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                **result,
                "show_paywall": True,
                "upgrade_cta": "Upgrade to Pro for unlimited access",
            },
        )
    return result
