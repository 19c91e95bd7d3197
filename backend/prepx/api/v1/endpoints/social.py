"""
Social auto-publisher endpoints for the admin content team.

Every route needs a team membership; write routes additionally check the
member's permission flags inside the service.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.social import (
    SocialPostCreate,
    SocialPostUpdate,
    ScheduleRequest,
    ConnectAccountRequest,
    TeamMemberAdd,
    DisclaimerUpdate,
    AnalyticsSync,
)
from prepx.services.social_service import social_service


router = APIRouter()


async def get_team_user(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> User:
    """403 unless the caller belongs to the social team"""
    await social_service.get_member(db, current_user)
    return current_user


# ============== Read ==============

@router.get("/dashboard")
async def get_dashboard(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.get_dashboard(db)


@router.get("/platforms")
async def list_platforms(user: User = Depends(get_team_user)):
    return {"platforms": social_service.list_platforms()}


@router.get("/content-types")
async def list_content_types(user: User = Depends(get_team_user)):
    return {"content_types": social_service.list_content_types()}


@router.get("/optimal-times")
async def optimal_times(
    platform: Optional[str] = Query(None),
    user: User = Depends(get_team_user)
):
    return {"optimal_times": social_service.optimal_times(platform)}


@router.get("/accounts")
async def list_accounts(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"accounts": await social_service.list_accounts(db)}


@router.get("/oauth-url")
async def oauth_url(
    platform: str = Query(...),
    user: User = Depends(get_team_user)
):
    return social_service.oauth_url(platform, user.id)


@router.get("/posts")
async def list_posts(
    status_filter: Optional[str] = Query(None, alias="status"),
    platform: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"posts": await social_service.list_posts(db, status=status_filter, platform=platform, limit=limit)}


@router.get("/posts/scheduled")
async def list_scheduled(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"posts": await social_service.list_scheduled(db)}


@router.get("/posts/drafts")
async def list_drafts(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"posts": await social_service.list_drafts(db)}


@router.get("/posts/{post_id}")
async def get_post(
    post_id: str,
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.get_post(db, post_id)


@router.get("/analytics")
async def get_analytics(
    post_id: Optional[str] = Query(None),
    days: int = Query(30, ge=1, le=365),
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.get_analytics(db, post_id=post_id, days=days)


@router.get("/team")
async def list_team(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"members": await social_service.list_team(db)}


@router.get("/disclaimers")
async def list_disclaimers(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"disclaimers": await social_service.list_disclaimers(db)}


@router.get("/queue")
async def get_queue(
    user: User = Depends(get_team_user),
    db: AsyncSession = Depends(get_db)
):
    return {"queue": await social_service.get_queue(db)}


# ============== Posts ==============

@router.post("/posts", status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: SocialPostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create one post per selected platform, as drafts or scheduled"""
    return await social_service.create_post(db, current_user, payload)


@router.patch("/posts/{post_id}")
async def update_post(
    post_id: str,
    payload: SocialPostUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.update_post(db, current_user, post_id, payload)


@router.post("/posts/{post_id}/schedule")
async def schedule_post(
    post_id: str,
    payload: ScheduleRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.schedule_post(db, current_user, post_id, payload.scheduled_at)


@router.post("/posts/{post_id}/reschedule")
async def reschedule_post(
    post_id: str,
    payload: ScheduleRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.reschedule_post(db, current_user, post_id, payload.scheduled_at)


@router.post("/posts/{post_id}/approve")
async def approve_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.approve_post(db, current_user, post_id)


@router.post("/posts/{post_id}/cancel")
async def cancel_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.cancel_post(db, current_user, post_id)


@router.post("/posts/{post_id}/publish-now")
async def publish_now(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.publish_now(db, current_user, post_id)


@router.post("/posts/{post_id}/sync-analytics")
async def sync_analytics(
    post_id: str,
    payload: AnalyticsSync,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.sync_analytics(db, current_user, post_id, payload.model_dump())


# ============== Accounts ==============

@router.post("/accounts", status_code=status.HTTP_201_CREATED)
async def connect_account(
    payload: ConnectAccountRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.connect_account(db, current_user, payload)


@router.delete("/accounts/{account_id}")
async def disconnect_account(
    account_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.disconnect_account(db, current_user, account_id)


# ============== Team & disclaimers ==============

@router.post("/team", status_code=status.HTTP_201_CREATED)
async def add_team_member(
    payload: TeamMemberAdd,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.add_team_member(db, current_user, payload)


@router.delete("/team/{member_id}")
async def remove_team_member(
    member_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.remove_team_member(db, current_user, member_id)


@router.put("/disclaimers")
async def update_disclaimer(
    payload: DisclaimerUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await social_service.update_disclaimer(db, current_user, payload)
