"""
Community discussion forum endpoints
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user, get_current_admin
from prepx.schemas.community import DiscussionCreate, ReplyCreate
from prepx.services.community_service import community_service


router = APIRouter()


@router.get("/discussions")
async def list_discussions(
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"discussions": await community_service.list_discussions(db, category)}


@router.post("/discussions", status_code=status.HTTP_201_CREATED)
async def create_discussion(
    payload: DiscussionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await community_service.create_discussion(db, current_user, payload)


@router.get("/discussions/{discussion_id}")
async def get_discussion(
    discussion_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await community_service.get_discussion(db, discussion_id)


@router.delete("/discussions/{discussion_id}")
async def delete_discussion(
    discussion_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await community_service.delete_discussion(db, current_user, discussion_id)


@router.post("/discussions/{discussion_id}/replies", status_code=status.HTTP_201_CREATED)
async def add_reply(
    discussion_id: str,
    payload: ReplyCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await community_service.add_reply(db, current_user, discussion_id, payload.content)


@router.post("/discussions/{discussion_id}/pin")
async def toggle_pin(
    discussion_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await community_service.toggle_pin(db, discussion_id)


@router.post("/replies/{reply_id}/upvote")
async def upvote_reply(
    reply_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await community_service.upvote_reply(db, reply_id)


@router.post("/replies/{reply_id}/accept")
async def accept_answer(
    reply_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a reply as the accepted answer (discussion author only)"""
    return await community_service.accept_answer(db, current_user, reply_id)
