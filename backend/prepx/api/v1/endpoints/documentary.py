"""
Weekly documentary endpoints - pipeline trigger, publishing and archive
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user, get_current_admin
from prepx.schemas.documentary import DocumentaryTrigger, DocumentaryPublish
from prepx.services.documentary_service import documentary_service


router = APIRouter()


@router.post("/trigger", status_code=status.HTTP_202_ACCEPTED)
async def trigger_documentary(
    background_tasks: BackgroundTasks,
    payload: Optional[DocumentaryTrigger] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Start this week's documentary (admin only).

    The aggregate -> topics -> script -> Manim -> render pipeline runs in the
    background; poll /schedule for its progress.
    """
    week_start = payload.week_start if payload else None
    result = await documentary_service.trigger(db, admin.id, week_start)
    background_tasks.add_task(documentary_service.run_pipeline, result["doc_id"], result["schedule_id"])
    return result


@router.get("")
async def documentary_archive(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"documentaries": await documentary_service.archive(db, year)}


@router.get("/schedule")
async def list_schedule(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"schedule": await documentary_service.list_schedule(db)}


@router.get("/{documentary_id}")
async def get_documentary(
    documentary_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await documentary_service.get_documentary(db, documentary_id)


@router.get("/{documentary_id}/clips")
async def get_clips(
    documentary_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"clips": await documentary_service.get_clips(db, documentary_id)}


@router.post("/{documentary_id}/publish")
async def publish_documentary(
    documentary_id: str,
    payload: DocumentaryPublish,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await documentary_service.publish(db, documentary_id, payload)


@router.post("/{documentary_id}/clips/generate")
async def generate_clips(
    documentary_id: str,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Re-cut the 60-second social clips from the documentary's top topics (admin only)"""
    return await documentary_service.generate_clips(db, documentary_id)
