"""
Practice session endpoints (start / pause / resume / complete)
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.question import (
    PracticeSessionStart,
    PracticeProgress,
    PracticeComplete,
    PracticeSessionResponse,
)
from prepx.services.practice_service import practice_service


router = APIRouter()


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: PracticeSessionStart,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.start_session(db, current_user.id, payload)


@router.get("/sessions/paused", response_model=List[PracticeSessionResponse])
async def paused_sessions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.get_paused(db, current_user.id)


@router.get("/sessions/active", response_model=List[PracticeSessionResponse])
async def active_sessions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.get_active(db, current_user.id)


@router.get("/sessions/history", response_model=List[PracticeSessionResponse])
async def session_history(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.get_history(db, current_user.id)


@router.get("/sessions/{session_id}", response_model=PracticeSessionResponse)
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.get_session(db, current_user.id, session_id)


@router.get("/sessions/{session_id}/questions")
async def get_session_questions(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.get_session_questions(db, current_user.id, session_id)


@router.post("/sessions/{session_id}/pause")
async def pause_session(
    session_id: str,
    payload: PracticeProgress,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.pause_session(db, current_user.id, session_id, payload)


@router.post("/sessions/{session_id}/resume")
async def resume_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.resume_session(db, current_user.id, session_id)


@router.post("/sessions/{session_id}/progress")
async def save_progress(
    session_id: str,
    payload: PracticeProgress,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await practice_service.save_progress(db, current_user.id, session_id, payload)


@router.post("/sessions/{session_id}/complete")
async def complete_session(
    session_id: str,
    payload: PracticeComplete,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Grade the session and record attempts for every answered question"""
    return await practice_service.complete_session(db, current_user.id, session_id, payload)
