"""
Ethics simulator endpoints

Aspirants play through multi-stage GS-IV case studies. Each answer is scored
by Claude on four dimensions; completing a session produces a report card,
peer comparison and an updated ethical profile.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.core.rate_limiter import ai_operation_rate_limit
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.ethics import EthicsSessionStart, EthicsResponseSubmit, EthicsRetryRequest
from prepx.services.ethics_service import ethics_service


router = APIRouter()


@router.get("/metadata")
async def get_metadata(current_user: User = Depends(get_current_user)):
    """Difficulty levels, tendencies and scoring dimensions"""
    return ethics_service.metadata()


@router.get("/scenarios")
async def list_scenarios(
    difficulty: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"scenarios": await ethics_service.list_scenarios(db, difficulty, category)}


@router.get("/scenarios/{scenario_id}")
async def get_scenario(
    scenario_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.get_scenario(db, scenario_id)


@router.get("/profile")
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.get_profile(db, current_user.id)


@router.get("/interview-questions")
@ai_operation_rate_limit()
async def interview_questions(
    request: Request,
    scenario_id: str = Query(...),
    topic: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"questions": await ethics_service.interview_questions(db, scenario_id, topic)}


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: EthicsSessionStart,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.start_session(db, current_user.id, payload.scenario_id, retry_of=payload.retry_of)


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.get_session(db, current_user.id, session_id)


@router.post("/sessions/{session_id}/responses")
@ai_operation_rate_limit()
async def submit_response(
    request: Request,
    session_id: str,
    payload: EthicsResponseSubmit,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Score the answer for the current stage and advance the session"""
    return await ethics_service.submit_response(db, current_user.id, session_id, payload)


@router.post("/sessions/{session_id}/complete")
@ai_operation_rate_limit()
async def complete_session(
    request: Request,
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.complete_session(db, current_user.id, session_id)


@router.get("/sessions/{session_id}/report-card")
async def get_report_card(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.get_report_card(db, current_user.id, session_id)


@router.get("/sessions/{session_id}/peer-comparison")
async def get_peer_comparison(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await ethics_service.get_peer_comparison(db, current_user.id, session_id)


@router.post("/sessions/{session_id}/retry", status_code=status.HTTP_201_CREATED)
@ai_operation_rate_limit()
async def retry_session(
    request: Request,
    session_id: str,
    payload: Optional[EthicsRetryRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replay the scenario with a twist in the circumstances"""
    new_context = payload.new_context if payload else None
    return await ethics_service.retry_session(db, current_user.id, session_id, new_context)


@router.post("/sessions/{session_id}/video")
async def request_video(
    session_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Queue a personalised ethical-profile video on the render VPS"""
    return await ethics_service.request_video(db, current_user.id, session_id)
