"""
Adaptive difficulty endpoints - prediction, recommendations, attempts,
progress, badges and analytics
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.core.rate_limiter import ai_operation_rate_limit
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.question import DifficultyPredictRequest, AttemptCreate
from prepx.services.difficulty_service import difficulty_service


router = APIRouter()


@router.post("/predict")
@ai_operation_rate_limit()
async def predict_difficulty(
    request: Request,
    payload: DifficultyPredictRequest,
    current_user: User = Depends(get_current_user)
):
    """Rule-based difficulty estimate, optionally refined by Claude"""
    return await difficulty_service.predict(payload.question_text, payload.question_type, payload.use_ai)


@router.get("/recommendation")
async def get_recommendation(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await difficulty_service.get_recommendation(db, current_user.id)


@router.post("/attempts", status_code=status.HTTP_201_CREATED)
async def record_attempt(
    payload: AttemptCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Record an answer, update progress, award any newly earned badges"""
    return await difficulty_service.record_attempt(db, current_user.id, payload)


@router.get("/analytics")
async def get_analytics(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await difficulty_service.get_analytics(db, current_user.id, days=days)


@router.get("/progress")
async def get_progress(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"progress": await difficulty_service.get_progress(db, current_user.id)}


@router.get("/badges")
async def get_badges(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await difficulty_service.get_badges(db, current_user.id)


@router.get("/questions")
async def get_questions(
    difficulty: Optional[str] = Query(None),
    count: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await difficulty_service.get_questions(db, difficulty=difficulty, count=count)
