"""
Topic prediction endpoints - which UPSC topics are likely to appear next
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from prepx.core.database import get_db
from prepx.core.rate_limiter import ai_operation_rate_limit
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user, get_current_admin
from prepx.schemas.predictor import PerformanceUpdate, ReportCreate, PerformanceResponse, ReportResponse
from prepx.services.predictor_service import predictor_service


router = APIRouter()


@router.get("/dashboard")
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.get_dashboard(db, current_user.id)


@router.get("/heatmap")
async def get_heatmap(
    subject: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.get_heatmap(db, subject)


@router.get("/trending")
async def get_trending(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"topics": await predictor_service.get_trending(db)}


@router.get("/trends")
async def get_trends(
    subject: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.get_trends(db, subject)


@router.get("/recommendations")
async def get_recommendations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.get_recommendations(db, current_user.id)


@router.get("/reports", response_model=List[ReportResponse])
async def list_reports(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.list_reports(db, current_user.id)


@router.post("/reports", status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: ReportCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.create_report(db, current_user.id, payload)


@router.post("/refresh")
async def refresh_predictions(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Recompute every topic's probability from the PYQ history (admin only)"""
    return await predictor_service.refresh_predictions(db)


@router.post("/performance", response_model=PerformanceResponse)
async def update_performance(
    payload: PerformanceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.update_performance(db, current_user.id, payload)


@router.get("/topics/{topic_id}")
async def get_topic_detail(
    topic_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.get_topic_detail(db, current_user.id, topic_id)


@router.post("/topics/{topic_id}/ai-analysis")
@ai_operation_rate_limit()
async def get_ai_analysis(
    request: Request,
    topic_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await predictor_service.get_ai_analysis(db, topic_id)
