"""
AI question generation endpoints
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.core.rate_limiter import ai_operation_rate_limit
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.question import QuestionGenerateRequest
from prepx.services.question_service import question_service


router = APIRouter()


@router.post("/generate", status_code=status.HTTP_201_CREATED)
@ai_operation_rate_limit()
async def generate_questions(
    request: Request,
    payload: QuestionGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Generate UPSC-style questions with Claude.

    Free users have a small daily quota; the requested count is clamped to
    what remains and an exhausted quota returns 403 with the upgrade hint.
    """
    return await question_service.generate(db, current_user.id, payload)


@router.get("")
async def list_questions(
    topic: Optional[str] = Query(None),
    question_type: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await question_service.list_questions(
        db, current_user.id,
        topic=topic, question_type=question_type, difficulty=difficulty,
        limit=limit, offset=offset,
    )


@router.get("/{question_id}")
async def get_question(
    question_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await question_service.get_question(db, current_user.id, question_id)
