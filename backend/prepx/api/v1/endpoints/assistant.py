"""
Teaching assistant endpoints - chat, sessions, teaching-style preferences and
daily study check-ins
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from prepx.core.database import get_db
from prepx.core.rate_limiter import ai_operation_rate_limit
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.assistant import (
    AssistantMessageRequest,
    PreferencesUpdate,
    PreferencesPreviewRequest,
    CheckinCreate,
    CheckinResponse,
    ConversationTurnResponse,
    PresetResponse,
)
from prepx.services.assistant_service import assistant_service
from prepx.services.assistant_preferences_service import assistant_preferences_service


router = APIRouter()


# ============== Chat ==============

@router.post("/message")
@ai_operation_rate_limit()
async def send_message(
    request: Request,
    payload: AssistantMessageRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Ask the assistant a question.

    Answers are grounded on the user's recent weak topics, RAG search results
    and their teaching-style preferences. Free users are capped per day (429).
    """
    return await assistant_service.send_message(db, current_user, payload.message, payload.session_id)


@router.get("/history", response_model=List[ConversationTurnResponse])
async def get_history(
    session_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_service.get_history(db, current_user.id, session_id)


@router.post("/sessions")
async def new_session(current_user: User = Depends(get_current_user)):
    return assistant_service.new_session()


@router.get("/sessions")
async def list_sessions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"sessions": await assistant_service.get_sessions(db, current_user.id)}


@router.get("/usage")
async def get_usage(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_service.get_usage_stats(db, current_user.id)


@router.get("/status")
async def get_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_service.get_status(db, current_user.id)


# ============== Preferences ==============

@router.get("/preferences")
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"preferences": await assistant_preferences_service.get_preferences(db, current_user.id)}


@router.put("/preferences")
async def save_preferences(
    payload: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_preferences_service.save_preferences(db, current_user.id, payload)


@router.get("/preferences/presets", response_model=List[PresetResponse])
async def list_presets(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_preferences_service.list_presets(db)


@router.post("/preferences/preset/{slug}")
async def apply_preset(
    slug: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_preferences_service.apply_preset(db, current_user.id, slug)


@router.post("/preferences/reset")
async def reset_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await assistant_preferences_service.reset_preferences(db, current_user.id)


@router.post("/preferences/preview")
@ai_operation_rate_limit()
async def preview_preferences(
    request: Request,
    payload: PreferencesPreviewRequest,
    current_user: User = Depends(get_current_user)
):
    """Sample answer in the requested style, without saving anything"""
    return await assistant_preferences_service.preview(payload)


# ============== Check-ins ==============

@router.post("/checkins")
async def create_checkin(
    payload: CheckinCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await assistant_preferences_service.create_checkin(db, current_user.id, payload)
    return {**result, "checkin": CheckinResponse.model_validate(result["checkin"])}


@router.get("/checkins")
async def list_checkins(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await assistant_preferences_service.get_checkins(db, current_user.id)
    return {**result, "checkins": [CheckinResponse.model_validate(c) for c in result["checkins"]]}
