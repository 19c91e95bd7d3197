"""
Voice endpoints - TTS voice catalogue, preferences, speech generation and
voice cloning
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from prepx.core.database import get_db
from prepx.core.rate_limiter import ai_operation_rate_limit
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.voice import (
    VoicePreferencesUpdate,
    TTSGenerateRequest,
    VoiceCloneCreate,
    StylePreviewRequest,
    VoiceRating,
)
from prepx.services.voice_service import voice_service


router = APIRouter()


# ============== Catalogue ==============

@router.get("/voices")
async def list_voices(
    gender: Optional[str] = Query(None),
    accent: Optional[str] = Query(None),
    style: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Voices with a per-user has_access flag and the available filters"""
    return await voice_service.list_voices(db, current_user.id, gender=gender, accent=accent, style=style)


@router.get("/preview")
async def preview_voice(
    voice_id: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.preview(db, current_user.id, voice_id)


@router.get("/popular")
async def popular_voices(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"voices": await voice_service.popular(db)}


@router.get("/providers")
async def list_providers(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"providers": await voice_service.providers(db)}


@router.get("/speed-options")
async def speed_options(current_user: User = Depends(get_current_user)):
    return voice_service.speed_options()


@router.get("/accessibility")
async def accessibility_options(current_user: User = Depends(get_current_user)):
    return voice_service.accessibility_options()


@router.get("/styles")
async def list_styles(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.list_styles(db)


@router.post("/preview-style")
async def preview_style(
    payload: StylePreviewRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.preview_style(db, payload.style, payload.text)


@router.post("/rate")
async def rate_voice(
    payload: VoiceRating,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.rate_voice(db, payload.voice_id, payload.rating)


# ============== Preferences ==============

@router.get("/preferences")
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.get_preferences(db, current_user.id)


@router.put("/preferences")
async def save_preferences(
    payload: VoicePreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.save_preferences(db, current_user.id, payload)


# ============== Generation ==============

@router.post("/generate")
@ai_operation_rate_limit()
async def generate_speech(
    request: Request,
    payload: TTSGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Synthesize speech; the audio comes back base64 encoded"""
    return await voice_service.generate(db, current_user.id, payload)


# ============== Clones ==============

@router.get("/clones")
async def list_clones(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.list_clones(db, current_user.id)


@router.post("/clones", status_code=status.HTTP_201_CREATED)
async def create_clone(
    payload: VoiceCloneCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Start a voice clone (Pro); processing completes in the background"""
    result = await voice_service.create_clone(db, current_user.id, payload)
    background_tasks.add_task(voice_service.finish_clone, result["clone"]["id"])
    return result


@router.delete("/clones/{clone_id}")
async def delete_clone(
    clone_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await voice_service.delete_clone(db, current_user.id, clone_id)
