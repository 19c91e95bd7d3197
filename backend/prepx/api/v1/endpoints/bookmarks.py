"""
Bookmark endpoints - library, collections, spaced-repetition review and tags
"""
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional, List

from prepx.core.database import get_db
from prepx.models.user import User
from prepx.modules.auth.dependencies import get_current_user
from prepx.schemas.bookmark import (
    BookmarkCreate,
    BookmarkUpdate,
    BookmarkToggle,
    BookmarkResponse,
    BookmarkDetailResponse,
    CollectionCreate,
    CollectionUpdate,
    CollectionResponse,
    BulkActionRequest,
    ReviewSubmit,
    ReviewInitialize,
    TagRename,
    TagMerge,
)
from prepx.services.bookmark_service import bookmark_service, bookmarks_to_csv


router = APIRouter()


# ============== Bookmarks ==============

@router.get("", response_model=List[BookmarkResponse])
async def list_bookmarks(
    content_type: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    collection_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.list_bookmarks(
        db, current_user.id,
        content_type=content_type, tag=tag, collection_id=collection_id,
        limit=limit, offset=offset,
    )


@router.post("", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    payload: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.create_bookmark(db, current_user.id, payload)


@router.get("/check")
async def check_bookmarked(
    content_type: str = Query(...),
    content_id: str = Query(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Whether a piece of content is already in the user's library"""
    bookmark = await bookmark_service.find_by_content(db, current_user.id, content_type, content_id)
    return {
        "is_bookmarked": bookmark is not None,
        "bookmark_id": bookmark.id if bookmark else None,
    }


@router.get("/count")
async def count_bookmarks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"count": await bookmark_service.count_bookmarks(db, current_user.id)}


@router.get("/by-tag/{tag}", response_model=List[BookmarkResponse])
async def bookmarks_by_tag(
    tag: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.list_bookmarks(db, current_user.id, tag=tag, limit=100)


@router.get("/by-type/{content_type}", response_model=List[BookmarkResponse])
async def bookmarks_by_type(
    content_type: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.get_by_type(db, current_user.id, content_type)


@router.post("/toggle")
async def toggle_bookmark(
    payload: BookmarkToggle,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Add the bookmark if missing, remove it if present"""
    return await bookmark_service.toggle_bookmark(db, current_user.id, payload)


# ============== Library ==============

@router.get("/library/stats")
async def library_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.get_stats(db, current_user.id)


@router.get("/library/export")
async def export_library(
    format: str = Query("json", pattern="^(json|csv)$"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    bookmarks = await bookmark_service.export(db, current_user.id)
    if format == "csv":
        return PlainTextResponse(
            bookmarks_to_csv(bookmarks),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=bookmarks.csv"},
        )
    return {
        "exported_at": datetime.utcnow(),
        "count": len(bookmarks),
        "bookmarks": [BookmarkDetailResponse.model_validate(b) for b in bookmarks],
    }


@router.get("/library/search", response_model=List[BookmarkResponse])
async def search_library(
    q: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    collection: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort: str = Query("newest", pattern="^(newest|oldest|title|most_accessed)$"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    return await bookmark_service.search(
        db, current_user.id,
        q=q, content_type=type, collection_id=collection, tags=tag_list,
        date_from=date_from, date_to=date_to, sort=sort,
    )


@router.post("/library/bulk")
async def bulk_action(
    payload: BulkActionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.bulk_action(db, current_user.id, payload)


# ============== Collections ==============

@router.get("/collections", response_model=List[CollectionResponse])
async def list_collections(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.list_collections(db, current_user.id)


@router.post("/collections", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
async def create_collection(
    payload: CollectionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.create_collection(db, current_user.id, payload)


@router.patch("/collections/{collection_id}", response_model=CollectionResponse)
async def update_collection(
    collection_id: str,
    payload: CollectionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.update_collection(db, current_user.id, collection_id, payload)


@router.delete("/collections/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(
    collection_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a collection; its bookmarks stay in the library unassigned"""
    await bookmark_service.delete_collection(db, current_user.id, collection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============== Review ==============

@router.get("/review/due", response_model=List[BookmarkResponse])
async def due_reviews(
    limit: int = Query(50, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.get_due(db, current_user.id, limit=limit)


@router.get("/review/count")
async def due_review_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.count_due(db, current_user.id)


@router.get("/review/streak")
async def review_streak(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.get_streak(db, current_user.id)


@router.post("/review/initialize")
async def initialize_review(
    payload: ReviewInitialize,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Put bookmarks into the review rotation (all unscheduled ones when no ids given)"""
    return await bookmark_service.initialize_review(db, current_user.id, payload.bookmark_ids)


@router.post("/review/snooze")
async def snooze_reviews(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.snooze_due(db, current_user.id)


@router.post("/review/{bookmark_id}")
async def submit_review(
    bookmark_id: str,
    payload: ReviewSubmit,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Grade a review (easy / medium / hard / again) and reschedule with SM-2"""
    return await bookmark_service.review(
        db, current_user.id, bookmark_id, payload.response, payload.review_time_seconds
    )


@router.post("/review/{bookmark_id}/reset")
async def reset_review(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.reset_review(db, current_user.id, bookmark_id)


# ============== Tags ==============

@router.get("/tags")
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"tags": await bookmark_service.list_tags(db, current_user.id)}


@router.post("/tags/rename")
async def rename_tag(
    payload: TagRename,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.rename_tag(db, current_user.id, payload.old_tag, payload.new_tag)


@router.post("/tags/merge")
async def merge_tags(
    payload: TagMerge,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.merge_tags(db, current_user.id, payload.source_tags, payload.target_tag)


@router.delete("/tags/{tag}")
async def delete_tag(
    tag: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.delete_tag(db, current_user.id, tag)


# ============== Single bookmark ==============

@router.get("/{bookmark_id}", response_model=BookmarkDetailResponse)
async def get_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: str,
    payload: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await bookmark_service.update_bookmark(db, current_user.id, bookmark_id, payload)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
