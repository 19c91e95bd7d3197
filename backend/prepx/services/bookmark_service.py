"""
Bookmark Service - bookmarks, library management and spaced review

Handles:
- Bookmark CRUD, toggle and lookup by content
- Collections, bulk operations, search, stats and export
- SM-2 review scheduling and daily review streaks
- Tag rename / merge / delete

Tags live in a JSON column, so tag filters are applied in Python over the
user's rows rather than in SQL.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from datetime import datetime, timedelta, date
from typing import Optional, List, Dict, Any, Tuple
from collections import Counter
import csv
import io
import logging

from prepx.core.exceptions import ResourceNotFoundError, ValidationError, ConflictError
from prepx.models.bookmark import (
    Bookmark,
    BookmarkCollection,
    BookmarkContentType,
    ReviewResponse,
    ReviewStreak,
    BookmarkReviewLog,
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
)

logger = logging.getLogger(__name__)

MIN_EASE_FACTOR = 1.3
SNIPPET_LENGTH = 200
SEARCH_LIMIT = 100
DUE_LIMIT = 50

# SM-2 quality grade per review button
RESPONSE_QUALITY = {
    ReviewResponse.EASY.value: 5,
    ReviewResponse.MEDIUM.value: 4,
    ReviewResponse.HARD.value: 3,
    ReviewResponse.AGAIN.value: 1,
}
EASY_BONUS = 1.3
HARD_INTERVAL_FACTOR = 1.2

CSV_HEADERS = ["id", "title", "content_type", "snippet", "tags", "bookmarked_at"]


def calculate_sm2(
    response: str,
    ease_factor: float,
    interval_days: int,
    repetitions: int,
) -> Tuple[float, int, int]:
    """
    Next SM-2 state for a review.

    Returns:
        (ease_factor, interval_days, repetitions)
    """
    quality = RESPONSE_QUALITY[response]
    new_ease = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    new_ease = max(MIN_EASE_FACTOR, round(new_ease, 2))

    if response == ReviewResponse.AGAIN.value:
        return new_ease, 1, 0

    if response == ReviewResponse.HARD.value:
        return new_ease, max(1, round(interval_days * HARD_INTERVAL_FACTOR)), repetitions + 1

    if repetitions == 0:
        interval = 1
    elif repetitions == 1:
        interval = 6
    else:
        interval = round(interval_days * new_ease)

    if response == ReviewResponse.EASY.value:
        interval = round(interval * EASY_BONUS)

    return new_ease, max(1, interval), repetitions + 1


def review_message(response: str, interval_days: int) -> str:
    if response == ReviewResponse.EASY.value:
        return f"Great! Next review in {interval_days} days."
    if response == ReviewResponse.HARD.value:
        return "No problem! You'll see this again soon."
    if response == ReviewResponse.AGAIN.value:
        return "This will come back tomorrow for more practice."
    return f"Next review in {interval_days} days."


def bookmarks_to_csv(bookmarks: List[Bookmark]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for b in bookmarks:
        writer.writerow([
            b.id,
            b.title or "",
            b.content_type,
            b.snippet or "",
            ";".join(b.tags or []),
            b.bookmarked_at.isoformat() if b.bookmarked_at else "",
        ])
    return buffer.getvalue()


class BookmarkService:
    """Bookmarks, collections, review scheduling and tags"""

    # ==================== BOOKMARK CRUD ====================

    async def _get_owned(self, db: AsyncSession, user_id: str, bookmark_id: str) -> Bookmark:
        result = await db.execute(
            select(Bookmark).where(Bookmark.id == bookmark_id, Bookmark.user_id == user_id)
        )
        bookmark = result.scalar_one_or_none()
        if not bookmark:
            raise ResourceNotFoundError("Bookmark", bookmark_id)
        return bookmark

    async def _all_for_user(self, db: AsyncSession, user_id: str) -> List[Bookmark]:
        result = await db.execute(
            select(Bookmark).where(Bookmark.user_id == user_id).order_by(Bookmark.bookmarked_at.desc())
        )
        return list(result.scalars().all())

    async def list_bookmarks(
        self,
        db: AsyncSession,
        user_id: str,
        content_type: Optional[str] = None,
        tag: Optional[str] = None,
        collection_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Bookmark]:
        query = select(Bookmark).where(Bookmark.user_id == user_id)
        if content_type:
            query = query.where(Bookmark.content_type == content_type)
        if collection_id:
            query = query.where(Bookmark.collection_id == collection_id)
        query = query.order_by(Bookmark.bookmarked_at.desc())

        result = await db.execute(query)
        bookmarks = list(result.scalars().all())
        if tag:
            tag = tag.lower()
            bookmarks = [b for b in bookmarks if tag in (b.tags or [])]
        return bookmarks[offset:offset + limit]

    async def get_bookmark(self, db: AsyncSession, user_id: str, bookmark_id: str) -> Bookmark:
        """Fetch one bookmark and record the access"""
        bookmark = await self._get_owned(db, user_id, bookmark_id)
        bookmark.access_count = (bookmark.access_count or 0) + 1
        bookmark.last_accessed_at = datetime.utcnow()
        await db.commit()
        return bookmark

    async def find_by_content(
        self,
        db: AsyncSession,
        user_id: str,
        content_type: str,
        content_id: Optional[str],
    ) -> Optional[Bookmark]:
        result = await db.execute(
            select(Bookmark).where(
                Bookmark.user_id == user_id,
                Bookmark.content_type == content_type,
                Bookmark.content_id == content_id,
            )
        )
        return result.scalars().first()

    async def create_bookmark(self, db: AsyncSession, user_id: str, data) -> Bookmark:
        content_type = getattr(data.content_type, "value", data.content_type)

        if content_type == BookmarkContentType.CUSTOM.value and not data.url:
            raise ValidationError("URL required for custom bookmarks", field="url")

        if data.content_id and await self.find_by_content(db, user_id, content_type, data.content_id):
            raise ConflictError("Already bookmarked", details={"already_bookmarked": True})

        collection_id = getattr(data, "collection_id", None)
        if collection_id:
            await self._get_collection(db, user_id, collection_id)

        snippet = data.snippet
        if not snippet and data.full_content:
            snippet = data.full_content[:SNIPPET_LENGTH]

        bookmark = Bookmark(
            user_id=user_id,
            content_type=content_type,
            content_id=data.content_id,
            title=data.title,
            snippet=snippet,
            full_content=data.full_content,
            url=data.url,
            notes=getattr(data, "notes", None),
            tags=list(data.tags or []),
            collection_id=collection_id,
            context=dict(getattr(data, "context", None) or {}),
        )
        db.add(bookmark)
        await db.commit()
        await db.refresh(bookmark)

        logger.info(f"Bookmark created: {content_type}:{data.content_id} for user {user_id}")
        return bookmark

    async def update_bookmark(self, db: AsyncSession, user_id: str, bookmark_id: str, data) -> Bookmark:
        bookmark = await self._get_owned(db, user_id, bookmark_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("collection_id"):
            await self._get_collection(db, user_id, updates["collection_id"])

        for field, value in updates.items():
            if field == "title" and not value:
                continue
            setattr(bookmark, field, value)

        await db.commit()
        await db.refresh(bookmark)
        return bookmark

    async def delete_bookmark(self, db: AsyncSession, user_id: str, bookmark_id: str) -> None:
        bookmark = await self._get_owned(db, user_id, bookmark_id)
        await db.delete(bookmark)
        await db.commit()

    async def toggle_bookmark(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        content_type = getattr(data.content_type, "value", data.content_type)
        existing = await self.find_by_content(db, user_id, content_type, data.content_id)
        if existing:
            await db.delete(existing)
            await db.commit()
            return {"success": True, "action": "removed", "bookmark_id": None,
                    "message": "Removed from bookmarks"}

        bookmark = await self.create_bookmark(db, user_id, data)
        return {"success": True, "action": "added", "bookmark_id": bookmark.id,
                "message": "Added to bookmarks"}

    async def count_bookmarks(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(select(func.count(Bookmark.id)).where(Bookmark.user_id == user_id))
        return result.scalar() or 0

    # ==================== COLLECTIONS ====================

    async def _get_collection(self, db: AsyncSession, user_id: str, collection_id: str) -> BookmarkCollection:
        result = await db.execute(
            select(BookmarkCollection).where(
                BookmarkCollection.id == collection_id,
                BookmarkCollection.user_id == user_id,
            )
        )
        collection = result.scalar_one_or_none()
        if not collection:
            raise ResourceNotFoundError("Collection", collection_id)
        return collection

    async def list_collections(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(BookmarkCollection, func.count(Bookmark.id))
            .outerjoin(Bookmark, Bookmark.collection_id == BookmarkCollection.id)
            .where(BookmarkCollection.user_id == user_id)
            .group_by(BookmarkCollection.id)
            .order_by(BookmarkCollection.sort_order.asc(), BookmarkCollection.created_at.asc())
        )
        return [
            {
                "id": collection.id,
                "name": collection.name,
                "description": collection.description,
                "icon": collection.icon,
                "color": collection.color,
                "sort_order": collection.sort_order,
                "bookmark_count": count,
                "created_at": collection.created_at,
            }
            for collection, count in result.all()
        ]

    async def _name_taken(self, db: AsyncSession, user_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
        query = select(BookmarkCollection.id).where(
            BookmarkCollection.user_id == user_id,
            func.lower(BookmarkCollection.name) == name.lower(),
        )
        if exclude_id:
            query = query.where(BookmarkCollection.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    async def create_collection(self, db: AsyncSession, user_id: str, data) -> BookmarkCollection:
        name = (data.name or "").strip()
        if not name:
            raise ValidationError("Collection name is required", field="name")
        if await self._name_taken(db, user_id, name):
            raise ConflictError("A collection with this name already exists")

        collection = BookmarkCollection(
            user_id=user_id,
            name=name,
            description=data.description,
            icon=data.icon or "📁",
            color=data.color or "#3B82F6",
        )
        db.add(collection)
        await db.commit()
        await db.refresh(collection)
        return collection

    async def update_collection(self, db: AsyncSession, user_id: str, collection_id: str, data) -> BookmarkCollection:
        collection = await self._get_collection(db, user_id, collection_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in updates:
            updates["name"] = updates["name"].strip()
            if await self._name_taken(db, user_id, updates["name"], exclude_id=collection_id):
                raise ConflictError("A collection with this name already exists")

        for field, value in updates.items():
            setattr(collection, field, value)
        await db.commit()
        await db.refresh(collection)
        return collection

    async def delete_collection(self, db: AsyncSession, user_id: str, collection_id: str) -> None:
        """Delete a collection; its bookmarks stay, unassigned"""
        collection = await self._get_collection(db, user_id, collection_id)
        result = await db.execute(
            select(Bookmark).where(Bookmark.user_id == user_id, Bookmark.collection_id == collection_id)
        )
        for bookmark in result.scalars().all():
            bookmark.collection_id = None
        await db.delete(collection)
        await db.commit()

    async def bulk_action(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        action = getattr(data.action, "value", data.action)
        if not data.bookmark_ids:
            raise ValidationError("No bookmarks selected", field="bookmark_ids")

        result = await db.execute(
            select(Bookmark).where(Bookmark.user_id == user_id, Bookmark.id.in_(data.bookmark_ids))
        )
        bookmarks = list(result.scalars().all())

        if action == "move":
            if data.collection_id:
                await self._get_collection(db, user_id, data.collection_id)
            for bookmark in bookmarks:
                bookmark.collection_id = data.collection_id
        elif action == "add_tags":
            tags = [t.strip().lower() for t in data.tags if t and t.strip()]
            if not tags:
                raise ValidationError("No tags specified", field="tags")
            for bookmark in bookmarks:
                bookmark.tags = sorted(set(bookmark.tags or []) | set(tags))
        elif action == "delete":
            for bookmark in bookmarks:
                await db.delete(bookmark)

        await db.commit()
        return {"success": True, "affected": len(bookmarks), "action": action}

    # ==================== LIBRARY ====================

    async def get_stats(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        bookmarks = await self._all_for_user(db, user_id)
        week_ago = datetime.utcnow() - timedelta(days=7)

        tag_counts = Counter(tag for b in bookmarks for tag in (b.tags or []))
        streak = await self._get_streak(db, user_id)

        collections = await db.execute(
            select(func.count(BookmarkCollection.id)).where(BookmarkCollection.user_id == user_id)
        )

        return {
            "total": len(bookmarks),
            "by_type": dict(Counter(b.content_type for b in bookmarks)),
            "top_tags": [{"tag": tag, "count": count} for tag, count in tag_counts.most_common(10)],
            "review_streak": {
                "current": streak.current_streak if streak else 0,
                "longest": streak.longest_streak if streak else 0,
            },
            "total_reviews": streak.total_reviews if streak else 0,
            "this_week": sum(1 for b in bookmarks if b.bookmarked_at and b.bookmarked_at >= week_ago),
            "collections_count": collections.scalar() or 0,
        }

    async def export(self, db: AsyncSession, user_id: str) -> List[Bookmark]:
        return await self._all_for_user(db, user_id)

    async def search(
        self,
        db: AsyncSession,
        user_id: str,
        q: Optional[str] = None,
        content_type: Optional[str] = None,
        collection_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        sort: str = "newest",
    ) -> List[Bookmark]:
        query = select(Bookmark).where(Bookmark.user_id == user_id)
        if q:
            term = f"%{q}%"
            query = query.where(or_(
                Bookmark.title.ilike(term),
                Bookmark.snippet.ilike(term),
                Bookmark.notes.ilike(term),
            ))
        if content_type:
            query = query.where(Bookmark.content_type == content_type)
        if collection_id:
            query = query.where(Bookmark.collection_id == collection_id)
        if date_from:
            query = query.where(Bookmark.bookmarked_at >= date_from)
        if date_to:
            query = query.where(Bookmark.bookmarked_at <= date_to)

        order = {
            "oldest": Bookmark.bookmarked_at.asc(),
            "title": Bookmark.title.asc(),
            "most_accessed": Bookmark.access_count.desc(),
        }.get(sort, Bookmark.bookmarked_at.desc())
        result = await db.execute(query.order_by(order))
        bookmarks = list(result.scalars().all())

        if tags:
            wanted = {t.strip().lower() for t in tags if t.strip()}
            bookmarks = [b for b in bookmarks if wanted & set(b.tags or [])]
        return bookmarks[:SEARCH_LIMIT]

    async def get_by_type(self, db: AsyncSession, user_id: str, content_type: str) -> List[Bookmark]:
        return await self.list_bookmarks(db, user_id, content_type=content_type, limit=100)

    # ==================== REVIEW (SM-2) ====================

    async def _get_streak(self, db: AsyncSession, user_id: str) -> Optional[ReviewStreak]:
        result = await db.execute(select(ReviewStreak).where(ReviewStreak.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    def streak_dict(streak: Optional[ReviewStreak]) -> Dict[str, Any]:
        if not streak:
            return {"current_streak": 0, "longest_streak": 0, "total_reviews": 0, "last_review_date": None}
        return {
            "current_streak": streak.current_streak,
            "longest_streak": streak.longest_streak,
            "total_reviews": streak.total_reviews,
            "last_review_date": streak.last_review_date.isoformat() if streak.last_review_date else None,
        }

    async def get_streak(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        return self.streak_dict(await self._get_streak(db, user_id))

    async def get_due(self, db: AsyncSession, user_id: str, limit: int = DUE_LIMIT) -> List[Bookmark]:
        result = await db.execute(
            select(Bookmark)
            .where(
                Bookmark.user_id == user_id,
                Bookmark.next_review_at.is_not(None),
                Bookmark.next_review_at <= datetime.utcnow(),
            )
            .order_by(Bookmark.next_review_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_due(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(func.count(Bookmark.id)).where(
                Bookmark.user_id == user_id,
                Bookmark.next_review_at.is_not(None),
                Bookmark.next_review_at <= datetime.utcnow(),
            )
        )
        count = result.scalar() or 0
        return {
            "count": count,
            "message": f"{count} bookmarks are due for review today!" if count > 0 else None,
        }

    async def _record_review_day(self, db: AsyncSession, user_id: str, today: date) -> ReviewStreak:
        streak = await self._get_streak(db, user_id)
        if not streak:
            streak = ReviewStreak(user_id=user_id, current_streak=0, longest_streak=0, total_reviews=0)
            db.add(streak)

        if streak.last_review_date != today:
            if streak.last_review_date == today - timedelta(days=1):
                streak.current_streak += 1
            else:
                streak.current_streak = 1
            streak.last_review_date = today
        streak.longest_streak = max(streak.longest_streak, streak.current_streak)
        streak.total_reviews += 1
        return streak

    async def review(
        self,
        db: AsyncSession,
        user_id: str,
        bookmark_id: str,
        response: str,
        review_time_seconds: Optional[int] = None,
    ) -> Dict[str, Any]:
        response = getattr(response, "value", response)
        if response not in RESPONSE_QUALITY:
            raise ValidationError("Invalid response. Use: easy, medium, hard, or again", field="response")

        bookmark = await self._get_owned(db, user_id, bookmark_id)
        now = datetime.utcnow()
        interval_before = bookmark.interval_days

        ease, interval, repetitions = calculate_sm2(
            response, bookmark.ease_factor, bookmark.interval_days, bookmark.repetitions or 0
        )
        bookmark.ease_factor = ease
        bookmark.interval_days = interval
        bookmark.repetitions = repetitions
        bookmark.review_count = (bookmark.review_count or 0) + 1
        bookmark.last_reviewed_at = now
        bookmark.next_review_at = now + timedelta(days=interval)

        db.add(BookmarkReviewLog(
            user_id=user_id,
            bookmark_id=bookmark.id,
            response=response,
            review_time_seconds=review_time_seconds,
            interval_before=interval_before,
            interval_after=interval,
        ))
        streak = await self._record_review_day(db, user_id, now.date())
        await db.commit()

        return {
            "success": True,
            "new_interval_days": interval,
            "next_review_date": bookmark.next_review_at,
            "ease_factor": ease,
            "message": review_message(response, interval),
            "streak": self.streak_dict(streak),
        }

    async def initialize_review(
        self,
        db: AsyncSession,
        user_id: str,
        bookmark_ids: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Schedule the given bookmarks (or every unscheduled one) for review today"""
        query = select(Bookmark).where(Bookmark.user_id == user_id)
        if bookmark_ids:
            query = query.where(Bookmark.id.in_(bookmark_ids))
        else:
            query = query.where(Bookmark.next_review_at.is_(None))

        result = await db.execute(query)
        bookmarks = list(result.scalars().all())
        now = datetime.utcnow()
        for bookmark in bookmarks:
            bookmark.ease_factor = DEFAULT_EASE_FACTOR
            bookmark.interval_days = DEFAULT_INTERVAL_DAYS
            bookmark.repetitions = 0
            bookmark.next_review_at = now
        await db.commit()
        return {"success": True, "initialized": len(bookmarks)}

    async def snooze_due(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        due = await self.get_due(db, user_id, limit=10000)
        tomorrow = datetime.utcnow() + timedelta(hours=24)
        for bookmark in due:
            bookmark.next_review_at = tomorrow
        await db.commit()
        return {"success": True, "snoozed": len(due), "message": "Reviews snoozed until tomorrow"}

    async def reset_review(self, db: AsyncSession, user_id: str, bookmark_id: str) -> Dict[str, Any]:
        bookmark = await self._get_owned(db, user_id, bookmark_id)
        bookmark.ease_factor = DEFAULT_EASE_FACTOR
        bookmark.interval_days = DEFAULT_INTERVAL_DAYS
        bookmark.repetitions = 0
        bookmark.review_count = 0
        bookmark.next_review_at = datetime.utcnow() + timedelta(hours=24)
        await db.commit()
        return {"success": True, "message": "Bookmark review reset"}

    # ==================== TAGS ====================

    async def list_tags(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        bookmarks = await self._all_for_user(db, user_id)
        counts = Counter(tag for b in bookmarks for tag in (b.tags or []))
        return [{"tag": tag, "count": count} for tag, count in counts.most_common()]

    async def _retag(self, db: AsyncSession, user_id: str, sources: List[str], target: Optional[str]) -> int:
        sources = {s.strip().lower() for s in sources if s and s.strip()}
        target = target.strip().lower() if target else None
        affected = 0
        for bookmark in await self._all_for_user(db, user_id):
            tags = bookmark.tags or []
            if not sources & set(tags):
                continue
            new_tags = [t for t in tags if t not in sources]
            if target and target not in new_tags:
                new_tags.append(target)
            bookmark.tags = new_tags
            affected += 1
        await db.commit()
        return affected

    async def rename_tag(self, db: AsyncSession, user_id: str, old_tag: str, new_tag: str) -> Dict[str, Any]:
        affected = await self._retag(db, user_id, [old_tag], new_tag)
        return {"success": True, "affected": affected, "message": f'Renamed "{old_tag}" to "{new_tag}"'}

    async def merge_tags(self, db: AsyncSession, user_id: str, source_tags: List[str], target_tag: str) -> Dict[str, Any]:
        affected = await self._retag(db, user_id, source_tags, target_tag)
        return {"success": True, "affected": affected, "message": f'Merged tags into "{target_tag}"'}

    async def delete_tag(self, db: AsyncSession, user_id: str, tag: str) -> Dict[str, Any]:
        if not tag or not tag.strip():
            raise ValidationError("Tag required", field="tag")
        affected = await self._retag(db, user_id, [tag], None)
        return {"success": True, "affected": affected, "message": f'Deleted tag "{tag}"'}


# Singleton instance
bookmark_service = BookmarkService()
