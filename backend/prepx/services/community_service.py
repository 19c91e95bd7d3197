"""
Community Service - discussion threads and replies
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import Optional, List, Dict, Any, Union
import logging

from prepx.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from prepx.models.community import Discussion, DiscussionReply, DISCUSSION_CATEGORIES
from prepx.models.user import User

logger = logging.getLogger(__name__)

LIST_LIMIT = 50


def parse_tags(tags: Union[List[str], str, None]) -> List[str]:
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.strip() for t in tags if t and t.strip()]


def order_replies(replies: List[DiscussionReply]) -> List[DiscussionReply]:
    """Accepted answer first, then most upvoted, then oldest"""
    return sorted(replies, key=lambda r: (not r.is_answer, -(r.upvotes or 0), r.created_at))


class CommunityService:

    @staticmethod
    def serialize_reply(reply: DiscussionReply) -> Dict[str, Any]:
        return {
            "id": reply.id,
            "discussion_id": reply.discussion_id,
            "user_id": reply.user_id,
            "author_name": reply.author.display_name if reply.author else "Anonymous",
            "content": reply.content,
            "is_answer": reply.is_answer,
            "upvotes": reply.upvotes,
            "created_at": reply.created_at,
        }

    @staticmethod
    def serialize_discussion(discussion: Discussion) -> Dict[str, Any]:
        return {
            "id": discussion.id,
            "user_id": discussion.user_id,
            "author_name": discussion.author.display_name if discussion.author else "Anonymous",
            "title": discussion.title,
            "content": discussion.content,
            "category": discussion.category,
            "tags": discussion.tags or [],
            "is_pinned": discussion.is_pinned,
            "view_count": discussion.view_count,
            "reply_count": discussion.reply_count,
            "created_at": discussion.created_at,
            "updated_at": discussion.updated_at,
        }

    async def _get_discussion(self, db: AsyncSession, discussion_id: str, with_replies: bool = False) -> Discussion:
        query = select(Discussion).where(Discussion.id == discussion_id)
        if with_replies:
            query = query.options(selectinload(Discussion.replies).joinedload(DiscussionReply.author))
        result = await db.execute(query)
        discussion = result.unique().scalar_one_or_none()
        if not discussion:
            raise ResourceNotFoundError("Discussion", discussion_id, message="Discussion not found")
        return discussion

    async def _get_reply(self, db: AsyncSession, reply_id: str) -> DiscussionReply:
        result = await db.execute(select(DiscussionReply).where(DiscussionReply.id == reply_id))
        reply = result.unique().scalar_one_or_none()
        if not reply:
            raise ResourceNotFoundError("Reply", reply_id, message="Reply not found")
        return reply

    async def list_discussions(self, db: AsyncSession, category: Optional[str] = None) -> List[Dict[str, Any]]:
        query = select(Discussion)
        if category and category != "all":
            query = query.where(Discussion.category == category)
        result = await db.execute(
            query.order_by(Discussion.is_pinned.desc(), Discussion.created_at.desc()).limit(LIST_LIMIT)
        )
        return [self.serialize_discussion(d) for d in result.unique().scalars().all()]

    async def create_discussion(self, db: AsyncSession, user: User, data) -> Dict[str, Any]:
        title = (data.title or "").strip()
        content = (data.content or "").strip()
        if not title or not content:
            raise ValidationError("Title and content are required")
        category = (data.category or "general").strip().lower()
        if category not in DISCUSSION_CATEGORIES:
            raise ValidationError(f"Invalid category. Must be one of: {', '.join(DISCUSSION_CATEGORIES)}", field="category")

        discussion = Discussion(
            user_id=user.id,
            title=title,
            content=content,
            category=category,
            tags=parse_tags(data.tags),
        )
        discussion.author = user
        db.add(discussion)
        await db.commit()
        logger.info(f"Discussion {discussion.id} created by {user.id} in {category}")
        return self.serialize_discussion(discussion)

    async def get_discussion(self, db: AsyncSession, discussion_id: str) -> Dict[str, Any]:
        discussion = await self._get_discussion(db, discussion_id, with_replies=True)
        discussion.view_count = (discussion.view_count or 0) + 1
        await db.commit()
        return {
            **self.serialize_discussion(discussion),
            "replies": [self.serialize_reply(r) for r in order_replies(discussion.replies)],
        }

    async def add_reply(self, db: AsyncSession, user: User, discussion_id: str, content: str) -> Dict[str, Any]:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Content is required", field="content")
        discussion = await self._get_discussion(db, discussion_id)

        reply = DiscussionReply(discussion=discussion, user_id=user.id, content=content)
        reply.author = user
        db.add(reply)
        discussion.reply_count = (discussion.reply_count or 0) + 1
        await db.commit()
        return self.serialize_reply(reply)

    async def upvote_reply(self, db: AsyncSession, reply_id: str) -> Dict[str, Any]:
        reply = await self._get_reply(db, reply_id)
        reply.upvotes = (reply.upvotes or 0) + 1
        await db.commit()
        return {"success": True, "upvotes": reply.upvotes}

    async def accept_answer(self, db: AsyncSession, user: User, reply_id: str) -> Dict[str, Any]:
        """Only the thread author can accept; accepting clears any earlier answer"""
        reply = await self._get_reply(db, reply_id)
        discussion = await self._get_discussion(db, reply.discussion_id, with_replies=True)
        if discussion.user_id != user.id:
            raise AuthorizationError("Only the discussion author can accept an answer")

        for other in discussion.replies:
            other.is_answer = other.id == reply.id
        await db.commit()
        return {"success": True, "reply_id": reply.id}

    async def toggle_pin(self, db: AsyncSession, discussion_id: str) -> Dict[str, Any]:
        discussion = await self._get_discussion(db, discussion_id)
        discussion.is_pinned = not discussion.is_pinned
        await db.commit()
        return {"success": True, "is_pinned": discussion.is_pinned}

    async def delete_discussion(self, db: AsyncSession, user: User, discussion_id: str) -> Dict[str, Any]:
        discussion = await self._get_discussion(db, discussion_id, with_replies=True)
        if discussion.user_id != user.id and not user.is_admin:
            raise AuthorizationError("Not allowed to delete this discussion")
        await db.delete(discussion)
        await db.commit()
        logger.info(f"Discussion {discussion_id} deleted by {user.id}")
        return {"success": True}


# Singleton instance
community_service = CommunityService()
