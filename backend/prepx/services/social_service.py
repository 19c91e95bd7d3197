"""
Social Auto-Publisher Service (admin team tool)

Handles:
- Team membership and per-action permissions
- Platform formatting rules and per-platform disclaimers
- Draft -> scheduled -> published post lifecycle with a publishing queue
- OAuth / bot-token account connections
- Post analytics
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
from urllib.parse import urlencode
import base64
import json
import logging
import time

from prepx.core.config import settings
from prepx.core.exceptions import (
    AuthorizationError,
    ExternalServiceError,
    ResourceNotFoundError,
    ValidationError,
)
from prepx.models.social import (
    SocialTeamMember,
    SocialAccount,
    SocialPost,
    PublishQueue,
    PostAnalytics,
    SocialDisclaimer,
    PostStatus,
    AccountStatus,
    QueueStatus,
)
from prepx.models.user import User
from prepx.utils.http_client import http_client

logger = logging.getLogger(__name__)

PLATFORMS = {
    "youtube": {"name": "YouTube", "icon": "youtube", "max_caption": 5000, "optimal_posting_hours": [12, 15, 18, 20]},
    "instagram": {"name": "Instagram", "icon": "instagram", "max_caption": 2200, "optimal_posting_hours": [9, 12, 19, 21]},
    "facebook": {"name": "Facebook", "icon": "facebook", "max_caption": 63206, "optimal_posting_hours": [9, 13, 16]},
    "twitter": {"name": "Twitter / X", "icon": "twitter", "max_caption": 280, "optimal_posting_hours": [8, 12, 17]},
    "telegram": {"name": "Telegram", "icon": "telegram", "max_caption": 1024, "optimal_posting_hours": [7, 13, 20]},
}

OAUTH_CONFIGS = {
    "youtube": {
        "auth_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "scopes": ["https://www.googleapis.com/auth/youtube.upload", "https://www.googleapis.com/auth/youtube"],
    },
    "instagram": {
        "auth_url": "https://api.instagram.com/oauth/authorize",
        "token_url": "https://api.instagram.com/oauth/access_token",
        "scopes": ["instagram_basic", "instagram_content_publish"],
    },
    "facebook": {
        "auth_url": "https://www.facebook.com/v18.0/dialog/oauth",
        "token_url": "https://graph.facebook.com/v18.0/oauth/access_token",
        "scopes": ["pages_manage_posts", "pages_read_engagement"],
    },
    "twitter": {
        "auth_url": "https://twitter.com/i/oauth2/authorize",
        "token_url": "https://api.twitter.com/2/oauth2/token",
        "scopes": ["tweet.read", "tweet.write", "users.read"],
    },
    # Telegram connects with a bot token instead of OAuth
    "telegram": {"auth_url": "", "token_url": "", "scopes": []},
}

CONTENT_TYPES = {
    "daily_ca": {"name": "Daily Current Affairs", "hashtags": ["UPSC", "CurrentAffairs", "IAS", "DailyCA"]},
    "weekly_documentary": {"name": "Weekly Documentary", "hashtags": ["UPSC", "WeeklyRoundup", "CivilServices"]},
    "pyq_explainer": {"name": "PYQ Explainer", "hashtags": ["UPSC", "PYQ", "Prelims", "Mains"]},
    "topic_short": {"name": "Topic Short", "hashtags": ["UPSC", "StudyTips", "IAS"]},
    "motivation": {"name": "Motivation", "hashtags": ["UPSC", "Motivation", "IASAspirant"]},
}

DEFAULT_SCHEDULE_DELAY = timedelta(hours=1)
RECENT_LIMIT = 10
POSTS_LIMIT = 50


def _client_credentials(platform: str) -> Dict[str, str]:
    if platform == "youtube":
        return {"client_id": settings.YOUTUBE_CLIENT_ID, "client_secret": settings.YOUTUBE_CLIENT_SECRET}
    if platform in ("instagram", "facebook"):
        return {"client_id": settings.META_APP_ID, "client_secret": settings.META_APP_SECRET}
    if platform == "twitter":
        return {"client_id": settings.TWITTER_CLIENT_ID, "client_secret": settings.TWITTER_CLIENT_SECRET}
    return {"client_id": "", "client_secret": ""}


def format_for_platform(
    platform: str,
    title: str,
    caption: str,
    hashtags: List[str],
    media_urls: List[str],
    disclaimer: Optional[str] = None,
) -> Dict[str, Any]:
    """Shape one post into the payload each platform's publish API expects"""
    hashtag_string = " ".join(f"#{h}" for h in hashtags[:30])
    disclaimer_block = f"\n\n{disclaimer}" if disclaimer else ""

    if platform == "youtube":
        return {
            "snippet": {
                "title": title[:100],
                "description": f"{caption}\n\n{hashtag_string}{disclaimer_block}",
                "tags": hashtags[:50],
                "categoryId": "27",  # Education
            },
            "status": {"privacyStatus": "public", "selfDeclaredMadeForKids": False},
        }
    if platform == "instagram":
        return {
            "caption": f"{caption[:2000]}\n\n{hashtag_string}"[:2200],
            "media_type": "REELS" if media_urls and media_urls[0].lower().endswith(".mp4") else "IMAGE",
            "share_to_feed": True,
            "cover_url": media_urls[1] if len(media_urls) > 1 else None,
        }
    if platform == "facebook":
        return {
            "message": f"{title}\n\n{caption[:1000]}\n\n{hashtag_string}{disclaimer_block}",
            "link": media_urls[0] if media_urls else None,
            "published": True,
        }
    if platform == "twitter":
        return {"text": f"{title[:100]}\n\n{caption[:120]}"[:280]}
    if platform == "telegram":
        return {
            "caption": f"*{title}*\n\n{caption[:800]}\n\n{hashtag_string}",
            "parse_mode": "Markdown",
            "disable_notification": False,
        }
    return {"title": title, "caption": caption, "hashtags": hashtags}


def encode_state(platform: str, user_id: str) -> str:
    raw = json.dumps({"platform": platform, "userId": user_id, "timestamp": int(time.time() * 1000)})
    return base64.urlsafe_b64encode(raw.encode()).decode()


class SocialService:
    """Publishing workflow for the admin social team"""

    # ==================== ACCESS ====================

    async def get_member(self, db: AsyncSession, user: User) -> SocialTeamMember:
        """
        Active team membership for the user.

        Platform admins without a row act as owners so the first team can be
        bootstrapped.

        Raises:
            AuthorizationError: not a team member
        """
        result = await db.execute(
            select(SocialTeamMember).where(
                SocialTeamMember.user_id == user.id,
                SocialTeamMember.is_active == True,  # noqa: E712
            )
        )
        member = result.scalar_one_or_none()
        if member:
            return member
        if user.is_admin:
            return SocialTeamMember(
                user_id=user.id,
                role="owner",
                can_publish=True,
                can_schedule=True,
                can_connect_accounts=True,
                can_manage_team=True,
                is_active=True,
            )
        raise AuthorizationError("Not a team member")

    async def require(self, db: AsyncSession, user: User, permission: str) -> SocialTeamMember:
        member = await self.get_member(db, user)
        if not member.has_permission(permission):
            raise AuthorizationError(
                f"No {permission.replace('_', ' ')} permission",
                details={"required_permission": permission},
            )
        return member

    # ==================== SERIALIZATION ====================

    @staticmethod
    def serialize_analytics(analytics: Optional[PostAnalytics]) -> Optional[Dict[str, Any]]:
        if not analytics:
            return None
        return {
            "views": analytics.views,
            "likes": analytics.likes,
            "comments": analytics.comments,
            "shares": analytics.shares,
            "saves": analytics.saves,
            "engagement_rate": analytics.engagement_rate,
            "platform_metrics": analytics.platform_metrics or {},
            "synced_at": analytics.synced_at,
        }

    def serialize_post(self, post: SocialPost, with_analytics: bool = True) -> Dict[str, Any]:
        return {
            "id": post.id,
            "title": post.title,
            "caption": post.caption,
            "hashtags": post.hashtags or [],
            "media_urls": post.media_urls or [],
            "platform": post.platform,
            "account_id": post.account_id,
            "content_type": post.content_type,
            "source_content_id": post.source_content_id,
            "formatted_content": post.formatted_content or {},
            "disclaimer": post.disclaimer,
            "status": post.status,
            "scheduled_at": post.scheduled_at,
            "published_at": post.published_at,
            "platform_url": post.platform_url,
            "approved_by": post.approved_by,
            "created_by": post.created_by,
            "created_at": post.created_at,
            "analytics": self.serialize_analytics(post.analytics) if with_analytics else None,
        }

    @staticmethod
    def serialize_account(account: SocialAccount) -> Dict[str, Any]:
        return {
            "id": account.id,
            "platform": account.platform,
            "account_name": account.account_name,
            "account_handle": account.account_handle,
            "status": account.status,
            "scopes": account.scopes or [],
            "token_expires_at": account.token_expires_at,
            "created_at": account.created_at,
        }

    # ==================== CATALOGUES ====================

    @staticmethod
    def list_platforms() -> List[Dict[str, Any]]:
        return [{"slug": slug, **info} for slug, info in PLATFORMS.items()]

    @staticmethod
    def list_content_types() -> List[Dict[str, Any]]:
        return [{"slug": slug, **info} for slug, info in CONTENT_TYPES.items()]

    @staticmethod
    def optimal_times(platform: Optional[str] = None) -> Dict[str, List[int]]:
        if platform:
            if platform not in PLATFORMS:
                raise ValidationError("Invalid platform", field="platform")
            return {platform: PLATFORMS[platform]["optimal_posting_hours"]}
        return {slug: info["optimal_posting_hours"] for slug, info in PLATFORMS.items()}

    # ==================== DASHBOARD ====================

    async def get_dashboard(self, db: AsyncSession) -> Dict[str, Any]:
        counts = await db.execute(select(SocialPost.status, func.count(SocialPost.id)).group_by(SocialPost.status))
        by_status = {status.value: 0 for status in PostStatus}
        by_status.update({status: count for status, count in counts.all()})

        accounts = await db.execute(
            select(func.count(SocialAccount.id)).where(SocialAccount.status == AccountStatus.ACTIVE.value)
        )
        recent = await db.execute(
            select(SocialPost)
            .options(selectinload(SocialPost.analytics))
            .order_by(SocialPost.created_at.desc())
            .limit(RECENT_LIMIT)
        )
        return {
            "posts_by_status": by_status,
            "connected_accounts": accounts.scalar() or 0,
            "recent_posts": [self.serialize_post(p) for p in recent.scalars().all()],
        }

    # ==================== POSTS ====================

    async def _get_post(self, db: AsyncSession, post_id: str) -> SocialPost:
        result = await db.execute(
            select(SocialPost).options(selectinload(SocialPost.analytics)).where(SocialPost.id == post_id)
        )
        post = result.scalar_one_or_none()
        if not post:
            raise ResourceNotFoundError("Post", post_id, message="Post not found")
        return post

    async def list_posts(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        platform: Optional[str] = None,
        limit: int = POSTS_LIMIT,
    ) -> List[Dict[str, Any]]:
        query = select(SocialPost).options(selectinload(SocialPost.analytics))
        if status:
            query = query.where(SocialPost.status == status)
        if platform:
            query = query.where(SocialPost.platform == platform)
        result = await db.execute(query.order_by(SocialPost.created_at.desc()).limit(limit))
        return [self.serialize_post(p) for p in result.scalars().all()]

    async def get_post(self, db: AsyncSession, post_id: str) -> Dict[str, Any]:
        return self.serialize_post(await self._get_post(db, post_id))

    async def list_scheduled(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(SocialPost)
            .options(selectinload(SocialPost.analytics))
            .where(SocialPost.status == PostStatus.SCHEDULED.value, SocialPost.scheduled_at > datetime.utcnow())
            .order_by(SocialPost.scheduled_at.asc())
        )
        return [self.serialize_post(p) for p in result.scalars().all()]

    async def list_drafts(self, db: AsyncSession) -> List[Dict[str, Any]]:
        return await self.list_posts(db, status=PostStatus.DRAFT.value, limit=POSTS_LIMIT)

    async def _disclaimer_for(self, db: AsyncSession, platform: str, content_type: Optional[str]) -> Optional[str]:
        result = await db.execute(
            select(SocialDisclaimer).where(
                SocialDisclaimer.platform == platform,
                SocialDisclaimer.is_active == True,  # noqa: E712
            )
        )
        rows = result.scalars().all()
        # A content-type specific disclaimer wins over the platform-wide one
        for row in rows:
            if content_type and row.content_type == content_type:
                return row.disclaimer_text
        for row in rows:
            if not row.content_type:
                return row.disclaimer_text
        return None

    async def _active_account(self, db: AsyncSession, platform: str) -> Optional[SocialAccount]:
        result = await db.execute(
            select(SocialAccount)
            .where(SocialAccount.platform == platform, SocialAccount.status == AccountStatus.ACTIVE.value)
            .order_by(SocialAccount.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def _enqueue(self, db: AsyncSession, post: SocialPost) -> None:
        db.add(PublishQueue(
            post_id=post.id,
            platform=post.platform,
            status=QueueStatus.PENDING.value,
            next_attempt_at=post.scheduled_at,
        ))

    async def create_post(self, db: AsyncSession, user: User, data) -> Dict[str, Any]:
        """One post per requested platform, each formatted for its platform"""
        await self.require(db, user, "schedule")
        unknown = [p for p in data.platforms if p not in PLATFORMS]
        if unknown:
            raise ValidationError(f"Invalid platform: {', '.join(unknown)}", field="platforms")

        hashtags = data.hashtags or CONTENT_TYPES.get(data.content_type or "", {}).get("hashtags", [])
        status = PostStatus.SCHEDULED.value if data.schedule else PostStatus.DRAFT.value
        scheduled_at = data.scheduled_at or datetime.utcnow() + DEFAULT_SCHEDULE_DELAY

        posts = []
        for platform in data.platforms:
            disclaimer = await self._disclaimer_for(db, platform, data.content_type)
            account_id = data.account_id
            if not account_id:
                account = await self._active_account(db, platform)
                account_id = account.id if account else None

            post = SocialPost(
                content_type=data.content_type,
                source_content_id=data.source_content_id,
                title=data.title,
                caption=data.caption,
                hashtags=hashtags,
                media_urls=data.media_urls,
                platform=platform,
                account_id=account_id,
                formatted_content=format_for_platform(
                    platform, data.title, data.caption, hashtags, data.media_urls, disclaimer
                ),
                disclaimer=disclaimer,
                status=status,
                scheduled_at=scheduled_at,
                created_by=user.id,
            )
            db.add(post)
            posts.append(post)

        await db.flush()
        if status == PostStatus.SCHEDULED.value:
            for post in posts:
                self._enqueue(db, post)
        await db.commit()

        logger.info(f"Social post '{data.title[:40]}' created for {data.platforms} as {status} by {user.id}")
        return {"success": True, "posts": [self.serialize_post(p, with_analytics=False) for p in posts]}

    async def schedule_post(self, db: AsyncSession, user: User, post_id: str, scheduled_at: Optional[datetime]) -> Dict[str, Any]:
        await self.require(db, user, "schedule")
        post = await self._get_post(db, post_id)
        if post.status not in (PostStatus.DRAFT.value, PostStatus.SCHEDULED.value):
            raise ValidationError("Only draft or scheduled posts can be scheduled")

        was_scheduled = post.status == PostStatus.SCHEDULED.value
        post.status = PostStatus.SCHEDULED.value
        post.scheduled_at = scheduled_at or datetime.utcnow() + DEFAULT_SCHEDULE_DELAY
        post.updated_by = user.id
        if was_scheduled:
            await self._update_queue(db, post.id, next_attempt_at=post.scheduled_at)
        else:
            self._enqueue(db, post)
        await db.commit()
        return {"success": True, "post": self.serialize_post(post)}

    async def update_post(self, db: AsyncSession, user: User, post_id: str, data) -> Dict[str, Any]:
        await self.require(db, user, "schedule")
        post = await self._get_post(db, post_id)
        if post.status == PostStatus.PUBLISHED.value:
            raise ValidationError("Published posts cannot be edited")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(post, field, value)
        post.formatted_content = format_for_platform(
            post.platform, post.title, post.caption or "", post.hashtags or [], post.media_urls or [], post.disclaimer
        )
        post.updated_by = user.id
        await db.commit()
        return {"success": True, "post": self.serialize_post(post)}

    async def approve_post(self, db: AsyncSession, user: User, post_id: str) -> Dict[str, Any]:
        await self.require(db, user, "publish")
        post = await self._get_post(db, post_id)
        if post.status != PostStatus.DRAFT.value:
            raise ValidationError("Only drafts can be approved")

        post.approved_by = user.id
        post.approved_at = datetime.utcnow()
        post.status = PostStatus.SCHEDULED.value
        post.scheduled_at = post.scheduled_at or datetime.utcnow() + DEFAULT_SCHEDULE_DELAY
        self._enqueue(db, post)
        await db.commit()
        return {"success": True, "post": self.serialize_post(post)}

    async def _update_queue(self, db: AsyncSession, post_id: str, **values) -> None:
        result = await db.execute(select(PublishQueue).where(PublishQueue.post_id == post_id))
        for entry in result.scalars().all():
            for key, value in values.items():
                setattr(entry, key, value)

    async def cancel_post(self, db: AsyncSession, user: User, post_id: str) -> Dict[str, Any]:
        await self.get_member(db, user)
        post = await self._get_post(db, post_id)
        if post.status not in (PostStatus.DRAFT.value, PostStatus.SCHEDULED.value):
            raise ValidationError("Only draft or scheduled posts can be cancelled")

        post.status = PostStatus.CANCELLED.value
        post.updated_by = user.id
        await self._update_queue(db, post.id, status=QueueStatus.CANCELLED.value)
        await db.commit()
        return {"success": True}

    async def reschedule_post(self, db: AsyncSession, user: User, post_id: str, new_time: Optional[datetime]) -> Dict[str, Any]:
        await self.require(db, user, "schedule")
        if not new_time:
            raise ValidationError("scheduled_at is required", field="scheduled_at")
        post = await self._get_post(db, post_id)
        if post.status != PostStatus.SCHEDULED.value:
            raise ValidationError("Only scheduled posts can be rescheduled")

        post.scheduled_at = new_time
        post.updated_by = user.id
        await self._update_queue(db, post.id, next_attempt_at=new_time)
        await db.commit()
        return {"success": True, "post": self.serialize_post(post)}

    async def publish_now(self, db: AsyncSession, user: User, post_id: str) -> Dict[str, Any]:
        """
        Mark a post published immediately.

        Platform publish calls are simulated: the post gets a synthetic
        platform id and URL, and an empty analytics row is created.
        """
        await self.require(db, user, "publish")
        post = await self._get_post(db, post_id)
        if post.status in (PostStatus.PUBLISHED.value, PostStatus.CANCELLED.value):
            raise ValidationError(f"Post is already {post.status}")

        stamp = int(time.time() * 1000)
        platform_url = f"https://{post.platform}.com/post/{stamp}"
        post.status = PostStatus.PUBLISHED.value
        post.published_at = datetime.utcnow()
        post.platform_post_id = f"sim_{stamp}"
        post.platform_url = platform_url
        post.updated_by = user.id

        if not post.analytics:
            post.analytics = PostAnalytics(views=0, likes=0, comments=0, shares=0, saves=0)
        await self._update_queue(db, post.id, status=QueueStatus.DONE.value)
        await db.commit()

        logger.info(f"Social post {post.id} published to {post.platform}")
        return {"success": True, "platform_url": platform_url}

    async def get_queue(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(PublishQueue, SocialPost)
            .join(SocialPost, SocialPost.id == PublishQueue.post_id)
            .where(PublishQueue.status.in_([QueueStatus.PENDING.value, QueueStatus.PROCESSING.value]))
            .order_by(PublishQueue.next_attempt_at.asc())
            .limit(POSTS_LIMIT)
        )
        return [
            {
                "id": entry.id,
                "post_id": post.id,
                "title": post.title,
                "platform": entry.platform,
                "status": entry.status,
                "attempts": entry.attempts,
                "next_attempt_at": entry.next_attempt_at,
                "last_error": entry.last_error,
            }
            for entry, post in result.all()
        ]

    # ==================== ANALYTICS ====================

    async def get_analytics(self, db: AsyncSession, post_id: Optional[str] = None, days: int = 30) -> Dict[str, Any]:
        if post_id:
            post = await self._get_post(db, post_id)
            return {"analytics": self.serialize_analytics(post.analytics)}

        since = datetime.utcnow() - timedelta(days=days)
        result = await db.execute(
            select(SocialPost)
            .options(selectinload(SocialPost.analytics))
            .where(SocialPost.status == PostStatus.PUBLISHED.value, SocialPost.published_at >= since)
            .order_by(SocialPost.published_at.desc())
        )
        posts = result.scalars().all()
        totals = {"views": 0, "likes": 0, "comments": 0, "shares": 0}
        for post in posts:
            if post.analytics:
                for key in totals:
                    totals[key] += getattr(post.analytics, key) or 0
        return {
            "posts": [self.serialize_post(p) for p in posts],
            "totals": totals,
            "period_days": days,
        }

    async def sync_analytics(self, db: AsyncSession, user: User, post_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        await self.get_member(db, user)
        post = await self._get_post(db, post_id)
        analytics = post.analytics
        if not analytics:
            analytics = PostAnalytics()
            post.analytics = analytics

        for key in ("views", "likes", "comments", "shares", "saves"):
            setattr(analytics, key, int(data.get(key) or 0))
        interactions = analytics.likes + analytics.comments + analytics.shares + analytics.saves
        analytics.engagement_rate = round(interactions / analytics.views * 100, 2) if analytics.views else 0.0
        analytics.platform_metrics = dict(data.get("platform_metrics") or {})
        analytics.synced_at = datetime.utcnow()
        await db.commit()
        return {"success": True, "analytics": self.serialize_analytics(analytics)}

    # ==================== ACCOUNTS ====================

    async def list_accounts(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(select(SocialAccount).order_by(SocialAccount.created_at.desc()))
        return [self.serialize_account(a) for a in result.scalars().all()]

    def oauth_url(self, platform: str, user_id: str) -> Dict[str, Any]:
        if platform not in OAUTH_CONFIGS:
            raise ValidationError("Invalid platform", field="platform")
        if platform == "telegram":
            return {"type": "bot_token", "instructions": "Enter your Telegram Bot Token to connect"}

        config = OAUTH_CONFIGS[platform]
        state = encode_state(platform, user_id)
        params = {
            "client_id": _client_credentials(platform)["client_id"],
            "redirect_uri": settings.SOCIAL_OAUTH_REDIRECT_URI,
            "scope": " ".join(config["scopes"]),
            "response_type": "code",
            "state": state,
            "access_type": "offline",
        }
        return {"auth_url": f"{config['auth_url']}?{urlencode(params)}", "state": state}

    async def connect_account(self, db: AsyncSession, user: User, data) -> Dict[str, Any]:
        """
        Connect a platform account.

        Telegram validates the bot token with getMe; every other platform
        exchanges the OAuth code at its token endpoint.

        Raises:
            ValidationError: unknown platform, bad bot token or failed exchange
        """
        await self.require(db, user, "connect")
        if data.platform not in OAUTH_CONFIGS:
            raise ValidationError("Invalid platform", field="platform")

        if data.platform == "telegram":
            bot_token = data.bot_token or data.code or settings.TELEGRAM_BOT_TOKEN
            if not bot_token:
                raise ValidationError("Bot token is required", field="bot_token")
            try:
                bot = await http_client.get_json("telegram", f"https://api.telegram.org/bot{bot_token}/getMe")
            except ExternalServiceError:
                raise ValidationError("Invalid bot token", field="bot_token")
            if not isinstance(bot, dict) or not bot.get("ok"):
                raise ValidationError("Invalid bot token", field="bot_token")
            info = bot.get("result") or {}
            account = SocialAccount(
                platform="telegram",
                account_name=info.get("first_name") or "Telegram Bot",
                account_handle=f"@{info.get('username')}" if info.get("username") else None,
                external_account_id=str(data.channel_id or info.get("id") or ""),
                access_token=bot_token,
                scopes=["send_messages"],
                connected_by=user.id,
            )
        else:
            if not data.code:
                raise ValidationError("Authorization code is required", field="code")
            config = OAUTH_CONFIGS[data.platform]
            try:
                tokens = await http_client.post_form(
                    data.platform,
                    config["token_url"],
                    {
                        **_client_credentials(data.platform),
                        "code": data.code,
                        "grant_type": "authorization_code",
                        "redirect_uri": data.redirect_uri or settings.SOCIAL_OAUTH_REDIRECT_URI,
                    },
                )
            except ExternalServiceError as e:
                raise ValidationError(f"OAuth failed: {e.message}")
            if not isinstance(tokens, dict):
                raise ValidationError("OAuth failed")
            if tokens.get("error") or not tokens.get("access_token"):
                raise ValidationError(tokens.get("error_description") or "OAuth failed")

            expires_in = tokens.get("expires_in")
            account = SocialAccount(
                platform=data.platform,
                account_name="Connected Account",
                external_account_id=str(tokens.get("user_id") or ""),
                access_token=tokens["access_token"],
                refresh_token=tokens.get("refresh_token"),
                token_expires_at=datetime.utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None,
                scopes=config["scopes"],
                connected_by=user.id,
            )

        db.add(account)
        await db.commit()
        logger.info(f"Social account connected: {account.platform} by {user.id}")
        return {"success": True, "account": self.serialize_account(account)}

    async def disconnect_account(self, db: AsyncSession, user: User, account_id: str) -> Dict[str, Any]:
        await self.require(db, user, "connect")
        result = await db.execute(select(SocialAccount).where(SocialAccount.id == account_id))
        account = result.scalar_one_or_none()
        if not account:
            raise ResourceNotFoundError("Account", account_id)
        account.status = AccountStatus.REVOKED.value
        await db.commit()
        return {"success": True}

    # ==================== TEAM ====================

    @staticmethod
    def serialize_member(member: SocialTeamMember, email: Optional[str] = None) -> Dict[str, Any]:
        return {
            "id": member.id,
            "user_id": member.user_id,
            "email": email,
            "role": member.role,
            "can_publish": member.can_publish,
            "can_schedule": member.can_schedule,
            "can_connect_accounts": member.can_connect_accounts,
            "can_manage_team": member.can_manage_team,
            "accepted_at": member.accepted_at,
        }

    async def list_team(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(SocialTeamMember, User.email)
            .join(User, User.id == SocialTeamMember.user_id)
            .where(SocialTeamMember.is_active == True)  # noqa: E712
            .order_by(SocialTeamMember.created_at.asc())
        )
        return [self.serialize_member(member, email) for member, email in result.all()]

    async def add_team_member(self, db: AsyncSession, user: User, data) -> Dict[str, Any]:
        await self.require(db, user, "manage_team")
        result = await db.execute(select(User).where(User.email == data.email))
        target = result.scalar_one_or_none()
        if not target:
            raise ResourceNotFoundError("User", message="User not found")

        existing = await db.execute(select(SocialTeamMember).where(SocialTeamMember.user_id == target.id))
        member = existing.scalar_one_or_none()
        if not member:
            member = SocialTeamMember(user_id=target.id)
            db.add(member)

        member.role = data.role
        member.can_publish = data.can_publish
        member.can_schedule = data.can_schedule
        member.can_connect_accounts = data.can_connect_accounts
        member.can_manage_team = data.can_manage_team
        member.is_active = True
        member.invited_by = user.id
        member.accepted_at = datetime.utcnow()
        await db.commit()

        logger.info(f"Social team member {target.email} added as {data.role} by {user.id}")
        return {"success": True, "member": self.serialize_member(member, target.email)}

    async def remove_team_member(self, db: AsyncSession, user: User, member_id: str) -> Dict[str, Any]:
        await self.require(db, user, "manage_team")
        result = await db.execute(select(SocialTeamMember).where(SocialTeamMember.id == member_id))
        member = result.scalar_one_or_none()
        if not member:
            raise ResourceNotFoundError("Team member", member_id)
        member.is_active = False
        await db.commit()
        return {"success": True}

    # ==================== DISCLAIMERS ====================

    @staticmethod
    def serialize_disclaimer(disclaimer: SocialDisclaimer) -> Dict[str, Any]:
        return {
            "id": disclaimer.id,
            "platform": disclaimer.platform,
            "content_type": disclaimer.content_type,
            "disclaimer_text": disclaimer.disclaimer_text,
            "is_required": disclaimer.is_required,
            "placement": disclaimer.placement,
        }

    async def list_disclaimers(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(SocialDisclaimer).where(SocialDisclaimer.is_active == True)  # noqa: E712
        )
        return [self.serialize_disclaimer(d) for d in result.scalars().all()]

    async def update_disclaimer(self, db: AsyncSession, user: User, data) -> Dict[str, Any]:
        """Upsert the disclaimer for a platform (and optional content type)"""
        await self.require(db, user, "manage_team")
        if data.platform not in PLATFORMS:
            raise ValidationError("Invalid platform", field="platform")

        result = await db.execute(
            select(SocialDisclaimer).where(
                SocialDisclaimer.platform == data.platform,
                SocialDisclaimer.content_type == data.content_type
                if data.content_type else SocialDisclaimer.content_type.is_(None),
            )
        )
        disclaimer = result.scalar_one_or_none()
        if not disclaimer:
            disclaimer = SocialDisclaimer(platform=data.platform, content_type=data.content_type)
            db.add(disclaimer)

        disclaimer.disclaimer_text = data.disclaimer_text
        disclaimer.is_required = data.is_required
        disclaimer.placement = data.placement
        disclaimer.is_active = True
        await db.commit()
        return {"success": True, "disclaimer": self.serialize_disclaimer(disclaimer)}


# Singleton instance
social_service = SocialService()
