"""
Weekly Documentary Service

Builds the 15-30 minute weekly current-affairs documentary:

    aggregate -> extract_topics -> generate_script -> request_manim -> render

The pipeline runs as a background task with its own DB session. Each step
commits, so render_status is observable while it runs. Publishing cuts three
60-second social clips from the top topics.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from datetime import date, datetime, timedelta
from typing import Optional, List, Dict, Any
import logging

from prepx.core.config import settings
from prepx.core.database import background_session
from prepx.core.exceptions import AIServiceError, ExternalServiceError, ResourceNotFoundError, ValidationError
from prepx.models.documentary import (
    DailyCurrentAffairs,
    DocumentaryClip,
    RenderStatus,
    ScheduleStatus,
    WeeklyDocSchedule,
    WeeklyDocumentary,
)
from prepx.utils.claude_client import claude_client
from prepx.utils.http_client import http_client

logger = logging.getLogger(__name__)

RENDER_PRIORITY = {
    "DAILY_CA": 100,
    "WEEKLY_DOC": 50,
    "DOCUMENTARY": 25,
}

DURATION_TARGETS = {
    "MIN_SECONDS": 900,
    "MAX_SECONDS": 1800,
    "OVERVIEW_SECONDS": 180,
    "STORY_SECONDS": 300,
    "QUIZ_SECONDS": 120,
}

EXPERT_SEGMENT_SECONDS = 60
CLIP_SECONDS = 60
CLIP_PLATFORMS = ["youtube_shorts", "instagram_reels", "twitter"]
NEWS_ITEMS_PER_DAY = 5
MAX_TOPICS = 20
ARCHIVE_LIMIT = 12
SCHEDULE_LIMIT = 20

IR_CATEGORIES = {"ir", "international relations"}
SEGMENT_TITLES = {"economy": "Economy", "polity": "Polity", "ir": "IR", "environment": "Environment"}

SYSTEM_PROMPT = "You are a UPSC current affairs expert creating documentary content."

SAMPLE_TOPICS = [
    {"title": "Union Budget Highlights", "category": "Economy", "importance": 0.95,
     "summary": "Key allocations, fiscal deficit targets and new schemes announced in the Union Budget."},
    {"title": "Constitutional Amendment Bill", "category": "Polity", "importance": 0.92,
     "summary": "Provisions of the amendment bill and its implications for Centre-State relations."},
    {"title": "India-US Strategic Dialogue", "category": "International Relations", "importance": 0.90,
     "summary": "Defence, technology and trade outcomes of the bilateral dialogue."},
    {"title": "Climate Action Framework", "category": "Environment", "importance": 0.88,
     "summary": "India's updated climate commitments and the domestic implementation framework."},
    {"title": "Space Technology Launch", "category": "Science", "importance": 0.85,
     "summary": "Mission objectives of the launch and India's growing space capabilities."},
]


def week_bounds(day: Optional[date] = None) -> Dict[str, Any]:
    """Monday-Sunday ISO week containing `day` (defaults to today)"""
    day = day or date.today()
    start = day - timedelta(days=day.weekday())
    iso_year, iso_week, _ = start.isocalendar()
    return {"start": start, "end": start + timedelta(days=6), "week_number": iso_week, "year": iso_year}


def sample_script(start: date, end: date) -> Dict[str, Any]:
    return {
        "week_overview": {
            "narration": (
                f"This week in UPSC news, we cover the most significant developments from {start} to {end}. "
                "From economic policy shifts to international diplomatic moves, here's your comprehensive "
                "weekly roundup."
            ),
            "duration_seconds": DURATION_TARGETS["OVERVIEW_SECONDS"],
            "key_themes": ["Economy", "Governance", "International Relations"],
        },
        "top_stories": [
            {
                "topic": "Major Economic Development",
                "category": "Economy",
                "narration": "This week saw significant economic developments...",
                "context": "Historical context of economic reforms...",
                "analysis": "From a UPSC perspective, this connects to...",
                "duration_seconds": DURATION_TARGETS["STORY_SECONDS"],
            }
        ],
        "segments": {
            "economy": {"narration": "In economy this week...", "duration_seconds": 120},
            "polity": {"narration": "Governance updates...", "duration_seconds": 120},
            "ir": {"narration": "On the international front...", "duration_seconds": 120},
            "environment": {"narration": "Environmental developments...", "duration_seconds": 120},
        },
        "expert_quotes": [
            {
                "expert_name": "Dr. Policy Expert",
                "expert_title": "Former Senior Bureaucrat",
                "quote": "This development marks a significant shift...",
                "topic": "Governance Reform",
            }
        ],
        "quiz_preview": {
            "questions": [{"question": "What was the key announcement?", "hint": "Think about budget..."}],
            "narration": "Test your knowledge with these questions...",
            "duration_seconds": DURATION_TARGETS["QUIZ_SECONDS"],
        },
    }


def script_to_segments(script: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a script into ordered, individually timed segments"""
    segments = []

    overview = script.get("week_overview") or {}
    segments.append({
        "segment_type": "week_overview",
        "title": "This Week in UPSC News",
        "narration": overview.get("narration", ""),
        "duration_seconds": overview.get("duration_seconds", DURATION_TARGETS["OVERVIEW_SECONDS"]),
    })

    for story in script.get("top_stories") or []:
        segments.append({
            "segment_type": "top_story",
            "title": story.get("topic", ""),
            "narration": (
                f"{story.get('narration', '')}\n\nContext: {story.get('context', '')}"
                f"\n\nAnalysis: {story.get('analysis', '')}"
            ),
            "duration_seconds": story.get("duration_seconds", DURATION_TARGETS["STORY_SECONDS"]),
        })

    for category, data in (script.get("segments") or {}).items():
        segments.append({
            "segment_type": category,
            "title": f"{SEGMENT_TITLES.get(category, category.capitalize())} Roundup",
            "narration": data.get("narration", ""),
            "duration_seconds": data.get("duration_seconds", 0),
        })

    for quote in script.get("expert_quotes") or []:
        segments.append({
            "segment_type": "expert_interview",
            "title": f"Expert View: {quote.get('topic', '')}",
            "narration": quote.get("quote", ""),
            "duration_seconds": EXPERT_SEGMENT_SECONDS,
            "expert_name": quote.get("expert_name"),
            "expert_title": quote.get("expert_title"),
        })

    quiz = script.get("quiz_preview") or {}
    questions = "\n".join(f"{i}. {q.get('question', '')}" for i, q in enumerate(quiz.get("questions") or [], 1))
    segments.append({
        "segment_type": "quiz_preview",
        "title": "Test Your Knowledge",
        "narration": f"{quiz.get('narration', '')}\n\n{questions}",
        "duration_seconds": quiz.get("duration_seconds", DURATION_TARGETS["QUIZ_SECONDS"]),
    })
    return segments


def total_duration(segments: List[Dict[str, Any]]) -> int:
    return sum(int(s.get("duration_seconds") or 0) for s in segments)


def is_ir(category: Optional[str]) -> bool:
    return (category or "").strip().lower() in IR_CATEGORIES


def build_manim_scenes(topics: List[Dict[str, Any]], week_number: int) -> List[Dict[str, Any]]:
    scenes = []
    if any((t.get("category") or "").lower() == "economy" for t in topics):
        scenes.append({
            "scene_type": "data_chart",
            "title": "Economic Indicators This Week",
            "data": {"chart_type": "bar", "metrics": ["GDP Growth", "Inflation", "Trade Balance"]},
            "duration_seconds": 15,
        })
    scenes.append({
        "scene_type": "timeline",
        "title": f"Week {week_number} Timeline",
        "data": {"events": [{"day": i, "event": t.get("title")} for i, t in enumerate(topics[:7], 1)]},
        "duration_seconds": 20,
    })
    if any(is_ir(t.get("category")) for t in topics):
        scenes.append({
            "scene_type": "comparison",
            "title": "International Relations Overview",
            "data": {"comparison_type": "bilateral", "countries": ["India", "Key Partners"]},
            "duration_seconds": 15,
        })
    return scenes


def normalize_topics(raw: List[Any]) -> List[Dict[str, Any]]:
    topics = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        title = item.get("title") or item.get("topic")
        if not title:
            continue
        topics.append({
            "title": str(title),
            "category": item.get("category") or "General",
            "importance": float(item.get("importance") or item.get("importance_score") or 0.5),
            "summary": item.get("summary") or "",
        })
    return topics[:MAX_TOPICS]


class DocumentaryService:
    """Weekly documentary generation pipeline, publishing and archive"""

    # ==================== TRIGGER ====================

    async def trigger(self, db: AsyncSession, triggered_by: Optional[str], week_start: Optional[date] = None) -> Dict[str, Any]:
        """Create the documentary and its schedule row; caller runs the pipeline in the background"""
        week = week_bounds(week_start)
        documentary = WeeklyDocumentary(
            title=f"UPSC Weekly Roundup: Week {week['week_number']}, {week['year']}",
            week_start_date=week["start"],
            week_end_date=week["end"],
            week_number=week["week_number"],
            year=week["year"],
            render_status=RenderStatus.PENDING.value,
        )
        db.add(documentary)
        await db.flush()

        now = datetime.utcnow()
        schedule = WeeklyDocSchedule(
            documentary_id=documentary.id,
            scheduled_time=now,
            triggered_at=now,
            triggered_by=triggered_by,
            status=ScheduleStatus.RUNNING.value,
        )
        db.add(schedule)
        await db.commit()
        logger.info(f"Weekly documentary {documentary.id} triggered for {week['year']}-W{week['week_number']}")

        return {
            "success": True,
            "doc_id": documentary.id,
            "schedule_id": schedule.id,
            "week_number": week["week_number"],
            "year": week["year"],
            "message": "Weekly documentary generation started",
        }

    # ==================== PIPELINE ====================

    async def run_pipeline(self, documentary_id: str, schedule_id: str) -> None:
        """Background entry point; owns its DB session and never raises"""
        async with background_session() as db:
            documentary = await db.get(WeeklyDocumentary, documentary_id)
            schedule = await db.get(WeeklyDocSchedule, schedule_id)
            if not documentary or not schedule:
                logger.error(f"Documentary pipeline: missing documentary {documentary_id} or schedule {schedule_id}")
                return

            try:
                await self.aggregate(db, documentary)
                await self.extract_topics(db, documentary)
                await self.generate_script(db, documentary)
                await self.request_manim(db, documentary)
                await self.render(db, documentary)

                schedule.status = ScheduleStatus.COMPLETED.value
                schedule.completed_at = datetime.utcnow()
                await db.commit()
                logger.info(f"Documentary pipeline completed for {documentary_id}")
            except Exception as e:
                logger.error(f"Documentary pipeline failed for {documentary_id}: {e}", exc_info=True)
                await db.rollback()
                schedule.status = ScheduleStatus.FAILED.value
                schedule.error_message = str(e)
                schedule.completed_at = datetime.utcnow()
                documentary.render_status = RenderStatus.FAILED.value
                await db.commit()

    async def aggregate(self, db: AsyncSession, documentary: WeeklyDocumentary) -> List[str]:
        documentary.render_status = RenderStatus.AGGREGATING.value
        documentary.render_started_at = datetime.utcnow()
        await db.commit()

        result = await db.execute(
            select(DailyCurrentAffairs.id)
            .where(
                DailyCurrentAffairs.ca_date >= documentary.week_start_date,
                DailyCurrentAffairs.ca_date <= documentary.week_end_date,
            )
            .order_by(DailyCurrentAffairs.ca_date.desc())
        )
        ids = [row[0] for row in result.all()]
        documentary.daily_ca_ids = ids
        documentary.source_news_count = len(ids) * NEWS_ITEMS_PER_DAY
        await db.commit()
        return ids

    async def extract_topics(self, db: AsyncSession, documentary: WeeklyDocumentary) -> List[Dict[str, Any]]:
        documentary.render_status = RenderStatus.EXTRACTING.value
        await db.commit()

        topics: List[Dict[str, Any]] = []
        if claude_client.is_configured:
            prompt = (
                "Analyze the following week's current affairs for UPSC exam relevance.\n"
                "Extract the top 15-20 most important topics, ranked by UPSC exam relevance, "
                "current significance and inter-linkages with other topics.\n\n"
                f"Week: {documentary.week_start_date} to {documentary.week_end_date}\n"
                f"Days of coverage: {len(documentary.daily_ca_ids or [])}\n\n"
                "Return as JSON array:\n"
                '[{"title": "Topic name", "category": "Economy|Polity|International Relations|Environment|Science|Social", '
                '"importance": 0.95, "summary": "One-line summary"}]'
            )
            try:
                raw = await claude_client.generate_json(
                    prompt, system_prompt=SYSTEM_PROMPT, expect="array", model="sonnet", max_tokens=3000
                )
                topics = normalize_topics(raw)
            except AIServiceError as e:
                logger.warning(f"Topic extraction fell back to samples: {e.message}")
        if not topics:
            topics = [dict(t) for t in SAMPLE_TOPICS]

        documentary.top_topics = topics
        await db.commit()
        return topics

    async def generate_script(self, db: AsyncSession, documentary: WeeklyDocumentary) -> Dict[str, Any]:
        documentary.render_status = RenderStatus.SCRIPTING.value
        await db.commit()

        top_titles = [t.get("title") for t in (documentary.top_topics or [])[:5]]
        script = None
        if claude_client.is_configured:
            prompt = (
                "Create a weekly UPSC current affairs documentary script.\n\n"
                f"Week: {documentary.week_start_date} to {documentary.week_end_date}\n"
                f"Top Topics: {top_titles}\n\n"
                "Structure required:\n"
                "1. Week Overview (3 min) covering major themes\n"
                "2. Top 5 Stories (5 min each) with context, analysis and UPSC connection\n"
                "3. Category Segments: Economy, Polity, IR, Environment summaries\n"
                "4. Expert quotes on key topics\n"
                "5. Quiz Preview (2 min): 5 questions viewers should be able to answer\n\n"
                "Return JSON with keys week_overview {narration, duration_seconds, key_themes}, "
                "top_stories [{topic, category, narration, context, analysis, duration_seconds}], "
                "segments {economy, polity, ir, environment: {narration, duration_seconds}}, "
                "expert_quotes [{expert_name, expert_title, quote, topic}], "
                "quiz_preview {questions [{question, hint}], narration, duration_seconds}."
            )
            try:
                script = await claude_client.generate_json(
                    prompt, system_prompt=SYSTEM_PROMPT, model="sonnet", max_tokens=8000
                )
            except AIServiceError as e:
                logger.warning(f"Script generation fell back to sample: {e.message}")
        if not script or "week_overview" not in script:
            script = sample_script(documentary.week_start_date, documentary.week_end_date)

        segments = script_to_segments(script)
        duration = total_duration(segments)
        if not DURATION_TARGETS["MIN_SECONDS"] <= duration <= DURATION_TARGETS["MAX_SECONDS"]:
            logger.warning(
                f"Documentary {documentary.id} duration {duration}s outside "
                f"{DURATION_TARGETS['MIN_SECONDS']}-{DURATION_TARGETS['MAX_SECONDS']}s"
            )

        documentary.script_content = script
        documentary.segments = segments
        documentary.total_duration_seconds = duration
        await db.commit()
        return script

    async def request_manim(self, db: AsyncSession, documentary: WeeklyDocumentary) -> List[Dict[str, Any]]:
        scenes = build_manim_scenes(documentary.top_topics or [], documentary.week_number)
        try:
            result = await http_client.post_json(
                "manim",
                f"{settings.VPS_MANIM_URL}/generate-batch",
                {
                    "scenes": scenes,
                    "documentary_id": documentary.id,
                    "priority": RENDER_PRIORITY["WEEKLY_DOC"],
                },
            )
            scene_ids = result.get("scene_ids") if isinstance(result, dict) else None
            for scene, scene_id in zip(scenes, scene_ids or []):
                if scene_id:
                    scene["data"]["scene_id"] = scene_id
        except ExternalServiceError as e:
            logger.info(f"Manim service not available, using placeholders: {e.message}")

        documentary.manim_scenes = scenes
        await db.commit()
        return scenes

    async def render(self, db: AsyncSession, documentary: WeeklyDocumentary) -> Dict[str, Any]:
        documentary.render_status = RenderStatus.RENDERING.value
        documentary.render_priority = RENDER_PRIORITY["WEEKLY_DOC"]
        await db.commit()
        logger.info(f"Rendering weekly documentary {documentary.id} with priority {documentary.render_priority}")
        return {"status": documentary.render_status, "priority": documentary.render_priority}

    # ==================== PUBLISH ====================

    async def _get(self, db: AsyncSession, documentary_id: str, with_clips: bool = False) -> WeeklyDocumentary:
        query = select(WeeklyDocumentary).where(WeeklyDocumentary.id == documentary_id)
        if with_clips:
            query = query.options(selectinload(WeeklyDocumentary.clips))
        result = await db.execute(query)
        documentary = result.scalar_one_or_none()
        if not documentary:
            raise ResourceNotFoundError("Documentary", documentary_id, message="Documentary not found")
        return documentary

    @staticmethod
    def _cut_clips(documentary: WeeklyDocumentary) -> List[DocumentaryClip]:
        """Replace the documentary's clips with one 60 s clip per top topic and platform"""
        clips = [
            DocumentaryClip(
                clip_key=f"clip_{index + 1}",
                topic=topic.get("title", ""),
                title=f"Week {documentary.week_number}: {topic.get('title', '')}",
                duration_seconds=CLIP_SECONDS,
                platform=CLIP_PLATFORMS[index],
                status="pending",
            )
            for index, topic in enumerate((documentary.top_topics or [])[:len(CLIP_PLATFORMS)])
        ]
        # delete-orphan drops the previous cut on flush
        documentary.clips = clips
        return clips

    async def publish(self, db: AsyncSession, documentary_id: str, data) -> Dict[str, Any]:
        documentary = await self._get(db, documentary_id, with_clips=True)
        if documentary.render_status == RenderStatus.PUBLISHED.value:
            raise ValidationError("Documentary is already published")

        documentary.video_url = data.video_url
        documentary.duration_seconds = data.duration or documentary.total_duration_seconds
        documentary.thumbnail_url = data.thumbnail_url
        documentary.render_status = RenderStatus.PUBLISHED.value
        documentary.published_at = datetime.utcnow()

        clips = self._cut_clips(documentary)
        await db.commit()
        logger.info(f"Weekly documentary {documentary.id} published with {len(clips)} clips")

        return {
            "success": True,
            "message": "Documentary published successfully",
            "published_at": documentary.published_at,
            "clips": [self.serialize_clip(c) for c in clips],
        }

    async def generate_clips(self, db: AsyncSession, documentary_id: str) -> Dict[str, Any]:
        """
        Re-cut the social clips of an existing documentary.

        Used after topics change or when a platform rejected a clip; the
        previous clips are replaced.

        Raises:
            ResourceNotFoundError: unknown documentary
            ValidationError: no topics extracted yet
        """
        documentary = await self._get(db, documentary_id, with_clips=True)
        if not documentary.top_topics:
            raise ValidationError("Documentary has no topics to cut clips from")

        clips = self._cut_clips(documentary)
        await db.commit()
        logger.info(f"Regenerated {len(clips)} clips for weekly documentary {documentary.id}")

        return {
            "success": True,
            "message": "Social clips generated",
            "clips": [self.serialize_clip(c) for c in clips],
        }

    # ==================== READ ====================

    @staticmethod
    def serialize_clip(clip: DocumentaryClip) -> Dict[str, Any]:
        return {
            "id": clip.id,
            "clip_key": clip.clip_key,
            "topic": clip.topic,
            "title": clip.title,
            "duration_seconds": clip.duration_seconds,
            "platform": clip.platform,
            "url": clip.url,
            "status": clip.status,
        }

    @staticmethod
    def serialize_summary(documentary: WeeklyDocumentary) -> Dict[str, Any]:
        return {
            "id": documentary.id,
            "title": documentary.title,
            "week_start_date": documentary.week_start_date,
            "week_end_date": documentary.week_end_date,
            "week_number": documentary.week_number,
            "year": documentary.year,
            "render_status": documentary.render_status,
            "video_url": documentary.video_url,
            "thumbnail_url": documentary.thumbnail_url,
            "duration_seconds": documentary.duration_seconds,
            "published_at": documentary.published_at,
            "view_count": documentary.view_count,
        }

    async def get_documentary(self, db: AsyncSession, documentary_id: str) -> Dict[str, Any]:
        documentary = await self._get(db, documentary_id, with_clips=True)
        documentary.view_count = (documentary.view_count or 0) + 1
        await db.commit()
        return {
            **self.serialize_summary(documentary),
            "top_topics": documentary.top_topics or [],
            "segments": documentary.segments or [],
            "total_duration_seconds": documentary.total_duration_seconds,
            "manim_scenes": documentary.manim_scenes or [],
            "source_news_count": documentary.source_news_count,
            "clips": [self.serialize_clip(c) for c in documentary.clips],
        }

    async def archive(self, db: AsyncSession, year: Optional[int] = None, limit: int = ARCHIVE_LIMIT) -> List[Dict[str, Any]]:
        query = select(WeeklyDocumentary).where(WeeklyDocumentary.render_status == RenderStatus.PUBLISHED.value)
        if year:
            query = query.where(WeeklyDocumentary.year == year)
        result = await db.execute(query.order_by(WeeklyDocumentary.published_at.desc()).limit(limit))
        return [self.serialize_summary(d) for d in result.scalars().all()]

    async def get_clips(self, db: AsyncSession, documentary_id: str) -> List[Dict[str, Any]]:
        documentary = await self._get(db, documentary_id, with_clips=True)
        return [self.serialize_clip(c) for c in sorted(documentary.clips, key=lambda c: c.clip_key)]

    async def list_schedule(self, db: AsyncSession, limit: int = SCHEDULE_LIMIT) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(WeeklyDocSchedule).order_by(WeeklyDocSchedule.triggered_at.desc()).limit(limit)
        )
        return [
            {
                "id": s.id,
                "documentary_id": s.documentary_id,
                "scheduled_time": s.scheduled_time,
                "triggered_at": s.triggered_at,
                "status": s.status,
                "error_message": s.error_message,
                "completed_at": s.completed_at,
            }
            for s in result.scalars().all()
        ]


# Singleton instance
documentary_service = DocumentaryService()
