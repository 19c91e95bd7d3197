"""
AI Teaching Assistant Service ("UPSC Guru")

Handles:
- Daily message limits (free vs pro) counted in assistant_usage
- Conversation context, learner context and teaching preferences
- RAG grounding via the VPS document search (fails soft)
- Claude response with follow-up extraction, or a fallback answer
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import date
from typing import Optional, List, Dict, Any
import re
import time
import uuid
import logging

from prepx.core.config import settings
from prepx.core.exceptions import AIServiceError, ExternalServiceError, LimitExceededError, ValidationError
from prepx.models.user import User
from prepx.models.assistant import AssistantConversation, AssistantUsage
from prepx.models.question import QuestionAttempt
from prepx.services.subscription_service import subscription_service
from prepx.services.assistant_preferences_service import assistant_preferences_service, build_preference_lines
from prepx.utils.claude_client import claude_client
from prepx.utils.http_client import http_client

logger = logging.getLogger(__name__)

CONTEXT_TURNS = 10
PROMPT_TURNS = 6
HISTORY_LIMIT = 50
SESSIONS_LIMIT = 20
MAX_FOLLOW_UPS = 3
MAX_SOURCES = 3

FOLLOW_UP_HEADER = "**You might also want to ask:**"
_FOLLOW_UP_SECTION = re.compile(r"\*\*You might also want to ask:\*\*\n?([\s\S]*?)(?=\n\n|$)", re.IGNORECASE)
_FOLLOW_UP_TAIL = re.compile(r"\*\*You might also want to ask:\*\*[\s\S]*$", re.IGNORECASE)

DEFAULT_FOLLOW_UPS = {
    ("polity", "constitution"): [
        "What are the key amendments to the Constitution?",
        "How does the federal structure work in India?",
        "What are important Polity MCQs for Prelims?",
    ],
    ("history", "freedom struggle"): [
        "What were the major phases of the freedom struggle?",
        "Who were the important moderate and extremist leaders?",
        "What are important History topics for UPSC?",
    ],
    ("geography", "climate"): [
        "What are the major climate types in India?",
        "How should I prepare Geography for UPSC?",
        "What are important map-based questions?",
    ],
}
GENERIC_FOLLOW_UPS = [
    "How should I approach this topic for Mains?",
    "What are the most important MCQs from this area?",
    "Can you suggest a study plan for this topic?",
]


def extract_follow_ups(response: str) -> List[str]:
    """Questions listed under the follow-up header (over 10 chars, ending in '?')"""
    match = _FOLLOW_UP_SECTION.search(response or "")
    if not match:
        return []
    lines = [re.sub(r"^[-•*]\s*", "", line).strip() for line in match.group(1).split("\n")]
    return [line for line in lines if len(line) > 10 and line.endswith("?")][:MAX_FOLLOW_UPS]


def strip_follow_ups(response: str) -> str:
    return _FOLLOW_UP_TAIL.sub("", response or "").strip()


def default_follow_ups(message: str) -> List[str]:
    lowered = (message or "").lower()
    for keywords, questions in DEFAULT_FOLLOW_UPS.items():
        if any(k in lowered for k in keywords):
            return list(questions)
    return list(GENERIC_FOLLOW_UPS)


def fallback_response(message: str, context: Dict[str, Any]) -> str:
    name = context.get("user_name") or "there"
    weak = context.get("weak_topics") or []
    reminder = ""
    if weak:
        reminder = f"\n💡 Remember, you've been working on improving: {', '.join(t['topic'] for t in weak[:2])}\n"

    return (
        f"Hello {name}! I understand you're asking about: \"{message[:100]}...\"\n\n"
        "While I'm currently unable to provide a detailed AI-powered response, here's what I suggest:\n\n"
        "1. **Check your study materials** - Review the relevant NCERT chapters and standard reference books\n"
        "2. **Practice questions** - Attempt PYQs related to this topic\n"
        "3. **Make notes** - Create concise notes highlighting key points\n"
        f"{reminder}\n"
        "I'll be fully operational again soon. Keep up your preparation!"
    )


def build_system_prompt(context: Dict[str, Any], rag_chunks: List[Dict[str, Any]], preferences: Dict[str, Any]) -> str:
    lines = [
        'You are an expert UPSC mentor and teaching assistant. Your name is "UPSC Guru".',
        "",
        "USER CONTEXT:",
        f"- Name: {context.get('user_name') or 'Student'}",
        f"- Preparing for: UPSC Civil Services Examination ({context.get('exam_stage') or 'prelims'})",
    ]
    if context.get("weak_topics"):
        lines.append(f"- Weak areas needing attention: {', '.join(t['topic'] for t in context['weak_topics'])}")
    if context.get("strong_topics"):
        lines.append(f"- Strong areas: {', '.join(t['topic'] for t in context['strong_topics'])}")
    if context.get("recent_topics"):
        lines.append(f"- Recently studied: {', '.join(context['recent_topics'])}")
    if context.get("accuracy"):
        lines.append(f"- Current accuracy: {context['accuracy']}%")

    lines += ["", "TEACHING STYLE PREFERENCES:"] + build_preference_lines(preferences)
    lines += [
        "",
        "YOUR ROLE:",
        "1. Answer questions clearly and accurately, citing UPSC-relevant sources when possible",
        "2. Explain complex concepts matching the user's preferred style and depth",
        "3. Relate answers to UPSC exam context (Prelims MCQs, Mains answers, Essay topics)",
        "4. Match the requested tone throughout your response",
        "5. If asked about weak topics, provide extra detail and practice suggestions",
        "6. If unsure, admit limitations and suggest reliable sources",
        "",
        "RESPONSE GUIDELINES:",
        "- Match the teaching style and depth level requested",
        "- Use the appropriate tone throughout",
        f'- End with 2-3 follow-up questions (format as "{FOLLOW_UP_HEADER}")',
    ]

    prompt = "\n".join(lines)
    if rag_chunks:
        excerpts = "\n\n".join(
            f"[{i + 1}] {str(chunk.get('content', ''))[:500]}..." for i, chunk in enumerate(rag_chunks[:3])
        )
        prompt += (
            f"\n\nRELEVANT KNOWLEDGE BASE CONTENT:\n{excerpts}\n\n"
            "Use this information to ground your response in accurate facts."
        )
    return prompt


class AssistantService:
    """Conversation engine for the teaching assistant"""

    # ==================== USAGE ====================

    async def get_usage(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        is_pro = await subscription_service.is_pro(db, user_id)
        limit = settings.ASSISTANT_PRO_DAILY_LIMIT if is_pro else settings.ASSISTANT_FREE_DAILY_LIMIT

        result = await db.execute(
            select(AssistantUsage.message_count).where(
                AssistantUsage.user_id == user_id,
                AssistantUsage.usage_date == date.today(),
            )
        )
        count = result.scalar_one_or_none() or 0
        return {
            "today": count,
            "limit": limit,
            "remaining": max(0, limit - count),
            "is_pro": is_pro,
            "allowed": count < limit,
        }

    async def _increment_usage(self, db: AsyncSession, user_id: str) -> None:
        result = await db.execute(
            select(AssistantUsage).where(
                AssistantUsage.user_id == user_id,
                AssistantUsage.usage_date == date.today(),
            )
        )
        usage = result.scalar_one_or_none()
        if usage:
            usage.message_count += 1
        else:
            db.add(AssistantUsage(user_id=user_id, usage_date=date.today(), message_count=1))

    async def get_usage_stats(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        usage = await self.get_usage(db, user_id)
        total = await db.execute(
            select(func.count(AssistantConversation.id)).where(AssistantConversation.user_id == user_id)
        )
        return {
            "today": usage["today"],
            "limit": usage["limit"],
            "remaining": usage["remaining"],
            "is_pro": usage["is_pro"],
            "total_messages": total.scalar() or 0,
        }

    async def get_status(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        usage = await self.get_usage(db, user_id)
        return {
            "status": "ready",
            "ai_available": claude_client.is_configured,
            "model": claude_client.sonnet_model,
            "usage": {k: usage[k] for k in ("today", "limit", "remaining", "is_pro")},
        }

    # ==================== CONTEXT ====================

    async def _session_turns(self, db: AsyncSession, user_id: str, session_id: str) -> List[AssistantConversation]:
        result = await db.execute(
            select(AssistantConversation)
            .where(
                AssistantConversation.user_id == user_id,
                AssistantConversation.session_id == session_id,
            )
            .order_by(AssistantConversation.created_at.desc())
            .limit(CONTEXT_TURNS)
        )
        return list(reversed(result.scalars().all()))

    async def get_learning_context(self, db: AsyncSession, user: User) -> Dict[str, Any]:
        """Weak/strong topics from recent attempts plus profile info"""
        result = await db.execute(
            select(QuestionAttempt)
            .where(QuestionAttempt.user_id == user.id)
            .order_by(QuestionAttempt.created_at.desc())
            .limit(200)
        )
        attempts = list(result.scalars().all())

        per_topic: Dict[str, Dict[str, int]] = {}
        recent: List[str] = []
        for attempt in attempts:
            if not attempt.topic:
                continue
            stats = per_topic.setdefault(attempt.topic, {"total": 0, "correct": 0})
            stats["total"] += 1
            stats["correct"] += 1 if attempt.is_correct else 0
            if attempt.topic not in recent and len(recent) < 5:
                recent.append(attempt.topic)

        weak, strong = [], []
        for topic, stats in per_topic.items():
            if stats["total"] < 2:
                continue
            accuracy = stats["correct"] / stats["total"]
            entry = {"topic": topic, "accuracy": round(accuracy * 100)}
            if accuracy < 0.5:
                weak.append(entry)
            elif accuracy >= 0.7:
                strong.append(entry)

        correct = sum(1 for a in attempts if a.is_correct)
        return {
            "user_name": user.display_name,
            "exam_stage": user.exam_stage,
            "weak_topics": sorted(weak, key=lambda t: t["accuracy"])[:5],
            "strong_topics": sorted(strong, key=lambda t: -t["accuracy"])[:5],
            "recent_topics": recent,
            "accuracy": round(correct / len(attempts) * 100) if attempts else None,
        }

    async def search_rag(self, query: str) -> Dict[str, Any]:
        """Top-5 knowledge-base chunks; empty on any failure"""
        try:
            results = await http_client.post_json(
                "rag",
                f"{settings.VPS_RAG_URL}/documents/search",
                {"query": query, "top_k": 5},
                timeout=settings.RAG_SEARCH_TIMEOUT,
            )
        except (ExternalServiceError, ValueError) as e:
            logger.warning(f"RAG search unavailable, continuing without: {e}")
            return {"chunks": [], "sources": []}

        chunks = results if isinstance(results, list) else results.get("results", []) if isinstance(results, dict) else []
        sources: List[str] = []
        for chunk in chunks:
            source = (chunk.get("metadata") or {}).get("source") if isinstance(chunk, dict) else None
            if source and source not in sources:
                sources.append(source)
        return {"chunks": chunks, "sources": sources}

    # ==================== MESSAGES ====================

    async def send_message(
        self,
        db: AsyncSession,
        user: User,
        message: Optional[str],
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Answer one chat message.

        Raises:
            ValidationError: empty message
            LimitExceededError: daily message limit reached
        """
        started = time.perf_counter()
        if not message or not message.strip():
            raise ValidationError("Message is required", field="message")

        usage = await self.get_usage(db, user.id)
        if not usage["allowed"]:
            upsell = "" if usage["is_pro"] else " Upgrade to Pro for unlimited access."
            raise LimitExceededError(
                f"You've used all {usage['limit']} messages today.{upsell}",
                usage={"today": usage["today"], "limit": usage["limit"], "remaining": 0},
            )

        session_id = session_id or str(uuid.uuid4())
        turns = await self._session_turns(db, user.id, session_id)
        context = await self.get_learning_context(db, user)
        preferences = await assistant_preferences_service.get_preferences(db, user.id)
        rag = await self.search_rag(message)

        confidence = 0.5
        if not claude_client.is_configured:
            response_text = fallback_response(message, context)
            follow_ups = default_follow_ups(message)
        else:
            history = []
            for turn in turns[-PROMPT_TURNS:]:
                history.append({"role": "user", "content": turn.message_text})
                if turn.response_text:
                    history.append({"role": "assistant", "content": turn.response_text})
            try:
                result = await claude_client.generate(
                    message,
                    system_prompt=build_system_prompt(context, rag["chunks"], preferences),
                    model="sonnet",
                    max_tokens=1000,
                    temperature=0.7,
                    messages=history,
                )
                raw = result["content"] or ""
                follow_ups = extract_follow_ups(raw) or default_follow_ups(message)
                response_text = strip_follow_ups(raw)
                confidence = 0.85 if rag["chunks"] else 0.7
            except AIServiceError as e:
                logger.error(f"Assistant AI call failed for user {user.id}: {e.message}")
                response_text = fallback_response(message, context)
                follow_ups = default_follow_ups(message)

        sources = rag["sources"][:MAX_SOURCES]
        if sources:
            response_text += f"\n\n📚 *Sources: {', '.join(sources)}*"

        response_time_ms = int((time.perf_counter() - started) * 1000)
        db.add(AssistantConversation(
            user_id=user.id,
            session_id=session_id,
            message_text=message,
            response_text=response_text,
            context_json={"weak_topics": context["weak_topics"], "recent": context["recent_topics"]},
            follow_up_suggestions=follow_ups,
            sources_used=[
                {"id": c.get("id"), "source": (c.get("metadata") or {}).get("source")}
                for c in rag["chunks"] if isinstance(c, dict)
            ],
            confidence_score=confidence,
            response_time_ms=response_time_ms,
        ))
        await self._increment_usage(db, user.id)
        await db.commit()

        return {
            "response": response_text,
            "session_id": session_id,
            "follow_ups": follow_ups,
            "sources": sources,
            "confidence": confidence,
            "response_time_ms": response_time_ms,
            "usage": {
                "today": usage["today"] + 1,
                "limit": usage["limit"],
                "remaining": max(0, usage["limit"] - usage["today"] - 1),
            },
        }

    # ==================== HISTORY & SESSIONS ====================

    async def get_history(self, db: AsyncSession, user_id: str, session_id: Optional[str] = None) -> List[AssistantConversation]:
        query = select(AssistantConversation).where(AssistantConversation.user_id == user_id)
        if session_id:
            query = query.where(AssistantConversation.session_id == session_id)
        result = await db.execute(query.order_by(AssistantConversation.created_at.asc()).limit(HISTORY_LIMIT))
        return list(result.scalars().all())

    @staticmethod
    def new_session() -> Dict[str, str]:
        return {"session_id": str(uuid.uuid4()), "message": "New session started"}

    async def get_sessions(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(AssistantConversation)
            .where(AssistantConversation.user_id == user_id)
            .order_by(AssistantConversation.created_at.asc())
        )

        sessions: Dict[str, Dict[str, Any]] = {}
        for turn in result.scalars().all():
            entry = sessions.get(turn.session_id)
            if entry is None:
                sessions[turn.session_id] = {
                    "session_id": turn.session_id,
                    "first_message": turn.message_text[:100],
                    "created_at": turn.created_at,
                    "last_activity": turn.created_at,
                    "message_count": 1,
                }
            else:
                entry["last_activity"] = turn.created_at
                entry["message_count"] += 1

        ordered = sorted(sessions.values(), key=lambda s: s["last_activity"], reverse=True)
        return ordered[:SESSIONS_LIMIT]


# Singleton instance
assistant_service = AssistantService()
