"""
Practice Session Service

Timed runs through a fixed, shuffled set of generated and/or PYQ questions,
with pause/resume, progress saves and a scored completion report that feeds
the adaptive difficulty engine.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from datetime import datetime
from typing import Optional, List, Dict, Any
import math
import random
import logging

from prepx.core.exceptions import ResourceNotFoundError, ValidationError
from prepx.models.practice import PracticeSession, PracticeSessionType, PracticeSessionStatus
from prepx.models.question import GeneratedQuestion, PYQuestion, QuestionSource
from prepx.services.difficulty_service import difficulty_service

logger = logging.getLogger(__name__)

SESSION_TYPES = {t.value for t in PracticeSessionType}
HISTORY_LIMIT = 20


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != "all"


def question_view(question, source: str, index: Optional[int] = None) -> Dict[str, Any]:
    """Client view of a question; never includes the answer"""
    view = {
        "id": question.id,
        "text": question.question_text,
        "type": "mcq" if question.question_type == "mcq" else "mains",
        "difficulty": question.difficulty,
        "source": source,
        "topic": question.topic if source == QuestionSource.GENERATED.value else (question.topic or question.subject),
        "options": question.options or [],
    }
    if index is not None:
        view["index"] = index
    return view


def answer_key(question, source: str) -> Dict[str, Any]:
    if source == QuestionSource.GENERATED.value:
        correct = question.correct_answer or ""
        explanation = question.explanations.get(correct) if question.explanations else None
        return {
            "text": question.question_text,
            "correct": correct,
            "explanation": explanation or question.model_answer,
            "difficulty": question.difficulty,
            "topic": question.topic,
            "source": source,
        }
    return {
        "text": question.question_text,
        "correct": question.correct_answer or "",
        "explanation": question.explanation,
        "difficulty": question.difficulty,
        "topic": question.topic or question.subject,
        "source": source,
    }


def _bucket_stats(buckets: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, Any]]:
    return {
        key: {
            **stats,
            "accuracy": round(stats["correct"] / stats["total"], 2) if stats["total"] else 0,
        }
        for key, stats in buckets.items()
    }


def score_session(
    question_ids: List[str],
    keys: Dict[str, Dict[str, Any]],
    answers: Dict[str, Any],
    question_times: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Score answers against the answer keys.

    Answers and times are looked up by position ("0", "1", ...) first, then by
    question id.
    """
    results = []
    correct = 0
    topics: Dict[str, Dict[str, int]] = {}
    difficulties = {level: {"correct": 0, "total": 0} for level in ("easy", "medium", "hard")}

    for index, question_id in enumerate(question_ids):
        details = keys.get(question_id, {})
        user_answer = answers.get(str(index), answers.get(question_id))
        is_correct = user_answer is not None and user_answer == details.get("correct")
        correct += 1 if is_correct else 0

        topic = details.get("topic")
        if topic:
            stats = topics.setdefault(topic, {"correct": 0, "total": 0})
            stats["total"] += 1
            stats["correct"] += 1 if is_correct else 0

        level = details.get("difficulty")
        if level in difficulties:
            difficulties[level]["total"] += 1
            difficulties[level]["correct"] += 1 if is_correct else 0

        results.append({
            "index": index,
            "question_id": question_id,
            "question_text": details.get("text"),
            "user_answer": user_answer,
            "correct_answer": details.get("correct"),
            "is_correct": is_correct,
            "explanation": details.get("explanation"),
            "time_taken": question_times.get(str(index), question_times.get(question_id, 0)) or 0,
            "difficulty": level,
            "topic": topic,
            "source": details.get("source"),
        })

    total = len(question_ids)
    weak = [t for t, s in topics.items() if s["total"] >= 2 and s["correct"] / s["total"] < 0.5]
    strong = [t for t, s in topics.items() if s["total"] >= 2 and s["correct"] / s["total"] >= 0.7]

    return {
        "score": correct,
        "total": total,
        "accuracy": round(correct / total * 100, 2) if total else 0,
        "results": results,
        "weak_topics": weak,
        "strong_topics": strong,
        "difficulty_breakdown": _bucket_stats(difficulties),
        "topic_performance": _bucket_stats(topics),
    }


class PracticeService:
    """Practice session lifecycle"""

    async def _get_owned(self, db: AsyncSession, user_id: str, session_id: str) -> PracticeSession:
        result = await db.execute(
            select(PracticeSession).where(
                PracticeSession.id == session_id,
                PracticeSession.user_id == user_id,
            )
        )
        session = result.scalar_one_or_none()
        if not session:
            raise ResourceNotFoundError("Practice session", session_id, message="Session not found")
        return session

    async def _load_questions(self, db: AsyncSession, question_ids: List[str]) -> Dict[str, tuple]:
        """question id -> (question, source)"""
        if not question_ids:
            return {}
        generated = await db.execute(select(GeneratedQuestion).where(GeneratedQuestion.id.in_(question_ids)))
        pyqs = await db.execute(select(PYQuestion).where(PYQuestion.id.in_(question_ids)))
        loaded = {str(q.id): (q, QuestionSource.GENERATED.value) for q in generated.scalars().all()}
        loaded.update({str(q.id): (q, QuestionSource.PYQ.value) for q in pyqs.scalars().all()})
        return loaded

    async def _ordered_views(self, db: AsyncSession, session: PracticeSession) -> List[Dict[str, Any]]:
        loaded = await self._load_questions(db, session.questions or [])
        views = []
        for question_id in session.questions or []:
            if question_id in loaded:
                question, source = loaded[question_id]
                views.append(question_view(question, source, index=len(views)))
        return views

    # ==================== START ====================

    async def start_session(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        config = data.config
        if data.session_type not in SESSION_TYPES or not config.count:
            raise ValidationError("session_type and config.count are required")

        count = config.count
        candidates = []

        if data.session_type in (PracticeSessionType.GENERATED_PRACTICE.value, PracticeSessionType.MIXED.value):
            query = select(GeneratedQuestion).where(GeneratedQuestion.is_active.is_(True))
            if config.topic:
                query = query.where(GeneratedQuestion.topic.ilike(f"%{config.topic}%"))
            if _is_set(config.difficulty):
                query = query.where(GeneratedQuestion.difficulty == config.difficulty)
            if _is_set(config.question_type):
                query = query.where(GeneratedQuestion.question_type == config.question_type)
            limit = count // 2 if data.session_type == PracticeSessionType.MIXED.value else count
            result = await db.execute(query.order_by(GeneratedQuestion.created_at.desc()).limit(limit))
            candidates += [(q, QuestionSource.GENERATED.value) for q in result.scalars().all()]

        if data.session_type in (PracticeSessionType.PYQ_PRACTICE.value, PracticeSessionType.MIXED.value):
            query = select(PYQuestion)
            if config.topic:
                pattern = f"%{config.topic}%"
                query = query.where(or_(PYQuestion.topic.ilike(pattern), PYQuestion.subject.ilike(pattern)))
            if _is_set(config.difficulty):
                query = query.where(PYQuestion.difficulty == config.difficulty)
            if _is_set(config.question_type):
                query = query.where(PYQuestion.question_type == config.question_type)
            limit = math.ceil(count / 2) if data.session_type == PracticeSessionType.MIXED.value else count
            result = await db.execute(query.order_by(PYQuestion.year.desc()).limit(limit))
            candidates += [(q, QuestionSource.PYQ.value) for q in result.scalars().all()]

        if not candidates:
            raise ResourceNotFoundError(
                "Questions", message="No questions found matching your criteria. Try adjusting filters."
            )

        random.shuffle(candidates)
        candidates = candidates[:count]

        session = PracticeSession(
            user_id=user_id,
            session_type=data.session_type,
            session_config=config.model_dump(exclude_none=True),
            questions=[str(q.id) for q, _ in candidates],
            answers={},
            question_times={},
            status=PracticeSessionStatus.ACTIVE.value,
        )
        db.add(session)
        await db.commit()
        logger.info(f"Practice session {session.id} started ({data.session_type}, {len(candidates)} questions)")

        return {
            "session_id": session.id,
            "questions": [question_view(q, source, index=i) for i, (q, source) in enumerate(candidates)],
            "config": session.session_config,
            "total_count": len(candidates),
            "status": session.status,
        }

    # ==================== PAUSE / RESUME / PROGRESS ====================

    def _apply_progress(self, session: PracticeSession, data) -> None:
        session.current_question_index = data.current_question_index
        session.answers = dict(data.answers)
        session.question_times = dict(data.question_times)
        session.elapsed_seconds = data.elapsed_seconds

    async def pause_session(self, db: AsyncSession, user_id: str, session_id: str, data) -> Dict[str, Any]:
        session = await self._get_owned(db, user_id, session_id)
        if session.status == PracticeSessionStatus.COMPLETED.value:
            raise ValidationError("Completed sessions cannot be paused")

        self._apply_progress(session, data)
        session.status = PracticeSessionStatus.PAUSED.value
        session.paused_at = datetime.utcnow()
        await db.commit()
        return {"success": True, "message": "Session paused"}

    async def resume_session(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        session = await self._get_owned(db, user_id, session_id)
        if session.status == PracticeSessionStatus.COMPLETED.value:
            raise ResourceNotFoundError(
                "Practice session", session_id, message="Session not found or cannot be resumed"
            )

        session.status = PracticeSessionStatus.ACTIVE.value
        session.paused_at = None
        await db.commit()

        return {
            "session_id": session.id,
            "questions": await self._ordered_views(db, session),
            "answers": session.answers or {},
            "question_times": session.question_times or {},
            "current_index": session.current_question_index,
            "elapsed_seconds": session.elapsed_seconds,
            "config": session.session_config,
        }

    async def save_progress(self, db: AsyncSession, user_id: str, session_id: str, data) -> Dict[str, Any]:
        session = await self._get_owned(db, user_id, session_id)
        if session.status == PracticeSessionStatus.COMPLETED.value:
            raise ValidationError("Session already completed")
        self._apply_progress(session, data)
        await db.commit()
        return {"success": True}

    # ==================== COMPLETE ====================

    async def complete_session(self, db: AsyncSession, user_id: str, session_id: str, data) -> Dict[str, Any]:
        session = await self._get_owned(db, user_id, session_id)
        if session.status == PracticeSessionStatus.COMPLETED.value:
            raise ValidationError("Session already completed")

        loaded = await self._load_questions(db, session.questions or [])
        keys = {qid: answer_key(q, source) for qid, (q, source) in loaded.items()}
        report = score_session(session.questions or [], keys, data.answers, data.question_times)

        session.status = PracticeSessionStatus.COMPLETED.value
        session.answers = dict(data.answers)
        session.question_times = dict(data.question_times)
        session.score = report["score"]
        session.accuracy = report["accuracy"]
        session.time_taken_seconds = data.time_taken_seconds
        session.weak_topics = report["weak_topics"]
        session.strong_topics = report["strong_topics"]
        session.completed_at = datetime.utcnow()

        for result in report["results"]:
            if result["user_answer"] is None or result["difficulty"] is None:
                continue
            await difficulty_service.add_attempt(
                db, user_id,
                question_id=result["question_id"],
                difficulty=result["difficulty"],
                is_correct=result["is_correct"],
                question_source=result["source"],
                time_taken_seconds=int(result["time_taken"] or 0),
                topic=result["topic"],
            )
        new_badges = await difficulty_service.award_badges(db, user_id)
        await db.commit()

        logger.info(f"Practice session {session.id} completed: {report['score']}/{report['total']}")
        return {
            "success": True,
            "session_id": session.id,
            "time_taken_seconds": data.time_taken_seconds,
            "new_badges": new_badges,
            **report,
        }

    # ==================== QUERIES ====================

    async def _list(self, db: AsyncSession, user_id: str, status: str, limit: Optional[int] = None) -> List[PracticeSession]:
        query = (
            select(PracticeSession)
            .where(PracticeSession.user_id == user_id, PracticeSession.status == status)
            .order_by(PracticeSession.updated_at.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_paused(self, db: AsyncSession, user_id: str) -> List[PracticeSession]:
        return await self._list(db, user_id, PracticeSessionStatus.PAUSED.value)

    async def get_active(self, db: AsyncSession, user_id: str) -> List[PracticeSession]:
        return await self._list(db, user_id, PracticeSessionStatus.ACTIVE.value)

    async def get_history(self, db: AsyncSession, user_id: str) -> List[PracticeSession]:
        result = await db.execute(
            select(PracticeSession)
            .where(
                PracticeSession.user_id == user_id,
                PracticeSession.status == PracticeSessionStatus.COMPLETED.value,
            )
            .order_by(PracticeSession.completed_at.desc())
            .limit(HISTORY_LIMIT)
        )
        return list(result.scalars().all())

    async def get_session(self, db: AsyncSession, user_id: str, session_id: str) -> PracticeSession:
        return await self._get_owned(db, user_id, session_id)

    async def get_session_questions(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        session = await self._get_owned(db, user_id, session_id)
        questions = await self._ordered_views(db, session)
        return {"session_id": session.id, "questions": questions, "total_count": len(questions)}


# Singleton instance
practice_service = PracticeService()
