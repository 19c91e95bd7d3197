"""
Adaptive Difficulty Service

Handles:
- Rule-based question difficulty prediction (optionally refined by Claude)
- Adaptive next-difficulty recommendation from the last 5 attempts
- Attempt recording, per-difficulty progress and badge awards
- Accuracy analytics and difficulty-filtered question sets
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
import random
import re
import logging

from prepx.core.exceptions import AIServiceError, ValidationError
from prepx.models.question import GeneratedQuestion, PYQuestion, QuestionAttempt, Difficulty
from prepx.models.difficulty import DifficultyProgress, Badge, UserBadge
from prepx.utils.claude_client import claude_client

logger = logging.getLogger(__name__)

LEVELS = [Difficulty.EASY.value, Difficulty.MEDIUM.value, Difficulty.HARD.value]
EASY_THRESHOLD = 0.35
HARD_THRESHOLD = 0.65

ANALYTICAL_KEYWORDS = [
    "analyse", "analyze", "critically", "evaluate", "examine", "discuss",
    "comment", "justify", "assess", "compare", "contrast", "implications",
    "to what extent", "elucidate", "substantiate", "interlink",
]
MULTI_PART_PATTERNS = [r"\([a-d]\)", r"\([ivx]+\)", r"\band also\b", r";", r"\bwhile\b.*\?"]
TYPE_WEIGHTS = {"mcq": 0.05, "mains_150": 0.15, "mains_250": 0.2, "essay": 0.25}

DEFAULT_BADGES = [
    {"slug": "first_steps", "name": "First Steps", "description": "Attempt your first question",
     "icon": "🎯", "criteria_type": "total_attempts", "requirement": 1},
    {"slug": "quick_learner", "name": "Quick Learner", "description": "Answer 10 questions correctly",
     "icon": "⭐", "criteria_type": "total_correct", "requirement": 10},
    {"slug": "on_fire", "name": "On Fire", "description": "Get 5 correct answers in a row",
     "icon": "🔥", "criteria_type": "streak", "requirement": 5},
    {"slug": "hard_hitter", "name": "Hard Hitter", "description": "Answer 10 hard questions correctly",
     "icon": "💪", "criteria_type": "hard_correct", "requirement": 10},
    {"slug": "unstoppable", "name": "Unstoppable", "description": "Get 15 correct answers in a row",
     "icon": "⚡", "criteria_type": "streak", "requirement": 15},
    {"slug": "hard_master", "name": "Hard Master", "description": "Answer 50 hard questions correctly",
     "icon": "🏆", "criteria_type": "hard_correct", "requirement": 50},
    {"slug": "century", "name": "Century", "description": "Answer 100 questions correctly",
     "icon": "💯", "criteria_type": "total_correct", "requirement": 100},
    {"slug": "dedicated", "name": "Dedicated", "description": "Attempt 250 questions",
     "icon": "📚", "criteria_type": "total_attempts", "requirement": 250},
]

AI_SYSTEM_PROMPT = """You are a UPSC exam difficulty analyzer. Analyze questions and predict their difficulty level.
Consider:
- Question complexity and depth required
- Cross-topic knowledge requirements
- Type of cognitive skills needed (recall vs analysis vs synthesis)
- Typical success rates for similar questions

Return JSON: { "difficulty": "easy|medium|hard", "confidence": 0.0-1.0, "reasoning": "...", "factors": [...] }"""


def score_to_difficulty(score: float) -> str:
    if score < EASY_THRESHOLD:
        return Difficulty.EASY.value
    if score < HARD_THRESHOLD:
        return Difficulty.MEDIUM.value
    return Difficulty.HARD.value


def predict_rule_based(question_text: str, question_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Complexity score in [0, 1] from length, analytical verbs, multi-part
    structure and question type.
    """
    text = (question_text or "").lower()
    words = len(text.split())

    length_score = min(words / 150, 1.0) * 0.3
    keyword_hits = [k for k in ANALYTICAL_KEYWORDS if k in text]
    keyword_score = min(len(keyword_hits) * 0.1, 0.3)
    multi_part = text.count("?") > 1 or any(re.search(p, text) for p in MULTI_PART_PATTERNS)
    structure_score = 0.15 if multi_part else 0.0
    type_score = TYPE_WEIGHTS.get(question_type or "", 0.1)
    if "statements" in text and "correct" in text:
        type_score += 0.1

    score = round(min(1.0, length_score + keyword_score + structure_score + type_score), 3)
    nearest_threshold = min(abs(score - EASY_THRESHOLD), abs(score - HARD_THRESHOLD))
    confidence = round(min(0.95, 0.6 + nearest_threshold), 2)

    return {
        "predicted_difficulty": score_to_difficulty(score),
        "complexity_score": score,
        "confidence": confidence,
        "factors": {
            "word_count": words,
            "analytical_keywords": keyword_hits,
            "multi_part": multi_part,
            "question_type": question_type,
        },
    }


def step_difficulty(current: str, step: int) -> str:
    index = LEVELS.index(current) if current in LEVELS else 1
    return LEVELS[max(0, min(len(LEVELS) - 1, index + step))]


def comfort_level(attempts: int, accuracy: float) -> str:
    if attempts == 0:
        return "Not Started"
    if attempts < 10 or accuracy < 0.5:
        return "Beginner"
    if accuracy < 0.7:
        return "Intermediate"
    if accuracy < 0.85 or attempts < 50:
        return "Advanced"
    return "Mastered"


class DifficultyService:
    """Difficulty prediction, adaptive recommendation and progress tracking"""

    # ==================== PREDICTION ====================

    async def predict(
        self,
        question_text: Optional[str],
        question_type: Optional[str] = None,
        use_ai: bool = False,
    ) -> Dict[str, Any]:
        if not question_text or not question_text.strip():
            raise ValidationError("question_text is required", field="question_text")

        rule_based = predict_rule_based(question_text, question_type)

        ai_analysis = None
        if use_ai and claude_client.is_configured:
            ai_analysis = await self._predict_with_ai(question_text, question_type)

        if ai_analysis and ai_analysis.get("difficulty") in LEVELS:
            return {
                "difficulty": ai_analysis["difficulty"],
                "confidence": ai_analysis.get("confidence", rule_based["confidence"]),
                "db_analysis": rule_based,
                "ai_analysis": ai_analysis,
                "source": "ai_enhanced",
            }

        return {
            "difficulty": rule_based["predicted_difficulty"],
            "confidence": rule_based["confidence"],
            "db_analysis": rule_based,
            "ai_analysis": None,
            "source": "rule_based",
        }

    async def _predict_with_ai(self, question_text: str, question_type: Optional[str]) -> Optional[Dict[str, Any]]:
        prompt = (
            f'Analyze the difficulty of this UPSC question:\n\n"{question_text}"\n\n'
            f"Question type: {question_type or 'General'}\n\n"
            "Provide difficulty assessment in JSON format."
        )
        try:
            return await claude_client.generate_json(
                prompt,
                system_prompt=AI_SYSTEM_PROMPT,
                model="haiku",
                max_tokens=300,
                temperature=0.3,
            )
        except AIServiceError as e:
            logger.warning(f"AI difficulty prediction failed, using rule-based result: {e}")
            return None

    # ==================== RECOMMENDATION ====================

    async def get_recommendation(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(QuestionAttempt)
            .where(QuestionAttempt.user_id == user_id)
            .order_by(QuestionAttempt.created_at.desc())
            .limit(100)
        )
        attempts = list(result.scalars().all())

        if not attempts:
            return {
                "recommended_difficulty": Difficulty.MEDIUM.value,
                "current_streak": 0,
                "last_5_correct": 0,
                "reason": "Start practicing to get personalized recommendations!",
                "confidence": 0.5,
            }

        last_five = attempts[:5]
        correct = sum(1 for a in last_five if a.is_correct)
        current = last_five[0].difficulty

        streak = 0
        for attempt in attempts:
            if not attempt.is_correct:
                break
            streak += 1

        if correct >= 4:
            recommended = step_difficulty(current, 1)
            reason = (
                f"Excellent! {correct} of your last 5 answers were correct. Try some {recommended} questions."
                if recommended != current else
                "Outstanding! Keep challenging yourself with hard questions."
            )
        elif correct <= 1:
            recommended = step_difficulty(current, -1)
            reason = (
                f"Let's build confidence with some {recommended} questions."
                if recommended != current else
                "Keep practicing the basics. Review explanations after each answer."
            )
        else:
            recommended = current
            reason = "You're doing well at this level. Keep practicing!"

        return {
            "recommended_difficulty": recommended,
            "current_difficulty": current,
            "current_streak": streak,
            "last_5_correct": correct,
            "reason": reason,
            "confidence": round(0.5 + 0.08 * len(last_five), 2),
        }

    # ==================== ATTEMPTS & PROGRESS ====================

    async def add_attempt(
        self,
        db: AsyncSession,
        user_id: str,
        question_id: str,
        difficulty: str,
        is_correct: bool,
        question_source: str = "generated",
        time_taken_seconds: int = 0,
        topic: Optional[str] = None,
    ) -> QuestionAttempt:
        """Stage an attempt and its progress update; the caller commits"""
        attempt = QuestionAttempt(
            user_id=user_id,
            question_id=str(question_id),
            question_source=question_source,
            difficulty=difficulty,
            is_correct=bool(is_correct),
            time_taken_seconds=time_taken_seconds or 0,
            topic=topic,
        )
        db.add(attempt)

        result = await db.execute(
            select(DifficultyProgress).where(
                DifficultyProgress.user_id == user_id,
                DifficultyProgress.difficulty == difficulty,
            )
        )
        progress = result.scalar_one_or_none()
        if not progress:
            progress = DifficultyProgress(
                user_id=user_id, difficulty=difficulty,
                total_attempts=0, correct_attempts=0, current_streak=0, best_streak=0, total_time_seconds=0,
            )
            db.add(progress)

        progress.total_attempts += 1
        progress.total_time_seconds += time_taken_seconds or 0
        if is_correct:
            progress.correct_attempts += 1
            progress.current_streak += 1
            progress.best_streak = max(progress.best_streak, progress.current_streak)
        else:
            progress.current_streak = 0

        await db.flush()
        return attempt

    async def record_attempt(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        if data.difficulty not in LEVELS:
            raise ValidationError("Invalid difficulty. Must be: easy, medium, or hard", field="difficulty")

        attempt = await self.add_attempt(
            db, user_id,
            question_id=data.question_id,
            difficulty=data.difficulty,
            is_correct=data.is_correct,
            question_source=data.question_source,
            time_taken_seconds=data.time_taken_seconds,
            topic=data.topic,
        )
        new_badges = await self.award_badges(db, user_id)
        await db.commit()

        return {
            "attempt_id": attempt.id,
            "new_badges": new_badges,
            "next_recommendation": await self.get_recommendation(db, user_id),
        }

    async def get_progress(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        result = await db.execute(select(DifficultyProgress).where(DifficultyProgress.user_id == user_id))
        by_level = {p.difficulty: p for p in result.scalars().all()}

        progress = []
        for level in LEVELS:
            row = by_level.get(level)
            attempts = row.total_attempts if row else 0
            accuracy = row.accuracy if row else 0.0
            progress.append({
                "difficulty": level,
                "comfort_level": comfort_level(attempts, accuracy),
                "accuracy": round(accuracy * 100, 1),
                "questions_attempted": attempts,
                "questions_correct": row.correct_attempts if row else 0,
                "current_streak": row.current_streak if row else 0,
                "best_streak": row.best_streak if row else 0,
                "avg_time_seconds": round(row.total_time_seconds / attempts) if attempts else 0,
            })
        return progress

    # ==================== BADGES ====================

    async def ensure_badges(self, db: AsyncSession) -> List[Badge]:
        result = await db.execute(select(Badge).order_by(Badge.requirement.asc()))
        badges = list(result.scalars().all())
        if badges:
            return badges
        for definition in DEFAULT_BADGES:
            db.add(Badge(**definition))
        await db.flush()
        result = await db.execute(select(Badge).order_by(Badge.requirement.asc()))
        return list(result.scalars().all())

    async def _badge_metrics(self, db: AsyncSession, user_id: str) -> Dict[str, int]:
        result = await db.execute(select(DifficultyProgress).where(DifficultyProgress.user_id == user_id))
        rows = list(result.scalars().all())
        return {
            "total_attempts": sum(r.total_attempts for r in rows),
            "total_correct": sum(r.correct_attempts for r in rows),
            "hard_correct": sum(r.correct_attempts for r in rows if r.difficulty == Difficulty.HARD.value),
            "streak": max((r.best_streak for r in rows), default=0),
        }

    async def award_badges(self, db: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
        """Award every badge whose requirement is now met; returns the new ones"""
        badges = await self.ensure_badges(db)
        metrics = await self._badge_metrics(db, user_id)

        earned = await db.execute(select(UserBadge.badge_id).where(UserBadge.user_id == user_id))
        earned_ids = set(earned.scalars().all())

        new_badges = []
        for badge in badges:
            if badge.id in earned_ids:
                continue
            if metrics.get(badge.criteria_type, 0) >= badge.requirement:
                db.add(UserBadge(user_id=user_id, badge_id=badge.id))
                new_badges.append({"slug": badge.slug, "name": badge.name, "icon": badge.icon,
                                   "description": badge.description})
        if new_badges:
            await db.flush()
            logger.info(f"User {user_id} earned badges: {[b['slug'] for b in new_badges]}")
        return new_badges

    async def get_badges(self, db: AsyncSession, user_id: str) -> Dict[str, List[Dict[str, Any]]]:
        badges = await self.ensure_badges(db)
        metrics = await self._badge_metrics(db, user_id)

        result = await db.execute(select(UserBadge).where(UserBadge.user_id == user_id))
        earned_at = {ub.badge_id: ub.earned_at for ub in result.scalars().all()}
        await db.commit()

        grouped = {"earned": [], "in_progress": [], "locked": []}
        for badge in badges:
            current = metrics.get(badge.criteria_type, 0)
            item = {
                "slug": badge.slug,
                "name": badge.name,
                "description": badge.description,
                "icon": badge.icon,
                "criteria_type": badge.criteria_type,
                "requirement": badge.requirement,
                "earned": badge.id in earned_at,
                "earned_at": earned_at.get(badge.id),
                "current": current,
                "progress": min(100, round(current / badge.requirement * 100)) if badge.requirement else 100,
            }
            if item["earned"]:
                grouped["earned"].append(item)
            elif item["progress"] > 0:
                grouped["in_progress"].append(item)
            else:
                grouped["locked"].append(item)
        return grouped

    # ==================== ANALYTICS ====================

    async def get_analytics(self, db: AsyncSession, user_id: str, days: int = 30) -> Dict[str, Any]:
        since = datetime.utcnow() - timedelta(days=days)
        result = await db.execute(
            select(QuestionAttempt)
            .where(QuestionAttempt.user_id == user_id, QuestionAttempt.created_at >= since)
            .order_by(QuestionAttempt.created_at.asc())
        )
        attempts = list(result.scalars().all())

        by_difficulty = []
        for level in LEVELS:
            rows = [a for a in attempts if a.difficulty == level]
            correct = sum(1 for a in rows if a.is_correct)
            by_difficulty.append({
                "difficulty": level,
                "attempts": len(rows),
                "correct": correct,
                "accuracy": round(correct / len(rows) * 100) if rows else 0,
                "avg_time_seconds": round(sum(a.time_taken_seconds for a in rows) / len(rows)) if rows else 0,
            })

        daily: Dict[str, Dict[str, int]] = {}
        for attempt in attempts:
            key = attempt.created_at.date().isoformat()
            bucket = daily.setdefault(key, {"attempts": 0, "correct": 0, "time": 0})
            bucket["attempts"] += 1
            bucket["correct"] += 1 if attempt.is_correct else 0
            bucket["time"] += attempt.time_taken_seconds or 0

        daily_trend = [
            {
                "date": day,
                "accuracy": round(data["correct"] / data["attempts"] * 100) if data["attempts"] else 0,
                "attempts": data["attempts"],
                "time_minutes": round(data["time"] / 60),
            }
            for day, data in daily.items()
        ]

        total_correct = sum(1 for a in attempts if a.is_correct)
        return {
            "by_difficulty": by_difficulty,
            "daily_trend": daily_trend,
            "summary": {
                "total_attempts": len(attempts),
                "total_correct": total_correct,
                "overall_accuracy": round(total_correct / len(attempts) * 100) if attempts else 0,
                "days": days,
            },
        }

    # ==================== QUESTION SETS ====================

    async def get_questions(
        self,
        db: AsyncSession,
        difficulty: Optional[str] = None,
        count: int = 20,
    ) -> Dict[str, Any]:
        """Half generated, half PYQ, shuffled; answers are never included"""
        generated_count = count // 2
        pyq_count = count - generated_count
        level = difficulty if difficulty in LEVELS else None

        gen_query = select(GeneratedQuestion).where(GeneratedQuestion.is_active.is_(True))
        pyq_query = select(PYQuestion)
        if level:
            gen_query = gen_query.where(GeneratedQuestion.difficulty == level)
            pyq_query = pyq_query.where(PYQuestion.difficulty == level)

        generated = await db.execute(gen_query.order_by(GeneratedQuestion.created_at.desc()).limit(generated_count))
        pyqs = await db.execute(pyq_query.order_by(PYQuestion.year.desc()).limit(pyq_count))

        questions = [
            {
                "id": q.id, "question_text": q.question_text, "question_type": q.question_type,
                "difficulty": q.difficulty, "topic": q.topic, "options": q.options, "source": "generated",
            }
            for q in generated.scalars().all()
        ] + [
            {
                "id": q.id, "question_text": q.question_text, "question_type": q.question_type,
                "difficulty": q.difficulty, "topic": q.topic or q.subject, "options": q.options or [],
                "year": q.year, "paper": q.paper, "source": "pyq",
            }
            for q in pyqs.scalars().all()
        ]
        random.shuffle(questions)

        return {
            "questions": questions[:count],
            "filters": {"difficulty": level},
            "total": len(questions),
        }


# Singleton instance
difficulty_service = DifficultyService()
