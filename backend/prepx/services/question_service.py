"""
AI Question Generation Service

Handles:
- Prompt construction per question type and difficulty
- Quality validation and per-question difficulty re-prediction
- Persistence with generation metadata
- Daily generation limits (free vs pro)
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import date
from typing import Optional, List, Dict, Any, Tuple
import logging

from prepx.core.config import settings
from prepx.core.exceptions import AIResponseParseError, ResourceNotFoundError, UpgradeRequiredError, ValidationError
from prepx.models.question import GeneratedQuestion, QuestionGenerationUsage, QuestionType, Difficulty
from prepx.services.difficulty_service import predict_rule_based
from prepx.services.subscription_service import subscription_service
from prepx.utils.claude_client import claude_client
from prepx.utils.pagination import fetch_page, page_meta
from prepx.utils.response_parser import extract_json

logger = logging.getLogger(__name__)

QUESTION_TYPES = {
    QuestionType.MCQ.value: {
        "label": "Prelims MCQ",
        "answer_format": "4 options (A, B, C, D) with one correct answer and explanation for each option",
    },
    QuestionType.MAINS_150.value: {
        "label": "Mains 150-word",
        "answer_format": "structured answer with introduction, body points, and conclusion (~150 words)",
    },
    QuestionType.MAINS_250.value: {
        "label": "Mains 250-word",
        "answer_format": "detailed answer with intro, multiple body paragraphs, and conclusion (~250 words)",
    },
    QuestionType.ESSAY.value: {
        "label": "Essay 1000-word",
        "answer_format": "comprehensive essay with abstract, thesis, multiple sections, and conclusion (1000-1200 words)",
    },
}

DIFFICULTIES = {
    Difficulty.EASY.value: "Basic concepts, direct questions, fundamental understanding required",
    Difficulty.MEDIUM.value: "Moderate complexity, requires analysis and application of concepts",
    Difficulty.HARD.value: "Advanced topics, requires critical thinking, inter-linking of concepts, and nuanced understanding",
}

SYSTEM_PROMPT = """You are an expert UPSC question setter with deep knowledge of the UPSC Civil Services Examination pattern.
You create high-quality, exam-style questions that test conceptual understanding and application.

Guidelines:
1. Questions must be factually accurate and relevant to UPSC syllabus
2. Questions should test analytical thinking, not just rote memorization
3. For MCQs, all options should be plausible with clear differentiators
4. Model answers should be comprehensive and well-structured
5. Questions should be original and not directly copied from previous papers"""

BASE_QUALITY = 0.8
MAX_COUNT = 10


def build_prompt(topic: str, question_type: str, difficulty: str, count: int, subject: Optional[str] = None) -> str:
    config = QUESTION_TYPES[question_type]
    mcq_fields = (
        '"options": ["Option A text", "Option B text", "Option C text", "Option D text"],\n'
        '    "correct_answer": "A",\n'
        '    "explanations": {"A": "...", "B": "...", "C": "...", "D": "..."},\n    '
        if question_type == QuestionType.MCQ.value else ""
    )
    subject_line = f"Subject: {subject}\n" if subject else ""
    return f"""Generate {count} UPSC {config['label']} questions on the topic: "{topic}"
{subject_line}
Difficulty Level: {difficulty.upper()}
Difficulty Description: {DIFFICULTIES[difficulty]}

For each question, provide:
1. Question text (clear, unambiguous, exam-style)
2. {config['answer_format']}
3. Key points covered

IMPORTANT: Return ONLY a valid JSON array with no additional text or markdown.

Format:
[
  {{
    "question_text": "...",
    "difficulty": "{difficulty}",
    {mcq_fields}"model_answer": "...",
    "key_points": ["point1", "point2", "point3"]
  }}
]"""


def validate_question(raw: Dict[str, Any], question_type: str, requested_difficulty: str) -> Tuple[Dict[str, Any], bool]:
    """Normalise one generated question and score it; returns (question, is_valid)"""
    text = str(raw.get("question_text") or "").strip()
    model_answer = str(raw.get("model_answer") or "")
    options = raw.get("options") if isinstance(raw.get("options"), list) else []

    question = {
        "question_text": text,
        "question_type": question_type,
        "difficulty": requested_difficulty,
        "model_answer": model_answer,
        "key_points": raw.get("key_points") if isinstance(raw.get("key_points"), list) else [],
        "options_json": {
            "options": options,
            "correct_answer": raw.get("correct_answer") or "A",
            "explanations": raw.get("explanations") or {},
        } if question_type == QuestionType.MCQ.value else None,
        "quality_score": BASE_QUALITY,
    }

    is_valid = True
    if len(text) < 20:
        is_valid = False
        question["quality_score"] = 0.3
    if len(model_answer) < 50:
        question["quality_score"] -= 0.2
    if question_type == QuestionType.MCQ.value and len(options) != 4:
        is_valid = False
        question["quality_score"] = 0.4

    if len(text) > 20:
        predicted = predict_rule_based(text, question_type)["predicted_difficulty"]
        if predicted != requested_difficulty:
            logger.debug(f"Difficulty adjusted {requested_difficulty} -> {predicted}")
        question["difficulty"] = predicted

    question["quality_score"] = round(question["quality_score"], 2)
    return question, is_valid


def limit_payload(used: int, limit: int) -> Dict[str, Any]:
    if limit >= 9999:
        return {"used": used, "limit": "unlimited", "remaining": "unlimited"}
    return {"used": used, "limit": limit, "remaining": max(0, limit - used)}


class QuestionService:
    """AI question generator and the user's question bank"""

    # ==================== USAGE ====================

    async def _usage_row(self, db: AsyncSession, user_id: str) -> Optional[QuestionGenerationUsage]:
        result = await db.execute(
            select(QuestionGenerationUsage).where(
                QuestionGenerationUsage.user_id == user_id,
                QuestionGenerationUsage.usage_date == date.today(),
            )
        )
        return result.scalar_one_or_none()

    async def get_daily_usage(self, db: AsyncSession, user_id: str) -> Tuple[int, int]:
        """(used today, daily limit)"""
        is_pro = await subscription_service.is_pro(db, user_id)
        limit = settings.QUESTION_GEN_PRO_DAILY_LIMIT if is_pro else settings.QUESTION_GEN_FREE_DAILY_LIMIT
        row = await self._usage_row(db, user_id)
        return (row.questions_generated if row else 0), limit

    async def _record_usage(self, db: AsyncSession, user_id: str, count: int, topic: str, question_type: str) -> None:
        row = await self._usage_row(db, user_id)
        if not row:
            row = QuestionGenerationUsage(user_id=user_id, usage_date=date.today(), questions_generated=0)
            db.add(row)
        row.questions_generated += count
        row.last_topic = topic
        row.last_question_type = question_type

    # ==================== GENERATION ====================

    async def generate(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        """
        Generate, validate and store questions.

        Raises:
            ValidationError: missing or invalid inputs
            UpgradeRequiredError: daily limit reached
            AIResponseParseError: no usable questions in the model reply
        """
        topic = (data.topic or "").strip()
        if not topic or not data.question_type or not data.difficulty or not data.count:
            raise ValidationError("Missing required fields: topic, question_type, difficulty, count")
        if data.question_type not in QUESTION_TYPES:
            raise ValidationError(
                "Invalid question_type. Must be: mcq, mains_150, mains_250, or essay", field="question_type"
            )
        if data.difficulty not in DIFFICULTIES:
            raise ValidationError("Invalid difficulty. Must be: easy, medium, or hard", field="difficulty")

        used, limit = await self.get_daily_usage(db, user_id)
        if used >= limit:
            raise UpgradeRequiredError(
                "Daily question generation limit reached",
                current_usage=used,
                daily_limit=limit,
            )
        count = min(max(1, data.count), MAX_COUNT, limit - used)

        result = await claude_client.generate(
            build_prompt(topic, data.question_type, data.difficulty, count, data.subject),
            system_prompt=SYSTEM_PROMPT,
            model="sonnet",
            max_tokens=4000 if data.question_type == QuestionType.ESSAY.value else 2000,
            temperature=0.7,
        )
        try:
            raw_questions = extract_json(result["content"], expect="array")
        except AIResponseParseError:
            logger.error(f"Question generation returned unparseable content: {result['content'][:300]}")
            raise AIResponseParseError("Failed to parse generated questions. Please try again.")

        validated = [
            validate_question(raw, data.question_type, data.difficulty)
            for raw in raw_questions if isinstance(raw, dict)
        ]
        accepted = [q for q, is_valid in validated if is_valid]
        if not accepted:
            raise AIResponseParseError("Generated questions did not pass quality validation. Please try again.")

        metadata = {
            "model": result["model"],
            "tokens": result["total_tokens"],
            "latency_ms": result["latency_ms"],
        }
        saved = []
        for question in accepted:
            row = GeneratedQuestion(
                user_id=user_id,
                topic=topic,
                subject=data.subject,
                generation_metadata=metadata,
                **question,
            )
            db.add(row)
            saved.append(row)

        await self._record_usage(db, user_id, len(saved), topic, data.question_type)
        await db.commit()
        logger.info(f"Generated {len(saved)} {data.question_type} questions for user {user_id} on '{topic}'")

        return {
            "success": True,
            "questions": [self.serialize(q) for q in saved],
            "dailyLimit": limit_payload(used + len(saved), limit),
            "metadata": {
                "generated_count": len(saved),
                "requested_count": count,
                **metadata,
            },
        }

    # ==================== QUESTION BANK ====================

    @staticmethod
    def serialize(question: GeneratedQuestion) -> Dict[str, Any]:
        return {
            "id": question.id,
            "topic": question.topic,
            "subject": question.subject,
            "question_text": question.question_text,
            "question_type": question.question_type,
            "difficulty": question.difficulty,
            "options": question.options or None,
            "correct_answer": question.correct_answer,
            "explanations": question.explanations or None,
            "model_answer": question.model_answer,
            "key_points": question.key_points or [],
            "quality_score": question.quality_score,
            "created_at": question.created_at,
        }

    async def list_questions(
        self,
        db: AsyncSession,
        user_id: str,
        topic: Optional[str] = None,
        question_type: Optional[str] = None,
        difficulty: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Dict[str, Any]:
        filters = [GeneratedQuestion.user_id == user_id]
        if topic:
            filters.append(GeneratedQuestion.topic.ilike(f"%{topic}%"))
        if question_type:
            filters.append(GeneratedQuestion.question_type == question_type)
        if difficulty:
            filters.append(GeneratedQuestion.difficulty == difficulty)

        questions, total = await fetch_page(
            db,
            select(GeneratedQuestion).where(*filters).order_by(GeneratedQuestion.created_at.desc()),
            limit=limit,
            offset=offset,
            with_total=True,
        )
        return {
            "questions": [self.serialize(q) for q in questions],
            **page_meta(total, limit, offset),
        }

    async def get_question(self, db: AsyncSession, user_id: str, question_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(GeneratedQuestion).where(
                GeneratedQuestion.id == question_id,
                GeneratedQuestion.user_id == user_id,
            )
        )
        question = result.scalar_one_or_none()
        if not question:
            raise ResourceNotFoundError("Question", question_id)
        return self.serialize(question)


# Singleton instance
question_service = QuestionService()
