"""
Topic Difficulty Predictor Service

Forecasts per-topic difficulty, exam probability and trend from PYQ history,
and turns them into dashboards, heatmaps and personalised study plans.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import date, datetime
from typing import Optional, List, Dict, Any
import logging

from prepx.core.exceptions import AIServiceError, ResourceNotFoundError, ValidationError
from prepx.models.prediction import (
    SUBJECTS,
    TopicPrediction,
    TopicPerformance,
    PredictionReport,
    PredictionModelHistory,
    TrendDirection,
    Proficiency,
)
from prepx.utils.claude_client import claude_client

logger = logging.getLogger(__name__)

MODEL_VERSION = "1.0"
TRAINING_START = date(2010, 1, 1)
TRENDING_LIMIT = 20
RECOMMENDATION_LIMIT = 20
PRIORITY_ORDER = {"HIGH": 0, "MEDIUM": 1, "NORMAL": 2}
TIME_MULTIPLIERS = {
    Proficiency.MASTERED.value: 0.3,
    Proficiency.ADVANCED.value: 0.5,
    Proficiency.INTERMEDIATE.value: 0.8,
}
AI_FALLBACK = "AI analysis temporarily unavailable. Please try again later."

RESOURCES = {
    "polity": ["Laxmikanth Indian Polity", "Previous Year Questions", "Current Affairs - Governance"],
    "history": ["Spectrum Modern India", "Tamil Nadu Board History", "Art & Culture by Nitin Singhania"],
    "geography": ["NCERT Geography", "G C Leong Physical Geography", "Oxford Atlas"],
    "economics": ["Ramesh Singh Indian Economy", "Economic Survey", "Budget Analysis"],
    "science": ["NCERT Science", "The Hindu Science Section", "PIB Science Articles"],
    "environment": ["Shankar IAS Environment", "Down to Earth Magazine", "IPCC Reports"],
    "ethics": ["Lexicon Ethics", "Case Studies Practice", "Ethics Integrity & Aptitude"],
}


def resource_suggestions(subject: str) -> List[str]:
    return RESOURCES.get(subject, ["UPSC Study Material", "Previous Year Questions"])


def proficiency_for(attempts: int, correct: int) -> str:
    accuracy = correct / attempts if attempts else 0
    if accuracy >= 0.9 and attempts >= 20:
        return Proficiency.MASTERED.value
    if accuracy >= 0.75 and attempts >= 10:
        return Proficiency.ADVANCED.value
    if accuracy >= 0.5 and attempts >= 5:
        return Proficiency.INTERMEDIATE.value
    return Proficiency.BEGINNER.value


def _history(raw: Dict[str, Any]) -> Dict[int, int]:
    return {int(year): int(count or 0) for year, count in (raw or {}).items()}


def predict_from_history(raw_history: Dict[str, Any], reference_year: int) -> Dict[str, Any]:
    """
    Derive the forecast for one topic.

    The window ends at reference_year (latest exam year in the data set).
    Trend compares the mean of the last 3 years with the 3 before.
    """
    history = _history(raw_history)
    total = sum(history.values())
    span = (reference_year - min(history) + 1) if history else 1
    per_year = total / span if span > 0 else 0

    def window_mean(end: int, size: int = 3) -> float:
        return sum(history.get(y, 0) for y in range(end - size + 1, end + 1)) / size

    recent = window_mean(reference_year)
    previous = window_mean(reference_year - 3)
    recent_share = (recent * 3 / total) if total else 0

    difficulty = 2 + min(per_year / 5, 1) * 4 + min(recent_share, 1) * 4
    difficulty = round(max(1.0, min(10.0, difficulty)), 1)

    if previous == 0:
        change = 100.0 if recent > 0 else 0.0
    else:
        change = round((recent - previous) / previous * 100, 1)

    if recent > previous * 1.2 and recent > 0:
        trend = TrendDirection.RISING.value
    elif recent < previous * 0.8:
        trend = TrendDirection.DECLINING.value
    else:
        trend = TrendDirection.STABLE.value

    last_five = [history.get(y, 0) for y in range(reference_year - 4, reference_year + 1)]
    appearance_rate = sum(1 for c in last_five if c > 0) / 5
    probability = round(min(1.0, 0.7 * appearance_rate + 0.3 * min(recent / 3, 1)), 2)

    return {
        "difficulty_score": difficulty,
        "predicted_probability": probability,
        "confidence_score": round(min(0.95, 0.4 + 0.05 * len(history)), 2),
        "time_recommendation_hours": round(difficulty * 1.5 * (0.5 + probability), 1),
        "trend": trend,
        "year_over_year_change": change,
        "is_trending": trend == TrendDirection.RISING.value and probability >= 0.6,
    }


def serialize_prediction(p: TopicPrediction) -> Dict[str, Any]:
    return {
        "id": p.id,
        "subject": p.subject,
        "topic": p.topic,
        "paper": p.paper,
        "difficulty_score": p.difficulty_score,
        "predicted_probability": p.predicted_probability,
        "confidence_score": p.confidence_score,
        "time_recommendation_hours": p.time_recommendation_hours,
        "trend": p.trend,
        "year_over_year_change": p.year_over_year_change,
        "is_trending": p.is_trending,
        "priority": p.priority,
        "prediction_date": p.prediction_date,
    }


class PredictorService:
    """Topic predictions, analytics and study plans"""

    async def _all(self, db: AsyncSession, subject: Optional[str] = None) -> List[TopicPrediction]:
        query = select(TopicPrediction)
        if subject:
            query = query.where(TopicPrediction.subject == subject)
        result = await db.execute(query.order_by(TopicPrediction.subject, TopicPrediction.topic))
        return list(result.scalars().all())

    async def _performance_map(self, db: AsyncSession, user_id: str) -> Dict[str, TopicPerformance]:
        result = await db.execute(select(TopicPerformance).where(TopicPerformance.user_id == user_id))
        return {p.topic_id: p for p in result.scalars().all()}

    async def get_topic(self, db: AsyncSession, topic_id: str) -> TopicPrediction:
        result = await db.execute(select(TopicPrediction).where(TopicPrediction.id == topic_id))
        topic = result.scalar_one_or_none()
        if not topic:
            raise ResourceNotFoundError("Topic", topic_id, message="Topic not found")
        return topic

    # ==================== DASHBOARD & VIEWS ====================

    async def get_dashboard(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        predictions = await self._all(db)
        performance = await self._performance_map(db, user_id)

        summary = []
        for subject in SUBJECTS:
            rows = [p for p in predictions if p.subject == subject]
            avg = sum(p.difficulty_score for p in rows) / len(rows) if rows else 5
            summary.append({
                "subject": subject,
                "topicCount": len(rows),
                "avgDifficulty": round(avg, 1),
                "risingCount": sum(1 for p in rows if p.trend == TrendDirection.RISING.value),
                "totalStudyHours": round(sum(
                    performance[p.id].study_hours for p in rows if p.id in performance
                ), 1),
            })

        trending = sorted(
            (p for p in predictions if p.is_trending), key=lambda p: p.predicted_probability, reverse=True
        )
        return {
            "totalTopics": len(predictions),
            "trendingCount": len(trending),
            "subjectSummary": summary,
            "trending": [serialize_prediction(p) for p in trending[:5]],
            "totalStudyHours": round(sum(p.study_hours for p in performance.values()), 1),
            "lastUpdated": max((p.updated_at for p in predictions if p.updated_at), default=None),
        }

    async def get_heatmap(self, db: AsyncSession, subject: Optional[str] = None) -> Dict[str, Any]:
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for p in await self._all(db, subject):
            grouped.setdefault(p.subject, []).append({
                "id": p.id,
                "name": p.topic,
                "paper": p.paper,
                "difficulty": p.difficulty_score,
                "colorIntensity": round(p.difficulty_score / 10, 2),
            })
        return {"heatmapData": grouped}

    async def get_trending(self, db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(TopicPrediction)
            .where(TopicPrediction.is_trending.is_(True))
            .order_by(TopicPrediction.predicted_probability.desc())
            .limit(TRENDING_LIMIT)
        )
        return [serialize_prediction(p) for p in result.scalars().all()]

    async def get_topic_detail(self, db: AsyncSession, user_id: str, topic_id: str) -> Dict[str, Any]:
        topic = await self.get_topic(db, topic_id)
        performance = (await self._performance_map(db, user_id)).get(topic.id)

        history = sorted(_history(topic.pyq_history).items(), reverse=True)
        return {
            "topic": serialize_prediction(topic),
            "pyqHistory": [{"year": year, "questions": count} for year, count in history],
            "userPerformance": {
                "questions_attempted": performance.questions_attempted,
                "questions_correct": performance.questions_correct,
                "study_hours": performance.study_hours,
                "proficiency_level": performance.proficiency_level,
                "last_attempt_date": performance.last_attempt_date,
            } if performance else None,
            "recommendation": {
                "studyHours": topic.time_recommendation_hours,
                "priority": topic.priority,
                "suggestedResources": resource_suggestions(topic.subject),
            },
        }

    async def get_trends(self, db: AsyncSession, subject: Optional[str] = None) -> Dict[str, Any]:
        predictions = await self._all(db, subject)
        by_trend = {t.value: [p for p in predictions if p.trend == t.value] for t in TrendDirection}

        recent_years: Dict[int, int] = {}
        older_years: Dict[int, int] = {}
        for p in predictions:
            for year, count in _history(p.pyq_history).items():
                if year >= 2020:
                    recent_years[year] = recent_years.get(year, 0) + count
                elif year >= 2015:
                    older_years[year] = older_years.get(year, 0) + count

        recent_mean = sum(recent_years.values()) / len(recent_years) if recent_years else 0
        older_mean = sum(older_years.values()) / len(older_years) if older_years else 0
        overall = round((recent_mean - older_mean) / older_mean * 100) if older_mean else 0

        def brief(p: TopicPrediction) -> Dict[str, Any]:
            return {
                "topicId": p.id,
                "topicName": p.topic,
                "subject": p.subject,
                "difficulty": p.difficulty_score,
                "change": p.year_over_year_change,
            }

        return {
            "summary": {
                "rising": len(by_trend[TrendDirection.RISING.value]),
                "stable": len(by_trend[TrendDirection.STABLE.value]),
                "declining": len(by_trend[TrendDirection.DECLINING.value]),
                "overallTrendPercent": overall,
            },
            "risingTopics": [brief(p) for p in by_trend[TrendDirection.RISING.value][:10]],
            "decliningTopics": [brief(p) for p in by_trend[TrendDirection.DECLINING.value][:10]],
        }

    async def get_recommendations(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        performance = await self._performance_map(db, user_id)

        recommendations = []
        for p in await self._all(db):
            perf = performance.get(p.id)
            proficiency = perf.proficiency_level if perf else Proficiency.BEGINNER.value
            adjusted = p.time_recommendation_hours * TIME_MULTIPLIERS.get(proficiency, 1.0)
            recommendations.append({
                "topicId": p.id,
                "topicName": p.topic,
                "subject": p.subject,
                "difficulty": p.difficulty_score,
                "baseHours": p.time_recommendation_hours,
                "adjustedHours": round(adjusted, 1),
                "proficiency": proficiency,
                "priority": p.priority,
                "isTrending": p.is_trending,
            })

        recommendations.sort(key=lambda r: (PRIORITY_ORDER[r["priority"]], -r["adjustedHours"]))
        total_hours = sum(r["adjustedHours"] for r in recommendations)
        return {
            "recommendations": recommendations[:RECOMMENDATION_LIMIT],
            "totalTopics": len(recommendations),
            "totalStudyHours": round(total_hours),
            "averageHoursPerTopic": round(total_hours / len(recommendations), 1) if recommendations else 0,
        }

    # ==================== REPORTS ====================

    async def create_report(self, db: AsyncSession, user_id: str, data) -> Dict[str, Any]:
        report = PredictionReport(
            user_id=user_id,
            report_type=data.report_type or "full",
            filter_criteria={"subject": data.subject, **(data.filters or {})},
            status="generating",
        )
        db.add(report)
        await db.flush()

        predictions = await self._all(db, data.subject)
        paper = (data.filters or {}).get("paper")
        if paper:
            predictions = [p for p in predictions if p.paper == paper]

        report.content = {
            "title": "UPSC Topic Difficulty Prediction Report",
            "generatedAt": datetime.utcnow().isoformat(),
            "filters": report.filter_criteria,
            "summary": {
                "totalTopics": len(predictions),
                "avgDifficulty": round(
                    sum(p.difficulty_score for p in predictions) / len(predictions), 1
                ) if predictions else 0,
                "totalStudyHours": round(sum(p.time_recommendation_hours for p in predictions), 1),
                "trendingTopics": sum(1 for p in predictions if p.is_trending),
            },
            "predictions": [
                {
                    "topic": p.topic,
                    "subject": p.subject,
                    "paper": p.paper,
                    "difficulty": p.difficulty_score,
                    "probability": p.predicted_probability,
                    "confidence": p.confidence_score,
                    "studyHours": p.time_recommendation_hours,
                    "trend": p.trend,
                    "isTrending": p.is_trending,
                }
                for p in predictions
            ],
        }
        report.status = "ready"
        await db.commit()

        logger.info(f"Prediction report {report.id} generated for user {user_id}")
        return {
            "reportId": report.id,
            "status": report.status,
            "content": report.content,
            "message": "Report generated successfully",
        }

    async def list_reports(self, db: AsyncSession, user_id: str) -> List[PredictionReport]:
        result = await db.execute(
            select(PredictionReport)
            .where(PredictionReport.user_id == user_id)
            .order_by(PredictionReport.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== REFRESH ====================

    async def refresh_predictions(self, db: AsyncSession) -> Dict[str, Any]:
        """Recompute every prediction from its PYQ history and log the run"""
        predictions = await self._all(db)
        years = [int(y) for p in predictions for y in (p.pyq_history or {})]
        reference_year = max(years) if years else date.today().year

        today = date.today()
        for p in predictions:
            for key, value in predict_from_history(p.pyq_history, reference_year).items():
                setattr(p, key, value)
            p.prediction_date = today

        db.add(PredictionModelHistory(
            model_version=MODEL_VERSION,
            training_data_start=TRAINING_START,
            training_data_end=today,
            topics_count=len(predictions),
            notes="Refresh triggered",
        ))
        await db.commit()

        logger.info(f"Refreshed {len(predictions)} topic predictions (reference year {reference_year})")
        return {
            "success": True,
            "topicsUpdated": len(predictions),
            "message": "Predictions refreshed successfully",
        }

    # ==================== PERFORMANCE ====================

    async def update_performance(self, db: AsyncSession, user_id: str, data) -> TopicPerformance:
        if not data.topic_id:
            raise ValidationError("Topic ID required", field="topic_id")
        await self.get_topic(db, data.topic_id)

        result = await db.execute(
            select(TopicPerformance).where(
                TopicPerformance.user_id == user_id,
                TopicPerformance.topic_id == data.topic_id,
            )
        )
        performance = result.scalar_one_or_none()
        if not performance:
            performance = TopicPerformance(
                user_id=user_id, topic_id=data.topic_id,
                questions_attempted=0, questions_correct=0, study_hours=0.0,
            )
            db.add(performance)

        performance.questions_attempted += data.attempts
        performance.questions_correct += min(data.correct, data.attempts)
        performance.study_hours += data.study_hours
        performance.proficiency_level = proficiency_for(
            performance.questions_attempted, performance.questions_correct
        )
        performance.last_attempt_date = date.today()
        await db.commit()
        return performance

    # ==================== AI ANALYSIS ====================

    async def get_ai_analysis(self, db: AsyncSession, topic_id: str) -> Dict[str, Any]:
        topic = await self.get_topic(db, topic_id)
        history = sorted(_history(topic.pyq_history).items(), reverse=True)[:10]

        prompt = (
            "You are a UPSC exam preparation expert. Analyze this topic and provide strategic advice.\n\n"
            f"Topic: {topic.topic}\nSubject: {topic.subject}\nPaper: {topic.paper or 'General'}\n\n"
            "Historical PYQ Data (last 10 years):\n"
            + "\n".join(f"{year}: {count} questions" for year, count in history)
            + "\n\nCurrent Prediction:\n"
            f"- Difficulty Score: {topic.difficulty_score}/10\n"
            f"- Exam Probability: {round(topic.predicted_probability * 100)}%\n"
            f"- Trend: {topic.trend}\n"
            f"- Recommended Study Hours: {topic.time_recommendation_hours}\n\n"
            "Provide:\n1. Why this topic is trending or declining\n2. Key subtopics to focus on\n"
            "3. Expected question types\n4. Preparation strategy\n\nKeep it concise and actionable."
        )

        if not claude_client.is_configured:
            return {"topic_id": topic.id, "analysis": AI_FALLBACK, "source": "fallback"}
        try:
            result = await claude_client.generate(prompt, model="sonnet", max_tokens=1000, temperature=0.5)
            return {"topic_id": topic.id, "analysis": result["content"], "source": "ai"}
        except AIServiceError as e:
            logger.error(f"Predictor AI analysis failed for topic {topic_id}: {e.message}")
            return {"topic_id": topic.id, "analysis": AI_FALLBACK, "source": "fallback"}


# Singleton instance
predictor_service = PredictorService()
