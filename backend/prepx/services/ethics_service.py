"""
Ethics Simulator Service

Walks a user through a multi-stage GS4 ethics scenario:
- start / retry sessions (retries get an AI-generated twist on the context)
- AI evaluation of each stage response on four weighted dimensions
- completion: aggregate scores, ethical tendency, report card, peer percentile
- the user's long-running ethics profile and its video summary
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from datetime import datetime
from typing import Optional, List, Dict, Any
import logging

from prepx.core.config import settings
from prepx.core.exceptions import (
    AIServiceError,
    ConflictError,
    ExternalServiceError,
    ResourceNotFoundError,
    ValidationError,
)
from prepx.models.ethics import (
    EthicsScenario,
    EthicsStage,
    EthicsSession,
    EthicsResponse,
    EthicsReportCard,
    EthicsProfile,
    EthicsSessionStatus,
)
from prepx.utils.claude_client import claude_client
from prepx.utils.http_client import http_client

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = {
    "easy": {"name": "Student", "description": "College/university level decisions", "multiplier": 1.0},
    "medium": {"name": "Bureaucrat", "description": "IAS/IPS level administrative decisions", "multiplier": 1.5},
    "hard": {"name": "Minister", "description": "Cabinet-level policy decisions", "multiplier": 2.0},
}

ETHICAL_TENDENCIES = {
    "utilitarian": {"name": "Utilitarian", "description": "Maximize overall welfare"},
    "deontological": {"name": "Deontological", "description": "Follow moral duties and rules"},
    "virtue": {"name": "Virtue Ethics", "description": "Act from good character"},
    "care": {"name": "Care Ethics", "description": "Prioritize relationships and empathy"},
    "justice": {"name": "Justice", "description": "Ensure fairness and rights"},
}

SCORING_DIMENSIONS = {
    "decision_quality": {"name": "Decision Quality", "weight": 0.30},
    "reasoning_depth": {"name": "Reasoning Depth", "weight": 0.25},
    "stakeholder_consideration": {"name": "Stakeholder Consideration", "weight": 0.25},
    "practical_implementation": {"name": "Practical Implementation", "weight": 0.20},
}

DEFAULT_EVALUATION = {
    "dimensionScores": {key: 50 for key in SCORING_DIMENSIONS},
    "ethicalIndicators": {key: 50 for key in ETHICAL_TENDENCIES},
    "score": 50,
    "feedback": "Evaluation pending.",
    "details": {"strengths": [], "weaknesses": []},
}

DEFAULT_REPORT = {
    "dimensionAnalysis": {},
    "ethicalProfileSummary": "Your ethical profile is being analyzed.",
    "strengths": ["Completed the simulation"],
    "improvements": ["Continue practicing ethical reasoning"],
    "resources": [],
    "practiceAreas": ["Ethics case studies"],
    "interviewQuestions": [],
    "narrative": "Analysis in progress.",
}

DEFAULT_RETRY_CONTEXT = "Retry with added time pressure and media scrutiny."
DEFAULT_VIDEO_SCRIPT = "Your ethics profile video is being prepared."

EVALUATION_PROMPT = """Evaluate this ethics response for a UPSC GS4 simulation.

Scenario: {title}
Stage prompt: {stage_prompt}
Response: {response_text}

Evaluate on these dimensions (score 0-100 each):
1. Decision Quality: Clear, well-justified decision
2. Reasoning Depth: Multiple perspectives, frameworks considered
3. Stakeholder Consideration: All affected parties addressed
4. Practical Implementation: Realistic, actionable steps

Also identify ethical tendencies (score 0-100 each):
- Utilitarian (focuses on outcomes, greater good)
- Deontological (focuses on duties, rules)
- Virtue (focuses on character, integrity)
- Care (focuses on relationships, empathy)
- Justice (focuses on fairness, rights)

Return JSON:
{{
  "dimensionScores": {{"decision_quality": X, "reasoning_depth": X, "stakeholder_consideration": X, "practical_implementation": X}},
  "ethicalIndicators": {{"utilitarian": X, "deontological": X, "virtue": X, "care": X, "justice": X}},
  "score": X,
  "feedback": "...",
  "details": {{"strengths": [...], "weaknesses": [...]}}
}}"""


def _clamp_score(value: Any, default: int = 50) -> int:
    try:
        return max(0, min(100, int(round(float(value)))))
    except (TypeError, ValueError):
        return default


def normalize_evaluation(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce a model reply into the evaluation shape, filling gaps with neutral scores"""
    dimensions = raw.get("dimensionScores") if isinstance(raw.get("dimensionScores"), dict) else {}
    indicators = raw.get("ethicalIndicators") if isinstance(raw.get("ethicalIndicators"), dict) else {}
    dimension_scores = {key: _clamp_score(dimensions.get(key)) for key in SCORING_DIMENSIONS}
    return {
        "dimensionScores": dimension_scores,
        "ethicalIndicators": {key: _clamp_score(indicators.get(key)) for key in ETHICAL_TENDENCIES},
        "score": _clamp_score(raw.get("score"), default=calculate_total_score(dimension_scores)),
        "feedback": str(raw.get("feedback") or DEFAULT_EVALUATION["feedback"]),
        "details": raw.get("details") if isinstance(raw.get("details"), dict) else {"strengths": [], "weaknesses": []},
    }


def aggregate_dimensions(responses: List[Dict[str, Any]]) -> Dict[str, int]:
    """Per-dimension average across responses; zeros when nothing was answered"""
    if not responses:
        return {key: 0 for key in SCORING_DIMENSIONS}
    return {
        key: round(sum((r or {}).get(key, 0) for r in responses) / len(responses))
        for key in SCORING_DIMENSIONS
    }


def aggregate_tendencies(indicators: List[Dict[str, Any]]) -> Dict[str, int]:
    """Per-tendency average across responses; neutral 50 when nothing was answered"""
    if not indicators:
        return {key: 50 for key in ETHICAL_TENDENCIES}
    return {
        key: round(sum((i or {}).get(key, 0) for i in indicators) / len(indicators))
        for key in ETHICAL_TENDENCIES
    }


def calculate_total_score(dimension_scores: Dict[str, int], multiplier: float = 1.0) -> int:
    weighted = sum(dimension_scores.get(key, 0) * dim["weight"] for key, dim in SCORING_DIMENSIONS.items())
    return round(weighted * multiplier)


def ranked_tendencies(tendency: Dict[str, int]) -> List[str]:
    """Tendency keys, strongest first (ties keep the canonical order)"""
    order = list(ETHICAL_TENDENCIES)
    return sorted(
        (key for key in order if key in tendency),
        key=lambda key: (-tendency[key], order.index(key)),
    )


def percentile_rank(score: int, peer_scores: List[int]) -> float:
    """Share of peers scoring strictly below `score`, as a percentage"""
    if not peer_scores:
        return 100.0
    below = sum(1 for s in peer_scores if s < score)
    return round(below / len(peer_scores) * 100, 1)


def _multiplier(difficulty: str) -> float:
    return DIFFICULTY_LEVELS.get(difficulty, DIFFICULTY_LEVELS["medium"])["multiplier"]


class EthicsService:
    """Scenario catalogue, simulation sessions, report cards and profiles"""

    # ==================== CATALOGUE ====================

    @staticmethod
    def metadata() -> Dict[str, Any]:
        return {
            "difficultyLevels": DIFFICULTY_LEVELS,
            "ethicalTendencies": ETHICAL_TENDENCIES,
            "scoringDimensions": SCORING_DIMENSIONS,
        }

    @staticmethod
    def serialize_stage(stage: EthicsStage) -> Dict[str, Any]:
        return {
            "id": stage.id,
            "stage_number": stage.stage_number,
            "stage_type": stage.stage_type,
            "prompt": stage.prompt,
            "options": stage.options or [],
        }

    def serialize_scenario(self, scenario: EthicsScenario, with_stages: bool = False) -> Dict[str, Any]:
        data = {
            "id": scenario.id,
            "title": scenario.title,
            "context": scenario.context,
            "category": scenario.category,
            "difficulty": scenario.difficulty,
            "difficulty_level": DIFFICULTY_LEVELS.get(scenario.difficulty, {}).get("name"),
            "stakeholders": scenario.stakeholders or [],
        }
        if with_stages:
            data["stages"] = [self.serialize_stage(s) for s in scenario.stages]
        return data

    async def list_scenarios(
        self,
        db: AsyncSession,
        difficulty: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        query = select(EthicsScenario).where(EthicsScenario.is_active == 1)
        if difficulty:
            if difficulty not in DIFFICULTY_LEVELS:
                raise ValidationError("Invalid difficulty. Must be: easy, medium, or hard", field="difficulty")
            query = query.where(EthicsScenario.difficulty == difficulty)
        if category:
            query = query.where(EthicsScenario.category == category)
        result = await db.execute(query.order_by(EthicsScenario.created_at.desc()))
        return [self.serialize_scenario(s) for s in result.scalars().all()]

    async def _get_scenario(self, db: AsyncSession, scenario_id: str) -> EthicsScenario:
        result = await db.execute(
            select(EthicsScenario)
            .options(selectinload(EthicsScenario.stages))
            .where(EthicsScenario.id == scenario_id)
        )
        scenario = result.scalar_one_or_none()
        if not scenario:
            raise ResourceNotFoundError("Scenario", scenario_id)
        return scenario

    async def get_scenario(self, db: AsyncSession, scenario_id: str) -> Dict[str, Any]:
        scenario = await self._get_scenario(db, scenario_id)
        return self.serialize_scenario(scenario, with_stages=True)

    # ==================== SESSIONS ====================

    async def _get_session(self, db: AsyncSession, user_id: str, session_id: str) -> EthicsSession:
        result = await db.execute(
            select(EthicsSession)
            .options(selectinload(EthicsSession.responses))
            .where(EthicsSession.id == session_id, EthicsSession.user_id == user_id)
        )
        session = result.scalar_one_or_none()
        if not session:
            raise ResourceNotFoundError("Session", session_id, message="Session not found")
        return session

    @staticmethod
    def serialize_response(response: EthicsResponse) -> Dict[str, Any]:
        return {
            "id": response.id,
            "stage_id": response.stage_id,
            "response_text": response.response_text,
            "selected_option": response.selected_option,
            "time_taken_seconds": response.time_taken_seconds,
            "dimension_scores": response.dimension_scores or {},
            "ethical_indicators": response.ethical_indicators or {},
            "score": response.ai_score,
            "feedback": response.ai_feedback,
            "created_at": response.created_at,
        }

    def serialize_session(self, session: EthicsSession, with_responses: bool = False) -> Dict[str, Any]:
        data = {
            "id": session.id,
            "scenario_id": session.scenario_id,
            "status": session.status,
            "current_stage_number": session.current_stage_number,
            "retry_of": session.retry_of,
            "retry_context": session.retry_context,
            "dimension_scores": session.dimension_scores,
            "ethical_tendency": session.ethical_tendency,
            "total_score": session.total_score,
            "started_at": session.started_at,
            "completed_at": session.completed_at,
        }
        if with_responses:
            data["responses"] = [self.serialize_response(r) for r in session.responses]
        return data

    async def get_session(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        session = await self._get_session(db, user_id, session_id)
        return self.serialize_session(session, with_responses=True)

    async def start_session(
        self,
        db: AsyncSession,
        user_id: str,
        scenario_id: str,
        retry_of: Optional[str] = None,
        retry_context: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Open a session on the scenario's first stage"""
        scenario = await self._get_scenario(db, scenario_id)
        if not scenario.stages:
            raise ValidationError("Scenario has no stages")

        session = EthicsSession(
            user_id=user_id,
            scenario_id=scenario.id,
            status=EthicsSessionStatus.IN_PROGRESS.value,
            current_stage_number=scenario.stages[0].stage_number,
            retry_of=retry_of,
            retry_context=retry_context,
            started_at=datetime.utcnow(),
        )
        db.add(session)
        await db.commit()
        logger.info(f"Ethics session {session.id} started by {user_id} on scenario {scenario.id}")

        return {
            "sessionId": session.id,
            "scenario": self.serialize_scenario(scenario),
            "currentStage": self.serialize_stage(scenario.stages[0]),
            "retryContext": retry_context,
        }

    async def _evaluate(self, scenario: EthicsScenario, stage: EthicsStage, response_text: str) -> Dict[str, Any]:
        if not claude_client.is_configured:
            return dict(DEFAULT_EVALUATION)
        prompt = EVALUATION_PROMPT.format(
            title=scenario.title,
            stage_prompt=stage.prompt,
            response_text=response_text,
        )
        try:
            raw = await claude_client.generate_json(prompt, model="sonnet", max_tokens=1500, temperature=0.3)
            return normalize_evaluation(raw)
        except AIServiceError as e:
            logger.error(f"Ethics evaluation failed for stage {stage.id}: {e.message}")
            return dict(DEFAULT_EVALUATION)

    async def submit_response(self, db: AsyncSession, user_id: str, session_id: str, data) -> Dict[str, Any]:
        """
        Evaluate a stage answer and advance the session.

        Raises:
            ResourceNotFoundError: unknown session or stage
            ConflictError: session already completed
        """
        session = await self._get_session(db, user_id, session_id)
        if session.status != EthicsSessionStatus.IN_PROGRESS.value:
            raise ConflictError("Session is already completed", {"session_id": session.id})

        scenario = await self._get_scenario(db, session.scenario_id)
        stage = next((s for s in scenario.stages if s.id == data.stage_id), None)
        if not stage:
            raise ResourceNotFoundError("Stage", data.stage_id)
        if any(r.stage_id == stage.id for r in session.responses):
            raise ConflictError("Stage already answered", {"stage_id": stage.id})

        evaluation = await self._evaluate(scenario, stage, data.response_text)

        response = EthicsResponse(
            session_id=session.id,
            stage_id=stage.id,
            response_text=data.response_text,
            selected_option=data.selected_option,
            time_taken_seconds=data.time_taken,
            dimension_scores=evaluation["dimensionScores"],
            ethical_indicators=evaluation["ethicalIndicators"],
            ai_score=evaluation["score"],
            ai_feedback=evaluation["feedback"],
            evaluation_details=evaluation["details"],
        )
        session.responses.append(response)

        next_stage = next((s for s in scenario.stages if s.stage_number > stage.stage_number), None)
        if next_stage:
            session.current_stage_number = next_stage.stage_number
        await db.commit()

        return {
            "responseId": response.id,
            "evaluation": evaluation,
            "nextStage": self.serialize_stage(next_stage) if next_stage else None,
            "isComplete": next_stage is None,
        }

    # ==================== COMPLETION ====================

    async def _generate_report(
        self,
        dimension_scores: Dict[str, int],
        tendency: Dict[str, int],
        total_score: int,
    ) -> Dict[str, Any]:
        if not claude_client.is_configured:
            return dict(DEFAULT_REPORT)

        prompt = (
            "Generate a comprehensive ethics simulation report card.\n\nScores:\n"
            + "\n".join(f"- {dim['name']}: {dimension_scores.get(key, 0)}" for key, dim in SCORING_DIMENSIONS.items())
            + f"\n- Total: {total_score}\n\nEthical Tendencies:\n"
            + "\n".join(f"- {t['name']}: {tendency.get(key, 0)}" for key, t in ETHICAL_TENDENCIES.items())
            + """

Generate JSON:
{
  "dimensionAnalysis": {"decision_quality": {"score": X, "grade": "A/B/C", "feedback": "..."}},
  "ethicalProfileSummary": "2-3 paragraph summary of ethical reasoning style",
  "strengths": ["..."],
  "improvements": ["..."],
  "resources": [{"type": "book/article/video", "title": "...", "author": "...", "reason": "..."}],
  "practiceAreas": ["..."],
  "interviewQuestions": [{"question": "...", "context": "...", "suggested_approach": "..."}],
  "narrative": "Overall assessment narrative (2-3 paragraphs)"
}"""
        )
        try:
            report = await claude_client.generate_json(prompt, model="sonnet", max_tokens=3000, temperature=0.5)
        except AIServiceError as e:
            logger.error(f"Ethics report generation failed: {e.message}")
            return dict(DEFAULT_REPORT)
        return {**DEFAULT_REPORT, **report}

    async def _peer_scores(self, db: AsyncSession, scenario_id: str, exclude_session_id: str) -> List[int]:
        result = await db.execute(
            select(EthicsSession.total_score).where(
                EthicsSession.scenario_id == scenario_id,
                EthicsSession.status == EthicsSessionStatus.COMPLETED.value,
                EthicsSession.id != exclude_session_id,
                EthicsSession.total_score.isnot(None),
            )
        )
        return [row[0] for row in result.all()]

    async def _update_profile(self, db: AsyncSession, user_id: str, total_score: int, tendency: Dict[str, int]) -> EthicsProfile:
        result = await db.execute(select(EthicsProfile).where(EthicsProfile.user_id == user_id))
        profile = result.scalar_one_or_none()
        if not profile:
            profile = EthicsProfile(user_id=user_id, simulations_completed=0, average_score=0.0, tendency_scores={})
            db.add(profile)

        done = profile.simulations_completed or 0
        previous = profile.tendency_scores or {}
        # Running means over every completed simulation
        profile.average_score = round(((profile.average_score or 0.0) * done + total_score) / (done + 1), 1)
        profile.tendency_scores = {
            key: round((previous.get(key, value) * done + value) / (done + 1))
            for key, value in tendency.items()
        }
        profile.simulations_completed = done + 1

        ranked = ranked_tendencies(profile.tendency_scores)
        profile.primary_tendency = ranked[0] if ranked else None
        profile.secondary_tendency = ranked[1] if len(ranked) > 1 else None
        return profile

    async def complete_session(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        session = await self._get_session(db, user_id, session_id)
        if session.status == EthicsSessionStatus.COMPLETED.value:
            raise ConflictError("Session is already completed", {"session_id": session.id})
        scenario = await self._get_scenario(db, session.scenario_id)

        aggregate = aggregate_dimensions([r.dimension_scores for r in session.responses])
        tendency = aggregate_tendencies([r.ethical_indicators for r in session.responses])
        total_score = calculate_total_score(aggregate, _multiplier(scenario.difficulty))

        session.dimension_scores = aggregate
        session.ethical_tendency = tendency
        session.total_score = total_score
        session.status = EthicsSessionStatus.COMPLETED.value
        session.completed_at = datetime.utcnow()

        report = await self._generate_report(aggregate, tendency, total_score)
        peers = await self._peer_scores(db, scenario.id, session.id)
        percentile = percentile_rank(total_score, peers)

        report_card = EthicsReportCard(session_id=session.id, content=report, percentile=percentile)
        db.add(report_card)
        await self._update_profile(db, user_id, total_score, tendency)
        await db.commit()

        logger.info(f"Ethics session {session.id} completed: score={total_score} percentile={percentile}")

        return {
            "success": True,
            "reportId": report_card.id,
            "totalScore": total_score,
            "aggregateScores": aggregate,
            "ethicalTendency": tendency,
            "reportContent": report,
            "peerComparison": {
                "percentile": percentile,
                "peerCount": len(peers),
                "peerAverage": round(sum(peers) / len(peers), 1) if peers else None,
            },
        }

    async def get_report_card(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        session = await self._get_session(db, user_id, session_id)
        result = await db.execute(select(EthicsReportCard).where(EthicsReportCard.session_id == session.id))
        card = result.scalar_one_or_none()
        if not card:
            raise ResourceNotFoundError("Report card", session_id, message="Report card not found")
        return {
            "id": card.id,
            "session_id": session.id,
            "total_score": session.total_score,
            "dimension_scores": session.dimension_scores,
            "ethical_tendency": session.ethical_tendency,
            "content": card.content,
            "percentile": card.percentile,
            "created_at": card.created_at,
        }

    async def get_peer_comparison(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        session = await self._get_session(db, user_id, session_id)
        if session.status != EthicsSessionStatus.COMPLETED.value or session.total_score is None:
            raise ValidationError("Session is not completed yet")
        peers = await self._peer_scores(db, session.scenario_id, session.id)
        return {
            "session_id": session.id,
            "score": session.total_score,
            "percentile": percentile_rank(session.total_score, peers),
            "peerCount": len(peers),
            "peerAverage": round(sum(peers) / len(peers), 1) if peers else None,
        }

    # ==================== RETRY ====================

    async def _retry_context(self, scenario: EthicsScenario) -> str:
        if not claude_client.is_configured:
            return DEFAULT_RETRY_CONTEXT
        prompt = (
            "Generate a different context for retrying this ethics scenario.\n\n"
            f"Original: {scenario.title}\nContext: {scenario.context}\n\n"
            "Create a variation that:\n- Changes some stakeholders or constraints\n"
            "- Maintains the core ethical dilemma\n- Adds a new complication or pressure\n\n"
            "Return a 2-3 sentence context variation."
        )
        try:
            result = await claude_client.generate(prompt, model="haiku", max_tokens=200, temperature=0.8)
            return result["content"].strip() or DEFAULT_RETRY_CONTEXT
        except AIServiceError as e:
            logger.error(f"Retry context generation failed: {e.message}")
            return DEFAULT_RETRY_CONTEXT

    async def retry_session(
        self,
        db: AsyncSession,
        user_id: str,
        session_id: str,
        new_context: Optional[str] = None,
    ) -> Dict[str, Any]:
        original = await self._get_session(db, user_id, session_id)
        scenario = await self._get_scenario(db, original.scenario_id)
        context = new_context or await self._retry_context(scenario)
        started = await self.start_session(db, user_id, scenario.id, retry_of=original.id, retry_context=context)
        return {
            "success": True,
            "newSessionId": started["sessionId"],
            "retryContext": context,
            "currentStage": started["currentStage"],
        }

    # ==================== PROFILE ====================

    @staticmethod
    def serialize_profile(profile: EthicsProfile) -> Dict[str, Any]:
        return {
            "simulations_completed": profile.simulations_completed,
            "average_score": profile.average_score,
            "primary_tendency": profile.primary_tendency,
            "secondary_tendency": profile.secondary_tendency,
            "tendency_scores": profile.tendency_scores or {},
            "profile_video_status": profile.profile_video_status,
            "updated_at": profile.updated_at,
        }

    async def _get_profile(self, db: AsyncSession, user_id: str) -> Optional[EthicsProfile]:
        result = await db.execute(select(EthicsProfile).where(EthicsProfile.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_profile(self, db: AsyncSession, user_id: str) -> Dict[str, Any]:
        profile = await self._get_profile(db, user_id)
        recent = await db.execute(
            select(EthicsSession)
            .where(EthicsSession.user_id == user_id)
            .order_by(EthicsSession.created_at.desc())
            .limit(10)
        )
        return {
            "profile": self.serialize_profile(profile) if profile else None,
            "recentSessions": [self.serialize_session(s) for s in recent.scalars().all()],
        }

    async def _video_script(self, profile: EthicsProfile) -> str:
        if not claude_client.is_configured:
            return DEFAULT_VIDEO_SCRIPT
        prompt = (
            "Generate a 2-minute video script summarizing this ethics profile.\n\n"
            f"Profile:\n- Primary tendency: {profile.primary_tendency}\n"
            f"- Secondary tendency: {profile.secondary_tendency}\n"
            f"- Simulations completed: {profile.simulations_completed}\n"
            f"- Average score: {profile.average_score}%\n\n"
            "Create an engaging narration that introduces the ethical profile, explains key tendencies "
            "with examples, highlights strengths, suggests improvement areas and gives actionable advice "
            "for UPSC preparation."
        )
        try:
            result = await claude_client.generate(prompt, model="sonnet", max_tokens=1000, temperature=0.7)
            return result["content"]
        except AIServiceError as e:
            logger.error(f"Profile video script generation failed: {e.message}")
            return DEFAULT_VIDEO_SCRIPT

    async def request_video(self, db: AsyncSession, user_id: str, session_id: str) -> Dict[str, Any]:
        """Hand the profile to the Revideo renderer; stays `queued` when the renderer is unreachable"""
        await self._get_session(db, user_id, session_id)
        profile = await self._get_profile(db, user_id)
        if not profile:
            raise ResourceNotFoundError("Ethics profile", user_id, message="Profile not found")

        script = await self._video_script(profile)
        try:
            result = await http_client.post_json(
                "revideo",
                f"{settings.VPS_REVIDEO_URL}/api/render/ethics-profile",
                {
                    "userId": user_id,
                    "sessionId": session_id,
                    "profile": {k: v for k, v in self.serialize_profile(profile).items() if k != "updated_at"},
                    "script": script,
                    "webhookUrl": f"{settings.SITE_URL}/api/v1/webhooks/revideo",
                },
            )
        except ExternalServiceError as e:
            logger.warning(f"Ethics profile video request failed, queued instead: {e.message}")
            profile.profile_video_status = "queued"
            await db.commit()
            return {"success": True, "status": "queued"}

        profile.profile_video_status = "generating"
        await db.commit()
        job_id = result.get("jobId") if isinstance(result, dict) else None
        return {"success": True, "jobId": job_id, "status": "generating"}

    # ==================== INTERVIEW PREP ====================

    async def interview_questions(
        self,
        db: AsyncSession,
        scenario_id: str,
        topic: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        scenario = await self._get_scenario(db, scenario_id)
        if not claude_client.is_configured:
            return []
        prompt = (
            "Generate 5 UPSC interview questions based on this ethics simulation.\n\n"
            f"Simulation: {scenario.title}\nCategory: {scenario.category or 'General Ethics'}\n"
            f"Topic: {topic or 'Ethical decision-making'}\n\n"
            "Generate questions that:\n1. Probe the candidate's ethical reasoning\n"
            "2. Explore real-world applications\n3. Test consistency of ethical framework\n"
            "4. Include one situational question\n5. Include one philosophical question\n\n"
            "Return JSON array:\n"
            '[{"question": "...", "type": "situational|philosophical|application|probing", '
            '"context": "...", "key_points": ["..."], "suggested_approach": "..."}]'
        )
        try:
            questions = await claude_client.generate_json(
                prompt, expect="array", model="sonnet", max_tokens=2000, temperature=0.7
            )
        except AIServiceError as e:
            logger.error(f"Interview question generation failed for scenario {scenario_id}: {e.message}")
            return []
        return [q for q in questions if isinstance(q, dict)]


# Singleton instance
ethics_service = EthicsService()
