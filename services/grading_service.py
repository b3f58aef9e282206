"""HOTS grading workflow — teacher-side scoring of open-ended answers.

Each HOTS answer is either *submitted* (``graded_at`` unset, score 0) or
*graded* (score, feedback, ``graded_at``, ``graded_by`` set).  Grading is
order-independent: any answer can be graded at any time, and every grade
cascades into the student's HOTS progress for that text.
"""

from __future__ import annotations

import logging

from adapters import fact_adapter
from config.settings import Settings, get_settings
from errors.exceptions import NotFoundError, ValidationError
from models.facts import ArchivedHOTSAnswer, HOTSAnswer
from models.stats import GradingSummary
from services.fact_store import FactStore
from services.progress_engine import Clock, ProgressEngine, utc_now

logger = logging.getLogger(__name__)


class GradingService:
    """Grades HOTS answers and serves the teacher's grading queue."""

    def __init__(
        self,
        store: FactStore,
        engine: ProgressEngine | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or utc_now
        self._engine = engine or ProgressEngine(store, self._settings, self._clock)

    def _checked_score(self, score: int, max_points: int) -> int:
        if 0 <= score <= max_points:
            return score
        if self._settings.grade_out_of_range_policy == "clamp":
            clamped = min(max(score, 0), max_points)
            logger.warning("Grade %d out of range 0-%d, clamped to %d", score, max_points, clamped)
            return clamped
        raise ValidationError("score", f"score must be between 0 and {max_points}, got {score}")

    async def grade_hots_answer(
        self,
        answer_id: str,
        score: int,
        feedback: str | None = None,
        teacher_id: str | None = None,
    ) -> bool:
        """Record a teacher's grade and refresh the student's HOTS progress."""
        answer = await fact_adapter.get_hots_answer(self._store, answer_id)
        if answer is None:
            raise NotFoundError("hots_answer", answer_id)
        question = await fact_adapter.get_hots_question(self._store, answer.hots_question_id)
        if question is None:
            raise NotFoundError("hots_question", answer.hots_question_id)

        score = self._checked_score(score, question.points)
        feedback = feedback.strip() if feedback and feedback.strip() else None
        await fact_adapter.update_hots_answer(self._store, answer_id, {
            "score": score,
            "feedback": feedback,
            "graded_at": fact_adapter.timestamp(self._clock()),
            "graded_by": teacher_id,
        })
        logger.info(
            "HOTS answer %s graded %d/%d by %s", answer_id, score, question.points, teacher_id,
        )

        await self._engine.recompute_hots_progress(answer.user_id, question.text_id)
        return True

    async def list_grading_queue(
        self,
        hots_question_id: str | None = None,
        ungraded_only: bool = False,
    ) -> list[HOTSAnswer]:
        """Answers for the grading screen, most recent submission first."""
        ids = [hots_question_id] if hots_question_id is not None else None
        answers = await fact_adapter.list_hots_answers(self._store, hots_question_ids=ids)
        if ungraded_only:
            answers = [a for a in answers if not a.is_graded]
        return answers

    async def next_ungraded_answer(self, hots_question_id: str | None = None) -> HOTSAnswer | None:
        queue = await self.list_grading_queue(hots_question_id, ungraded_only=True)
        return queue[0] if queue else None

    async def grading_summary(self, hots_question_id: str) -> GradingSummary:
        answers = await self.list_grading_queue(hots_question_id)
        graded = sum(1 for a in answers if a.is_graded)
        return GradingSummary(
            hots_question_id=hots_question_id,
            total=len(answers),
            graded=graded,
            ungraded=len(answers) - graded,
        )

    async def get_student_feedback(self, user_id: str, hots_question_id: str) -> HOTSAnswer | None:
        """The student's current answer; score and feedback are final once graded."""
        return await fact_adapter.find_hots_answer(self._store, user_id, hots_question_id)

    async def list_answer_history(
        self, user_id: str, hots_question_id: str,
    ) -> list[ArchivedHOTSAnswer]:
        """Graded versions archived by resubmissions, newest first."""
        return await fact_adapter.list_archived_hots_answers(self._store, user_id, hots_question_id)
