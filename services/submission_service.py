"""Answer submission — scores and persists student answers.

Both answer kinds are upserted on (user, question): a resubmission replaces
the previous row, no history is kept except for graded HOTS answers under
the ``version`` resubmission policy.  Progress is refreshed eagerly after
every submission (quiz refresh can be switched off with
``eager_quiz_refresh``).
"""

from __future__ import annotations

import logging
import math

from adapters import fact_adapter
from config.settings import Settings, get_settings
from errors.exceptions import (
    NotFoundError,
    ResubmissionRejectedError,
    ValidationError,
    log_consistency_warning,
)
from models.facts import Question, QuestionType
from services.fact_store import FactStore
from services.progress_engine import Clock, ProgressEngine, utc_now

logger = logging.getLogger(__name__)


def normalize_answer(text: str) -> str:
    return text.strip().lower()


def score_answer(question: Question, answer_text: str, essay_credit_ratio: float = 0.8) -> int:
    """Score a closed-form answer at submission time.

    Multiple choice: full points on a case/whitespace-insensitive match,
    otherwise 0.  Essay: a fixed placeholder credit of
    ``floor(points * essay_credit_ratio)``, whatever the content.
    """
    if question.type == QuestionType.ESSAY:
        return math.floor(question.points * essay_credit_ratio)

    if question.correct_answer is None:
        log_consistency_warning(
            "multiple-choice question %s has no correct answer, scored 0", question.id,
        )
        return 0
    if normalize_answer(answer_text) == normalize_answer(question.correct_answer):
        return question.points
    return 0


def _require_text(answer_text: str | None) -> str:
    if answer_text is None or not answer_text.strip():
        raise ValidationError("answer_text", "answer must not be empty")
    return answer_text


class SubmissionService:
    """Accepts student answers and keeps their Progress in step."""

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

    async def submit_answer(self, user_id: str, question_id: str, answer_text: str) -> int:
        """Score and upsert an answer to a closed-form question; returns the score."""
        answer_text = _require_text(answer_text)
        question = await fact_adapter.get_question(self._store, question_id)
        if question is None:
            raise NotFoundError("question", question_id)

        score = score_answer(question, answer_text, self._settings.essay_credit_ratio)
        await fact_adapter.upsert_answer(self._store, {
            "user_id": user_id,
            "question_id": question_id,
            "answer": answer_text,
            "score": score,
            "submitted_at": fact_adapter.timestamp(self._clock()),
        })
        logger.info(
            "Answer user=%s question=%s scored %d/%d",
            user_id, question_id, score, question.points,
        )

        if self._settings.eager_quiz_refresh:
            await self._engine.recompute_quiz_progress(user_id, question.text_id)
        return score

    async def submit_hots_answer(
        self, user_id: str, hots_question_id: str, answer_text: str,
    ) -> bool:
        """Upsert an ungraded HOTS answer and refresh the text's HOTS progress.

        A resubmission after grading follows ``hots_resubmission_policy``:
        ``reset`` clears the grade, ``reject`` refuses the new answer,
        ``version`` archives the graded answer before clearing it.
        """
        answer_text = _require_text(answer_text)
        question = await fact_adapter.get_hots_question(self._store, hots_question_id)
        if question is None:
            raise NotFoundError("hots_question", hots_question_id)

        now = self._clock()
        existing = await fact_adapter.find_hots_answer(self._store, user_id, hots_question_id)
        if existing is not None and existing.is_graded:
            policy = self._settings.hots_resubmission_policy
            if policy == "reject":
                raise ResubmissionRejectedError(existing.id)
            if policy == "version":
                await fact_adapter.archive_hots_answer(self._store, existing, now)
                logger.info(
                    "Archived graded HOTS answer %s (score %d) before resubmission",
                    existing.id, existing.score,
                )
            else:
                logger.warning(
                    "Resubmission by %s discards grade %d on HOTS answer %s",
                    user_id, existing.score, existing.id,
                )

        await fact_adapter.upsert_hots_answer(self._store, {
            "user_id": user_id,
            "hots_question_id": hots_question_id,
            "answer": answer_text,
            "score": 0,
            "feedback": None,
            "graded_at": None,
            "graded_by": None,
            "submitted_at": fact_adapter.timestamp(now),
        })
        logger.info("HOTS answer submitted user=%s question=%s", user_id, hots_question_id)

        await self._engine.recompute_hots_progress(user_id, question.text_id)
        return True
