"""Progress aggregation engine — derives a student's progress from raw facts.

Progress rows are a cache, never ground truth.  Every number here is a
pure projection of the current Question/Answer/HOTSQuestion/HOTSAnswer/Text
facts (the ``project_*`` functions); :class:`ProgressEngine` only fetches
those facts and writes the projection back as a partial Progress upsert.

Concurrent recomputations for the same (user, text) are last-writer-wins,
which is safe because any later recomputation heals a stale row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from adapters import fact_adapter
from config.settings import Settings, get_settings
from errors.exceptions import NotFoundError, log_consistency_warning
from models.facts import (
    Answer,
    CompletionStatus,
    Genre,
    HOTSAnswer,
    HOTSQuestion,
    Progress,
    Question,
    Text,
)
from models.stats import HOTSProgressSnapshot, QuizStats
from services.fact_store import FactStore
from tools.stats_tools import percentage

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def first_per_key(items: Iterable[T], key: Callable[[T], str]) -> list[T]:
    """Keep the first item seen for every key (callers pass newest first)."""
    seen: set[str] = set()
    kept: list[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        kept.append(item)
    return kept


def _completion_status(answered: int, total: int) -> CompletionStatus:
    if answered == 0:
        return CompletionStatus.NOT_STARTED
    if answered >= total:
        return CompletionStatus.COMPLETED
    return CompletionStatus.IN_PROGRESS


# ---------------------------------------------------------------------------
# Pure projections
# ---------------------------------------------------------------------------

def project_quiz_stats(
    questions: Sequence[Question],
    answers: Sequence[Answer],
    user_id: str | None = None,
) -> QuizStats:
    """Quiz stats of one student over one text's questions.

    Answers outside ``questions`` (or from another user when ``user_id`` is
    given) are ignored; duplicates per question count once.
    """
    question_ids = {q.id for q in questions}
    relevant = [
        a for a in answers
        if a.question_id in question_ids and (user_id is None or a.user_id == user_id)
    ]
    unique = first_per_key(relevant, key=lambda a: a.question_id)
    if len(unique) < len(relevant):
        log_consistency_warning(
            "%d duplicate answer row(s) ignored for user %s",
            len(relevant) - len(unique), user_id,
        )

    total_questions = len(questions)
    answered = len(unique)
    total_score = sum(a.score for a in unique)
    max_score = sum(q.points for q in questions)
    return QuizStats(
        total_questions=total_questions,
        answered=answered,
        total_score=total_score,
        max_score=max_score,
        percentage=percentage(total_score, max_score, label="quiz"),
        is_completed=answered == total_questions and total_questions > 0,
    )


def project_quiz_status(stats: QuizStats) -> CompletionStatus:
    if stats.is_completed:
        return CompletionStatus.COMPLETED
    if stats.answered == 0:
        return CompletionStatus.NOT_STARTED
    return CompletionStatus.IN_PROGRESS


def project_hots_progress(
    questions: Sequence[HOTSQuestion],
    answers: Sequence[HOTSAnswer],
    user_id: str | None = None,
    clamp: bool = True,
) -> HOTSProgressSnapshot:
    """HOTS status and score of one student over one text's HOTS questions.

    Completion tracks submission, not grading: an ungraded answer counts
    as answered and contributes its score of 0.
    """
    question_ids = {q.id for q in questions}
    relevant = [
        a for a in answers
        if a.hots_question_id in question_ids and (user_id is None or a.user_id == user_id)
    ]
    unique = first_per_key(relevant, key=lambda a: a.hots_question_id)

    total = len(questions)
    answered = len(unique)
    total_score = sum(a.score for a in unique)
    max_points = sum(q.points for q in questions)
    return HOTSProgressSnapshot(
        hots_status=_completion_status(answered, total),
        hots_score=percentage(total_score, max_points, clamp=clamp, label="HOTS"),
        answered=answered,
        total_questions=total,
        total_score=total_score,
        max_points=max_points,
    )


def _read_text_ids(progress_rows: Sequence[Progress], available: set[str]) -> set[str]:
    read = {p.text_id for p in progress_rows if p.read_status}
    stale = read - available
    if stale:
        log_consistency_warning(
            "%d progress row(s) reference archived or deleted texts: %s",
            len(stale), sorted(stale),
        )
    return read & available


def project_overall_progress(progress_rows: Sequence[Progress], texts: Sequence[Text]) -> int:
    """Share of currently available texts the student has read, 0-100."""
    available = {t.id for t in texts if not t.is_archived}
    read = _read_text_ids(progress_rows, available)
    return percentage(len(read), len(available), label="overall")


def project_genre_progress(
    progress_rows: Sequence[Progress], texts: Sequence[Text],
) -> dict[str, int]:
    """Per-genre share of available texts read; 0 for genres with no texts."""
    available = [t for t in texts if not t.is_archived]
    read = _read_text_ids(progress_rows, {t.id for t in available})
    result: dict[str, int] = {}
    for genre in Genre:
        genre_ids = {t.id for t in available if t.genre == genre}
        result[genre.value] = percentage(len(genre_ids & read), len(genre_ids), label=genre.value)
    return result


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ProgressEngine:
    """Fetches facts, projects them, and writes Progress back."""

    def __init__(
        self,
        store: FactStore,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or utc_now

    # -- quiz ----------------------------------------------------------------

    async def compute_quiz_stats(self, user_id: str, text_id: str) -> QuizStats:
        questions = await fact_adapter.list_questions(self._store, text_id)
        answers = await fact_adapter.list_answers(
            self._store, user_id=user_id, question_ids=[q.id for q in questions],
        )
        return project_quiz_stats(questions, answers, user_id)

    async def recompute_quiz_progress(self, user_id: str, text_id: str) -> Progress:
        """Write quiz status and percentage; read/HOTS columns are untouched."""
        stats = await self.compute_quiz_stats(user_id, text_id)
        status = project_quiz_status(stats)
        progress = await fact_adapter.merge_progress(self._store, user_id, text_id, {
            "quiz_status": status.value,
            "reading_score": stats.percentage,
            "last_accessed": fact_adapter.timestamp(self._clock()),
        })
        logger.debug(
            "Quiz progress user=%s text=%s → %s (%d%%)",
            user_id, text_id, status.value, stats.percentage,
        )
        return progress

    # -- HOTS ----------------------------------------------------------------

    async def compute_hots_progress(self, user_id: str, text_id: str) -> HOTSProgressSnapshot:
        questions = await fact_adapter.list_hots_questions(self._store, text_id)
        answers = await fact_adapter.list_hots_answers(
            self._store, user_id=user_id, hots_question_ids=[q.id for q in questions],
        )
        return project_hots_progress(
            questions, answers, user_id, clamp=self._settings.clamp_hots_percentage,
        )

    async def recompute_hots_progress(self, user_id: str, text_id: str) -> Progress:
        """Write HOTS status and score; read/quiz columns are untouched."""
        snapshot = await self.compute_hots_progress(user_id, text_id)
        progress = await fact_adapter.merge_progress(self._store, user_id, text_id, {
            "hots_status": snapshot.hots_status.value,
            "hots_score": snapshot.hots_score,
            "last_accessed": fact_adapter.timestamp(self._clock()),
        })
        logger.debug(
            "HOTS progress user=%s text=%s → %s (%d%%)",
            user_id, text_id, snapshot.hots_status.value, snapshot.hots_score,
        )
        return progress

    # -- reading -------------------------------------------------------------

    async def compute_overall_progress(self, user_id: str) -> int:
        texts = await fact_adapter.list_texts(self._store)
        progress_rows = await fact_adapter.list_progress(self._store, user_id)
        return project_overall_progress(progress_rows, texts)

    async def compute_genre_progress(self, user_id: str) -> dict[str, int]:
        texts = await fact_adapter.list_texts(self._store)
        progress_rows = await fact_adapter.list_progress(self._store, user_id)
        return project_genre_progress(progress_rows, texts)

    async def mark_text_as_read(self, user_id: str, text_id: str) -> bool:
        """Set ``read_status``.  Already-read texts are a successful no-op."""
        text = await fact_adapter.get_text(self._store, text_id)
        if text is None or text.is_archived:
            raise NotFoundError("text", text_id)

        existing = await fact_adapter.get_progress(self._store, user_id, text_id)
        if existing is not None and existing.read_status:
            logger.info("Text %s already marked as read by %s", text_id, user_id)
            return True

        await fact_adapter.merge_progress(self._store, user_id, text_id, {
            "read_status": True,
            "last_accessed": fact_adapter.timestamp(self._clock()),
        })
        logger.info("Text %s marked as read by %s", text_id, user_id)
        return True

    # -- refresh pass --------------------------------------------------------

    async def refresh_progress(self, user_id: str, text_id: str | None = None) -> list[Progress]:
        """Re-derive quiz and HOTS columns for one text or every available text.

        Rows whose projection already matches are not rewritten, and no row
        is created for a text the student has not touched.
        """
        if text_id is not None:
            text_ids = [text_id]
        else:
            text_ids = [t.id for t in await fact_adapter.list_texts(self._store)]

        refreshed: list[Progress] = []
        for tid in text_ids:
            quiz = await self.compute_quiz_stats(user_id, tid)
            hots = await self.compute_hots_progress(user_id, tid)
            existing = await fact_adapter.get_progress(self._store, user_id, tid)
            if existing is None and quiz.answered == 0 and hots.answered == 0:
                continue

            fields = {
                "quiz_status": project_quiz_status(quiz).value,
                "reading_score": quiz.percentage,
                "hots_status": hots.hots_status.value,
                "hots_score": hots.hots_score,
            }
            if existing is not None and all(
                getattr(existing, k) == v for k, v in fields.items()
            ):
                refreshed.append(existing)
                continue

            if existing is not None:
                logger.info("Healed stale progress user=%s text=%s", user_id, tid)
            refreshed.append(
                await fact_adapter.merge_progress(self._store, user_id, tid, fields)
            )
        return refreshed
