"""Statistics / analytics rollup for student and teacher dashboards.

Built on the progress engine's per-student projections, applied across
the whole student population.  Everything is recomputed from facts on
each call; nothing is cached between calls.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone

from adapters import fact_adapter
from models.facts import (
    Answer,
    Difficulty,
    Genre,
    HOTSAnswer,
    HOTSCategory,
    HOTSQuestion,
)
from models.stats import (
    ClassOverview,
    HOTSBucketStats,
    HOTSStats,
    LeaderboardEntry,
    ScoreBucket,
    ScoreDistribution,
    StudentStats,
)
from services.fact_store import FactStore
from services.progress_engine import (
    first_per_key,
    project_genre_progress,
    project_overall_progress,
)
from tools.stats_tools import (
    SCORE_BUCKET_LABELS,
    average,
    calculate_stats,
    percentage,
    score_distribution,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure rollups
# ---------------------------------------------------------------------------

def compute_class_average_score(answers: Sequence[Answer]) -> float:
    """Mean answer score rounded to 1 decimal; 0 for no answers."""
    return average([a.score for a in answers])


def compute_score_distribution(answers: Sequence[Answer]) -> ScoreDistribution:
    """Answer scores in the buckets 0-2, 3-4, 5-6, 7-8 and 9-10."""
    counts, out_of_range = score_distribution([a.score for a in answers])
    return ScoreDistribution(
        buckets=[ScoreBucket(range=label, count=c) for label, c in zip(SCORE_BUCKET_LABELS, counts)],
        out_of_range=out_of_range,
    )


def project_hots_stats(
    questions: Sequence[HOTSQuestion],
    answers: Sequence[HOTSAnswer],
    user_id: str | None = None,
) -> HOTSStats:
    """Per-category and per-difficulty HOTS breakdown for one student.

    ``avg_score`` averages only answered (submitted, graded or not)
    questions of the bucket.
    """
    by_id = {q.id: q for q in questions}
    relevant = [
        a for a in answers
        if a.hots_question_id in by_id and (user_id is None or a.user_id == user_id)
    ]
    unique = first_per_key(relevant, key=lambda a: a.hots_question_id)
    answered = {a.hots_question_id: a for a in unique}

    def bucket(members: list[HOTSQuestion]) -> HOTSBucketStats:
        scores = [answered[q.id].score for q in members if q.id in answered]
        return HOTSBucketStats(completed=len(scores), total=len(members), avg_score=average(scores))

    scores = [a.score for a in unique]
    return HOTSStats(
        total_questions=len(questions),
        completed_questions=len(unique),
        graded_questions=sum(1 for a in unique if a.is_graded),
        total_score=sum(scores),
        average_score=average(scores),
        category_stats={
            c.value: bucket([q for q in questions if q.category == c]) for c in HOTSCategory
        },
        difficulty_stats={
            d.value: bucket([q for q in questions if q.difficulty == d]) for d in Difficulty
        },
    )


def _since(value: datetime | None, since: datetime | None) -> bool:
    if since is None:
        return True
    if value is None:
        return False
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value >= since


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AnalyticsService:
    """Dashboard aggregates across texts and students."""

    def __init__(self, store: FactStore) -> None:
        self._store = store

    async def compute_hots_stats(self, user_id: str) -> HOTSStats:
        questions = await fact_adapter.list_hots_questions(self._store)
        answers = await fact_adapter.list_hots_answers(self._store, user_id=user_id)
        return project_hots_stats(questions, answers, user_id)

    async def get_student_stats(self, user_id: str) -> StudentStats:
        texts = await fact_adapter.list_texts(self._store)
        progress_rows = await fact_adapter.list_progress(self._store, user_id)
        answers = await fact_adapter.list_answers(self._store, user_id=user_id)
        hots = await self.compute_hots_stats(user_id)

        available = {t.id for t in texts}
        texts_read = {p.text_id for p in progress_rows if p.read_status and p.text_id in available}
        return StudentStats(
            user_id=user_id,
            total_texts_read=len(texts_read),
            total_texts=len(texts),
            overall_progress=project_overall_progress(progress_rows, texts),
            total_questions_answered=len(answers),
            total_hots_completed=hots.completed_questions,
            average_score=compute_class_average_score(answers),
            hots_average_score=hots.average_score,
            hots_total_score=hots.total_score,
            genre_progress=project_genre_progress(progress_rows, texts),
            hots_category_stats=hots.category_stats,
        )

    async def get_class_overview(self, since: datetime | None = None) -> ClassOverview:
        """Teacher dashboard; ``since`` limits answers and progress to a window."""
        texts = await fact_adapter.list_texts(self._store)
        questions = await fact_adapter.list_questions(self._store)
        all_answers = await fact_adapter.list_answers(self._store)
        all_progress = await fact_adapter.list_progress(self._store)
        hots_answers = await fact_adapter.list_hots_answers(self._store)

        answers = [a for a in all_answers if _since(a.submitted_at, since)]
        progress_rows = [p for p in all_progress if _since(p.last_accessed, since)]
        students = (
            {a.user_id for a in all_answers}
            | {p.user_id for p in all_progress}
            | {h.user_id for h in hots_answers}
        )

        genre_counts = {g.value: 0 for g in Genre}
        for text in texts:
            genre_counts[text.genre.value] += 1

        return ClassOverview(
            total_students=len(students),
            total_texts=len(texts),
            total_questions=len(questions),
            average_score=compute_class_average_score(answers),
            active_students=len({p.user_id for p in progress_rows}),
            completion_rate=percentage(
                sum(1 for p in progress_rows if p.read_status), len(progress_rows),
                label="completion",
            ),
            genre_distribution=genre_counts,
            score_distribution=compute_score_distribution(answers),
            score_summary=calculate_stats([a.score for a in answers]),
        )

    async def get_leaderboard(self, limit: int = 5) -> list[LeaderboardEntry]:
        """Students ranked by average answer score, then texts read, then HOTS done."""
        texts = await fact_adapter.list_texts(self._store)
        answers = await fact_adapter.list_answers(self._store)
        progress_rows = await fact_adapter.list_progress(self._store)
        hots_answers = await fact_adapter.list_hots_answers(self._store)

        available = {t.id for t in texts}
        scores: dict[str, list[int]] = defaultdict(list)
        for a in first_per_key(answers, key=lambda a: f"{a.user_id}:{a.question_id}"):
            scores[a.user_id].append(a.score)
        read: dict[str, set[str]] = defaultdict(set)
        for p in progress_rows:
            if p.read_status and p.text_id in available:
                read[p.user_id].add(p.text_id)
        hots_done: dict[str, set[str]] = defaultdict(set)
        for h in hots_answers:
            hots_done[h.user_id].add(h.hots_question_id)

        entries = [
            LeaderboardEntry(
                user_id=user_id,
                average_score=average(scores.get(user_id, [])),
                answers=len(scores.get(user_id, [])),
                texts_read=len(read.get(user_id, ())),
                hots_completed=len(hots_done.get(user_id, ())),
            )
            for user_id in set(scores) | set(read) | set(hots_done)
        ]
        entries.sort(key=lambda e: (-e.average_score, -e.texts_read, -e.hots_completed, e.user_id))
        return entries[:limit]
