"""Derived aggregates — recomputed from fact rows on every read, never stored.

All models serialize to camelCase for the presentation tier.
"""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.facts import CompletionStatus


class QuizStats(CamelModel):
    """Quiz progress of one student on one text."""
    total_questions: int = 0
    answered: int = 0
    total_score: int = 0
    max_score: int = 0
    percentage: int = 0  # 0-100
    is_completed: bool = False


class HOTSProgressSnapshot(CamelModel):
    """Projection of a student's HOTS answers on one text."""
    hots_status: CompletionStatus = CompletionStatus.NOT_STARTED
    hots_score: int = 0
    answered: int = 0
    total_questions: int = 0
    total_score: int = 0
    max_points: int = 0


class HOTSBucketStats(CamelModel):
    """Completion and mean score inside one category or difficulty bucket."""
    completed: int = 0
    total: int = 0
    avg_score: float = 0.0


class HOTSStats(CamelModel):
    """Full HOTS breakdown for one student across every text."""
    total_questions: int = 0
    completed_questions: int = 0
    graded_questions: int = 0
    total_score: int = 0
    average_score: float = 0.0
    category_stats: dict[str, HOTSBucketStats] = Field(default_factory=dict)
    difficulty_stats: dict[str, HOTSBucketStats] = Field(default_factory=dict)


class ScoreBucket(CamelModel):
    range: str  # "0-2"
    count: int = 0


class ScoreDistribution(CamelModel):
    """Answer scores bucketed on the 0-10 scale."""
    buckets: list[ScoreBucket] = Field(default_factory=list)
    out_of_range: int = 0  # scores below 0 or above 10, excluded from buckets


class StudentStats(CamelModel):
    """Student dashboard summary."""
    user_id: str
    total_texts_read: int = 0
    total_texts: int = 0
    overall_progress: int = 0
    total_questions_answered: int = 0
    total_hots_completed: int = 0
    average_score: float = 0.0
    hots_average_score: float = 0.0
    hots_total_score: int = 0
    genre_progress: dict[str, int] = Field(default_factory=dict)
    hots_category_stats: dict[str, HOTSBucketStats] = Field(default_factory=dict)


class LeaderboardEntry(CamelModel):
    user_id: str
    average_score: float = 0.0
    answers: int = 0
    texts_read: int = 0
    hots_completed: int = 0


class ClassOverview(CamelModel):
    """Teacher analytics dashboard summary."""
    total_students: int = 0
    total_texts: int = 0
    total_questions: int = 0
    average_score: float = 0.0
    active_students: int = 0
    completion_rate: int = 0
    genre_distribution: dict[str, int] = Field(default_factory=dict)
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    score_summary: dict[str, float] = Field(default_factory=dict)  # count/mean/median/stddev/min/max


class GradingSummary(CamelModel):
    """Grading progress for one HOTS question."""
    hots_question_id: str
    total: int = 0
    graded: int = 0
    ungraded: int = 0
