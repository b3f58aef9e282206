"""Shared pytest fixtures for the reading progress service.

Provides:
- ``seed``: texts, questions and HOTS questions covering every genre but expository
- ``store``: fresh ``InMemoryFactStore`` loaded with ``seed``
- ``clock``: controllable clock, advanced explicitly by tests
- ``settings``: default ``Settings`` isolated from the environment / .env
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from config.settings import Settings
from models.facts import Collection
from services.fact_store import InMemoryFactStore

STUDENT = "s-001"
OTHER_STUDENT = "s-002"
TEACHER = "t-001"


class FakeClock:
    """Callable clock returning a fixed time until ``advance`` is called."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int = 1) -> datetime:
        self.now += timedelta(minutes=minutes)
        return self.now


def make_seed() -> dict[str, list[dict]]:
    return {
        Collection.TEXTS.value: [
            {
                "id": "t-narr-1", "title": "Malin Kundang", "genre": "narrative",
                "content": "...", "created_by": TEACHER,
                "created_at": "2026-01-05T00:00:00+00:00",
                "structure": {
                    "orientasi": "A poor boy lives with his mother.",
                    "komplikasi": "He denies her after becoming rich.",
                    "resolusi": "He is cursed into stone.",
                },
            },
            {
                "id": "t-narr-2", "title": "Timun Mas", "genre": "narrative",
                "created_at": "2026-01-04T00:00:00+00:00", "structure": {},
            },
            {
                "id": "t-desc-1", "title": "Danau Toba", "genre": "descriptive",
                "created_at": "2026-01-03T00:00:00+00:00",
            },
            {
                "id": "t-proc-1", "title": "Membuat Teh", "genre": "procedural",
                "created_at": "2026-01-02T00:00:00+00:00",
            },
            {
                "id": "t-pers-1", "title": "Hemat Air", "genre": "persuasive",
                "created_at": "2026-01-01T00:00:00+00:00",
            },
            {
                "id": "t-expo-arch", "title": "Old Report", "genre": "expository",
                "is_archived": True, "created_at": "2025-12-01T00:00:00+00:00",
            },
        ],
        Collection.QUESTIONS.value: [
            {
                "id": "q1", "text_id": "t-narr-1", "question": "Who is Malin's mother?",
                "category": "literal", "type": "multiple_choice",
                "options": ["A", "B", "C", "D"], "correct_answer": "B", "points": 10,
            },
            {
                "id": "q2", "text_id": "t-narr-1", "question": "Where did Malin sail?",
                "category": "literal", "type": "multiple_choice",
                "options": ["A", "B", "C", "D"], "correct_answer": "C", "points": 10,
            },
            {
                "id": "q3", "text_id": "t-narr-1", "question": "Retell the ending.",
                "category": "literal", "type": "essay", "correct_answer": None, "points": 10,
            },
            {
                "id": "q-desc-1", "text_id": "t-desc-1", "question": "Where is the lake?",
                "category": "inferential", "type": "multiple_choice",
                "options": ["Sumatra", "Java"], "correct_answer": "Sumatra", "points": 5,
            },
        ],
        Collection.HOTS_QUESTIONS.value: [
            {
                "id": "h1", "text_id": "t-narr-1", "question": "Judge Malin's choice.",
                "category": "evaluation", "difficulty": "medium", "type": "critical_analysis",
                "points": 100, "estimated_time": 15,
                "rubric": [
                    {"criterion": "Argument", "description": "Clear stance", "maxScore": 60},
                    {"criterion": "Evidence", "description": "Cites the text", "maxScore": 40},
                ],
            },
            {
                "id": "h2", "text_id": "t-narr-1", "question": "Write a new ending.",
                "category": "creation", "difficulty": "hard", "type": "creative_writing",
                "points": 100,
                "rubric": {"criteria": [{"criterion": "Originality", "maxScore": 100}],
                           "totalScore": 100},
            },
            {
                "id": "h-desc", "text_id": "t-desc-1", "question": "Compare two lakes.",
                "category": "analysis", "difficulty": "easy", "type": "case_study",
                "points": 50,
            },
        ],
    }


@pytest.fixture
def seed() -> dict[str, list[dict]]:
    return make_seed()


@pytest.fixture
def store(seed) -> InMemoryFactStore:
    """Fresh seeded fact store, isolated per test."""
    return InMemoryFactStore(seed)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Default policies, ignoring any local .env file."""
    return Settings(_env_file=None)
