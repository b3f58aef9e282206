"""Adapter for fact-store rows → internal fact models.

Every service reads and writes through these helpers, never through raw
store rows, so the row shape lives in one place.  Malformed rows are
logged and skipped rather than failing a whole aggregation pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from models.facts import (
    CONFLICT_KEYS,
    Answer,
    ArchivedHOTSAnswer,
    Collection,
    HOTSAnswer,
    HOTSQuestion,
    Progress,
    Question,
    Text,
)
from services.fact_store import FactStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


# ---------------------------------------------------------------------------
# Row → Internal Model conversions
# ---------------------------------------------------------------------------

def _parse(model: type[M], raw: dict[str, Any]) -> M | None:
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        logger.warning(
            "Skipping malformed %s row id=%s: %s",
            model.__name__, raw.get("id"), exc.errors()[:1],
        )
        return None


def _parse_all(model: type[M], rows: Iterable[dict[str, Any]]) -> list[M]:
    return [m for m in (_parse(model, r) for r in rows) if m is not None]


def to_row(model: BaseModel, *, exclude: set[str] | None = None) -> dict[str, Any]:
    """Serialize a fact model into a JSON-safe store row."""
    return model.model_dump(mode="json", exclude=exclude)


def timestamp(value: datetime) -> str:
    """Store timestamps as ISO-8601 strings."""
    return value.isoformat()


# ---------------------------------------------------------------------------
# Texts
# ---------------------------------------------------------------------------

async def get_text(store: FactStore, text_id: str) -> Text | None:
    rows = await store.select(Collection.TEXTS, {"id": text_id})
    return _parse(Text, rows[0]) if rows else None


async def list_texts(store: FactStore, include_archived: bool = False) -> list[Text]:
    """Currently available texts, newest first."""
    rows = await store.select(Collection.TEXTS, order_by="created_at", descending=True)
    texts = _parse_all(Text, rows)
    if include_archived:
        return texts
    return [t for t in texts if not t.is_archived]


# ---------------------------------------------------------------------------
# Closed-form questions and answers
# ---------------------------------------------------------------------------

async def get_question(store: FactStore, question_id: str) -> Question | None:
    rows = await store.select(Collection.QUESTIONS, {"id": question_id})
    return _parse(Question, rows[0]) if rows else None


async def list_questions(store: FactStore, text_id: str | None = None) -> list[Question]:
    where = {"text_id": text_id} if text_id is not None else None
    return _parse_all(Question, await store.select(Collection.QUESTIONS, where))


async def list_answers(
    store: FactStore,
    user_id: str | None = None,
    question_ids: Iterable[str] | None = None,
) -> list[Answer]:
    """Answers, most recent submission first."""
    where: dict[str, Any] = {}
    if user_id is not None:
        where["user_id"] = user_id
    if question_ids is not None:
        ids = list(question_ids)
        if not ids:
            return []
        where["question_id"] = ids
    rows = await store.select(
        Collection.ANSWERS, where or None, order_by="submitted_at", descending=True,
    )
    return _parse_all(Answer, rows)


async def upsert_answer(store: FactStore, row: dict[str, Any]) -> Answer:
    stored = await store.upsert(Collection.ANSWERS, row, CONFLICT_KEYS[Collection.ANSWERS])
    return Answer.model_validate(stored)


# ---------------------------------------------------------------------------
# HOTS questions and answers
# ---------------------------------------------------------------------------

async def get_hots_question(store: FactStore, hots_question_id: str) -> HOTSQuestion | None:
    rows = await store.select(Collection.HOTS_QUESTIONS, {"id": hots_question_id})
    return _parse(HOTSQuestion, rows[0]) if rows else None


async def list_hots_questions(store: FactStore, text_id: str | None = None) -> list[HOTSQuestion]:
    where = {"text_id": text_id} if text_id is not None else None
    return _parse_all(HOTSQuestion, await store.select(Collection.HOTS_QUESTIONS, where))


async def get_hots_answer(store: FactStore, answer_id: str) -> HOTSAnswer | None:
    rows = await store.select(Collection.HOTS_ANSWERS, {"id": answer_id})
    return _parse(HOTSAnswer, rows[0]) if rows else None


async def find_hots_answer(
    store: FactStore, user_id: str, hots_question_id: str,
) -> HOTSAnswer | None:
    """The (unique) answer of ``user_id`` to ``hots_question_id``."""
    rows = await store.select(
        Collection.HOTS_ANSWERS,
        {"user_id": user_id, "hots_question_id": hots_question_id},
        order_by="submitted_at",
        descending=True,
    )
    return _parse(HOTSAnswer, rows[0]) if rows else None


async def list_hots_answers(
    store: FactStore,
    user_id: str | None = None,
    hots_question_ids: Iterable[str] | None = None,
) -> list[HOTSAnswer]:
    """HOTS answers, most recent submission first."""
    where: dict[str, Any] = {}
    if user_id is not None:
        where["user_id"] = user_id
    if hots_question_ids is not None:
        ids = list(hots_question_ids)
        if not ids:
            return []
        where["hots_question_id"] = ids
    rows = await store.select(
        Collection.HOTS_ANSWERS, where or None, order_by="submitted_at", descending=True,
    )
    return _parse_all(HOTSAnswer, rows)


async def upsert_hots_answer(store: FactStore, row: dict[str, Any]) -> HOTSAnswer:
    stored = await store.upsert(
        Collection.HOTS_ANSWERS, row, CONFLICT_KEYS[Collection.HOTS_ANSWERS],
    )
    return HOTSAnswer.model_validate(stored)


async def update_hots_answer(
    store: FactStore, answer_id: str, fields: dict[str, Any],
) -> HOTSAnswer:
    stored = await store.update(Collection.HOTS_ANSWERS, answer_id, fields)
    return HOTSAnswer.model_validate(stored)


async def archive_hots_answer(
    store: FactStore, answer: HOTSAnswer, archived_at: datetime,
) -> ArchivedHOTSAnswer:
    row = to_row(answer, exclude={"id"})
    row["answer_id"] = answer.id
    row["archived_at"] = timestamp(archived_at)
    stored = await store.insert(Collection.HOTS_ANSWER_HISTORY, row)
    return ArchivedHOTSAnswer.model_validate(stored)


async def list_archived_hots_answers(
    store: FactStore, user_id: str, hots_question_id: str,
) -> list[ArchivedHOTSAnswer]:
    rows = await store.select(
        Collection.HOTS_ANSWER_HISTORY,
        {"user_id": user_id, "hots_question_id": hots_question_id},
        order_by="archived_at",
        descending=True,
    )
    return _parse_all(ArchivedHOTSAnswer, rows)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

async def get_progress(store: FactStore, user_id: str, text_id: str) -> Progress | None:
    rows = await store.select(Collection.PROGRESS, {"user_id": user_id, "text_id": text_id})
    return _parse(Progress, rows[0]) if rows else None


async def list_progress(store: FactStore, user_id: str | None = None) -> list[Progress]:
    where = {"user_id": user_id} if user_id is not None else None
    rows = await store.select(
        Collection.PROGRESS, where, order_by="last_accessed", descending=True,
    )
    return _parse_all(Progress, rows)


async def merge_progress(
    store: FactStore, user_id: str, text_id: str, fields: dict[str, Any],
) -> Progress:
    """Partial upsert: only ``fields`` change, sibling columns are kept."""
    row = {"user_id": user_id, "text_id": text_id, **fields}
    stored = await store.upsert(Collection.PROGRESS, row, CONFLICT_KEYS[Collection.PROGRESS])
    return Progress.model_validate(stored)
