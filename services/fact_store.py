"""Fact store — the only persistence seam of the core.

Provides an abstract interface over the remote relational store holding
texts, questions, answers, HOTS questions/answers and progress rows, with
an in-memory implementation used by tests and local development.  The
REST implementation lives in ``services.rest_fact_store``.

Rows are plain ``dict`` objects keyed by column name.  ``where`` filters
map column → value; a list, tuple or set value means "column IN values".
"""

from __future__ import annotations

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from errors.exceptions import NotFoundError

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Where = Mapping[str, Any]


def _name(collection: str | Enum) -> str:
    return collection.value if isinstance(collection, Enum) else collection


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


# ── Abstract Interface ───────────────────────────────────────


class FactStore(ABC):
    """Abstract fact store — implement for different backends."""

    @abstractmethod
    async def select(
        self,
        collection: str | Enum,
        where: Where | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        """Return every row matching ``where``, optionally ordered."""
        ...

    @abstractmethod
    async def insert(self, collection: str | Enum, row: Row) -> Row:
        """Insert a row and return it as stored (with its ``id``)."""
        ...

    @abstractmethod
    async def upsert(
        self,
        collection: str | Enum,
        row: Row,
        conflict_keys: Iterable[str],
    ) -> Row:
        """Insert, or merge ``row`` into the row sharing ``conflict_keys``.

        Columns absent from ``row`` keep their stored values.
        """
        ...

    @abstractmethod
    async def update(self, collection: str | Enum, row_id: str, fields: Row) -> Row:
        """Merge ``fields`` into the row with ``id == row_id``.

        Raises :class:`NotFoundError` when no such row exists.
        """
        ...

    @abstractmethod
    async def delete(self, collection: str | Enum, row_id: str) -> None:
        """Remove the row with ``id == row_id``."""
        ...

    async def start(self) -> None:
        """Acquire connections.  No-op for stores without any."""

    async def close(self) -> None:
        """Release connections.  No-op for stores without any."""


# ── In-Memory Implementation ────────────────────────────────


def _matches(row: Row, where: Where | None) -> bool:
    if not where:
        return True
    for column, expected in where.items():
        actual = row.get(column)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in {_plain(v) for v in expected}:
                return False
        elif actual != _plain(expected):
            return False
    return True


class InMemoryFactStore(FactStore):
    """Dict-of-lists store with the same contract as the remote one.

    Rows are copied on the way in and out so callers can never mutate
    stored state.  Suitable for tests and single-process development.
    """

    def __init__(self, seed: Mapping[str, Iterable[Row]] | None = None) -> None:
        self._tables: dict[str, list[Row]] = {}
        self._write_count = 0
        for collection, rows in (seed or {}).items():
            self._tables[_name(collection)] = [
                self._with_id(copy.deepcopy(dict(r))) for r in rows
            ]

    @staticmethod
    def _with_id(row: Row) -> Row:
        if not row.get("id"):
            row["id"] = uuid.uuid4().hex
        return row

    def _table(self, collection: str | Enum) -> list[Row]:
        return self._tables.setdefault(_name(collection), [])

    async def select(
        self,
        collection: str | Enum,
        where: Where | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        rows = [copy.deepcopy(r) for r in self._table(collection) if _matches(r, where)]
        if order_by:
            # Stable sort keeps insertion order among equal keys; NULLs last.
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            rows = present + missing
        return rows

    async def insert(self, collection: str | Enum, row: Row) -> Row:
        stored = self._with_id({k: copy.deepcopy(_plain(v)) for k, v in row.items()})
        self._table(collection).append(stored)
        self._write_count += 1
        return copy.deepcopy(stored)

    async def upsert(
        self,
        collection: str | Enum,
        row: Row,
        conflict_keys: Iterable[str],
    ) -> Row:
        keys = tuple(conflict_keys)
        missing = [k for k in keys if k not in row]
        if missing:
            raise ValueError(f"upsert row is missing conflict keys {missing}")
        key_filter = {k: row[k] for k in keys}
        for stored in self._table(collection):
            if _matches(stored, key_filter):
                stored.update({k: copy.deepcopy(_plain(v)) for k, v in row.items() if k != "id"})
                self._write_count += 1
                return copy.deepcopy(stored)
        return await self.insert(collection, row)

    async def update(self, collection: str | Enum, row_id: str, fields: Row) -> Row:
        for stored in self._table(collection):
            if stored.get("id") == row_id:
                stored.update({k: copy.deepcopy(_plain(v)) for k, v in fields.items() if k != "id"})
                self._write_count += 1
                return copy.deepcopy(stored)
        raise NotFoundError(_name(collection), row_id)

    async def delete(self, collection: str | Enum, row_id: str) -> None:
        table = self._table(collection)
        before = len(table)
        table[:] = [r for r in table if r.get("id") != row_id]
        if len(table) == before:
            raise NotFoundError(_name(collection), row_id)
        self._write_count += 1

    @property
    def write_count(self) -> int:
        """Number of successful insert/upsert/update/delete calls."""
        return self._write_count

    def size(self, collection: str | Enum) -> int:
        """Number of rows currently held in ``collection``."""
        return len(self._table(collection))


# ── Module-level Singleton ───────────────────────────────────

_store: FactStore | None = None


def get_fact_store() -> FactStore:
    """Get the singleton fact store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.fact_store_type == "rest" and settings.fact_store_url:
            from services.rest_fact_store import RestFactStore

            _store = RestFactStore(settings)
            logger.info("Initialized RestFactStore (%s)", settings.fact_store_url)
        else:
            _store = InMemoryFactStore()
            logger.info("Initialized InMemoryFactStore")
    return _store
