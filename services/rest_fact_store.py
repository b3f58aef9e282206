"""HTTP fact store for a PostgREST-compatible backend (e.g. Supabase).

Wraps ``httpx.AsyncClient`` with:
- base URL + API prefix construction
- ``apikey`` + Bearer auth headers
- PostgREST filter / order / upsert query construction
- request timing logs
- connection-pool lifecycle tied to FastAPI lifespan

Every failure (non-2xx, unparseable body or transport error) surfaces as
:class:`StoreError`.
No retries: reads and upserts are idempotent, callers decide.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from enum import Enum
from typing import Any

import httpx

from config.settings import Settings, get_settings
from errors.exceptions import NotFoundError, StoreError
from services.fact_store import FactStore, Row, Where

logger = logging.getLogger(__name__)

_RETURN_ROWS = "return=representation"
_MERGE_UPSERT = "resolution=merge-duplicates,return=representation"


def _name(collection: str | Enum) -> str:
    return collection.value if isinstance(collection, Enum) else collection


def _literal(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quoted(value: Any) -> str:
    text = _literal(value).replace('"', '\\"')
    return f'"{text}"'


def build_filter_params(
    where: Where | None,
    order_by: str | None = None,
    descending: bool = False,
) -> list[tuple[str, str]]:
    """Translate a ``where`` mapping into PostgREST query parameters."""
    params: list[tuple[str, str]] = []
    for column, expected in (where or {}).items():
        if isinstance(expected, (list, tuple, set, frozenset)):
            values = ",".join(_quoted(v) for v in expected)
            params.append((column, f"in.({values})"))
        elif expected is None:
            params.append((column, "is.null"))
        else:
            params.append((column, f"eq.{_literal(expected)}"))
    if order_by:
        direction = "desc" if descending else "asc"
        params.append(("order", f"{order_by}.{direction}.nullslast"))
    return params


class RestFactStore(FactStore):
    """Async HTTP fact store speaking the PostgREST dialect."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._base_url = f"{settings.fact_store_url.rstrip('/')}{settings.fact_store_api_prefix}"
        self._timeout = settings.fact_store_timeout
        self._api_key = settings.fact_store_api_key
        self._access_token = settings.fact_store_access_token or settings.fact_store_api_key
        self._http: httpx.AsyncClient | None = None

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Create the underlying ``httpx.AsyncClient`` connection pool."""
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=self._auth_headers(),
            limits=httpx.Limits(
                max_connections=30,
                max_keepalive_connections=15,
                keepalive_expiry=30,
            ),
        )
        logger.info("RestFactStore started — base_url=%s", self._base_url)

    async def close(self) -> None:
        """Gracefully close the connection pool."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.info("RestFactStore closed")

    # -- FactStore contract --------------------------------------------------

    async def select(
        self,
        collection: str | Enum,
        where: Where | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        params = [("select", "*"), *build_filter_params(where, order_by, descending)]
        body = await self._request("GET", collection, "select", params=params)
        return self._rows(body)

    async def insert(self, collection: str | Enum, row: Row) -> Row:
        body = await self._request(
            "POST", collection, "insert",
            json_body=row, prefer=_RETURN_ROWS,
        )
        return self._single(body, collection, "insert")

    async def upsert(
        self,
        collection: str | Enum,
        row: Row,
        conflict_keys: Iterable[str],
    ) -> Row:
        params = [("on_conflict", ",".join(conflict_keys))]
        body = await self._request(
            "POST", collection, "upsert",
            params=params, json_body=row, prefer=_MERGE_UPSERT,
        )
        return self._single(body, collection, "upsert")

    async def update(self, collection: str | Enum, row_id: str, fields: Row) -> Row:
        body = await self._request(
            "PATCH", collection, "update",
            params=[("id", f"eq.{row_id}")], json_body=fields, prefer=_RETURN_ROWS,
        )
        rows = self._rows(body)
        if not rows:
            raise NotFoundError(_name(collection), row_id)
        return rows[0]

    async def delete(self, collection: str | Enum, row_id: str) -> None:
        body = await self._request(
            "DELETE", collection, "delete",
            params=[("id", f"eq.{row_id}")], prefer=_RETURN_ROWS,
        )
        if not self._rows(body):
            raise NotFoundError(_name(collection), row_id)

    # -- internals -----------------------------------------------------------

    async def _request(
        self,
        method: str,
        collection: str | Enum,
        operation: str,
        params: list[tuple[str, str]] | None = None,
        json_body: Row | None = None,
        prefer: str | None = None,
    ) -> Any:
        client = self._ensure_started()
        name = _name(collection)
        path = f"/{name}"
        headers = {"Prefer": prefer} if prefer else None

        t0 = time.monotonic()
        try:
            response = await client.request(
                method, path, params=params, json=json_body, headers=headers,
            )
        except httpx.TransportError as exc:
            elapsed_ms = (time.monotonic() - t0) * 1000
            logger.warning(
                "%s %s → network error (%.0fms): %s", method, path, elapsed_ms, exc,
            )
            raise StoreError(operation, name, str(exc)) from exc

        elapsed_ms = (time.monotonic() - t0) * 1000
        logger.info("%s %s → %d (%.0fms)", method, path, response.status_code, elapsed_ms)

        if response.status_code >= 400:
            detail = response.text[:500] if response.text else f"HTTP {response.status_code}"
            raise StoreError(operation, name, detail, status_code=response.status_code)

        if not response.text:
            return []
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s %s → unparseable body: %.200s", method, path, response.text)
            raise StoreError(
                operation, name, "invalid JSON body", status_code=response.status_code,
            ) from exc

    @staticmethod
    def _rows(body: Any) -> list[Row]:
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            return [body]
        return []

    def _single(self, body: Any, collection: str | Enum, operation: str) -> Row:
        rows = self._rows(body)
        if not rows:
            raise StoreError(operation, _name(collection), "store returned no row")
        return rows[0]

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._api_key:
            headers["apikey"] = self._api_key
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def _ensure_started(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("RestFactStore not started — call await store.start() first")
        return self._http
