"""Tests for services/rest_fact_store.py (PostgREST-backed fact store)."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

import httpx

from config.settings import Settings
from errors.exceptions import NotFoundError, StoreError
from models.facts import Collection
from services.rest_fact_store import RestFactStore, build_filter_params


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def rest_settings():
    return Settings(
        _env_file=None,
        fact_store_type="rest",
        fact_store_url="https://db.example.com/",
        fact_store_api_key="anon-key",
        fact_store_timeout=5,
    )


@pytest.fixture
async def rest_store(rest_settings):
    s = RestFactStore(rest_settings)
    await s.start()
    yield s
    await s.close()


def _response(data=None, status=200, text=None):
    r = MagicMock()
    r.status_code = status
    r.text = text if text is not None else ("[]" if data is None else "x")
    r.json.return_value = data
    return r


# ---------------------------------------------------------------------------
# Query construction
# ---------------------------------------------------------------------------

def test_build_filter_params_eq_and_in():
    params = build_filter_params({"user_id": "s-1", "question_id": ["q1", "q2"]})
    assert params == [("user_id", "eq.s-1"), ("question_id", 'in.("q1","q2")')]


def test_build_filter_params_null_bool_and_order():
    params = build_filter_params(
        {"graded_at": None, "is_archived": False},
        order_by="submitted_at",
        descending=True,
    )
    assert params == [
        ("graded_at", "is.null"),
        ("is_archived", "eq.false"),
        ("order", "submitted_at.desc.nullslast"),
    ]


def test_base_url_constructed(rest_settings):
    s = RestFactStore(rest_settings)
    assert s._base_url == "https://db.example.com/rest/v1"


def test_auth_headers_fall_back_to_api_key(rest_settings):
    headers = RestFactStore(rest_settings)._auth_headers()
    assert headers == {"apikey": "anon-key", "Authorization": "Bearer anon-key"}


def test_auth_headers_empty():
    s = RestFactStore(Settings(_env_file=None, fact_store_url="https://db.example.com"))
    assert s._auth_headers() == {}


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_close_sets_http_none(rest_settings):
    s = RestFactStore(rest_settings)
    await s.start()
    assert s._http is not None
    await s.close()
    assert s._http is None


@pytest.mark.asyncio
async def test_ensure_started_raises_without_start(rest_settings):
    s = RestFactStore(rest_settings)
    with pytest.raises(RuntimeError, match="not started"):
        await s.select(Collection.TEXTS)


# ---------------------------------------------------------------------------
# Requests with mocked httpx
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_select(rest_store):
    rest_store._http.request = AsyncMock(return_value=_response([{"id": "t1"}]))

    rows = await rest_store.select(Collection.TEXTS, {"genre": "narrative"}, order_by="created_at")

    assert rows == [{"id": "t1"}]
    method, path = rest_store._http.request.call_args.args
    assert (method, path) == ("GET", "/texts")
    assert rest_store._http.request.call_args.kwargs["params"] == [
        ("select", "*"),
        ("genre", "eq.narrative"),
        ("order", "created_at.asc.nullslast"),
    ]


@pytest.mark.asyncio
async def test_upsert_sends_conflict_and_merge_preference(rest_store):
    row = {"user_id": "s-1", "text_id": "t1", "read_status": True}
    rest_store._http.request = AsyncMock(return_value=_response([{"id": "p1", **row}]))

    stored = await rest_store.upsert(Collection.PROGRESS, row, ("user_id", "text_id"))

    assert stored["id"] == "p1"
    kwargs = rest_store._http.request.call_args.kwargs
    assert kwargs["params"] == [("on_conflict", "user_id,text_id")]
    assert kwargs["json"] == row
    assert kwargs["headers"]["Prefer"].startswith("resolution=merge-duplicates")


@pytest.mark.asyncio
async def test_update_without_rows_raises_not_found(rest_store):
    rest_store._http.request = AsyncMock(return_value=_response([]))

    with pytest.raises(NotFoundError):
        await rest_store.update(Collection.HOTS_ANSWERS, "missing", {"score": 10})
    method, path = rest_store._http.request.call_args.args
    assert (method, path) == ("PATCH", "/hots_answers")


@pytest.mark.asyncio
async def test_http_error_raises_store_error(rest_store):
    rest_store._http.request = AsyncMock(
        return_value=_response(status=403, text="permission denied for table answers"),
    )

    with pytest.raises(StoreError) as exc_info:
        await rest_store.select(Collection.ANSWERS)
    assert exc_info.value.status_code == 403
    assert exc_info.value.collection == "answers"


@pytest.mark.asyncio
async def test_non_json_body_raises_store_error(rest_store):
    r = _response(status=200, text="<html>gateway</html>")
    r.json.side_effect = json.JSONDecodeError("Expecting value", "<html>gateway</html>", 0)
    rest_store._http.request = AsyncMock(return_value=r)

    with pytest.raises(StoreError, match="invalid JSON body") as exc_info:
        await rest_store.select(Collection.TEXTS)
    assert exc_info.value.status_code == 200
    assert exc_info.value.collection == "texts"


@pytest.mark.asyncio
async def test_network_error_is_not_retried(rest_store):
    rest_store._http.request = AsyncMock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(StoreError, match="refused"):
        await rest_store.insert(Collection.ANSWERS, {"user_id": "s-1"})
    assert rest_store._http.request.call_count == 1
