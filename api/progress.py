"""Student progress endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from models.facts import Progress
from models.request import ProgressPercentageResponse, SuccessResponse
from models.stats import QuizStats
from services.fact_store import FactStore, get_fact_store
from services.progress_engine import ProgressEngine

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.post("/{user_id}/texts/{text_id}/read", response_model=SuccessResponse)
async def mark_text_as_read(user_id: str, text_id: str, store: FactStore = Depends(get_fact_store)):
    success = await ProgressEngine(store).mark_text_as_read(user_id, text_id)
    return SuccessResponse(success=success)


@router.get("/{user_id}/texts/{text_id}/quiz", response_model=QuizStats)
async def quiz_stats(user_id: str, text_id: str, store: FactStore = Depends(get_fact_store)):
    return await ProgressEngine(store).compute_quiz_stats(user_id, text_id)


@router.post("/{user_id}/refresh", response_model=list[Progress])
async def refresh_progress(
    user_id: str,
    text_id: str | None = None,
    store: FactStore = Depends(get_fact_store),
):
    """Re-derive cached progress rows from the current facts."""
    return await ProgressEngine(store).refresh_progress(user_id, text_id)


@router.get("/{user_id}/overall", response_model=ProgressPercentageResponse)
async def overall_progress(user_id: str, store: FactStore = Depends(get_fact_store)):
    percentage = await ProgressEngine(store).compute_overall_progress(user_id)
    return ProgressPercentageResponse(user_id=user_id, percentage=percentage)


@router.get("/{user_id}/genres", response_model=dict[str, int])
async def genre_progress(user_id: str, store: FactStore = Depends(get_fact_store)):
    return await ProgressEngine(store).compute_genre_progress(user_id)
