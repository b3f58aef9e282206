"""Dashboard analytics endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from models.stats import ClassOverview, HOTSStats, LeaderboardEntry, StudentStats
from services.analytics_service import AnalyticsService
from services.fact_store import FactStore, get_fact_store

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/students/{user_id}/hots", response_model=HOTSStats)
async def hots_stats(user_id: str, store: FactStore = Depends(get_fact_store)):
    return await AnalyticsService(store).compute_hots_stats(user_id)


@router.get("/students/{user_id}", response_model=StudentStats)
async def student_stats(user_id: str, store: FactStore = Depends(get_fact_store)):
    return await AnalyticsService(store).get_student_stats(user_id)


@router.get("/overview", response_model=ClassOverview)
async def class_overview(
    since: datetime | None = None,
    store: FactStore = Depends(get_fact_store),
):
    return await AnalyticsService(store).get_class_overview(since)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    limit: int = Query(default=5, ge=1, le=100),
    store: FactStore = Depends(get_fact_store),
):
    return await AnalyticsService(store).get_leaderboard(limit)
