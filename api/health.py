"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from config.settings import get_settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    """Liveness probe; reports which fact store backs the service."""
    return {"status": "healthy", "factStore": get_settings().fact_store_type}
