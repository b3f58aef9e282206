"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    log_level: str = "INFO"

    # ── Fact store ───────────────────────────────────────────
    fact_store_type: Literal["memory", "rest"] = "memory"
    fact_store_url: str = ""  # e.g. https://<project>.supabase.co
    fact_store_api_prefix: str = "/rest/v1"
    fact_store_api_key: str = ""
    fact_store_access_token: str = ""  # falls back to the api key when empty
    fact_store_timeout: int = 15  # seconds

    # ── Scoring ──────────────────────────────────────────────
    essay_credit_ratio: float = 0.8  # placeholder credit for essays before review
    clamp_hots_percentage: bool = True  # same 0-100 clamp as the quiz path
    eager_quiz_refresh: bool = True  # recompute Progress on every quiz answer

    # ── HOTS grading ─────────────────────────────────────────
    grade_out_of_range_policy: Literal["reject", "clamp"] = "reject"
    # reset: resubmission wipes the grade; reject: graded answers are frozen;
    # version: the graded answer is archived, then reset
    hots_resubmission_policy: Literal["reset", "reject", "version"] = "reset"


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
