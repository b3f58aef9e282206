"""Deterministic numeric helpers shared by the progress and analytics services."""

from tools.stats_tools import (  # noqa: F401
    average,
    calculate_stats,
    percentage,
    round_half_up,
    score_distribution,
)
