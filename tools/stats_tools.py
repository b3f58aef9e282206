"""Statistical computation tools for progress and dashboard numbers.

These produce the percentages, averages and distributions every dashboard
is built on.  Rounding is half-up (``2.5 → 3``), not Python's banker's
rounding, so the numbers match what students and teachers see elsewhere.
Empty inputs yield zero-valued results, never errors.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import numpy as np

from errors.exceptions import log_consistency_warning

SCORE_BUCKET_LABELS = ["0-2", "3-4", "5-6", "7-8", "9-10"]
# Inclusive upper cutoffs of every bucket but the last, on the 0-10 scale.
SCORE_BUCKET_EDGES = [2, 4, 6, 8]
SCORE_SCALE_MAX = 10


def round_half_up(value: float, digits: int = 0) -> float:
    """Round ``value`` to ``digits`` decimals, halves rounded up."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: float, whole: float, *, clamp: bool = True, label: str = "") -> int:
    """``round(part / whole * 100)``; 0 when ``whole`` is not positive.

    With ``clamp`` the result is bounded to 0-100 and an overflow is logged
    as a consistency warning.
    """
    if whole <= 0:
        return 0
    raw = int(round_half_up(part / whole * 100))
    if not clamp:
        return raw
    if raw > 100:
        log_consistency_warning("%s percentage %d exceeds 100, clamped", label or "a", raw)
        return 100
    return max(raw, 0)


def average(values: Sequence[float | int], digits: int = 1) -> float:
    """Arithmetic mean rounded half-up to ``digits`` decimals; 0 for no values."""
    if not values:
        return 0.0
    return round_half_up(float(np.mean(np.asarray(values, dtype=float))), digits)


def score_distribution(scores: Sequence[float | int]) -> tuple[list[int], int]:
    """Count scores into the five 0-10 buckets.

    Returns ``(counts, out_of_range)``.  Scores below 0 or above 10 are
    outside the scale the buckets describe: they are excluded and counted
    separately instead of inflating the top bucket.
    """
    if not scores:
        return [0] * len(SCORE_BUCKET_LABELS), 0

    arr = np.asarray(scores, dtype=float)
    in_range = (arr >= 0) & (arr <= SCORE_SCALE_MAX)
    out_of_range = int(np.count_nonzero(~in_range))
    if out_of_range:
        log_consistency_warning(
            "%d score(s) outside the 0-%d distribution scale", out_of_range, SCORE_SCALE_MAX,
        )

    # right=True: bucket i holds EDGES[i-1] < score <= EDGES[i]
    indices = np.digitize(arr[in_range], SCORE_BUCKET_EDGES, right=True)
    counts = np.bincount(indices, minlength=len(SCORE_BUCKET_LABELS))
    return [int(c) for c in counts], out_of_range


def calculate_stats(data: Sequence[float | int]) -> dict[str, Any]:
    """Descriptive statistics for a numeric dataset (e.g. answer scores).

    Returns count, mean, median, stddev (sample), min and max, each rounded
    to 2 decimals.  All zero for an empty dataset.
    """
    if not data:
        return {"count": 0, "mean": 0.0, "median": 0.0, "stddev": 0.0, "min": 0.0, "max": 0.0}

    arr = np.asarray(data, dtype=float)
    return {
        "count": len(data),
        "mean": round_half_up(float(np.mean(arr)), 2),
        "median": round_half_up(float(np.median(arr)), 2),
        "stddev": round_half_up(float(np.std(arr, ddof=1)) if len(arr) > 1 else 0.0, 2),
        "min": round_half_up(float(np.min(arr)), 2),
        "max": round_half_up(float(np.max(arr)), 2),
    }
