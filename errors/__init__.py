"""Custom exception hierarchy for the reading progress service."""

from errors.exceptions import (
    ConsistencyWarning,
    NotFoundError,
    ReadingCoreError,
    ResubmissionRejectedError,
    StoreError,
    ValidationError,
    log_consistency_warning,
)

__all__ = [
    "ConsistencyWarning",
    "NotFoundError",
    "ReadingCoreError",
    "ResubmissionRejectedError",
    "StoreError",
    "ValidationError",
    "log_consistency_warning",
]
