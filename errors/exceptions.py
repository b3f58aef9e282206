"""Domain-specific exceptions for the reading progress service.

These exceptions let the API layer distinguish between the failure modes
of the core: bad input (re-prompt), missing content ("content unavailable")
and fact-store failures (retry affordance at the call site).
"""

from __future__ import annotations

import logging

_consistency_logger = logging.getLogger("consistency")


class ReadingCoreError(Exception):
    """Base class for every error raised by the core."""


class ValidationError(ReadingCoreError):
    """Required input is empty, missing or out of range."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ResubmissionRejectedError(ValidationError):
    """A HOTS answer was resubmitted after grading under the ``reject`` policy."""

    def __init__(self, answer_id: str) -> None:
        self.answer_id = answer_id
        super().__init__(
            "answer_text",
            f"HOTS answer '{answer_id}' has already been graded and cannot be resubmitted",
        )


class NotFoundError(ReadingCoreError):
    """A referenced entity (text, question, answer) does not exist at read time."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class StoreError(ReadingCoreError):
    """The underlying fact store call failed (network, permission, schema).

    Never retried by the core: every read and upsert is idempotent, so the
    caller decides whether to try again.
    """

    def __init__(
        self,
        operation: str,
        collection: str,
        detail: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.collection = collection
        self.detail = detail
        self.status_code = status_code
        status = f" [{status_code}]" if status_code is not None else ""
        super().__init__(f"Fact store {operation} on '{collection}' failed{status}: {detail}")


class ConsistencyWarning(UserWarning):
    """Non-fatal anomaly in derived data (stale progress, percentage over 100).

    Never raised. Reported through :func:`log_consistency_warning` and
    defended against with clamps and filters.
    """


def log_consistency_warning(message: str, *args: object) -> None:
    """Log a :class:`ConsistencyWarning` on the ``consistency`` logger."""
    _consistency_logger.warning(
        "%s: " + message, ConsistencyWarning.__name__, *args
    )
