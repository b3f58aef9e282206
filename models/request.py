"""API request / response models."""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel


class SubmitAnswerRequest(CamelModel):
    """POST /api/answers — request body."""

    user_id: str
    question_id: str
    answer_text: str


class SubmitAnswerResponse(CamelModel):
    """POST /api/answers — response body."""

    score: int


class SubmitHOTSAnswerRequest(CamelModel):
    """POST /api/hots-answers — request body."""

    user_id: str
    hots_question_id: str
    answer_text: str


class GradeHOTSAnswerRequest(CamelModel):
    """POST /api/grading/answers/{answer_id} — request body."""

    score: int
    feedback: str | None = None
    teacher_id: str = Field(min_length=1)


class SuccessResponse(CamelModel):
    """Outcome of a mutating operation."""

    success: bool


class ProgressPercentageResponse(CamelModel):
    """GET /api/progress/{user_id}/overall — response body."""

    user_id: str
    percentage: int
