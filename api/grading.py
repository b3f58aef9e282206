"""HOTS grading endpoints — called by the teacher UI."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from errors.exceptions import NotFoundError
from models.facts import ArchivedHOTSAnswer, HOTSAnswer
from models.request import GradeHOTSAnswerRequest, SuccessResponse
from models.stats import GradingSummary
from services.fact_store import FactStore, get_fact_store
from services.grading_service import GradingService

router = APIRouter(prefix="/api/grading", tags=["grading"])


@router.post("/answers/{answer_id}", response_model=SuccessResponse)
async def grade_answer(
    answer_id: str,
    req: GradeHOTSAnswerRequest,
    store: FactStore = Depends(get_fact_store),
):
    success = await GradingService(store).grade_hots_answer(
        answer_id, req.score, req.feedback, req.teacher_id,
    )
    return SuccessResponse(success=success)


@router.get("/queue", response_model=list[HOTSAnswer])
async def grading_queue(
    hots_question_id: str | None = None,
    ungraded_only: bool = False,
    store: FactStore = Depends(get_fact_store),
):
    """Answers ordered by submission time, most recent first."""
    return await GradingService(store).list_grading_queue(hots_question_id, ungraded_only)


@router.get("/questions/{hots_question_id}/summary", response_model=GradingSummary)
async def grading_summary(hots_question_id: str, store: FactStore = Depends(get_fact_store)):
    return await GradingService(store).grading_summary(hots_question_id)


@router.get(
    "/questions/{hots_question_id}/students/{user_id}",
    response_model=HOTSAnswer,
)
async def student_feedback(
    hots_question_id: str,
    user_id: str,
    store: FactStore = Depends(get_fact_store),
):
    """The student's current answer, with score and feedback once graded."""
    answer = await GradingService(store).get_student_feedback(user_id, hots_question_id)
    if answer is None:
        raise NotFoundError("hots_answer", f"{user_id}/{hots_question_id}")
    return answer


@router.get(
    "/questions/{hots_question_id}/students/{user_id}/history",
    response_model=list[ArchivedHOTSAnswer],
)
async def answer_history(
    hots_question_id: str,
    user_id: str,
    store: FactStore = Depends(get_fact_store),
):
    """Graded versions archived by resubmissions, newest first."""
    return await GradingService(store).list_answer_history(user_id, hots_question_id)
