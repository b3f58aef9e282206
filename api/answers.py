"""Answer submission endpoints — called by the student UI."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from models.request import (
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SubmitHOTSAnswerRequest,
    SuccessResponse,
)
from services.fact_store import FactStore, get_fact_store
from services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["answers"])


@router.post("/answers", response_model=SubmitAnswerResponse)
async def submit_answer(req: SubmitAnswerRequest, store: FactStore = Depends(get_fact_store)):
    """Score and store a literal / inferential answer (upsert per question)."""
    score = await SubmissionService(store).submit_answer(
        req.user_id, req.question_id, req.answer_text,
    )
    return SubmitAnswerResponse(score=score)


@router.post("/hots-answers", response_model=SuccessResponse)
async def submit_hots_answer(
    req: SubmitHOTSAnswerRequest, store: FactStore = Depends(get_fact_store),
):
    """Store an ungraded HOTS answer and refresh the student's HOTS progress."""
    success = await SubmissionService(store).submit_hots_answer(
        req.user_id, req.hots_question_id, req.answer_text,
    )
    return SuccessResponse(success=success)
