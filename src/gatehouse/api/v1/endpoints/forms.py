"""Guarded form submission endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

from gatehouse.api.v1.dependencies import ClientIPDep, GuardDep
from gatehouse.api.v1.endpoints._decisions import rejection
from gatehouse.models import Submission
from gatehouse.schemas.guard import FormSubmissionRequest, GuardResponse

router = APIRouter(prefix="/forms", tags=["forms"])


@router.post("/submit", response_model=GuardResponse)
async def submit_form(
    payload: FormSubmissionRequest,
    request: Request,
    guard: GuardDep,
    client_ip: ClientIPDep,
) -> GuardResponse:
    """Run a form submission through the guard.

    Returns 200 when the submission may be processed; rejections are
    reported with a generic message and never reveal which gate fired.
    """
    submission = Submission(
        origin=client_ip,
        fields=payload.fields,
        user_agent=request.headers.get("user-agent", ""),
        request_path=request.url.path,
        query_string=request.url.query,
        started_at=payload.started_at,
        challenge_token=payload.challenge_token,
        challenge_answer=payload.challenge_answer,
    )
    decision = guard.check_submission(submission)
    if not decision.allowed:
        raise rejection(decision)
    return GuardResponse(allowed=True, message="Submission accepted")
