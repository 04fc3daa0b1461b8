"""Challenge issuing endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from gatehouse.api.v1.dependencies import GuardDep
from gatehouse.core.settings import Difficulty
from gatehouse.schemas.guard import ChallengeResponse

router = APIRouter(prefix="/challenge", tags=["challenge"])


@router.get("", response_model=ChallengeResponse)
async def issue_challenge(
    guard: GuardDep,
    difficulty: Difficulty | None = None,
) -> ChallengeResponse:
    """Issue a math challenge to solve while defensive mode is active.

    Args:
        guard: Guard whose challenge service stores the answer
        difficulty: Optional difficulty override

    Returns:
        The question and its token; the answer is never sent
    """
    challenge = guard.challenges.generate(difficulty)
    return ChallengeResponse(
        question=challenge.question,
        token=challenge.token,
        difficulty=challenge.difficulty,
    )
