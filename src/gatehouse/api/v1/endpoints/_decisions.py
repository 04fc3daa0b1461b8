"""Translate guard decisions into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from gatehouse.schemas.guard import GuardResponse
from gatehouse.services.guard import GuardDecision


def rejection(decision: GuardDecision) -> HTTPException:
    """Build the HTTP error for a rejected decision.

    Lockouts map to 429, store outages to 503 and automated logins to 404, so
    scanners see no login form. Everything else is 403.
    """
    if decision.gate == "store_unavailable":
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif decision.gate == "lockout":
        code = status.HTTP_429_TOO_MANY_REQUESTS
    elif decision.gate == "bot":
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_403_FORBIDDEN

    headers = None
    if decision.retry_after_seconds:
        headers = {"Retry-After": str(decision.retry_after_seconds)}

    body = GuardResponse(
        allowed=False,
        message=decision.message,
        challenge_required=decision.challenge_required,
    )
    return HTTPException(status_code=code, detail=body.model_dump(), headers=headers)
