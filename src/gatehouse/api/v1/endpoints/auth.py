"""Guarded authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from gatehouse.api.v1.dependencies import ClientIPDep, GuardDep, VerifierDep
from gatehouse.api.v1.endpoints._decisions import rejection
from gatehouse.core.settings import settings
from gatehouse.models import LoginAttempt
from gatehouse.schemas.guard import LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

ACCEPT_HEADERS = ("accept", "accept-language", "accept-encoding")

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    guard: GuardDep,
    verifier: VerifierDep,
    client_ip: ClientIPDep,
) -> LoginResponse:
    """Authenticate through the guard.

    Args:
        payload: Credentials plus optional decoy and challenge values
        request: Incoming request, for user agent and path
        guard: Guard running the access gates and lockout tracking
        verifier: Host-provided credential check
        client_ip: Resolved origin address

    Returns:
        Confirmation of the authenticated username

    Raises:
        HTTPException: 403 on a gate rejection, 404 for automated clients,
            429 while locked out, 401 on bad credentials
    """
    user_agent = request.headers.get("user-agent", "")
    decoy = (payload.model_extra or {}).get(settings.honeypot_field)
    attempt = LoginAttempt(
        origin=client_ip,
        username=payload.username,
        password=payload.password,
        user_agent=user_agent,
        request_path=request.url.path,
        method=request.method,
        accept_headers_present=any(name in request.headers for name in ACCEPT_HEADERS),
        decoy_value=None if decoy is None else str(decoy),
        challenge_token=payload.challenge_token,
        challenge_answer=payload.challenge_answer,
    )
    decision = guard.check_login(attempt)
    if not decision.allowed:
        raise rejection(decision)

    if not payload.username or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Username and password are required",
        )

    if not verifier.verify(payload.username, payload.password):
        attempts = guard.login_failed(client_ip, payload.username, user_agent, request.url.path)
        logger.info("Failed login from %s (%d attempts)", client_ip, attempts)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    guard.login_succeeded(client_ip)
    return LoginResponse(authenticated=True, username=payload.username)


@router.post("/logout")
async def logout(guard: GuardDep, client_ip: ClientIPDep) -> dict[str, str]:
    """Clear lockout state for the calling origin."""
    guard.login_succeeded(client_ip)
    return {"status": "ok"}
