# src/gatehouse/api/v1/dependencies.py
"""Shared FastAPI dependencies for the v1 API."""

from __future__ import annotations

import secrets
from typing import Annotated, Protocol

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gatehouse.core.settings import settings
from gatehouse.services.guard import SubmissionGuard, get_guard
from gatehouse.services.identity import resolve_client_ip

# HTTP Bearer scheme for the administrative token; missing headers are
# reported as 401 by ``require_admin`` rather than FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)


class CredentialVerifier(Protocol):
    """Checks a username/password pair against the host's user store."""

    def verify(self, username: str, password: str) -> bool: ...


class DenyAllVerifier:
    """Default verifier: no credentials are valid until a host provides one."""

    def verify(self, username: str, password: str) -> bool:
        return False


def get_guard_dep() -> SubmissionGuard:
    """Get SubmissionGuard dependency for dependency injection."""
    return get_guard()


def get_credential_verifier() -> CredentialVerifier:
    """Return the credential verifier; hosts override this dependency."""
    return DenyAllVerifier()


def get_client_ip(request: Request) -> str:
    """Resolve the origin address of the current request."""
    remote = request.client.host if request.client else None
    return resolve_client_ip(request.headers, remote, settings.trust_forwarded_headers)


def require_admin(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> None:
    """Authorize administrative calls against ``ADMIN_TOKEN``.

    Raises:
        HTTPException: 503 when no admin token is configured, 401 when the
            bearer token is missing or wrong
    """
    expected = settings.admin_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Administration is disabled",
        )
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid administrative token",
            headers={"WWW-Authenticate": "Bearer"},
        )


GuardDep = Annotated[SubmissionGuard, Depends(get_guard_dep)]
ClientIPDep = Annotated[str, Depends(get_client_ip)]
VerifierDep = Annotated[CredentialVerifier, Depends(get_credential_verifier)]
