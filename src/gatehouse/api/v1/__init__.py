# src/gatehouse/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    auth_router,
    challenge_router,
    forms_router,
    system_router,
)

__all__ = [
    "admin_router",
    "auth_router",
    "challenge_router",
    "forms_router",
    "system_router",
]
