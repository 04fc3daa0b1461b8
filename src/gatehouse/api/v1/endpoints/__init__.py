# src/gatehouse/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .auth import router as auth_router
from .challenge import router as challenge_router
from .forms import router as forms_router
from .system import router as system_router

__all__ = [
    "admin_router",
    "auth_router",
    "challenge_router",
    "forms_router",
    "system_router",
]
