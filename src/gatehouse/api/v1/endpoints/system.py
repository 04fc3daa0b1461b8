"""System and transparency endpoints for the Gatehouse API."""

from __future__ import annotations

from fastapi import APIRouter

from gatehouse.core.settings import settings

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes the admin token and store connection strings; suitable for
    transparency UIs and for clients that pace their submissions.

    Returns:
        Dictionary containing app metadata and the protection thresholds
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "protection": settings.public_thresholds,
    }
