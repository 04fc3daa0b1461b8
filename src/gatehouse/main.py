# src/gatehouse/main.py
"""Main entry point for the Gatehouse application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from gatehouse.api.v1 import (
    admin_router,
    auth_router,
    challenge_router,
    forms_router,
    system_router,
)
from gatehouse.core.settings import settings
from gatehouse.services.maintenance import CleanupWorker
from gatehouse.services.store import StoreUnavailableError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Gatehouse API",
    description="Brute-force, spam and flood protection for login and form endpoints",
    version=settings.app_version,
)

# Include API routers
app.include_router(challenge_router, prefix="/api/v1")
app.include_router(forms_router, prefix="/api/v1")
app.include_router(auth_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.warning("Store unavailable while serving %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.cleanup_interval_seconds > 0:
        worker = CleanupWorker()
        await worker.start()
        app.state.cleanup_worker = worker
    else:
        app.state.cleanup_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: CleanupWorker | None = getattr(app.state, "cleanup_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("gatehouse.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
