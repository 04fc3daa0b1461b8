"""Administrative endpoints for blacklist, defensive mode and lockouts.

Every route requires the ``ADMIN_TOKEN`` bearer token.
"""

from __future__ import annotations

import ipaddress

from fastapi import APIRouter, Depends, HTTPException, Query, status

from gatehouse.api.v1.dependencies import GuardDep, require_admin
from gatehouse.models import BlacklistEntry
from gatehouse.schemas.guard import (
    BlacklistEntryResponse,
    BlacklistRequest,
    BlacklistStatsResponse,
    CleanupResponse,
    DefensiveModeRequest,
    DefensiveModeResponse,
)
from gatehouse.services.maintenance import run_cleanup
from gatehouse.services.store import get_store

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _validated_ip(value: str) -> str:
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError as err:
        raise HTTPException(
            status_code=422,
            detail="Invalid IP address",
        ) from err


def _entry_response(entry: BlacklistEntry) -> BlacklistEntryResponse:
    return BlacklistEntryResponse(
        origin=entry.origin,
        reason=entry.reason,
        created_at=entry.created_at,
        duration_seconds=entry.duration_seconds,
        auto=entry.auto,
        user_agent=entry.user_agent,
        violation_count=len(entry.violations),
    )


@router.get("/blacklist", response_model=list[BlacklistEntryResponse])
async def list_blacklist(guard: GuardDep) -> list[BlacklistEntryResponse]:
    """List every blacklisted origin, newest first."""
    return [_entry_response(entry) for entry in guard.ledger.list_blacklisted()]


@router.post(
    "/blacklist",
    response_model=BlacklistEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_to_blacklist(payload: BlacklistRequest, guard: GuardDep) -> BlacklistEntryResponse:
    """Blacklist an origin manually."""
    ip = _validated_ip(payload.ip)
    entry = guard.ledger.manual_blacklist(ip, payload.reason, payload.duration_seconds)
    return _entry_response(entry)


@router.delete("/blacklist")
async def remove_from_blacklist(
    guard: GuardDep,
    ip: str = Query(..., min_length=1),
) -> dict[str, bool]:
    """Lift a ban before it expires."""
    if not guard.ledger.remove_from_blacklist(_validated_ip(ip)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="IP is not blacklisted")
    return {"removed": True}


@router.get("/blacklist-stats", response_model=BlacklistStatsResponse)
async def blacklist_stats(guard: GuardDep) -> BlacklistStatsResponse:
    return BlacklistStatsResponse(**guard.ledger.blacklist_stats())


@router.get("/blacklist/{ip}", response_model=BlacklistEntryResponse)
async def blacklist_details(ip: str, guard: GuardDep) -> BlacklistEntryResponse:
    """Return the blacklist entry for one origin."""
    entry = guard.ledger.get_blacklist_details(_validated_ip(ip))
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="IP is not blacklisted")
    return _entry_response(entry)


@router.get("/defensive-mode", response_model=DefensiveModeResponse)
async def defensive_mode_status(guard: GuardDep) -> DefensiveModeResponse:
    return DefensiveModeResponse(**guard.monitor.statistics())


@router.post("/defensive-mode", response_model=DefensiveModeResponse)
async def activate_defensive_mode(
    payload: DefensiveModeRequest,
    guard: GuardDep,
) -> DefensiveModeResponse:
    """Turn defensive mode on manually."""
    guard.monitor.activate(payload.reason, payload.duration_seconds, payload.activated_by)
    return DefensiveModeResponse(**guard.monitor.statistics())


@router.delete("/defensive-mode", response_model=DefensiveModeResponse)
async def deactivate_defensive_mode(guard: GuardDep) -> DefensiveModeResponse:
    """Turn defensive mode off before it expires."""
    guard.monitor.deactivate()
    return DefensiveModeResponse(**guard.monitor.statistics())


@router.delete("/lockouts/{ip}")
async def clear_lockout(ip: str, guard: GuardDep) -> dict[str, bool]:
    """Forget failed logins and any lockout for one origin."""
    return {"cleared": guard.tracker.clear_on_success(_validated_ip(ip))}


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup(guard: GuardDep) -> CleanupResponse:
    """Purge expired rows from the store."""
    store = guard.store if guard.store is not None else get_store()
    return CleanupResponse(purged=run_cleanup(store))
