"""Best-effort resolution of a request's origin address."""

from __future__ import annotations

import ipaddress
from collections.abc import Mapping

UNKNOWN_ORIGIN = "0.0.0.0"

# Checked in order; CDN and proxy headers win over the socket address.
FORWARDED_HEADERS: tuple[str, ...] = (
    "cf-connecting-ip",
    "client-ip",
    "x-forwarded-for",
    "x-forwarded",
    "forwarded-for",
    "forwarded",
)


def _clean_candidate(raw: str) -> str:
    candidate = raw.strip()
    # RFC 7239: for="[2001:db8::1]:4711";proto=https
    if ";" in candidate:
        parts = [p.strip() for p in candidate.split(";")]
        candidate = next((p for p in parts if p.lower().startswith("for=")), parts[0])
    if candidate.lower().startswith("for="):
        candidate = candidate[4:]
    candidate = candidate.strip().strip('"')
    if candidate.startswith("["):
        candidate = candidate[1:].split("]", 1)[0]
    elif candidate.count(":") == 1:
        candidate = candidate.split(":", 1)[0]
    return candidate


def canonical_ip(value: str) -> str:
    """Return the compressed form of an address, or the stripped input if it is not one."""
    value = value.strip()
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        return value


def is_public_ip(value: str) -> bool:
    """Return True for syntactically valid, globally routable addresses."""
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return False
    return address.is_global and not address.is_multicast


def resolve_client_ip(
    headers: Mapping[str, str],
    remote_addr: str | None,
    trust_forwarded: bool = True,
) -> str:
    """Extract the origin address for a request.

    Args:
        headers: Request headers; keys are matched case-insensitively
        remote_addr: Address of the direct peer connection
        trust_forwarded: Whether proxy-supplied headers are consulted

    Returns:
        The first public address found in the forwarded headers, else the
        direct connection address, else ``UNKNOWN_ORIGIN``. Addresses come
        back in compressed form so one client always maps to one origin.
    """
    if trust_forwarded:
        lowered = {str(k).lower(): str(v) for k, v in headers.items()}
        for header in FORWARDED_HEADERS:
            value = lowered.get(header)
            if not value:
                continue
            for raw in value.split(","):
                candidate = _clean_candidate(raw)
                if is_public_ip(candidate):
                    return canonical_ip(candidate)

    if remote_addr and remote_addr.strip():
        return canonical_ip(remote_addr)
    return UNKNOWN_ORIGIN
