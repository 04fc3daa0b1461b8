# src/gatehouse/utils/hash.py
"""Hashing helpers for content-addressed store keys."""

from __future__ import annotations

from blake3 import blake3

from gatehouse.services.identity import canonical_ip


def blake3_hexdigest(data: bytes) -> str:
    """Return the hexadecimal BLAKE3 digest of the supplied data."""
    return blake3(data).hexdigest()


def origin_digest(origin: str) -> str:
    """Return a one-way digest of an origin address.

    Raw addresses never appear in store keys; equal addresses still map to
    equal digests so lookups keep working. IP addresses are compared in
    compressed form, so ``2001:db8:0:0::1`` and ``2001:db8::1`` share a key.
    """
    return blake3_hexdigest(canonical_ip(origin).lower().encode("utf-8"))


def origin_key(prefix: str, origin: str) -> str:
    """Build a store key such as ``lockout:<digest>`` for an origin."""
    return f"{prefix}:{origin_digest(origin)}"
