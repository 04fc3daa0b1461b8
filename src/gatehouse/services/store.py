"""Expiring key/value storage shared by every protection component.

Every entry carries a time-to-live after which it is treated as absent.
Production deployments use Redis so that all workers and instances see the
same state; the in-process backend exists for tests and single-process
development and honours the same contract.
"""

from __future__ import annotations

import json
import logging
import math
import time
from functools import lru_cache
from threading import Lock
from typing import Any, Protocol

import redis
from redis.exceptions import RedisError

from gatehouse.core.settings import Settings, settings
from gatehouse.core.time import Clock

logger = logging.getLogger(__name__)


class StoreUnavailableError(RuntimeError):
    """Raised when the backing store cannot be reached or answers garbage."""


class ExpiringStore(Protocol):
    """Contract every backend implements.

    Keys are opaque strings, values are JSON-serializable records. There are
    no transactions; ``incr`` is the only atomic read-modify-write.
    """

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> bool: ...

    def incr(self, key: str, ttl_seconds: int) -> int: ...

    def ttl(self, key: str) -> int | None: ...

    def keys(self, prefix: str) -> list[str]: ...

    def purge_expired(self) -> int: ...


def _encode(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError) as err:
        raise StoreUnavailableError(f"Value is not serializable: {err}") from err


def _decode(raw: str | bytes | None) -> Any | None:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as err:
        raise StoreUnavailableError(f"Corrupt value in store: {err}") from err


class MemoryStore:
    """Process-local backend with lazy expiry.

    Expired rows are dropped when touched, or in bulk by ``purge_expired``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.time
        self._data: dict[str, tuple[str, float]] = {}
        self._lock = Lock()

    def _live(self, key: str, now: float) -> tuple[str, float] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry[1] <= now:
            self._data.pop(key, None)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._live(key, self._clock())
            return _decode(entry[0]) if entry else None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        encoded = _encode(value)
        if ttl_seconds <= 0:
            self.delete(key)
            return
        with self._lock:
            self._data[key] = (encoded, self._clock() + ttl_seconds)

    def delete(self, key: str) -> bool:
        with self._lock:
            entry = self._live(key, self._clock())
            self._data.pop(key, None)
            return entry is not None

    def incr(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            current = int(_decode(entry[0])) if entry else 0
            current += 1
            self._data[key] = (_encode(current), now + ttl_seconds)
            return current

    def ttl(self, key: str) -> int | None:
        with self._lock:
            now = self._clock()
            entry = self._live(key, now)
            if entry is None:
                return None
            return max(0, math.ceil(entry[1] - now))

    def keys(self, prefix: str) -> list[str]:
        with self._lock:
            now = self._clock()
            return [
                key
                for key in list(self._data)
                if key.startswith(prefix) and self._live(key, now) is not None
            ]

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, (_, expires) in self._data.items() if expires <= now]
            for key in expired:
                del self._data[key]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class RedisStore:
    """Redis backend; TTL handling is delegated to Redis expiry."""

    def __init__(self, client: Any, namespace: str = "") -> None:
        self._redis = client
        self._prefix = f"{namespace}:" if namespace else ""

    @classmethod
    def from_url(cls, url: str, namespace: str = "") -> RedisStore:
        return cls(redis.from_url(url), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self._redis.get(self._key(key))
        except RedisError as err:
            raise StoreUnavailableError(str(err)) from err
        return _decode(raw)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        encoded = _encode(value)
        try:
            if ttl_seconds <= 0:
                self._redis.delete(self._key(key))
                return
            self._redis.set(self._key(key), encoded, ex=int(ttl_seconds))
        except RedisError as err:
            raise StoreUnavailableError(str(err)) from err

    def delete(self, key: str) -> bool:
        try:
            return bool(self._redis.delete(self._key(key)))
        except RedisError as err:
            raise StoreUnavailableError(str(err)) from err

    def incr(self, key: str, ttl_seconds: int) -> int:
        # INCR and EXPIRE run inside one MULTI block
        try:
            pipe = self._redis.pipeline()
            pipe.incr(self._key(key))
            pipe.expire(self._key(key), int(ttl_seconds))
            count, _ = pipe.execute()
        except RedisError as err:
            raise StoreUnavailableError(str(err)) from err
        return int(count)

    def ttl(self, key: str) -> int | None:
        try:
            remaining = self._redis.ttl(self._key(key))
        except RedisError as err:
            raise StoreUnavailableError(str(err)) from err
        # -2: missing key, -1: key without expiry
        if remaining is None or remaining == -2:
            return None
        return max(0, int(remaining))

    def keys(self, prefix: str) -> list[str]:
        try:
            found = self._redis.scan_iter(match=f"{self._key(prefix)}*")
            names = [k.decode() if isinstance(k, bytes) else str(k) for k in found]
        except RedisError as err:
            raise StoreUnavailableError(str(err)) from err
        return [name[len(self._prefix):] for name in names]

    def purge_expired(self) -> int:
        return 0


def build_store(config: Settings | None = None) -> ExpiringStore:
    """Create the backend selected by configuration."""
    config = config or settings
    if config.store_backend == "memory":
        logger.info("Using process-local memory store")
        return MemoryStore()
    return RedisStore.from_url(config.redis_url, namespace=config.store_namespace)


@lru_cache(maxsize=1)
def get_store() -> ExpiringStore:
    """Return the process-wide store instance."""
    return build_store(settings)
