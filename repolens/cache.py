"""In-process TTL cache and the fault-tolerant store the service talks to.

The store is best-effort: it resets when the process restarts, and any
backend failure degrades to a miss (reads) or a no-op (writes).
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, runtime_checkable

from repolens.errors import ErrorKind
from repolens.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "github:"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    ttl_ms: int
    created_at: float = field(default_factory=time.monotonic)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_ms / 1000.0

    def expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.monotonic()) >= self.expires_at


@runtime_checkable
class CacheBackend(Protocol):
    """What a backing store must offer. ``keys`` is optional."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl_ms: int) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryBackend:
    """Dictionary backed TTL cache with per-entry expiry and a size cap."""

    def __init__(self, maxsize: int = 1024, clock=time.monotonic):
        self._maxsize = int(maxsize)
        self._clock = clock
        self._lock = RLock()
        self._data: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expired(now):
                self._data.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        now = self._clock()
        with self._lock:
            # purge expired
            expired_keys = [k for k, v in self._data.items() if v.expired(now)]
            for k in expired_keys:
                self._data.pop(k, None)

            # simple size cap, oldest insertion goes first
            self._data.pop(key, None)
            while len(self._data) >= self._maxsize:
                self._data.pop(next(iter(self._data)))

            self._data[key] = CacheEntry(key=key, value=value, ttl_ms=ttl_ms, created_at=now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        now = self._clock()
        with self._lock:
            return [k for k, v in self._data.items() if k.startswith(prefix) and not v.expired(now)]

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class NullBackend:
    """Never stores anything; every read is a miss."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_ms: int) -> None:
        return None

    def delete(self, key: str) -> None:
        return None


class CacheStore:
    """Async, never-failing facade over a ``CacheBackend``.

    Keys handed in are logical keys (``repo:octo:hello``); the store adds
    its own namespace before they reach the backend.
    """

    def __init__(self, backend: CacheBackend, default_ttl_ms: int, key_prefix: str = KEY_PREFIX):
        self.backend = backend
        self.default_ttl_ms = default_ttl_ms
        self.key_prefix = key_prefix

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = self.backend.get(self._full_key(key))
        except Exception as e:
            logger.error(
                "[CACHE] Error getting %s: %s", key, e,
                extra={"kind": ErrorKind.CACHE.value, "key": key},
            )
            return None

        if value is None:
            logger.debug("[CACHE] MISS for %s", key)
            return None
        logger.debug("[CACHE] HIT for %s", key)
        return value

    async def set(self, key: str, value: Any, ttl_ms: Optional[int] = None) -> None:
        ttl = ttl_ms if ttl_ms else self.default_ttl_ms
        try:
            self.backend.set(self._full_key(key), value, ttl)
        except Exception as e:
            logger.error(
                "[CACHE] Error setting %s: %s", key, e,
                extra={"kind": ErrorKind.CACHE.value, "key": key, "ttl_ms": ttl},
            )
            return
        logger.debug("[CACHE] SET %s with TTL %sms", key, ttl)

    async def delete(self, key: str) -> None:
        try:
            self.backend.delete(self._full_key(key))
        except Exception as e:
            logger.error(
                "[CACHE] Error deleting %s: %s", key, e,
                extra={"kind": ErrorKind.CACHE.value, "key": key},
            )
            return
        logger.debug("[CACHE] DELETED %s", key)

    async def delete_by_prefix(self, pattern: str) -> int:
        """Delete every key starting with ``pattern``; returns how many went."""
        keys_fn = getattr(self.backend, "keys", None)
        if not callable(keys_fn):
            logger.warning("[CACHE] Pattern deletion not supported by %s", type(self.backend).__name__)
            return 0
        try:
            keys = list(keys_fn(self._full_key(pattern)))
            for full_key in keys:
                self.backend.delete(full_key)
        except Exception as e:
            logger.error(
                "[CACHE] Error deleting pattern %s: %s", pattern, e,
                extra={"kind": ErrorKind.CACHE.value, "pattern": pattern},
            )
            return 0
        logger.debug("[CACHE] DELETED pattern %s (%d keys)", pattern, len(keys))
        return len(keys)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[Any]]:
        keys = list(keys)
        values = await asyncio.gather(*(self.get(k) for k in keys), return_exceptions=True)
        return {
            k: (None if isinstance(v, BaseException) else v)
            for k, v in zip(keys, values)
        }

    async def set_many(self, entries: Mapping[str, Any], ttl_ms: Optional[int] = None) -> None:
        await asyncio.gather(
            *(self.set(k, v, ttl_ms) for k, v in entries.items()),
            return_exceptions=True,
        )


def create_cache_store(settings) -> CacheStore:
    """Build the store described by ``settings``; a zero TTL disables caching."""
    if settings.CACHE_TIMEOUT_MS <= 0:
        backend: CacheBackend = NullBackend()
    else:
        backend = InMemoryBackend(maxsize=settings.CACHE_MAX_ENTRIES)
    return CacheStore(backend, default_ttl_ms=settings.CACHE_TIMEOUT_MS)
