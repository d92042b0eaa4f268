"""Sliding-window bookkeeping behind the abuse guard.

A ``WindowStore`` answers two questions for a key:

- ``increment_and_check`` -- fewer than *limit* hits inside the window? If
  so, record one more and return True.
- ``touch_if_quiet`` -- no hit inside the window? If so, record this one and
  return True.

``InMemoryWindowStore`` is only consistent within one process.
``RedisWindowStore`` shares the counters between instances.
"""

from __future__ import annotations

import hashlib
import threading
import time
import uuid
from typing import Any, Callable, Protocol

import redis


class WindowStore(Protocol):
    def increment_and_check(self, key: str, window_seconds: float, limit: int) -> bool: ...

    def touch_if_quiet(self, key: str, window_seconds: float) -> bool: ...

    def sweep(self, older_than_seconds: float) -> int: ...


class InMemoryWindowStore:
    """Process-local timestamps keyed by string, pruned lazily."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[str, list[float]] = {}
        self._last_seen: dict[str, float] = {}

    def increment_and_check(self, key: str, window_seconds: float, limit: int) -> bool:
        with self._lock:
            now = self._clock()
            recent = [t for t in self._hits.get(key, []) if now - t < window_seconds]
            if len(recent) >= limit:
                self._hits[key] = recent
                return False
            recent.append(now)
            self._hits[key] = recent
            return True

    def touch_if_quiet(self, key: str, window_seconds: float) -> bool:
        with self._lock:
            now = self._clock()
            last = self._last_seen.get(key)
            if last is not None and now - last < window_seconds:
                return False
            self._last_seen[key] = now
            return True

    def sweep(self, older_than_seconds: float) -> int:
        """Drop duplicate-tracking entries older than *older_than_seconds*."""
        with self._lock:
            now = self._clock()
            stale = [k for k, t in self._last_seen.items() if now - t > older_than_seconds]
            for k in stale:
                del self._last_seen[k]
            return len(stale)

    def __len__(self) -> int:
        return len(self._last_seen)


class RedisWindowStore:
    """Redis-backed windows: sorted sets for rate limits, ``SET NX PX`` for duplicates.

    Stale entries expire on their own, so ``sweep`` has nothing to do.
    """

    def __init__(
        self,
        client: Any,
        prefix: str = "modcert:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._clock = clock

    def _key(self, kind: str, key: str) -> str:
        digest = hashlib.sha256(key.encode()).hexdigest()
        return f"{self._prefix}{kind}:{digest}"

    def increment_and_check(self, key: str, window_seconds: float, limit: int) -> bool:
        redis_key = self._key("rl", key)
        now = self._clock()

        pipe = self._client.pipeline()
        pipe.zremrangebyscore(redis_key, 0, now - window_seconds)
        pipe.zcard(redis_key)
        _, count = pipe.execute()
        if count >= limit:
            return False

        pipe = self._client.pipeline()
        pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
        pipe.expire(redis_key, int(window_seconds) + 1)
        pipe.execute()
        return True

    def touch_if_quiet(self, key: str, window_seconds: float) -> bool:
        redis_key = self._key("dup", key)
        created = self._client.set(redis_key, self._clock(), nx=True, px=int(window_seconds * 1000))
        return bool(created)

    def sweep(self, older_than_seconds: float) -> int:
        return 0


def open_window_store(settings) -> WindowStore:
    """Build the window store selected by ``settings.window_store``."""
    if settings.window_store == "memory":
        return InMemoryWindowStore()
    if settings.window_store == "redis":
        return RedisWindowStore(redis.Redis.from_url(settings.redis_url))
    raise ValueError(f"Unknown window store: {settings.window_store!r}")
