from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Protocol

import redis

from habit_engine.settings import settings

logger = logging.getLogger("habit_engine.cache")


class Cache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def close(self) -> None: ...


class InMemoryCache:
    """TTL map for a single process.

    Expired entries are dropped when read and swept from `set` at most once
    per `sweep_interval_sec`, so keys that are never read again still go away.
    """

    backend = "memory"

    def __init__(self, sweep_interval_sec: int = 60) -> None:
        self._items: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._sweep_interval = sweep_interval_sec
        self._next_sweep = time.monotonic() + sweep_interval_sec

    def get(self, key: str) -> Any | None:
        now = time.monotonic()
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            expires_at, value = item
            if now >= expires_at:
                self._items.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        now = time.monotonic()
        with self._lock:
            if now >= self._next_sweep:
                self._drop_expired(now)
            self._items[key] = (now + max(1, int(ttl_seconds)), value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def cleanup_expired(self) -> int:
        now = time.monotonic()
        with self._lock:
            return self._drop_expired(now)

    def _drop_expired(self, now: float) -> int:
        # caller holds the lock
        expired = [key for key, (expires_at, _) in self._items.items() if now >= expires_at]
        for key in expired:
            del self._items[key]
        self._next_sweep = now + self._sweep_interval
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def close(self) -> None:
        self.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class RedisCache:
    backend = "redis"

    def __init__(self, url: str, client: redis.Redis | None = None) -> None:
        self._client = client or redis.Redis.from_url(url, decode_responses=True)

    def ping(self) -> bool:
        return bool(self._client.ping())

    def get(self, key: str) -> Any | None:
        raw = self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._client.setex(key, max(1, int(ttl_seconds)), json.dumps(value))

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def clear(self) -> None:
        # Shared redis is not flushed on shutdown; entries expire by TTL.
        return None

    def close(self) -> None:
        self._client.close()


class SafeCache:
    """Advisory wrapper: a failing backend behaves like an empty cache.

    Reads that raise are logged and reported as a miss, writes and deletes
    that raise are logged and dropped. Correctness never depends on a hit.
    """

    def __init__(self, backend: Cache) -> None:
        self._backend = backend

    @property
    def backend(self) -> str:
        return getattr(self._backend, "backend", type(self._backend).__name__)

    def get(self, key: str) -> Any | None:
        try:
            return self._backend.get(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self._backend.set(key, value, ttl_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache set failed for %s (ttl=%s): %s", key, ttl_seconds, exc)

    def delete(self, key: str) -> None:
        try:
            self._backend.delete(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache delete failed for %s: %s", key, exc)

    def clear(self) -> None:
        try:
            self._backend.clear()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache clear failed: %s", exc)

    def close(self) -> None:
        try:
            self._backend.close()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache close failed: %s", exc)


class CacheKeys:
    @staticmethod
    def habit_completions(user_id: str, start: str, end: str) -> str:
        return f"habits:{user_id}:{start}:{end}"

    @staticmethod
    def user_stats(user_id: str) -> str:
        return f"stats:{user_id}"


class CacheTTL:
    @staticmethod
    def habit_completions() -> int:
        return settings.HABIT_COMPLETIONS_TTL_SEC

    @staticmethod
    def user_stats() -> int:
        return settings.USER_STATS_TTL_SEC


def build_cache(redis_url: str | None = None) -> SafeCache:
    if redis_url:
        try:
            backend = RedisCache(redis_url)
            backend.ping()
            logger.info("Cache backend: redis")
            return SafeCache(backend)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Redis unavailable, falling back to in-memory cache: %s", exc)
    logger.info("Cache backend: memory")
    return SafeCache(InMemoryCache())
