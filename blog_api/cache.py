import json
import logging

import redis.asyncio as redis

from blog_api.config import settings

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "taxonomy:categories"
TAGS_KEY = "taxonomy:tags"

# session.info key holding cache keys to drop after commit
PENDING_INVALIDATIONS = "pending_cache_invalidations"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Only slow-changing, viewer-independent data is cached (category and
    tag listings).  Blog payloads carry per-viewer flags and fresh
    counts, so they are always computed from the database.

    All public methods are safe to call when Redis is unavailable:
    reads return None and writes are skipped.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            if data is not None:
                self._hits += 1
                return json.loads(data)
            self._misses += 1
            return None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Persist *value* under *key* with an optional TTL (seconds).

        A cache write failure must never break a request, so errors are
        logged at debug level only.
        """
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if not self._redis or not keys:
            return
        try:
            await self._redis.delete(*keys)
            logger.debug("Cache invalidated %s", ", ".join(keys))
        except Exception as exc:
            logger.debug("Cache DELETE error for keys=%r: %s", keys, exc)

    # ------------------------------------------------------------------
    # Domain-level invalidation helpers
    # ------------------------------------------------------------------

    def schedule_taxonomy_invalidation(
        self, session, categories: bool = False, tags: bool = False
    ) -> None:
        """
        Mark the category and/or tag listing stale for *session*.

        Nothing is deleted yet: ``invalidate_pending`` drops the keys once
        the session's transaction has committed.
        """
        pending: set[str] = session.info.setdefault(PENDING_INVALIDATIONS, set())
        if categories:
            pending.add(CATEGORIES_KEY)
        if tags:
            pending.add(TAGS_KEY)

    async def invalidate_pending(self, session) -> None:
        """Delete the keys scheduled on *session*.  Call after commit."""
        keys = session.info.pop(PENDING_INVALIDATIONS, None)
        if keys:
            await self.delete(*sorted(keys))

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for the health endpoint."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()
