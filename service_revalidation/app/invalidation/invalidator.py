"""
Cache invalidation primitives for rendered page paths.
"""

import time
from typing import Dict, Optional, Protocol

import redis.asyncio as redis

from shared.logging import get_logger
from ..tags.registry import PathSpec


class PathInvalidator(Protocol):
    """Marks the cached output of one path spec as stale.

    Implementations must be idempotent and safe under concurrent calls, and
    must raise on failure rather than silently doing nothing.
    """

    async def invalidate(self, spec: PathSpec) -> None:
        ...


class InMemoryPathInvalidator:
    """Process-local invalidator recording the last invalidation per path."""

    def __init__(self):
        self.logger = get_logger("revalidation.invalidator.memory")
        self._invalidated_at: Dict[PathSpec, float] = {}
        self.calls = 0

    async def invalidate(self, spec: PathSpec) -> None:
        self.calls += 1
        self._invalidated_at[spec] = time.time()
        self.logger.debug("Path invalidated", route=spec.route_pattern, kind=spec.kind.value)

    def invalidated(self) -> Dict[PathSpec, float]:
        """Snapshot of path spec -> last invalidation time."""
        return dict(self._invalidated_at)

    def is_stale(self, spec: PathSpec, rendered_at: float) -> bool:
        """True when a render produced at ``rendered_at`` must be regenerated."""
        invalidated_at = self._invalidated_at.get(spec)
        return invalidated_at is not None and invalidated_at >= rendered_at


class RedisPathInvalidator:
    """Writes revalidation markers the rendering layer checks before serving a cached page."""

    KEY_PREFIX = "revalidate"

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.logger = get_logger("revalidation.invalidator.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    def _make_key(self, spec: PathSpec) -> str:
        return f"{self.KEY_PREFIX}:{spec.kind.value}:{spec.route_pattern}"

    async def invalidate(self, spec: PathSpec) -> None:
        redis_client = await self._get_redis()
        key = self._make_key(spec)
        await redis_client.set(key, repr(time.time()))
        self.logger.debug("Revalidation marker written", key=key)

    async def ping(self) -> bool:
        redis_client = await self._get_redis()
        return bool(await redis_client.ping())

    async def close(self):
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_invalidator(backend: str, redis_url: Optional[str] = None) -> PathInvalidator:
    """Build the invalidator selected by configuration."""
    if backend == "memory":
        return InMemoryPathInvalidator()
    if backend == "redis":
        if not redis_url:
            raise ValueError("redis backend requires a redis_url")
        return RedisPathInvalidator(redis_url)
    raise ValueError(f"Unknown invalidation backend: {backend}")
