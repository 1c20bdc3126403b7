"""
Cache invalidation package.

Invalidation is idempotent: marking a path stale twice leaves it in the
same state as marking it once.
"""

from .invalidator import (
    InMemoryPathInvalidator,
    PathInvalidator,
    RedisPathInvalidator,
    create_invalidator,
)

__all__ = [
    "InMemoryPathInvalidator",
    "PathInvalidator",
    "RedisPathInvalidator",
    "create_invalidator",
]
