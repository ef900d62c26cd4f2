"""
Key-value storage (Redis or in-process) with TTL support.
"""

from secondme.storage.cache.config import RedisConfig
from secondme.storage.cache.store import MemoryStore, RedisStore

__all__ = [
    "MemoryStore",
    "RedisConfig",
    "RedisStore",
]
