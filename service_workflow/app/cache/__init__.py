"""
Cache package for the Workflow Service.

Workflow results are cached aside of the model call. ``MemoryCache`` keeps
entries in-process with lazy expiry; ``RedisCache`` shares them across
instances. Both satisfy the ``Cache`` contract so the orchestrator never
depends on the backing store.
"""

from .base import Cache, make_cache_key
from .memory import MemoryCache
from .redis_cache import RedisCache

__all__ = ["Cache", "MemoryCache", "RedisCache", "make_cache_key"]
