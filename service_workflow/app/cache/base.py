"""
Cache contract for workflow results.
"""

from abc import ABC, abstractmethod
from typing import Optional


CACHE_KEY_PREFIX = "ai"
DEFAULT_PROMPT_CHARS = 50


def make_cache_key(model: str, prompt: str, prompt_chars: int = DEFAULT_PROMPT_CHARS) -> str:
    """Derive the cache key for a model/prompt pair.

    Only the first ``prompt_chars`` characters of the prompt take part, so
    prompts that share a long enough prefix map to the same entry for a given
    model. The key is a pure function of its inputs.
    """
    return f"{CACHE_KEY_PREFIX}:{model}:{prompt[:prompt_chars]}"


class Cache(ABC):
    """Key-value store with TTL semantics.

    Implementations may raise on I/O failure; callers decide whether that
    is fatal. An expired entry must be indistinguishable from a missing one.
    """

    name = "cache"

    async def start(self) -> None:
        """Acquire connections. No-op by default."""

    async def stop(self) -> None:
        """Release connections. No-op by default."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the live value for ``key`` or ``None``."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Drop ``key`` if present."""

    @abstractmethod
    async def clear(self) -> int:
        """Drop every workflow entry; returns how many were removed."""

    async def health_check(self) -> bool:
        return True
