"""In-memory memoization of asynchronous results.

:class:`ResultCache` maps a string key to the value produced the first
time that key was requested. Entries are never updated, expired or
invalidated one by one; they live exactly as long as the cache object,
which is owned by whichever component needs memoized calls (usually an
:class:`~fetchpipe.client.ApiClient`).

Concurrent misses are not deduplicated. Two calls for the same absent
key that are both awaiting their producer will each run it, and whichever
producer finishes last leaves its value in the cache::

    a = cache.fetch_or_compute("users", fetch_a)
    b = cache.fetch_or_compute("users", fetch_b)
    await asyncio.gather(a, b)  # fetch_a and fetch_b both run

Sequential calls behave as expected: the second call returns the stored
value without invoking its producer.

See Also:
    :func:`cache_key_for` -- derives a key from a
    :class:`~fetchpipe.models.RequestSpec`.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Awaitable
from typing import Any, Callable, Optional, TypeVar, cast

from fetchpipe.models import RequestSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultCache:
    """Key to value memoization around arbitrary async producers.

    Example::

        cache = ResultCache()
        users = await cache.fetch_or_compute("users", lambda: client.get("/users"))
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._hits = 0
        self._misses = 0

    async def fetch_or_compute(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Return the value cached under *key*, computing it on a miss.

        On a hit the stored value is returned immediately and *producer* is
        not called. On a miss *producer* is awaited, its result stored
        under *key* and returned. If the producer raises, nothing is stored
        and the exception propagates.

        Args:
            key: Cache key.
            producer: Zero-argument callable returning an awaitable.

        Returns:
            The cached or freshly produced value.
        """
        if key in self._entries:
            self._hits += 1
            logger.debug("Cache hit: %s", key)
            return cast(T, self._entries[key])

        self._misses += 1
        logger.debug("Cache miss: %s", key)
        value = await producer()
        self._entries[key] = value
        return value

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return the value stored under *key* without producing one."""
        return self._entries.get(key, default)

    def keys(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        """Drop every entry. Used when the owning component is torn down."""
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Return ``size``, ``hits`` and ``misses`` counters."""
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def cache_key_for(spec: RequestSpec) -> str:
    """Derive a cache key from a request's method, URL and body.

    Headers are not part of the key. The body, when present, is folded in
    as a SHA-256 digest so keys stay short.

    Example::

        >>> cache_key_for(RequestSpec(method="GET", url="https://api.example.com/users"))
        'GET https://api.example.com/users'
    """
    key = f"{spec.method.value} {spec.url}"
    if spec.body is not None:
        raw = spec.body.encode() if isinstance(spec.body, str) else spec.body
        key = f"{key} #{hashlib.sha256(raw).hexdigest()}"
    return key
