"""In-memory result caching for fetchpipe.

This package provides :class:`ResultCache`, which memoizes the result of an
async producer per string key for the lifetime of the cache object, and
:func:`cache_key_for`, which derives a key from a request.

The cache is consumed by :meth:`fetchpipe.client.ApiClient.send_cached`.
Nothing is persisted to disk.
"""

from fetchpipe.cache.cache import ResultCache, cache_key_for

__all__ = ["ResultCache", "cache_key_for"]
