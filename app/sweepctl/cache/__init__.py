"""Shared metadata cache for sweepctl.

Per-path metadata (size, last-used time, bundle identity) is cached in a
JSON-lines snapshot. Readers never lock; writers merge under a directory
lease and replace the file atomically.
"""

from sweepctl.cache.lock import DirectoryLease
from sweepctl.cache.models import CacheEntry
from sweepctl.cache.probe import MetadataProbe
from sweepctl.cache.refresh import MetadataRefresher, RefreshHandle
from sweepctl.cache.store import MetadataCache

__all__ = [
    "CacheEntry",
    "DirectoryLease",
    "MetadataCache",
    "MetadataProbe",
    "MetadataRefresher",
    "RefreshHandle",
]
