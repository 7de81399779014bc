"""Shared metadata cache.

The cache is a JSON-lines snapshot of per-path metadata (size, last-used
time, identity). Readers load the committed snapshot once and never take
the lease; writers serialize through a DirectoryLease, re-read the file,
merge their entries over it and atomically replace it. Any I/O problem
degrades the cache to "no cache" instead of failing the caller.
"""

import json
import logging
import os
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from tempfile import NamedTemporaryFile

from sweepctl.cache.lock import DirectoryLease
from sweepctl.cache.models import CacheEntry
from sweepctl.core.errors import IOFailure, LockUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 7 * 86400

LeaseFactory = Callable[[Path], DirectoryLease]


def read_entries(cache_file: Path) -> dict[str, CacheEntry]:
    """Read a cache file into a path-keyed mapping.

    Malformed lines are skipped with a warning. When a path appears more
    than once the most recently updated entry is kept.

    Args:
        cache_file: Cache file path.

    Returns:
        Mapping from path to entry; empty if the file does not exist.

    Raises:
        IOFailure: If the file exists but cannot be read.
    """
    entries: dict[str, CacheEntry] = {}
    try:
        with cache_file.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = CacheEntry.from_json_line(line)
                except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                    logger.warning("Skipping corrupt cache line %d: %s", line_num, e)
                    continue
                current = entries.get(entry.path)
                if current is None or entry.updated_epoch >= current.updated_epoch:
                    entries[entry.path] = entry
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as e:
        raise IOFailure(f"Cannot read cache {cache_file}: {e}") from e
    return entries


class MetadataCache:
    """Lock-free reads and leased, merging writes of cached metadata.

    Attributes:
        cache_file: Committed snapshot path.
        lock_path: Lease directory path (``<cache_file>.lock``).
    """

    def __init__(
        self,
        cache_file: Path,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        lease_factory: LeaseFactory | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            cache_file: Snapshot file path.
            ttl_seconds: Entries older than this are stale.
            lease_factory: Builds the lease for a lock path. Default:
                           DirectoryLease with default timings.
        """
        self.cache_file = cache_file
        self.lock_path = cache_file.with_name(cache_file.name + ".lock")
        self._ttl_seconds = ttl_seconds
        self._lease_factory = lease_factory or DirectoryLease
        self._snapshot: dict[str, CacheEntry] | None = None
        self._degraded = False

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def degraded(self) -> bool:
        """True when the snapshot could not be read; every lookup misses."""
        return self._degraded

    def load(self) -> None:
        """Load the committed snapshot."""
        try:
            self._snapshot = read_entries(self.cache_file)
            self._degraded = False
        except IOFailure as e:
            logger.warning("%s; continuing without cache", e)
            self._snapshot = {}
            self._degraded = True

    def _entries(self) -> dict[str, CacheEntry]:
        if self._snapshot is None:
            self.load()
        return self._snapshot or {}

    def entries(self) -> list[CacheEntry]:
        """All snapshot entries sorted by path."""
        snapshot = self._entries()
        return [snapshot[p] for p in sorted(snapshot)]

    def lookup(self, path: str, mtime: int) -> CacheEntry | None:
        """Look up the entry for (path, mtime) in the snapshot.

        Args:
            path: Absolute path.
            mtime: Current modification time of the path.

        Returns:
            The entry if one exists for exactly this mtime, else None.
        """
        if self._degraded:
            return None
        entry = self._entries().get(path)
        if entry is None or entry.mtime != mtime:
            return None
        return entry

    def is_fresh(self, entry: CacheEntry, mtime: int, now: float | None = None) -> bool:
        """Check whether an entry can be used without re-probing.

        An entry is fresh when its mtime matches, it carries a non-zero
        size and last-used time, and it was updated less than one TTL ago.
        """
        current = now if now is not None else time.time()
        return (
            entry.mtime == mtime
            and entry.size_kb > 0
            and entry.last_used_epoch > 0
            and current - entry.updated_epoch < self._ttl_seconds
        )

    def classify(
        self,
        items: Iterable[tuple[str, int]],
        now: float | None = None,
    ) -> tuple[dict[str, CacheEntry], list[tuple[str, int]]]:
        """Split (path, mtime) items into fresh hits and stale keys.

        Returns:
            Tuple of (fresh entries by path, stale (path, mtime) keys).
        """
        fresh: dict[str, CacheEntry] = {}
        stale: list[tuple[str, int]] = []
        for path, mtime in items:
            entry = self.lookup(path, mtime)
            if entry is not None and self.is_fresh(entry, mtime, now):
                fresh[path] = entry
            else:
                stale.append((path, mtime))
        return fresh, stale

    def commit(self, new_entries: Iterable[CacheEntry], *, drop_paths: Iterable[str] = ()) -> bool:
        """Merge entries into the persisted cache.

        The on-disk snapshot is re-read under the lease so entries written
        by other processes since our load are carried over. New entries
        win over existing ones for the same path.

        Args:
            new_entries: Entries to write.
            drop_paths: Paths whose entries are removed (deleted items).

        Returns:
            True if the cache file was replaced, False if persistence was
            skipped (lease unavailable or I/O failure).
        """
        updates = {entry.path: entry for entry in new_entries}
        drops = set(drop_paths)
        if not updates and not drops:
            return True

        lease = self._lease_factory(self.lock_path)
        try:
            with lease:
                merged = read_entries(self.cache_file)
                merged.update(updates)
                for path in drops:
                    merged.pop(path, None)
                lease.renew()
                self._write_atomic(merged)
        except (LockUnavailable, IOFailure) as e:
            logger.warning("Skipping cache update: %s", e)
            return False

        self._snapshot = merged
        self._degraded = False
        logger.debug("Committed %d cache entries (%d total)", len(updates), len(merged))
        return True

    def _write_atomic(self, entries: dict[str, CacheEntry]) -> None:
        """Write entries to a temp file and rename it over the cache file.

        Raises:
            IOFailure: If any step fails; the temp file is removed.
        """
        tmp_path: Path | None = None
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.cache_file.parent,
                prefix=f".{self.cache_file.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                for path in sorted(entries):
                    f.write(entries[path].to_json_line() + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(str(tmp_path), str(self.cache_file))
            tmp_path = None
        except OSError as e:
            raise IOFailure(f"Cannot write cache {self.cache_file}: {e}") from e
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()

    def clear(self) -> bool:
        """Remove the cache file under the lease.

        Returns:
            True if the cache is now empty on disk.
        """
        lease = self._lease_factory(self.lock_path)
        try:
            with lease:
                self.cache_file.unlink(missing_ok=True)
        except LockUnavailable as e:
            logger.warning("Cannot clear cache: %s", e)
            return False
        except OSError as e:
            logger.warning("Cannot clear cache %s: %s", self.cache_file, e)
            return False

        self._snapshot = {}
        self._degraded = False
        return True
