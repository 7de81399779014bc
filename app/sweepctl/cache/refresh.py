"""Background refresh of stale cache entries.

Stale items are probed by a small worker pool. Each worker thread
appends its entries to its own scratch file inside a private temporary
directory, so workers never share a file. After the pool is joined the
scratch files are collected and committed through the cache lease in a
single merge. A cancelled refresh discards the scratch directory and
never commits.
"""

import logging
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from sweepctl.cache.models import CacheEntry
from sweepctl.cache.probe import MetadataProbe
from sweepctl.cache.store import MetadataCache
from sweepctl.utils.concurrency import WorkloadKind, optimal_workers

logger = logging.getLogger(__name__)

MAX_REFRESH_WORKERS = 4


class RefreshHandle:
    """Handle of a running background refresh."""

    def __init__(self, total: int) -> None:
        self.total = total
        self._cancel = threading.Event()
        self._done = threading.Event()
        self.thread: threading.Thread | None = None
        self.committed = False
        self.probed = 0

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> None:
        """Request cancellation; scratch output is discarded, nothing is committed."""
        self._cancel.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the refresh to finish.

        Returns:
            True if the refresh finished within the timeout.
        """
        return self._done.wait(timeout)

    def _finish(self) -> None:
        self._done.set()


class MetadataRefresher:
    """Re-probes stale items and commits them to the cache.

    Args:
        cache: Cache to commit into.
        probe: Probe used for each item.
        max_workers: Pool size, capped at 4. Default: derived from CPU count.
        with_identity: Resolve bundle identity for every item.
    """

    def __init__(
        self,
        cache: MetadataCache,
        probe: MetadataProbe,
        *,
        max_workers: int | None = None,
        with_identity: bool = False,
    ) -> None:
        self._cache = cache
        self._probe = probe
        self._max_workers = optimal_workers(
            WorkloadKind.METADATA,
            cap=max_workers or MAX_REFRESH_WORKERS,
        )
        self._with_identity = with_identity

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def refresh_async(
        self,
        stale_items: list[tuple[str, int]],
        *,
        with_identity: bool | None = None,
    ) -> RefreshHandle:
        """Start a background refresh.

        Args:
            stale_items: (path, mtime) keys to re-probe.
            with_identity: Override the refresher's identity setting.

        Returns:
            RefreshHandle to wait on or cancel.
        """
        handle = RefreshHandle(total=len(stale_items))
        identity = self._with_identity if with_identity is None else with_identity
        thread = threading.Thread(
            target=self._run,
            args=(list(stale_items), handle, identity),
            name="sweepctl-refresh",
            daemon=True,
        )
        handle.thread = thread
        thread.start()
        return handle

    def refresh_now(
        self,
        stale_items: list[tuple[str, int]],
        *,
        with_identity: bool | None = None,
    ) -> bool:
        """Refresh synchronously.

        Returns:
            True if the refreshed entries were committed.
        """
        handle = RefreshHandle(total=len(stale_items))
        identity = self._with_identity if with_identity is None else with_identity
        self._run(list(stale_items), handle, identity)
        return handle.committed

    def _run(
        self,
        items: list[tuple[str, int]],
        handle: RefreshHandle,
        with_identity: bool,
    ) -> None:
        if not items:
            handle.committed = True
            handle._finish()
            return

        try:
            scratch_dir = Path(tempfile.mkdtemp(prefix="sweepctl-refresh-"))
        except OSError as e:
            logger.warning("Cannot create refresh scratch directory: %s", e)
            handle._finish()
            return

        try:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                futures = [
                    pool.submit(self._probe_item, path, mtime, scratch_dir, handle, with_identity)
                    for path, mtime in items
                ]
                for future in futures:
                    if handle.cancelled:
                        future.cancel()

            for future in futures:
                if not future.cancelled() and future.exception() is not None:
                    logger.warning("Refresh worker failed: %s", future.exception())

            if handle.cancelled:
                logger.debug("Refresh cancelled, discarding %s", scratch_dir)
                return

            entries = self._collect(scratch_dir)
            handle.probed = len(entries)
            handle.committed = self._cache.commit(entries)
        finally:
            shutil.rmtree(scratch_dir, ignore_errors=True)
            handle._finish()

    def _probe_item(
        self,
        path: str,
        mtime: int,
        scratch_dir: Path,
        handle: RefreshHandle,
        with_identity: bool,
    ) -> None:
        if handle.cancelled:
            return
        try:
            entry = self._probe.probe(path, mtime, with_identity=with_identity)
        except (OSError, ValueError) as e:
            logger.debug("Cannot probe %s: %s", path, e)
            return

        scratch = scratch_dir / f"worker-{threading.get_ident()}.jsonl"
        try:
            with scratch.open("a", encoding="utf-8") as f:
                f.write(entry.to_json_line() + "\n")
        except OSError as e:
            logger.warning("Cannot record refreshed metadata for %s: %s", path, e)

    def _collect(self, scratch_dir: Path) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for scratch in sorted(scratch_dir.glob("worker-*.jsonl")):
            for line in scratch.read_text(encoding="utf-8").splitlines():
                if line.strip():
                    entries.append(CacheEntry.from_json_line(line))
        return entries
