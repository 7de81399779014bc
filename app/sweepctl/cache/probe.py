"""Live metadata probe.

Measures what the cache stores for a path: size, last-used time and,
for application bundles, the bundle identity.
"""

import logging
import os
import subprocess
import time
from datetime import datetime

from sweepctl.cache.models import CacheEntry
from sweepctl.executor.executor import SafeExecutor
from sweepctl.scanner.apps import resolve_identity
from sweepctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

MDLS_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


def parse_mdls_date(raw: str) -> int:
    """Parse ``mdls -raw`` date output into epoch seconds (0 if unknown)."""
    value = raw.strip()
    if not value or value == "(null)":
        return 0
    try:
        return int(datetime.strptime(value, MDLS_DATE_FORMAT).timestamp())
    except ValueError:
        return 0


class MetadataProbe:
    """Collects size, last-used time and identity for a path.

    Args:
        executor: Executor providing the time-bounded size measurement.
        use_mdls: Query Spotlight for last-used dates. Default: only when
                  the ``mdls`` command is installed.
        metadata_timeout: Budget for a single mdls call in seconds.
    """

    def __init__(
        self,
        executor: SafeExecutor,
        *,
        use_mdls: bool | None = None,
        metadata_timeout: float = 2.0,
    ) -> None:
        self._executor = executor
        self._use_mdls = command_exists("mdls") if use_mdls is None else use_mdls
        self._metadata_timeout = metadata_timeout

    def last_used_epoch(self, path: str, mtime: int, timeout: float | None = None) -> int:
        """Best-known last-used time of a path.

        Spotlight's last-used date when available, else the access time,
        else the modification time.
        """
        if self._use_mdls:
            budget = timeout if timeout is not None else self._metadata_timeout
            try:
                result = run_command(
                    ["mdls", "-name", "kMDItemLastUsedDate", "-raw", path],
                    timeout=budget,
                )
                if result.success:
                    epoch = parse_mdls_date(result.stdout)
                    if epoch > 0:
                        return epoch
            except subprocess.TimeoutExpired:
                logger.debug("mdls timed out for %s", path)
            except OSError as e:
                logger.debug("mdls failed for %s: %s", path, e)

        try:
            atime = int(os.stat(path, follow_symlinks=False).st_atime)
        except OSError:
            atime = 0
        if atime > 0:
            return atime
        return max(mtime, 0)

    def probe(
        self,
        path: str,
        mtime: int,
        *,
        with_identity: bool = False,
        timeout: float | None = None,
    ) -> CacheEntry:
        """Measure a path and return a cache entry for it.

        Args:
            path: Path to measure.
            mtime: Modification time the entry is keyed by.
            with_identity: Also resolve bundle id and display name.
            timeout: Budget for each external call. Default: the
                     executor's size timeout and the mdls timeout.

        Returns:
            New CacheEntry stamped with the current time.
        """
        size = self._executor.path_size_kb(path, timeout=timeout)
        bundle_id: str | None = None
        display_name: str | None = None
        if with_identity:
            bundle_id, display_name = resolve_identity(path)

        return CacheEntry(
            path=path,
            mtime=mtime,
            size_kb=0 if size.timed_out else size.kb,
            last_used_epoch=self.last_used_epoch(path, mtime, timeout),
            updated_epoch=int(time.time()),
            bundle_id=bundle_id,
            display_name=display_name,
        )
