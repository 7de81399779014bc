"""Cross-process directory lease.

The lease is a directory created next to the guarded file. ``mkdir`` is
atomic on every local filesystem, so exactly one process can hold it. The
holder writes an owner token into the directory; a lease older than
``stale_after`` seconds is assumed to belong to a crashed writer and is
broken.

Breaking a lease renames it to a unique tombstone first and only removes
the tombstone if it is still the lease that was found stale. A lease that
another writer created in the meantime is handed back untouched.
"""

import logging
import os
import shutil
import time
import uuid
from pathlib import Path
from types import TracebackType

from sweepctl.core.errors import LockUnavailable

logger = logging.getLogger(__name__)

OWNER_FILE = "owner"


def read_owner(directory: Path) -> str | None:
    """Return the owner token stored in a lease directory, if readable."""
    try:
        return (directory / OWNER_FILE).read_text(encoding="utf-8").strip() or None
    except OSError:
        return None


class DirectoryLease:
    """Mutual exclusion between writers of a shared file.

    Example:
        >>> with DirectoryLease(Path("/tmp/cache.jsonl.lock")) as lease:
        ...     lease.renew()  # before a long write
    """

    def __init__(
        self,
        path: Path,
        *,
        attempts: int = 40,
        interval: float = 0.1,
        stale_after: float = 300.0,
    ) -> None:
        """Initialize the lease.

        Args:
            path: Lock directory path.
            attempts: Number of mkdir attempts before giving up.
            interval: Sleep between attempts in seconds.
            stale_after: Age in seconds after which a held lease is broken.
        """
        self.path = path
        self._attempts = max(attempts, 1)
        self._interval = interval
        self._stale_after = stale_after
        self._token: str | None = None

    @property
    def held(self) -> bool:
        return self._token is not None

    def acquire(self) -> None:
        """Acquire the lease.

        Raises:
            LockUnavailable: If the lease is still held by someone else
                after all attempts.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LockUnavailable(f"Cannot create lease directory for {self.path}: {e}") from e

        for attempt in range(self._attempts):
            if self._try_create():
                return
            # Retry at once after breaking, even on the last attempt
            if self.force_expire_if_stale() and self._try_create():
                return
            if attempt < self._attempts - 1:
                time.sleep(self._interval)

        raise LockUnavailable(f"Lease {self.path} is held by another writer")

    def _try_create(self) -> bool:
        try:
            os.mkdir(self.path)
        except FileExistsError:
            return False
        except OSError as e:
            raise LockUnavailable(f"Cannot create lease {self.path}: {e}") from e

        token = uuid.uuid4().hex
        try:
            with open(self.path / OWNER_FILE, "x", encoding="utf-8") as f:
                f.write(token)
        except (FileExistsError, FileNotFoundError):
            # The directory was swapped for another writer's lease
            return False
        except OSError as e:
            raise LockUnavailable(f"Cannot claim lease {self.path}: {e}") from e

        self._token = token
        logger.debug("Acquired lease %s", self.path)
        return True

    def owns(self) -> bool:
        """Whether the lease directory on disk still carries our token."""
        return self._token is not None and read_owner(self.path) == self._token

    def renew(self) -> None:
        """Refresh the lease mtime so it is not considered stale.

        Raises:
            LockUnavailable: If the lease was broken by another writer.
        """
        if self._token is None:
            return
        if not self.owns():
            self._token = None
            raise LockUnavailable(f"Lease {self.path} was taken over by another writer")
        os.utime(self.path, None)

    def release(self) -> None:
        """Release the lease if held."""
        if self._token is None:
            return
        owned = self.owns()
        self._token = None
        if not owned:
            logger.warning("Lease %s no longer belongs to this writer", self.path)
            return
        try:
            (self.path / OWNER_FILE).unlink()
            os.rmdir(self.path)
        except FileNotFoundError:
            logger.debug("Lease %s was already removed", self.path)
        logger.debug("Released lease %s", self.path)

    def force_expire_if_stale(self) -> bool:
        """Break the lease if its holder stopped renewing it.

        Returns:
            True if the lease is gone (broken here or released meanwhile).
        """
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return True
        age = time.time() - st.st_mtime
        if age < self._stale_after:
            return False

        seen = (st.st_ino, read_owner(self.path))
        tombstone = self.path.with_name(f"{self.path.name}.stale.{uuid.uuid4().hex}")
        try:
            os.rename(self.path, tombstone)
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning("Cannot break stale lease %s: %s", self.path, e)
            return False

        if (tombstone.stat().st_ino, read_owner(tombstone)) != seen:
            self._restore(tombstone)
            return False

        logger.warning("Broke stale lease %s (age %.0fs)", self.path, age)
        try:
            shutil.rmtree(tombstone)
        except OSError as e:
            logger.warning("Cannot remove stale lease %s: %s", tombstone, e)
        return True

    def _restore(self, tombstone: Path) -> None:
        """Hand a lease that was not stale back to its holder."""
        logger.debug("Lease %s was replaced before it could be broken", self.path)
        try:
            os.rename(tombstone, self.path)
        except OSError as e:
            logger.warning("Cannot restore lease %s: %s", self.path, e)

    def __enter__(self) -> "DirectoryLease":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
