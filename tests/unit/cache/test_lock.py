"""Unit tests for DirectoryLease."""

import os
import time
from pathlib import Path
from unittest.mock import patch

import pytest
from sweepctl.cache.lock import OWNER_FILE, DirectoryLease, read_owner
from sweepctl.core.errors import LockUnavailable


class TestDirectoryLease:
    """Tests for DirectoryLease."""

    def test_acquire_and_release(self, tmp_path: Path) -> None:
        """The lease directory exists exactly while the lease is held."""
        lease = DirectoryLease(tmp_path / "cache.lock")

        with lease:
            assert lease.held
            assert (tmp_path / "cache.lock").is_dir()

        assert not lease.held
        assert not (tmp_path / "cache.lock").exists()

    def test_released_on_error(self, tmp_path: Path) -> None:
        """An exception inside the block still releases the lease."""
        lock = tmp_path / "cache.lock"

        with pytest.raises(RuntimeError), DirectoryLease(lock):
            raise RuntimeError("boom")

        assert not lock.exists()

    def test_held_elsewhere(self, tmp_path: Path) -> None:
        """A fresh lease held by someone else is not taken."""
        lock = tmp_path / "cache.lock"
        lock.mkdir()

        with pytest.raises(LockUnavailable):
            DirectoryLease(lock, attempts=3, interval=0.01).acquire()
        assert lock.exists()

    def test_stale_lease_broken(self, tmp_path: Path) -> None:
        """A lease older than the stale threshold is force-expired."""
        lock = tmp_path / "cache.lock"
        lock.mkdir()
        old = time.time() - 600
        os.utime(lock, (old, old))

        lease = DirectoryLease(lock, attempts=2, interval=0.01, stale_after=300)
        lease.acquire()

        assert lease.held
        lease.release()

    def test_force_expire_keeps_fresh_lease(self, tmp_path: Path) -> None:
        """force_expire_if_stale leaves a recently renewed lease alone."""
        lock = tmp_path / "cache.lock"
        lock.mkdir()

        assert DirectoryLease(lock, stale_after=300).force_expire_if_stale() is False
        assert lock.exists()

    def test_creates_parent(self, tmp_path: Path) -> None:
        """Missing parent directories are created."""
        lock = tmp_path / "nested" / "cache.lock"

        with DirectoryLease(lock):
            assert lock.exists()

    def test_release_without_acquire(self, tmp_path: Path) -> None:
        """Releasing an unheld lease is a no-op."""
        lock = tmp_path / "cache.lock"
        lock.mkdir()

        DirectoryLease(lock).release()

        assert lock.exists()

    def test_stale_lease_broken_on_last_attempt(self, tmp_path: Path) -> None:
        """Breaking a stale lease on the final attempt still acquires it."""
        lock = tmp_path / "cache.lock"
        lock.mkdir()
        old = time.time() - 600
        os.utime(lock, (old, old))

        lease = DirectoryLease(lock, attempts=1, stale_after=300)
        lease.acquire()

        assert lease.held
        assert read_owner(lock) is not None
        lease.release()


class TestStaleLeaseRace:
    """Two writers racing to break the same stale lease."""

    def _stale_lock(self, tmp_path: Path) -> Path:
        lock = tmp_path / "cache.lock"
        lock.mkdir()
        old = time.time() - 600
        os.utime(lock, (old, old))
        return lock

    def test_only_one_writer_wins(self, tmp_path: Path) -> None:
        """A writer that saw the stale lease never removes the winner's fresh one."""
        lock = self._stale_lock(tmp_path)
        first = DirectoryLease(lock, attempts=1, stale_after=300)
        second = DirectoryLease(lock, attempts=1, stale_after=300)
        real_rename = os.rename
        interleaved: list[str] = []

        def rename_after_other_writer(src: str | Path, dst: str | Path) -> None:
            # The other writer breaks the stale lease and takes a fresh one
            # between our staleness check and our rename.
            if not interleaved:
                interleaved.append(str(src))
                second.acquire()
            real_rename(src, dst)

        with (
            patch("sweepctl.cache.lock.os.rename", side_effect=rename_after_other_writer),
            pytest.raises(LockUnavailable),
        ):
            first.acquire()

        assert second.held
        assert not first.held
        assert second.owns()
        assert [p.name for p in tmp_path.iterdir()] == ["cache.lock"]

        second.release()
        assert not lock.exists()

    def test_renew_after_takeover_raises(self, tmp_path: Path) -> None:
        """A writer whose lease was broken learns it on renew."""
        lock = tmp_path / "cache.lock"
        lease = DirectoryLease(lock)
        lease.acquire()
        (lock / OWNER_FILE).write_text("someone-else")

        with pytest.raises(LockUnavailable):
            lease.renew()

        assert not lease.held

    def test_release_leaves_foreign_lease(self, tmp_path: Path) -> None:
        """Release never removes a lease that now belongs to another writer."""
        lock = tmp_path / "cache.lock"
        lease = DirectoryLease(lock)
        lease.acquire()
        (lock / OWNER_FILE).write_text("someone-else")

        lease.release()

        assert lock.is_dir()
        assert read_owner(lock) == "someone-else"
