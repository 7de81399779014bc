"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
import time
from collections.abc import Callable
from pathlib import Path

import pytest
from sweepctl.cache.store import MetadataCache
from sweepctl.policy.gate import PolicyGate

DAY = 86400


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Isolated home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def gate(home: Path) -> PolicyGate:
    """Policy gate whose ~ rules point at the isolated home."""
    return PolicyGate(home=home)


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and the XDG directories at a temporary tree.

    Returns:
        The temporary home directory.
    """
    home_dir = tmp_path / "user"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home_dir / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home_dir / ".local" / "state"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home_dir / ".cache"))
    monkeypatch.delenv("SWEEPCTL_DEBUG", raising=False)
    return home_dir


@pytest.fixture
def cache(tmp_path: Path) -> MetadataCache:
    """Empty metadata cache in a temporary directory."""
    return MetadataCache(tmp_path / "cache" / "metadata_v1.jsonl")


@pytest.fixture
def make_old() -> Callable[[Path, int], int]:
    """Return a helper that backdates a path's atime and mtime by whole days."""

    def backdate(path: Path, days: int) -> int:
        stamp = int(time.time()) - days * DAY
        os.utime(path, (stamp, stamp))
        return stamp

    return backdate
