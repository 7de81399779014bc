"""Fixtures for CLI command tests."""

from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def project(isolated_env: Path, make_old: Callable[[Path, int], int]) -> Path:
    """~/code/web with an old node_modules and a fresh target directory."""
    proj = isolated_env / "code" / "web"
    (proj / "node_modules" / "left-pad").mkdir(parents=True)
    (proj / "node_modules" / "left-pad" / "index.js").write_text("x" * 8192)
    (proj / "target").mkdir()
    (proj / "package.json").write_text("{}")
    make_old(proj / "node_modules", 30)
    return proj
