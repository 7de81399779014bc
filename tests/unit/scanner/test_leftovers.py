"""Unit tests for application leftover discovery."""

from pathlib import Path

import pytest
from sweepctl.policy.gate import PolicyGate
from sweepctl.policy.overrides import UserOverride
from sweepctl.scanner.leftovers import find_app_leftovers


@pytest.fixture
def library(home: Path) -> Path:
    path = home / "Library"
    for sub in ("Application Support", "Caches", "Preferences", "Containers", "Logs"):
        (path / sub).mkdir(parents=True)
    return path


class TestFindAppLeftovers:
    """Tests for find_app_leftovers."""

    def test_finds_by_id_and_name(self, gate: PolicyGate, library: Path) -> None:
        """Caches, preferences and containers keyed by id or name are found."""
        expected = [
            library / "Application Support" / "Sketchpad",
            library / "Caches" / "com.example.sketchpad",
            library / "Containers" / "com.example.sketchpad",
            library / "Preferences" / "com.example.sketchpad.plist",
        ]
        for path in expected:
            if path.suffix == ".plist":
                path.write_bytes(b"plist")
            else:
                path.mkdir()
        (library / "Caches" / "com.example.other").mkdir()

        found = find_app_leftovers(gate, "com.example.sketchpad", "Sketchpad")

        assert found == sorted(str(p) for p in expected)

    def test_glob_characters_in_name(self, gate: PolicyGate, library: Path) -> None:
        """Names are matched literally, not as patterns."""
        (library / "Caches" / "Editor Pro").mkdir()

        assert find_app_leftovers(gate, None, "Edit[o]r Pro") == []
        assert find_app_leftovers(gate, None, "Editor Pro") == [
            str(library / "Caches" / "Editor Pro")
        ]

    def test_protected_identity(self, gate: PolicyGate, library: Path) -> None:
        """Protected applications have no leftovers to remove."""
        (library / "Caches" / "net.mullvad.vpn").mkdir()

        assert find_app_leftovers(gate, "net.mullvad.vpn", "Mullvad VPN") == []

    def test_short_name_not_used(self, gate: PolicyGate, library: Path) -> None:
        """Display names below the identity minimum never match shared folders."""
        (library / "Caches" / "Go").mkdir()
        (library / "Caches" / "org.golang.go").mkdir()

        found = find_app_leftovers(gate, "org.golang.go", "Go")

        assert found == [str(library / "Caches" / "org.golang.go")]

    def test_whitelisted_leftover_skipped(self, home: Path, library: Path) -> None:
        """Leftovers covered by the user whitelist are kept."""
        kept = library / "Caches" / "com.example.sketchpad"
        kept.mkdir()
        gate = PolicyGate(UserOverride(paths=frozenset({str(kept)})), home=home)

        assert find_app_leftovers(gate, "com.example.sketchpad", "Sketchpad") == []
