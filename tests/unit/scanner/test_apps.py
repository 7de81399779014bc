"""Unit tests for application bundle discovery."""

import plistlib
import threading
from pathlib import Path

import pytest
from sweepctl.core.errors import ScanCancelled
from sweepctl.policy.gate import PolicyGate
from sweepctl.scanner.apps import AppScanner, resolve_identity, sanitize_display_name


def make_bundle(root: Path, name: str, info: dict[str, str] | None = None) -> Path:
    """Create a minimal .app bundle with an optional Info.plist."""
    bundle = root / f"{name}.app"
    (bundle / "Contents").mkdir(parents=True)
    if info is not None:
        with (bundle / "Contents" / "Info.plist").open("wb") as f:
            plistlib.dump(info, f)
    return bundle


class TestResolveIdentity:
    """Tests for resolve_identity."""

    def test_reads_plist(self, tmp_path: Path) -> None:
        """Bundle id and display name come from Info.plist."""
        bundle = make_bundle(
            tmp_path,
            "Editor",
            {"CFBundleIdentifier": "com.example.editor", "CFBundleDisplayName": "Editor Pro"},
        )

        assert resolve_identity(str(bundle)) == ("com.example.editor", "Editor Pro")

    def test_falls_back_to_bundle_name(self, tmp_path: Path) -> None:
        """CFBundleName is used when there is no display name."""
        bundle = make_bundle(
            tmp_path,
            "Tool",
            {"CFBundleIdentifier": "com.example.tool", "CFBundleName": "Toolkit"},
        )

        assert resolve_identity(str(bundle)) == ("com.example.tool", "Toolkit")

    def test_missing_plist(self, tmp_path: Path) -> None:
        """Without a plist the directory name is used and the id is unknown."""
        bundle = make_bundle(tmp_path, "Plain")

        assert resolve_identity(str(bundle)) == (None, "Plain")

    def test_path_like_name_ignored(self, tmp_path: Path) -> None:
        """A display name that looks like a path is not trusted."""
        bundle = make_bundle(
            tmp_path,
            "Odd",
            {"CFBundleIdentifier": "com.example.odd", "CFBundleDisplayName": "/tmp/evil"},
        )

        assert resolve_identity(str(bundle)) == ("com.example.odd", "Odd")


class TestSanitizeDisplayName:
    """Tests for sanitize_display_name."""

    def test_strips_suffix_and_separators(self) -> None:
        """The .app suffix, pipes and control whitespace are cleaned."""
        assert sanitize_display_name("My|App\t.app") == "My-App"


class TestAppScanner:
    """Tests for AppScanner.discover."""

    def test_lists_bundles(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Only .app directories directly in a root are listed."""
        apps = tmp_path / "Applications"
        make_bundle(apps, "Beta")
        make_bundle(apps, "Alpha")
        (apps / "notes.txt").write_text("")
        (apps / "Fake.app").write_text("not a bundle")

        bundles = AppScanner(gate, [str(apps)]).discover()

        assert [b.name for b in bundles] == ["Alpha", "Beta"]

    def test_missing_root_skipped(self, gate: PolicyGate, tmp_path: Path) -> None:
        """Missing application folders are ignored."""
        assert AppScanner(gate, [str(tmp_path / "none")]).discover() == []

    def test_home_root_expanded(self, gate: PolicyGate, home: Path) -> None:
        """~ roots expand to the gate's home directory."""
        make_bundle(home / "Applications", "Local")

        bundles = AppScanner(gate, ["~/Applications"]).discover()

        assert [b.path for b in bundles] == [str(home / "Applications" / "Local.app")]

    def test_cancelled(self, gate: PolicyGate, tmp_path: Path) -> None:
        """A set cancel event stops discovery."""
        event = threading.Event()
        event.set()

        with pytest.raises(ScanCancelled):
            AppScanner(gate, [str(tmp_path)], cancel_event=event).discover()
