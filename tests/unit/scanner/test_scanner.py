"""Unit tests for CandidateScanner.

Tests target matching, containment, nesting, type-specific protection,
policy filtering, age-based selection and root validation.
"""

import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest
from sweepctl.core.errors import InvalidInput, ScanCancelled, UnsafeRootError
from sweepctl.policy.gate import PolicyGate
from sweepctl.policy.overrides import UserOverride
from sweepctl.scanner.models import ArtifactKind
from sweepctl.scanner.scanner import CandidateScanner, age_in_days, filter_nested


def _project(root: Path, name: str, *artifacts: str, marker: str = "package.json") -> Path:
    project = root / name
    project.mkdir(parents=True)
    (project / marker).write_text("{}")
    for artifact in artifacts:
        (project / artifact).mkdir(parents=True)
    return project


@pytest.fixture
def code(home: Path) -> Path:
    root = home / "code"
    root.mkdir()
    return root


class TestFilterNested:
    """Tests for filter_nested."""

    def test_drops_descendants(self) -> None:
        """Paths inside another listed path are dropped."""
        assert filter_nested(["/a/b/c", "/a/b", "/a/d"]) == ["/a/b", "/a/d"]

    def test_shared_prefix_is_not_nesting(self) -> None:
        """/a/b does not contain /a/bc."""
        assert filter_nested(["/a/b", "/a/bc"]) == ["/a/b", "/a/bc"]

    def test_empty(self) -> None:
        """No paths in, no paths out."""
        assert filter_nested([]) == []


class TestAgeInDays:
    """Tests for age_in_days."""

    def test_whole_days(self) -> None:
        """Partial days are truncated."""
        assert age_in_days(0, 86400 * 2.5) == 2

    def test_future_mtime(self) -> None:
        """A modification time in the future counts as zero days."""
        assert age_in_days(100.0, 50.0) == 0


class TestScan:
    """Tests for CandidateScanner.scan."""

    def test_single_project_root(self, gate: PolicyGate, home: Path) -> None:
        """Scanning a project directly finds its artifacts but not .git."""
        project = home / "proj"
        project.mkdir()
        for name in ("node_modules", "target", ".git"):
            (project / name).mkdir()

        candidates = CandidateScanner(gate).scan(str(project))

        assert sorted(c.name for c in candidates) == ["node_modules", "target"]
        assert all(c.kind == ArtifactKind.DIRECTORY for c in candidates)

    def test_projects_under_container(self, gate: PolicyGate, code: Path) -> None:
        """Artifacts of every project below the root are found."""
        _project(code, "web", "node_modules")
        _project(code, "cli", "target", marker="Cargo.toml")

        candidates = CandidateScanner(gate).scan(str(code))

        assert sorted(c.path for c in candidates) == [
            str(code / "cli" / "target"),
            str(code / "web" / "node_modules"),
        ]

    def test_direct_child_of_non_project_root_excluded(
        self, gate: PolicyGate, code: Path
    ) -> None:
        """An artifact directly under a plain folder is not inside a project."""
        (code / "node_modules").mkdir()

        assert CandidateScanner(gate).scan(str(code)) == []

    def test_matched_artifact_not_descended(self, gate: PolicyGate, code: Path) -> None:
        """Nested node_modules collapse into the outermost one."""
        project = _project(code, "web", "node_modules/dep/node_modules")

        candidates = CandidateScanner(gate).scan(str(code))

        assert [c.path for c in candidates] == [str(project / "node_modules")]

    def test_hidden_and_pruned_dirs_skipped(self, gate: PolicyGate, code: Path) -> None:
        """Hidden directories and pruned names are not walked."""
        _project(code, ".hidden", "node_modules")
        _project(code / "web", "Library", "node_modules")

        assert CandidateScanner(gate).scan(str(code)) == []

    def test_max_depth(self, gate: PolicyGate, code: Path) -> None:
        """Artifacts below the depth bound are not found."""
        _project(code / "a" / "b" / "c", "deep", "node_modules")

        assert CandidateScanner(gate, max_depth=3).scan(str(code)) == []
        assert len(CandidateScanner(gate, max_depth=6).scan(str(code))) == 1

    def test_custom_targets(self, gate: PolicyGate, code: Path) -> None:
        """Only configured target names are matched."""
        _project(code, "web", "node_modules", "dist")

        candidates = CandidateScanner(gate, targets=["dist"]).scan(str(code))

        assert [c.name for c in candidates] == ["dist"]

    def test_whitelisted_artifact_dropped(self, home: Path, code: Path) -> None:
        """Policy-denied artifacts never become candidates."""
        project = _project(code, "web", "node_modules", "dist")
        gate = PolicyGate(UserOverride(frozenset({str(project / "dist")})), home=home)

        candidates = CandidateScanner(gate).scan(str(code))

        assert [c.name for c in candidates] == ["node_modules"]

    def test_bin_requires_dotnet_project(self, gate: PolicyGate, code: Path) -> None:
        """A bin directory is only an artifact in a .NET project with build output."""
        _project(code, "tool", "bin")
        dotnet = _project(code, "api", "bin/Debug", marker="Api.csproj")

        candidates = CandidateScanner(gate).scan(str(code))

        assert [c.path for c in candidates] == [str(dotnet / "bin")]

    def test_vendor_requires_composer(self, gate: PolicyGate, code: Path) -> None:
        """Only Composer vendor directories are offered."""
        _project(code, "goapp", "vendor", marker="go.mod")
        php = _project(code, "site", "vendor", marker="composer.json")

        candidates = CandidateScanner(gate).scan(str(code))

        assert [c.path for c in candidates] == [str(php / "vendor")]

    def test_age_selects_old_artifacts(
        self, gate: PolicyGate, code: Path, make_old: Callable[[Path, int], int]
    ) -> None:
        """Old artifacts are selected by default, recent ones are not."""
        project = _project(code, "web", "node_modules", "dist")
        make_old(project / "node_modules", 30)

        candidates = {
            c.name: c for c in CandidateScanner(gate, min_age_days=7).scan(str(code))
        }

        assert candidates["node_modules"].default_selected is True
        assert candidates["node_modules"].age_days >= 29
        assert candidates["dist"].default_selected is False

    def test_project_and_display_names(self, gate: PolicyGate, code: Path) -> None:
        """Same-named artifacts of one project get a parent prefix."""
        project = _project(code, "mono", "a/build", "b/build")

        candidates = CandidateScanner(gate).scan(str(code))

        assert {c.project_path for c in candidates} == {str(project)}
        assert sorted(c.display_name for c in candidates) == ["a/build", "b/build"]

    def test_missing_root(self, gate: PolicyGate, code: Path) -> None:
        """A missing root yields no candidates."""
        assert CandidateScanner(gate).scan(str(code / "nope")) == []

    def test_cancelled(self, gate: PolicyGate, code: Path) -> None:
        """A set cancel event stops the walk."""
        _project(code, "web", "node_modules")
        event = threading.Event()
        event.set()

        with pytest.raises(ScanCancelled):
            CandidateScanner(gate, cancel_event=event).scan(str(code))

    def test_clock_override(self, gate: PolicyGate, code: Path) -> None:
        """Ages are computed against the injected clock."""
        _project(code, "web", "node_modules")
        later = time.time() + 10 * 86400

        candidates = CandidateScanner(gate, now=later, min_age_days=7).scan(str(code))

        assert candidates[0].age_days >= 9
        assert candidates[0].default_selected is True


class TestCheckRoot:
    """Tests for CandidateScanner.check_root."""

    def test_filesystem_root_refused(self, gate: PolicyGate) -> None:
        """Scanning / is refused."""
        with pytest.raises(UnsafeRootError):
            CandidateScanner(gate).check_root("/")

    def test_home_and_ancestors_refused(self, gate: PolicyGate, home: Path) -> None:
        """Home and its ancestors are refused."""
        scanner = CandidateScanner(gate)

        with pytest.raises(UnsafeRootError):
            scanner.check_root(str(home))
        with pytest.raises(UnsafeRootError):
            scanner.check_root(str(home.parent))

    def test_invalid_root(self, gate: PolicyGate) -> None:
        """Relative and traversal roots are invalid input."""
        scanner = CandidateScanner(gate)

        with pytest.raises(InvalidInput):
            scanner.check_root("projects")
        with pytest.raises(InvalidInput):
            scanner.check_root("/tmp/../etc")

    def test_normalizes(self, gate: PolicyGate, code: Path) -> None:
        """Trailing slashes are removed."""
        assert CandidateScanner(gate).check_root(str(code) + "/") == str(code)
