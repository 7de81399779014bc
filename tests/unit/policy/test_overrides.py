"""Unit tests for the user whitelist file."""

from pathlib import Path
from unittest.mock import patch

from sweepctl.policy.overrides import (
    UserOverride,
    add_override,
    load_user_override,
    parse_override_lines,
    remove_override,
    save_user_override,
)


class TestParseOverrideLines:
    """Tests for parse_override_lines."""

    def test_skips_comments_and_blanks(self) -> None:
        """Comments and blank lines are ignored."""
        override = parse_override_lines(["# keep these", "", "/srv/data", "  /opt/tools/  "])

        assert override.paths == frozenset({"/srv/data", "/opt/tools"})

    def test_drops_relative_entries(self) -> None:
        """Relative entries cannot be matched and are dropped."""
        override = parse_override_lines(["projects/app", "/srv/app"])

        assert override.paths == frozenset({"/srv/app"})

    def test_expands_tilde(self, tmp_path: Path) -> None:
        """A leading ~ expands to the home directory."""
        with patch("sweepctl.core.paths.Path.home", return_value=tmp_path):
            override = parse_override_lines(["~/code/keep"])

        assert override.paths == frozenset({f"{tmp_path}/code/keep"})


class TestUserOverride:
    """Tests for UserOverride.covers."""

    def test_exact_and_beneath(self) -> None:
        """Listed paths and their descendants are covered."""
        override = UserOverride(frozenset({"/srv/app"}))

        assert override.covers("/srv/app")
        assert override.covers("/srv/app/node_modules")
        assert not override.covers("/srv/application")
        assert not override.covers("/srv")

    def test_empty(self) -> None:
        """An empty override covers nothing."""
        assert not UserOverride().covers("/srv/app")
        assert len(UserOverride()) == 0


class TestLoadSave:
    """Tests for reading and writing the whitelist file."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """A missing whitelist yields no overrides."""
        assert load_user_override(tmp_path / "whitelist").paths == frozenset()

    def test_round_trip(self, tmp_path: Path) -> None:
        """Saved entries load back unchanged."""
        path = tmp_path / "config" / "whitelist"
        override = UserOverride(frozenset({"/srv/a", "/srv/b"}))

        save_user_override(override, path)

        assert load_user_override(path) == override
        assert path.read_text().startswith("#")
        assert not list(path.parent.glob("*.tmp"))

    def test_add_and_remove(self) -> None:
        """add_override and remove_override return new sets."""
        base = UserOverride(frozenset({"/srv/a"}))

        added = add_override(base, "/srv/b/")
        removed = remove_override(added, "/srv/a")

        assert added.paths == frozenset({"/srv/a", "/srv/b"})
        assert removed.paths == frozenset({"/srv/b"})
        assert base.paths == frozenset({"/srv/a"})
