"""User override (whitelist) file handling.

The override file lists exact paths, one per line, that the user wants
protected in addition to the built-in rules. Entries can only add
protection: a path listed here is denied, and nothing in this file can
permit a path the static rules deny.

File format::

    # comment
    ~/Projects/keep-this/node_modules
    /Volumes/Data/cache
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from tempfile import NamedTemporaryFile

from sweepctl.core.paths import contract_user_path, expand_user_path, get_whitelist_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserOverride:
    """Set of user-protected paths.

    Attributes:
        paths: Expanded absolute path strings.
    """

    paths: frozenset[str] = field(default_factory=frozenset)

    def covers(self, path: str) -> bool:
        """Check whether a path is listed or lies beneath a listed path.

        Args:
            path: Normalized absolute path.

        Returns:
            True if the path is protected by the override list.
        """
        if path in self.paths:
            return True
        return any(path.startswith(entry.rstrip("/") + "/") for entry in self.paths)

    def __len__(self) -> int:
        return len(self.paths)


def parse_override_lines(lines: list[str]) -> UserOverride:
    """Parse override file lines into a UserOverride.

    Blank lines and ``#`` comments are ignored. Relative entries are
    dropped with a warning since they cannot be matched reliably.

    Args:
        lines: Raw file lines.

    Returns:
        Parsed UserOverride.
    """
    paths: set[str] = set()
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        expanded = expand_user_path(line)
        if not expanded.startswith("/"):
            logger.warning("Ignoring relative whitelist entry: %s", line)
            continue
        paths.add(expanded)
    return UserOverride(paths=frozenset(paths))


def load_user_override(path: Path | None = None) -> UserOverride:
    """Load the override file.

    A missing or unreadable file yields an empty override set.

    Args:
        path: Override file path. If None, uses the default whitelist path.

    Returns:
        Parsed UserOverride.
    """
    override_path = path or get_whitelist_path()
    try:
        text = override_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return UserOverride()
    except OSError as e:
        logger.warning("Cannot read whitelist %s: %s", override_path, e)
        return UserOverride()
    return parse_override_lines(text.splitlines())


def save_user_override(override: UserOverride, path: Path | None = None) -> Path:
    """Write the override file atomically.

    Paths under home are stored with ``~`` for portability.

    Args:
        override: Override set to persist.
        path: Override file path. If None, uses the default whitelist path.

    Returns:
        Path where the file was written.

    Raises:
        OSError: If the file cannot be written.
    """
    override_path = path or get_whitelist_path()
    override_path.parent.mkdir(parents=True, exist_ok=True)

    body = "# sweepctl whitelist - one path per line, these are never deleted\n"
    body += "".join(f"{contract_user_path(p)}\n" for p in sorted(override.paths))

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=override_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(body)
        os.replace(str(tmp_path), str(override_path))
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise

    return override_path


def add_override(override: UserOverride, raw_path: str) -> UserOverride:
    """Return a new override set with a path added."""
    return UserOverride(paths=override.paths | {expand_user_path(raw_path)})


def remove_override(override: UserOverride, raw_path: str) -> UserOverride:
    """Return a new override set with a path removed."""
    return UserOverride(paths=override.paths - {expand_user_path(raw_path)})
