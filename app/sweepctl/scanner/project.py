"""Project detection and artifact protection rules.

Helpers that decide whether a directory is a project, whether an
artifact lies inside one, and which artifact types need extra context
before they can be offered for deletion.
"""

import fnmatch
import os
from collections import defaultdict
from pathlib import Path

from sweepctl.scanner.targets import (
    DOTNET_PROJECT_GLOBS,
    MONOREPO_INDICATORS,
    NON_CONTAINER_DIRS,
    PROJECT_INDICATORS,
)


def _list_names(directory: Path) -> list[str]:
    try:
        return os.listdir(directory)
    except OSError:
        return []


def has_indicator(directory: Path, indicators: tuple[str, ...]) -> bool:
    """Check whether a directory contains any of the given markers.

    Args:
        directory: Directory to inspect.
        indicators: Exact names or ``*`` globs.

    Returns:
        True if at least one marker is present.
    """
    names: list[str] | None = None
    for indicator in indicators:
        if "*" in indicator:
            if names is None:
                names = _list_names(directory)
            if any(fnmatch.fnmatchcase(name, indicator) for name in names):
                return True
        elif os.path.lexists(directory / indicator):
            return True
    return False


def is_project_root(directory: Path) -> bool:
    """Check whether a directory is itself a project root."""
    return has_indicator(directory, PROJECT_INDICATORS) or has_indicator(
        directory, MONOREPO_INDICATORS
    )


def is_project_container(directory: Path, max_depth: int = 2) -> bool:
    """Check whether a directory holds projects within max_depth levels.

    Hidden directories and media/system folders never count as containers.

    Args:
        directory: Directory to inspect.
        max_depth: How deep to look for project markers.

    Returns:
        True if a project marker is found.
    """
    if directory.name.startswith(".") or directory.name in NON_CONTAINER_DIRS:
        return False

    base_depth = str(directory).rstrip("/").count("/")
    for dirpath, dirnames, filenames in os.walk(directory, followlinks=False):
        names = dirnames + filenames
        for indicator in PROJECT_INDICATORS:
            if any(fnmatch.fnmatchcase(name, indicator) for name in names):
                return True
        depth = dirpath.rstrip("/").count("/") - base_depth + 1
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
    return False


def _relative_depth(path: str, root: str) -> int | None:
    root = root.rstrip("/") or "/"
    prefix = root if root == "/" else root + "/"
    if not path.startswith(prefix):
        return None
    return path[len(prefix) :].count("/")


def is_contained(path: str, root: str) -> bool:
    """Check that an artifact sits inside a project below the search root.

    The artifact must be at least two levels below the root. A direct
    child is accepted only when the root itself is a project root
    (single-project mode). When the plain string comparison fails,
    resolved real paths are compared so symlinked roots still match.

    Args:
        path: Absolute artifact path.
        root: Search root the artifact was found under.

    Returns:
        True if the artifact may be offered for deletion.
    """
    if not path.startswith("/"):
        return False

    depth = _relative_depth(path, root)
    if depth is None:
        if not (os.path.isdir(path) and os.path.isdir(root)):
            return False
        path, root = os.path.realpath(path), os.path.realpath(root)
        depth = _relative_depth(path, root)
        if depth is None:
            return False

    if depth >= 1:
        return True
    return is_project_root(Path(root))


def is_dotnet_bin_dir(path: Path) -> bool:
    """Check that a ``bin`` directory is .NET build output."""
    if path.name != "bin":
        return False
    names = _list_names(path.parent)
    if not any(fnmatch.fnmatchcase(n, g) for n in names for g in DOTNET_PROJECT_GLOBS):
        return False
    return (path / "Debug").is_dir() or (path / "Release").is_dir()


def is_protected_vendor_dir(path: Path) -> bool:
    """Check whether a ``vendor`` directory must be kept.

    Only Composer vendor trees can be regenerated safely. Rails, Go and
    unknown vendor directories stay protected.
    """
    if path.name != "vendor":
        return False
    return not (path.parent / "composer.json").is_file()


def is_protected_artifact(path: Path) -> bool:
    """Apply type-specific protection to a matched artifact.

    Global Xcode DerivedData is kept; only per-project copies qualify.

    Args:
        path: Artifact path.

    Returns:
        True if the artifact must not be offered for deletion.
    """
    if path.name == "bin":
        return not is_dotnet_bin_dir(path)
    if path.name == "vendor":
        return is_protected_vendor_dir(path)
    if path.name == "DerivedData":
        return "/Library/Developer/Xcode/DerivedData" in str(path)
    return False


def find_project_root(path: str, home: str) -> str:
    """Find the project an artifact belongs to.

    Walks upwards from the artifact's parent. A monorepo marker wins over
    plain project markers; the nearest plain project root is used
    otherwise. The walk stops at the filesystem root or at home.

    Args:
        path: Artifact path.
        home: Home directory (upper bound of the walk).

    Returns:
        Project root path, or the artifact's parent when none was found.
    """
    parent = os.path.dirname(path)
    current = parent
    project_root = ""

    while current not in ("", "/", home):
        directory = Path(current)
        if has_indicator(directory, MONOREPO_INDICATORS):
            return current
        if not project_root and has_indicator(directory, PROJECT_INDICATORS):
            project_root = current
            # Shallow projects right under home cannot sit inside a monorepo
            relative = current[len(home) :] if current.startswith(home + "/") else current
            if relative.count("/") < 2:
                break
        current = os.path.dirname(current)

    return project_root or parent


def assign_display_names(paths: list[str], project_of: dict[str, str]) -> dict[str, str]:
    """Build short labels for artifacts.

    An artifact is labelled with its own name, or ``parent/name`` when
    another artifact with the same name belongs to the same project.

    Args:
        paths: Artifact paths.
        project_of: Mapping from artifact path to project root.

    Returns:
        Mapping from artifact path to display name.
    """
    groups: dict[tuple[str, str], list[str]] = defaultdict(list)
    for path in paths:
        groups[(os.path.basename(path), project_of.get(path, ""))].append(path)

    names: dict[str, str] = {}
    for (name, project), members in groups.items():
        for path in members:
            parent = os.path.dirname(path)
            if len(members) > 1 and parent != project:
                names[path] = f"{os.path.basename(parent)}/{name}"
            else:
                names[path] = name
    return names
