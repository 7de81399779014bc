"""Search-root configuration and first-run discovery.

Search roots live in the ``purge_paths`` file, one path per line. When
the file is missing or empty the home directory is probed for project
containers and the result is written back so later runs are stable.
"""

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from sweepctl.core.paths import contract_user_path, expand_user_path, get_purge_paths_path
from sweepctl.scanner.project import is_project_container
from sweepctl.scanner.targets import DEFAULT_SEARCH_ROOTS

logger = logging.getLogger(__name__)

_HEADER = (
    "# sweepctl search roots - auto-discovered project directories\n"
    "# Add one path per line (~ is expanded to the home directory)\n"
)


def read_search_roots(config_file: Path) -> list[str]:
    """Read configured search roots.

    Args:
        config_file: Path of the purge_paths file.

    Returns:
        Expanded root paths in file order; empty when the file is
        missing or unreadable.
    """
    try:
        text = config_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        logger.warning("Cannot read search roots %s: %s", config_file, e)
        return []

    roots: list[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        root = expand_user_path(line)
        if root not in roots:
            roots.append(root)
    return roots


def discover_search_roots(home: Path | None = None) -> list[str]:
    """Probe the home directory for project containers.

    Existing default roots are always included; every other non-hidden
    first-level directory of home is included when it holds a project
    marker within two levels.

    Args:
        home: Home directory. Default: Path.home().

    Returns:
        Sorted, de-duplicated list of absolute paths.
    """
    home_dir = home or Path.home()
    defaults = {str(home_dir) + p[1:] for p in DEFAULT_SEARCH_ROOTS}

    discovered = {p for p in defaults if os.path.isdir(p)}

    try:
        children = sorted(home_dir.iterdir())
    except OSError as e:
        logger.warning("Cannot list home directory %s: %s", home_dir, e)
        children = []

    for child in children:
        if str(child) in defaults or child.is_symlink() or not child.is_dir():
            continue
        if is_project_container(child, 2):
            discovered.add(str(child))

    return sorted(discovered)


def save_search_roots(roots: list[str], config_file: Path) -> Path:
    """Write search roots atomically, contracting home to ``~``.

    Raises:
        OSError: If the file cannot be written.
    """
    config_file.parent.mkdir(parents=True, exist_ok=True)
    body = _HEADER + "\n" + "".join(f"{contract_user_path(r)}\n" for r in roots)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=config_file.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(body)
        os.replace(str(tmp_path), str(config_file))
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise
    return config_file


def load_search_roots(config_file: Path | None = None, *, home: Path | None = None) -> list[str]:
    """Return the roots to scan, discovering them on first run.

    Args:
        config_file: purge_paths file. Default: config dir/purge_paths.
        home: Home directory used for discovery.

    Returns:
        Configured roots; else discovered roots (persisted); else the
        default roots.
    """
    path = config_file or get_purge_paths_path()
    roots = read_search_roots(path)
    if roots:
        return roots

    logger.info("No search roots configured, discovering project directories")
    discovered = discover_search_roots(home)
    if not discovered:
        return [expand_user_path(p) for p in DEFAULT_SEARCH_ROOTS]

    try:
        save_search_roots(discovered, path)
    except OSError as e:
        logger.warning("Cannot save discovered search roots to %s: %s", path, e)
    return discovered
