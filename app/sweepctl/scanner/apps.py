"""Application bundle discovery and identity resolution."""

import logging
import os
import plistlib
import threading
from dataclasses import dataclass
from pathlib import Path

from sweepctl.core.errors import ScanCancelled
from sweepctl.policy.gate import PolicyGate
from sweepctl.policy.rules import DenyReason

logger = logging.getLogger(__name__)

DEFAULT_APP_ROOTS: tuple[str, ...] = ("/Applications", "~/Applications")

_NEVER_LISTED = (DenyReason.INVALID_INPUT, DenyReason.CRITICAL_PATH)


@dataclass(frozen=True, slots=True)
class AppBundle:
    """An application bundle found on disk.

    Attributes:
        path: Absolute bundle path (``*.app``).
        name: Bundle directory name without the ``.app`` suffix.
        mtime: Bundle modification time (epoch seconds).
    """

    path: str
    name: str
    mtime: float


def sanitize_display_name(name: str) -> str:
    """Strip the ``.app`` suffix and characters that break listings."""
    cleaned = name.removesuffix(".app").replace("|", "-")
    for ch in ("\t", "\r", "\n"):
        cleaned = cleaned.replace(ch, "")
    return cleaned.strip()


def resolve_identity(path: str) -> tuple[str | None, str]:
    """Read bundle identifier and display name from Info.plist.

    The display name prefers ``CFBundleDisplayName``, then
    ``CFBundleName``, then the bundle's directory name. A value that
    looks like a path is never used as a display name.

    Args:
        path: Bundle path.

    Returns:
        Tuple of (bundle_id or None, display name).
    """
    fallback = sanitize_display_name(Path(path).name)
    plist_path = Path(path) / "Contents" / "Info.plist"

    try:
        with plist_path.open("rb") as f:
            info = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logger.debug("Cannot read %s: %s", plist_path, e)
        return None, fallback

    if not isinstance(info, dict):
        return None, fallback

    bundle_id = info.get("CFBundleIdentifier")
    if not isinstance(bundle_id, str) or not bundle_id.strip():
        bundle_id = None
    else:
        bundle_id = bundle_id.strip()

    for key in ("CFBundleDisplayName", "CFBundleName"):
        value = info.get(key)
        if isinstance(value, str) and value.strip() and "/" not in value:
            name = sanitize_display_name(value)
            if name:
                return bundle_id, name

    return bundle_id, fallback


class AppScanner:
    """Lists application bundles in the application folders.

    Args:
        gate: Policy gate; bundles under critical roots are never listed.
        roots: Folders to search (``~`` allowed).
        cancel_event: Checked between roots.
    """

    def __init__(
        self,
        gate: PolicyGate,
        roots: tuple[str, ...] | list[str] = DEFAULT_APP_ROOTS,
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._gate = gate
        self._roots = tuple(roots)
        self._cancel_event = cancel_event

    def _expand(self, root: str) -> str:
        if root == "~" or root.startswith("~/"):
            return self._gate.home_dir + root[1:]
        return root

    def discover(self) -> list[AppBundle]:
        """Find ``*.app`` entries directly inside each root.

        Returns:
            Bundles sorted by path; missing roots are skipped.

        Raises:
            ScanCancelled: If the cancel event was set.
        """
        bundles: dict[str, AppBundle] = {}
        for raw_root in self._roots:
            if self._cancel_event is not None and self._cancel_event.is_set():
                raise ScanCancelled("Application scan cancelled")

            root = self._expand(raw_root)
            try:
                with os.scandir(root) as it:
                    entries = list(it)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Cannot list %s: %s", root, e)
                continue

            for entry in entries:
                if not entry.name.endswith(".app"):
                    continue
                try:
                    if not entry.is_dir(follow_symlinks=False):
                        continue
                    mtime = entry.stat(follow_symlinks=False).st_mtime
                except OSError:
                    continue

                decision = self._gate.decide(entry.path)
                if decision.reason in _NEVER_LISTED:
                    continue

                bundles[entry.path] = AppBundle(
                    path=entry.path,
                    name=entry.name.removesuffix(".app"),
                    mtime=mtime,
                )

        return [bundles[p] for p in sorted(bundles)]
