"""Candidate scanner for project build artifacts.

Walks a search root to a bounded depth and collects directories whose
name matches one of the configured targets. Matches are filtered for
containment, nesting, type-specific protection and policy before they
become CandidateArtifact records.
"""

import logging
import os
import threading
import time
from pathlib import Path

from sweepctl.core.errors import InvalidInput, ScanCancelled, UnsafeRootError
from sweepctl.core.paths import expand_user_path
from sweepctl.policy.gate import PolicyGate, normalize_path, validate_path
from sweepctl.scanner.models import ArtifactKind, CandidateArtifact
from sweepctl.scanner.project import (
    assign_display_names,
    find_project_root,
    is_contained,
    is_protected_artifact,
)
from sweepctl.scanner.targets import DEFAULT_TARGETS, PRUNE_DIRS

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def filter_nested(paths: list[str]) -> list[str]:
    """Drop paths nested inside another path of the list.

    Paths are sorted with a trailing separator so that every parent
    directly precedes its descendants; a path is kept unless it starts
    with the last kept path.

    Example:
        >>> filter_nested(["/a/b", "/a/b/c", "/a/d"])
        ['/a/b', '/a/d']
    """
    kept: list[str] = []
    last_kept = ""
    for path in sorted(p.rstrip("/") + "/" for p in paths):
        if last_kept and path.startswith(last_kept):
            continue
        kept.append(path)
        last_kept = path
    return [p.rstrip("/") or "/" for p in kept]


def age_in_days(mtime: float, now: float) -> int:
    """Whole days elapsed since mtime (never negative)."""
    return max(int((now - mtime) // SECONDS_PER_DAY), 0)


class CandidateScanner:
    """Finds regenerable build artifacts under a search root.

    Args:
        gate: Policy gate; denied matches are dropped.
        targets: Artifact directory names to look for.
        min_depth: Shallowest depth (relative to root) a match may sit at.
        max_depth: Deepest depth the walk descends to.
        min_age_days: Artifacts at least this old are selected by default.
        now: Clock override (epoch seconds) for age computation.
        cancel_event: Checked between directories; when set the scan stops.
    """

    def __init__(
        self,
        gate: PolicyGate,
        *,
        targets: tuple[str, ...] | list[str] = DEFAULT_TARGETS,
        min_depth: int = 1,
        max_depth: int = 6,
        min_age_days: int = 7,
        now: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._gate = gate
        self._targets = frozenset(targets)
        self._min_depth = min_depth
        self._max_depth = max(max_depth, min_depth)
        self._min_age_days = min_age_days
        self._now = now
        self._cancel_event = cancel_event

    def check_root(self, root: str) -> str:
        """Validate and normalize a search root.

        Args:
            root: Search root as configured (``~`` allowed).

        Returns:
            Normalized absolute root path.

        Raises:
            InvalidInput: If the root is malformed.
            UnsafeRootError: If the root is ``/``, home, or an ancestor of home.
        """
        expanded = expand_user_path(root)
        error = validate_path(expanded)
        if error is not None:
            raise InvalidInput(f"Invalid scan root {root!r}: {error}")

        normalized = normalize_path(expanded)
        home = self._gate.home_dir
        if normalized == "/" or normalized == home or home.startswith(normalized + "/"):
            raise UnsafeRootError(f"Refusing to scan {normalized}: at or above the home directory")
        return normalized

    def scan(self, root: str) -> list[CandidateArtifact]:
        """Scan a single root and return its candidates sorted by path.

        Args:
            root: Search root.

        Returns:
            Candidate artifacts; empty if the root does not exist.

        Raises:
            InvalidInput: If the root is malformed.
            UnsafeRootError: If the root is unsafe to scan.
            ScanCancelled: If the cancel event was set during the walk.
        """
        normalized = self.check_root(root)
        if not os.path.isdir(normalized):
            logger.debug("Scan root does not exist: %s", normalized)
            return []

        matches = self._walk(normalized)
        contained = [m for m in matches if is_contained(m, normalized)]
        unique = filter_nested(contained)

        allowed: list[str] = []
        for path in unique:
            if is_protected_artifact(Path(path)):
                logger.debug("Skipping protected artifact %s", path)
                continue
            decision = self._gate.decide(path)
            if not decision.allowed:
                logger.debug("Policy denied artifact %s (%s)", path, decision.detail)
                continue
            allowed.append(path)

        return self._build_candidates(allowed)

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ScanCancelled("Scan cancelled")

    def _walk(self, root: str) -> list[str]:
        """Bounded-depth walk collecting target directory paths."""
        matches: list[str] = []
        stack: list[tuple[str, int]] = [(root, 0)]

        while stack:
            self._check_cancelled()
            directory, depth = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = list(it)
            except OSError as e:
                logger.debug("Cannot read %s: %s", directory, e)
                continue

            child_depth = depth + 1
            for entry in entries:
                try:
                    if not entry.is_dir(follow_symlinks=False):
                        continue
                except OSError:
                    continue

                name = entry.name
                if name in self._targets:
                    if child_depth >= self._min_depth:
                        matches.append(entry.path)
                    # Never descend into a matched artifact
                    continue
                if name in PRUNE_DIRS or name.startswith("."):
                    continue
                if child_depth < self._max_depth:
                    stack.append((entry.path, child_depth))

        return matches

    def _build_candidates(self, paths: list[str]) -> list[CandidateArtifact]:
        now = self._now if self._now is not None else time.time()
        home = self._gate.home_dir

        project_of = {path: find_project_root(path, home) for path in paths}
        display = assign_display_names(paths, project_of)

        candidates: list[CandidateArtifact] = []
        for path in paths:
            try:
                mtime = os.lstat(path).st_mtime
            except OSError:
                # Vanished between walk and stat
                continue
            age = age_in_days(mtime, now)
            candidates.append(
                CandidateArtifact(
                    path=path,
                    kind=ArtifactKind.DIRECTORY,
                    name=os.path.basename(path),
                    mtime=mtime,
                    age_days=age,
                    default_selected=age >= self._min_age_days,
                    project_path=project_of[path],
                    display_name=display[path],
                )
            )
        return candidates
