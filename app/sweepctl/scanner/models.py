"""Candidate models produced by the scanners.

A CandidateArtifact is created once per scan pass and never mutated;
enrichment with size or identity produces a new record.
"""

from dataclasses import dataclass, replace
from enum import Enum

from sweepctl.policy.gate import Verdict
from sweepctl.policy.rules import DenyReason


class ArtifactKind(str, Enum):
    """Type of a candidate entry."""

    FILE = "file"
    DIRECTORY = "directory"
    BUNDLE = "bundle"


@dataclass(frozen=True, slots=True)
class CandidateArtifact:
    """A filesystem entry identified as a deletion candidate.

    Attributes:
        path: Absolute path.
        kind: File, directory or application bundle.
        name: Artifact name (target name or bundle name).
        mtime: Modification time (epoch seconds).
        age_days: Whole days since the last modification.
        size_kb: Size in kilobytes, None when unknown.
        size_estimated: True when the size came from a stale cache entry.
        bundle_id: Owning application identity, None if not applicable.
        last_used_epoch: Last-used time (epoch seconds), None if unknown.
        protection: Policy verdict for this entry.
        deny_reason: Why the entry is protected, None when allowed.
        default_selected: Whether the entry is pre-selected for deletion.
        project_path: Project root the artifact belongs to (empty for bundles).
        display_name: Short label for listings.
    """

    path: str
    kind: ArtifactKind
    name: str
    mtime: float
    age_days: int
    size_kb: int | None = None
    size_estimated: bool = False
    bundle_id: str | None = None
    last_used_epoch: float | None = None
    protection: Verdict = Verdict.ALLOW
    deny_reason: DenyReason | None = None
    default_selected: bool = False
    project_path: str = ""
    display_name: str = ""

    def __post_init__(self) -> None:
        """Validate candidate data after initialization."""
        if not self.path:
            msg = "Candidate path cannot be empty"
            raise ValueError(msg)
        if self.protection == Verdict.DENY and self.default_selected:
            msg = f"Protected candidate cannot be selected: {self.path}"
            raise ValueError(msg)

    @property
    def is_protected(self) -> bool:
        return self.protection == Verdict.DENY

    def with_size(self, size_kb: int | None, *, estimated: bool = False) -> "CandidateArtifact":
        """Return a copy carrying a measured or cached size."""
        return replace(self, size_kb=size_kb, size_estimated=estimated)
