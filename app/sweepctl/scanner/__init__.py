"""Candidate discovery for sweepctl.

This package walks search roots for regenerable project artifacts and
lists application bundles, producing CandidateArtifact records. It also
locates the support files an application leaves in ~/Library.
"""

from sweepctl.scanner.apps import AppBundle, AppScanner, resolve_identity
from sweepctl.scanner.discovery import load_search_roots
from sweepctl.scanner.leftovers import find_app_leftovers
from sweepctl.scanner.models import ArtifactKind, CandidateArtifact
from sweepctl.scanner.scanner import CandidateScanner, filter_nested
from sweepctl.scanner.targets import DEFAULT_TARGETS

__all__ = [
    "DEFAULT_TARGETS",
    "AppBundle",
    "AppScanner",
    "ArtifactKind",
    "CandidateArtifact",
    "CandidateScanner",
    "filter_nested",
    "find_app_leftovers",
    "load_search_roots",
    "resolve_identity",
]
