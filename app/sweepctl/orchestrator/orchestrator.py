"""Scan orchestration.

Runs the scanners in parallel, enriches candidates from the metadata
cache, hands the result to the selection collaborator and executes the
confirmed subset.

State order::

    IDLE -> SCANNING -> AGGREGATING -> AWAITING_SELECTION -> EXECUTING -> IDLE
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from typing import Any

from sweepctl.cache.models import CacheEntry
from sweepctl.cache.probe import MetadataProbe
from sweepctl.cache.refresh import MetadataRefresher, RefreshHandle
from sweepctl.cache.store import MetadataCache
from sweepctl.core.config import SweepConfig
from sweepctl.core.errors import (
    InvalidInput,
    InvalidStateError,
    PartialResult,
    ScanCancelled,
)
from sweepctl.core.state import OperationLog
from sweepctl.executor.executor import SafeExecutor
from sweepctl.executor.models import ExecutionResult, Outcome
from sweepctl.orchestrator.models import (
    TRANSITIONS,
    CleanupReport,
    OrchestratorState,
    ScanOutcome,
    Selection,
)
from sweepctl.policy.gate import PolicyGate, Verdict
from sweepctl.scanner.apps import DEFAULT_APP_ROOTS, AppBundle, AppScanner, resolve_identity
from sweepctl.scanner.models import ArtifactKind, CandidateArtifact
from sweepctl.scanner.scanner import CandidateScanner, age_in_days, filter_nested
from sweepctl.utils.concurrency import WorkloadKind, optimal_workers

logger = logging.getLogger(__name__)

SORT_KEYS = ("size", "age", "path", "name")


def sort_candidates(candidates: list[CandidateArtifact], key: str) -> list[CandidateArtifact]:
    """Sort candidates by size (desc), age (desc), path or name.

    Raises:
        InvalidInput: If key is unknown.
    """
    if key == "size":
        return sorted(candidates, key=lambda c: (c.size_kb is None, -(c.size_kb or 0), c.path))
    if key == "age":
        return sorted(candidates, key=lambda c: (-c.age_days, c.path))
    if key == "path":
        return sorted(candidates, key=lambda c: c.path)
    if key == "name":
        return sorted(candidates, key=lambda c: ((c.display_name or c.name).lower(), c.path))
    raise InvalidInput(f"Unknown sort key: {key!r} (expected one of {', '.join(SORT_KEYS)})")


def _cancel_pending(futures: Iterable[Future[Any]]) -> None:
    for future in futures:
        future.cancel()


class ScanOrchestrator:
    """Coordinates scanning, cache enrichment and guarded execution.

    Args:
        gate: Policy gate shared by scanners and executor.
        executor: Executor used for deletions and live size probes.
        cache: Metadata cache.
        refresher: Background refresher for stale cache entries.
        config: Engine configuration.
        probe: Probe used for inline metadata. Default: built from executor.
        operation_log: Log receiving every executed result.
        clock: Time source (epoch seconds).
    """

    def __init__(
        self,
        gate: PolicyGate,
        executor: SafeExecutor,
        cache: MetadataCache,
        refresher: MetadataRefresher,
        config: SweepConfig | None = None,
        *,
        probe: MetadataProbe | None = None,
        operation_log: OperationLog | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._gate = gate
        self._executor = executor
        self._cache = cache
        self._refresher = refresher
        self._config = config or SweepConfig()
        self._probe = probe or MetadataProbe(executor)
        self._operation_log = operation_log
        self._clock = clock

        self._state = OrchestratorState.IDLE
        self._state_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._refresh: RefreshHandle | None = None
        self._candidates: dict[str, CandidateArtifact] = {}

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def candidates(self) -> list[CandidateArtifact]:
        """Candidates of the scan awaiting selection."""
        return list(self._candidates.values())

    def _transition(self, target: OrchestratorState) -> None:
        with self._state_lock:
            if target not in TRANSITIONS[self._state]:
                msg = f"Cannot move from {self._state.value} to {target.value}"
                raise InvalidStateError(msg)
            logger.debug("Orchestrator %s -> %s", self._state.value, target.value)
            self._state = target

    def _begin_scan(self) -> None:
        self._transition(OrchestratorState.SCANNING)
        self._cancel_event = threading.Event()
        self._candidates = {}
        self._refresh = None

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise ScanCancelled("Scan cancelled")

    def _abort_scan(self) -> None:
        with self._state_lock:
            if self._state in (OrchestratorState.SCANNING, OrchestratorState.AGGREGATING):
                self._state = OrchestratorState.IDLE
        self._candidates = {}

    def cancel(self) -> None:
        """Stop the running scan and any background refresh.

        Workers stop at their next checkpoint, pending work is dropped and
        nothing is committed to the cache.
        """
        self._cancel_event.set()
        if self._refresh is not None:
            self._refresh.cancel()

    # ---- artifacts --------------------------------------------------------

    def scan_artifacts(
        self,
        roots: list[str],
        targets: list[str] | tuple[str, ...] | None = None,
        *,
        sort_key: str = "size",
    ) -> ScanOutcome:
        """Scan roots for build artifacts.

        Args:
            roots: Search roots; one worker per root.
            targets: Artifact names. Default: configured targets.
            sort_key: Output order (size, age, path or name).

        Returns:
            ScanOutcome with candidates awaiting selection.

        Raises:
            InvalidStateError: If called outside IDLE.
            InvalidInput: If sort_key is unknown.
            ScanCancelled: If cancel() was called during the scan.
        """
        if sort_key not in SORT_KEYS:
            raise InvalidInput(f"Unknown sort key: {sort_key!r}")
        self._begin_scan()
        try:
            return self._collect_artifacts(roots, targets, sort_key)
        except BaseException:
            self.cancel()
            self._abort_scan()
            raise

    def _collect_artifacts(
        self,
        roots: list[str],
        targets: list[str] | tuple[str, ...] | None,
        sort_key: str,
    ) -> ScanOutcome:
        scanner = CandidateScanner(
            self._gate,
            targets=tuple(targets) if targets else tuple(self._config.targets),
            min_depth=self._config.scan_min_depth,
            max_depth=self._config.scan_max_depth,
            min_age_days=self._config.min_age_days,
            now=self._clock(),
            cancel_event=self._cancel_event,
        )

        found, errors, completed = self._fan_out(roots, scanner.scan)
        self._check_cancelled()
        self._transition(OrchestratorState.AGGREGATING)

        by_path: dict[str, CandidateArtifact] = {}
        for candidate in found:
            by_path.setdefault(candidate.path, candidate)
        unique = [by_path[p] for p in filter_nested(list(by_path))]

        enriched, queued = self._enrich_sizes(unique)
        self._check_cancelled()

        if queued:
            self._refresh = self._refresher.refresh_async(queued)

        return self._finish_scan(
            sort_candidates(enriched, sort_key),
            completed=completed,
            total=len(roots),
            errors=errors,
        )

    def _fan_out(
        self,
        roots: list[str],
        work: Callable[[str], list[CandidateArtifact]],
    ) -> tuple[list[CandidateArtifact], list[str], int]:
        """Run work for every root in a bounded pool and join the results."""
        found: list[CandidateArtifact] = []
        errors: list[str] = []
        completed = 0
        if not roots:
            return found, errors, completed

        workers = optimal_workers(WorkloadKind.SCAN, cap=len(roots))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sweepctl-scan") as pool:
            futures: dict[Future[list[CandidateArtifact]], str] = {
                pool.submit(work, root): root for root in roots
            }
            with self._stop_on_interrupt(futures):
                for future in as_completed(futures):
                    root = futures[future]
                    if self._cancel_event.is_set():
                        _cancel_pending(futures)
                        break
                    try:
                        found.extend(future.result())
                        completed += 1
                    except ScanCancelled:
                        continue
                    except InvalidInput as e:
                        logger.warning("Skipping root %s: %s", root, e)
                        errors.append(f"{root}: {e}")
                    except OSError as e:
                        logger.warning("Cannot scan %s: %s", root, e)
                        errors.append(f"{root}: {e}")
        return found, errors, completed

    @contextmanager
    def _stop_on_interrupt(self, futures: Iterable[Future[Any]]) -> Iterator[None]:
        """Set the cancel event before the pool joins its workers on any error."""
        try:
            yield
        except BaseException:
            self.cancel()
            _cancel_pending(futures)
            raise

    def _enrich_sizes(
        self, candidates: list[CandidateArtifact]
    ) -> tuple[list[CandidateArtifact], list[tuple[str, int]]]:
        """Attach sizes from the cache, probing unknown items live.

        Returns:
            Tuple of (enriched candidates, keys queued for background refresh).
        """
        keys = [(c.path, int(c.mtime)) for c in candidates]
        fresh, stale = self._cache.classify(keys, self._clock())

        sizes: dict[str, tuple[int | None, bool]] = {
            path: (entry.size_kb, False) for path, entry in fresh.items()
        }
        queued: list[tuple[str, int]] = []
        unknown: list[tuple[str, int]] = []
        for path, mtime in stale:
            previous = self._cache.lookup(path, mtime)
            if previous is not None and previous.size_kb > 0:
                sizes[path] = (previous.size_kb, True)
                queued.append((path, mtime))
            else:
                unknown.append((path, mtime))

        probed = self._probe_live(unknown)
        for entry in probed:
            sizes[entry.path] = (entry.size_kb or None, False)
        if probed and not self._cancel_event.is_set():
            self._cache.commit(probed)

        enriched = []
        for candidate in candidates:
            size, estimated = sizes.get(candidate.path, (None, False))
            enriched.append(candidate.with_size(size, estimated=estimated))
        return enriched, queued

    def _probe_live(self, items: list[tuple[str, int]]) -> list[CacheEntry]:
        if not items:
            return []
        workers = optimal_workers(WorkloadKind.METADATA, cap=self._config.refresh_workers)
        entries: list[CacheEntry] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sweepctl-probe") as pool:
            futures = [pool.submit(self._probe_one, path, mtime) for path, mtime in items]
            with self._stop_on_interrupt(futures):
                for future in as_completed(futures):
                    entry = future.result()
                    if entry is not None:
                        entries.append(entry)
        return entries

    def _probe_one(self, path: str, mtime: int) -> CacheEntry | None:
        if self._cancel_event.is_set():
            return None
        try:
            return self._probe.probe(path, mtime)
        except (OSError, ValueError) as e:
            logger.debug("Cannot probe %s: %s", path, e)
            return None

    # ---- applications -----------------------------------------------------

    def scan_applications(
        self,
        roots: list[str] | tuple[str, ...] = DEFAULT_APP_ROOTS,
        *,
        sort_key: str = "name",
    ) -> ScanOutcome:
        """List application bundles with identity, size and last-used time.

        Identity comes from the cache when the bundle's mtime is unchanged,
        otherwise from Info.plist. Fresh cache entries supply metadata; the
        first few stale bundles are probed inline with a short budget and
        the rest are refreshed in the background.

        Raises:
            InvalidStateError: If called outside IDLE.
            ScanCancelled: If cancel() was called during the scan.
        """
        if sort_key not in SORT_KEYS:
            raise InvalidInput(f"Unknown sort key: {sort_key!r}")
        self._begin_scan()
        try:
            return self._collect_applications(roots, sort_key)
        except BaseException:
            self.cancel()
            self._abort_scan()
            raise

    def _collect_applications(
        self,
        roots: list[str] | tuple[str, ...],
        sort_key: str,
    ) -> ScanOutcome:
        bundles = AppScanner(self._gate, roots, cancel_event=self._cancel_event).discover()
        identities = self._resolve_identities(bundles)
        self._check_cancelled()
        self._transition(OrchestratorState.AGGREGATING)

        now = self._clock()
        keys = [(b.path, int(b.mtime)) for b in bundles]
        fresh, stale = self._cache.classify(keys, now)

        limit = self._config.inline_metadata_limit
        inline_keys, deferred = stale[:limit], stale[limit:]
        inline: dict[str, CacheEntry] = {}
        for path, mtime in inline_keys:
            if self._cancel_event.is_set():
                break
            inline[path] = self._probe.probe(
                path,
                mtime,
                with_identity=True,
                timeout=self._config.inline_metadata_timeout,
            )
        self._check_cancelled()
        if inline:
            self._cache.commit(inline.values())

        candidates = []
        for bundle in bundles:
            key = int(bundle.mtime)
            entry = fresh.get(bundle.path) or inline.get(bundle.path)
            estimated = False
            if entry is None:
                entry = self._cache.lookup(bundle.path, key)
                estimated = entry is not None
            bundle_id, display_name = identities[bundle.path]
            candidates.append(
                self._app_candidate(bundle, bundle_id, display_name, entry, estimated, now)
            )

        if deferred:
            self._refresh = self._refresher.refresh_async(deferred, with_identity=True)

        return self._finish_scan(
            sort_candidates(candidates, sort_key),
            completed=len(roots),
            total=len(roots),
            errors=[],
        )

    def _resolve_identities(self, bundles: list[AppBundle]) -> dict[str, tuple[str | None, str]]:
        """Resolve (bundle_id, display_name) for every bundle in a pool."""
        identities: dict[str, tuple[str | None, str]] = {}
        if not bundles:
            return identities

        def resolve(bundle: AppBundle) -> tuple[str | None, str]:
            if self._cancel_event.is_set():
                return None, bundle.name
            cached = self._cache.lookup(bundle.path, int(bundle.mtime))
            if cached is not None and cached.bundle_id and cached.display_name:
                return cached.bundle_id, cached.display_name
            return resolve_identity(bundle.path)

        workers = optimal_workers(WorkloadKind.IDENTITY, cap=self._config.identity_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sweepctl-id") as pool:
            futures = [pool.submit(resolve, bundle) for bundle in bundles]
            with self._stop_on_interrupt(futures):
                for bundle, future in zip(bundles, futures, strict=True):
                    identities[bundle.path] = future.result()
        return identities

    def _app_candidate(
        self,
        bundle: AppBundle,
        bundle_id: str | None,
        display_name: str,
        entry: CacheEntry | None,
        estimated: bool,
        now: float,
    ) -> CandidateArtifact:
        decision = self._gate.decide(bundle.path, bundle_id or display_name)
        last_used = entry.last_used_epoch if entry and entry.last_used_epoch > 0 else None
        size = entry.size_kb if entry and entry.size_kb > 0 else None
        return CandidateArtifact(
            path=bundle.path,
            kind=ArtifactKind.BUNDLE,
            name=bundle.name,
            mtime=bundle.mtime,
            age_days=age_in_days(last_used or bundle.mtime, now),
            size_kb=size,
            size_estimated=estimated and size is not None,
            bundle_id=bundle_id,
            last_used_epoch=last_used,
            protection=decision.verdict,
            deny_reason=decision.reason,
            default_selected=False,
            display_name=display_name,
        )

    def _finish_scan(
        self,
        candidates: list[CandidateArtifact],
        *,
        completed: int,
        total: int,
        errors: list[str],
    ) -> ScanOutcome:
        self._candidates = {c.path: c for c in candidates}
        self._transition(OrchestratorState.AWAITING_SELECTION)
        partial = PartialResult(completed, total) if completed < total else None
        logger.info("Scan found %d candidates (%d/%d roots)", len(candidates), completed, total)
        return ScanOutcome(
            candidates=candidates,
            partial=partial,
            refresh=self._refresh,
            errors=errors,
        )

    # ---- execution --------------------------------------------------------

    def execute(
        self,
        selection: Selection,
        *,
        elevated: bool = False,
        command: str = "",
    ) -> CleanupReport:
        """Execute the confirmed selection.

        Every result recorded before an interruption still reaches the
        operation log and the cache.

        Args:
            selection: Collaborator answer (proceed with a subset or abort).
            elevated: Delete with elevated privileges.
            command: Command name recorded in the operation log.

        Returns:
            CleanupReport with per-outcome counts.

        Raises:
            InvalidStateError: If no scan is awaiting selection.
            InvalidInput: If the subset contains paths that are not candidates.
        """
        self._require_selection_pending()

        report = CleanupReport()
        if selection.aborted:
            logger.info("Selection aborted, nothing deleted")
            self._candidates = {}
            self._transition(OrchestratorState.IDLE)
            return report

        unknown = [p for p in selection.paths if p not in self._candidates]
        if unknown:
            raise InvalidInput(f"Selection contains unknown paths: {', '.join(unknown)}")

        self._transition(OrchestratorState.EXECUTING)
        try:
            for path in dict.fromkeys(selection.paths):
                report.record(self._execute_one(self._candidates[path], elevated))
        finally:
            self._persist(report, command)
            self._candidates = {}
            self._transition(OrchestratorState.IDLE)

        return report

    def uninstall(
        self,
        path: str,
        leftovers: list[str],
        *,
        command: str = "",
    ) -> CleanupReport:
        """Remove an application bundle and then its leftover files.

        Leftovers are only touched once the bundle itself was removed (or
        would be, in dry-run mode); a protected or failed bundle keeps its
        data.

        Args:
            path: Bundle path from the current application scan.
            leftovers: Support files found for the bundle.
            command: Command name recorded in the operation log.

        Returns:
            CleanupReport covering the bundle and its leftovers.

        Raises:
            InvalidStateError: If no application scan is awaiting selection.
            InvalidInput: If path is not a bundle of the current scan.
        """
        self._require_selection_pending()
        candidate = self._candidates.get(path)
        if candidate is None or candidate.kind != ArtifactKind.BUNDLE:
            raise InvalidInput(f"Not an application bundle of this scan: {path}")

        report = self.execute(Selection.proceed([path]), command=command)
        if report.deleted == 0:
            logger.info("Bundle %s was not removed, keeping its leftovers", path)
            return report

        extra = CleanupReport()
        try:
            for result in self._executor.delete_many(leftovers):
                extra.record(result)
        finally:
            self._persist(extra, command)
        return report.merge(extra)

    def _require_selection_pending(self) -> None:
        if self._state != OrchestratorState.AWAITING_SELECTION:
            msg = f"Nothing to execute in state {self._state.value}"
            raise InvalidStateError(msg)

    def _execute_one(self, candidate: CandidateArtifact, elevated: bool) -> ExecutionResult:
        if candidate.protection == Verdict.DENY:
            reason = candidate.deny_reason.value if candidate.deny_reason else "denied"
            return ExecutionResult(
                path=candidate.path,
                outcome=Outcome.DENIED,
                error=reason,
                dry_run=self._executor.dry_run,
            )
        return self._executor.delete(candidate.path, elevated=elevated)

    def _persist(self, report: CleanupReport, command: str) -> None:
        if self._operation_log is not None and report.results:
            try:
                self._operation_log.record_results(report.results, command=command)
            except (OSError, RuntimeError) as e:
                logger.warning("Cannot write operation log: %s", e)

        removed = [
            r.path for r in report.results if r.outcome == Outcome.DELETED and not r.dry_run
        ]
        if removed:
            self._cache.commit([], drop_paths=removed)
