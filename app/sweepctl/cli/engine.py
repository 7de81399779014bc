"""Wiring of the engine components used by CLI commands."""

import logging
from dataclasses import dataclass
from pathlib import Path

import typer

from sweepctl.cache.lock import DirectoryLease
from sweepctl.cache.probe import MetadataProbe
from sweepctl.cache.refresh import MetadataRefresher, RefreshHandle
from sweepctl.cache.store import MetadataCache
from sweepctl.cleaner.user import UserCleaner
from sweepctl.core.config import SweepConfig, load_config_or_default
from sweepctl.core.errors import InvalidInput, ScanCancelled
from sweepctl.core.paths import expand_user_path, get_metadata_cache_path
from sweepctl.core.state import OperationLog
from sweepctl.executor.executor import SafeExecutor
from sweepctl.orchestrator.models import ScanOutcome
from sweepctl.orchestrator.orchestrator import ScanOrchestrator
from sweepctl.policy.gate import PolicyGate
from sweepctl.policy.overrides import load_user_override
from sweepctl.scanner.discovery import load_search_roots
from sweepctl.utils.formatting import print_error, print_warning

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Components of one CLI run sharing a single policy gate."""

    config: SweepConfig
    gate: PolicyGate
    executor: SafeExecutor
    cache: MetadataCache
    refresher: MetadataRefresher
    orchestrator: ScanOrchestrator
    cleaner: UserCleaner


def build_engine(
    *,
    dry_run: bool = False,
    config: SweepConfig | None = None,
    cache_file: Path | None = None,
) -> Engine:
    """Build the engine from configuration and the user whitelist.

    Args:
        dry_run: Report deletions instead of performing them.
        config: Engine configuration. Default: loaded from config.toml.
        cache_file: Metadata cache file. Default: cache dir/metadata_v1.jsonl.

    Returns:
        Engine ready for a scan.
    """
    cfg = config or load_config_or_default()
    gate = PolicyGate(load_user_override())
    executor = SafeExecutor(
        gate,
        dry_run=dry_run,
        command_timeout=cfg.command_timeout_seconds,
        size_timeout=cfg.size_timeout_seconds,
        find_max_depth=cfg.find_max_depth,
    )

    def lease_factory(path: Path) -> DirectoryLease:
        return DirectoryLease(
            path,
            attempts=cfg.lock_attempts,
            interval=cfg.lock_retry_interval,
            stale_after=cfg.lock_stale_seconds,
        )

    cache = MetadataCache(
        cache_file or get_metadata_cache_path(),
        ttl_seconds=cfg.cache_ttl_seconds,
        lease_factory=lease_factory,
    )
    probe = MetadataProbe(executor)
    refresher = MetadataRefresher(cache, probe, max_workers=cfg.refresh_workers)
    operation_log = OperationLog()
    orchestrator = ScanOrchestrator(
        gate,
        executor,
        cache,
        refresher,
        cfg,
        probe=probe,
        operation_log=operation_log,
    )
    cleaner = UserCleaner(executor, age_days=cfg.clean_age_days, operation_log=operation_log)
    return Engine(
        config=cfg,
        gate=gate,
        executor=executor,
        cache=cache,
        refresher=refresher,
        orchestrator=orchestrator,
        cleaner=cleaner,
    )


def resolve_roots(paths: list[str] | None) -> list[str] | None:
    """Expand user-supplied roots; None when no roots were given."""
    if not paths:
        return None
    roots = []
    for raw in paths:
        root = expand_user_path(raw)
        if not root.startswith("/"):
            print_error(f"Search root must be an absolute path: {raw}")
            raise typer.Exit(code=1)
        roots.append(root)
    return roots


def finish_refresh(handle: RefreshHandle | None, timeout: float) -> None:
    """Give a background refresh a bounded chance to commit before exit."""
    if handle is None or handle.done:
        return
    if not handle.wait(timeout):
        logger.debug("Background refresh still running after %.1fs, cancelling", timeout)
        handle.cancel()


def run_artifact_scan(
    engine: Engine,
    paths: list[str] | None,
    targets: list[str] | None,
    sort_key: str,
) -> ScanOutcome:
    """Scan for artifacts and report skipped roots.

    Raises:
        typer.Exit: On invalid input (code 1) or interruption (code 130).
    """
    roots = resolve_roots(paths) or load_search_roots()
    logger.debug("Scanning roots: %s", ", ".join(roots))
    try:
        outcome = engine.orchestrator.scan_artifacts(roots, targets or None, sort_key=sort_key)
    except InvalidInput as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except (KeyboardInterrupt, ScanCancelled) as e:
        engine.orchestrator.cancel()
        print_warning("Scan cancelled.")
        raise typer.Exit(code=130) from e

    for message in outcome.errors:
        print_warning(f"Skipped {message}")
    if outcome.partial is not None:
        print_warning(str(outcome.partial))
    return outcome
