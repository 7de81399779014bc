"""User cache and log cleanup.

Builds a plan of (directory, pattern, age) tasks from the static target
table and the per-application log folders in Application Support, then
runs each task through SafeExecutor.find_delete so every match passes the
policy gate.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from sweepctl.cleaner.login_items import LoginItem, remove_login_items
from sweepctl.cleaner.targets import APP_SUPPORT_LOG_DIRS, USER_TARGETS, CleanTarget
from sweepctl.core.state import OperationLog
from sweepctl.executor.executor import SafeExecutor
from sweepctl.orchestrator.models import CleanupReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CleanTask:
    """One bulk delete-by-pattern run.

    Attributes:
        label: Description shown in the plan.
        base_dir: Existing directory to search.
        pattern: Name glob of entries to remove.
        age_days: Minimum entry age.
        type_filter: Entry type passed to find_delete.
    """

    label: str
    base_dir: str
    pattern: str
    age_days: int
    type_filter: str


class UserCleaner:
    """Removes old user caches, logs and broken login items.

    Args:
        executor: Executor that performs (or, in dry-run, reports) removals.
        age_days: Default minimum age for targets without their own.
        operation_log: Log receiving every result.
        targets: Static targets. Default: USER_TARGETS.
    """

    def __init__(
        self,
        executor: SafeExecutor,
        *,
        age_days: int = 7,
        operation_log: OperationLog | None = None,
        targets: tuple[CleanTarget, ...] = USER_TARGETS,
    ) -> None:
        self._executor = executor
        self._age_days = age_days
        self._operation_log = operation_log
        self._targets = targets

    @property
    def home(self) -> Path:
        return Path(self._executor.gate.home_dir)

    def plan(self) -> list[CleanTask]:
        """Resolve targets to existing directories.

        Targets the gate refuses outright are left out of the plan.
        """
        tasks = [self._task(target) for target in self._targets]
        tasks.extend(self._app_support_tasks())
        return [
            task
            for task in tasks
            if Path(task.base_dir).is_dir() and self._executor.gate.is_allowed(task.base_dir)
        ]

    def _task(self, target: CleanTarget) -> CleanTask:
        base = target.base
        if base == "~" or base.startswith("~/"):
            base = str(self.home) + base[1:]
        return CleanTask(
            label=target.label,
            base_dir=base,
            pattern=target.pattern,
            age_days=self._age_days if target.age_days is None else target.age_days,
            type_filter=target.type_filter,
        )

    def _app_support_tasks(self) -> list[CleanTask]:
        support = self.home / "Library" / "Application Support"
        try:
            apps = sorted(p for p in support.iterdir() if p.is_dir() and not p.is_symlink())
        except OSError as e:
            logger.debug("Cannot list %s: %s", support, e)
            return []

        tasks = []
        for app_dir in apps:
            if not self._executor.gate.decide_identity(app_dir.name).allowed:
                logger.debug("Skipping protected application data %s", app_dir.name)
                continue
            for sub in APP_SUPPORT_LOG_DIRS:
                tasks.append(
                    CleanTask(
                        label=f"{app_dir.name} logs",
                        base_dir=str(app_dir / sub),
                        pattern="*",
                        age_days=self._age_days,
                        type_filter="f",
                    )
                )
        return tasks

    def clean(
        self,
        tasks: list[CleanTask],
        login_items: list[LoginItem] | None = None,
        *,
        command: str = "",
    ) -> CleanupReport:
        """Run the planned tasks and remove broken login items.

        Results gathered before an interruption are still logged.

        Returns:
            CleanupReport with one result per task and login item.
        """
        report = CleanupReport()
        try:
            for task in tasks:
                logger.debug("Cleaning %s (%s)", task.label, task.base_dir)
                report.record(
                    self._executor.find_delete(
                        task.base_dir,
                        task.pattern,
                        age_days=task.age_days,
                        type_filter=task.type_filter,
                    )
                )
            if login_items:
                report.merge(remove_login_items(self._executor, login_items))
        finally:
            self._persist(report, command)
        return report

    def _persist(self, report: CleanupReport, command: str) -> None:
        if self._operation_log is None or not report.results:
            return
        try:
            self._operation_log.record_results(report.results, command=command)
        except (OSError, RuntimeError) as e:
            logger.warning("Cannot write operation log: %s", e)
