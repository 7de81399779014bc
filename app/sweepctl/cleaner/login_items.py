"""Broken login items.

A login item is a launch agent plist in ~/Library/LaunchAgents. It is
broken when the program it starts no longer exists, usually because the
application was removed without its agent.
"""

import logging
import plistlib
from dataclasses import dataclass
from pathlib import Path

from sweepctl.executor.executor import SafeExecutor
from sweepctl.orchestrator.models import CleanupReport
from sweepctl.policy.gate import PolicyGate
from sweepctl.utils.shell import command_exists

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LoginItem:
    """A launch agent and the program it starts.

    Attributes:
        path: Plist path.
        label: Agent label (falls back to the file name).
        program: Program path, or empty if the plist names none.
    """

    path: str
    label: str
    program: str

    @property
    def is_broken(self) -> bool:
        return bool(self.program) and not Path(self.program).exists()


def read_login_item(path: Path) -> LoginItem | None:
    """Read label and program from a launch agent plist.

    Returns:
        LoginItem, or None if the file is not a readable plist dictionary.
    """
    try:
        with path.open("rb") as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logger.debug("Cannot read login item %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        return None

    label = data.get("Label")
    if not isinstance(label, str) or not label.strip():
        label = path.name.removesuffix(".plist")

    program = data.get("Program")
    if not isinstance(program, str) or not program:
        arguments = data.get("ProgramArguments")
        first = arguments[0] if isinstance(arguments, list) and arguments else ""
        program = first if isinstance(first, str) else ""
    return LoginItem(path=str(path), label=label.strip(), program=program)


def find_broken_login_items(gate: PolicyGate, agents_dir: Path | None = None) -> list[LoginItem]:
    """List launch agents whose program is gone.

    Agents with protected labels (system components, VPN and security
    tools) are never reported.

    Args:
        gate: Policy gate deciding on the plist path and agent label.
        agents_dir: Directory to search. Default: ~/Library/LaunchAgents.

    Returns:
        Broken login items sorted by path.
    """
    directory = agents_dir or Path(gate.home_dir) / "Library" / "LaunchAgents"
    if not directory.is_dir():
        return []

    broken = []
    for plist in sorted(directory.glob("*.plist")):
        if plist.is_symlink() or not plist.is_file():
            continue
        item = read_login_item(plist)
        if item is None or not item.is_broken:
            continue
        if not gate.decide(item.path, identity=item.label).allowed:
            logger.debug("Keeping protected login item %s", item.label)
            continue
        broken.append(item)
    return broken


def remove_login_items(executor: SafeExecutor, items: list[LoginItem]) -> CleanupReport:
    """Unload each agent, then delete its plist through the executor.

    A failed unload is logged and does not stop the removal.
    """
    report = CleanupReport()
    if not items:
        return report

    if command_exists("launchctl"):
        for item in items:
            result = executor.run_maintenance(["launchctl", "unload", item.path], timeout=10)
            if not result.success:
                logger.debug("launchctl unload %s: %s", item.path, result.error)

    for result in executor.delete_many([item.path for item in items]):
        report.record(result)
    return report
