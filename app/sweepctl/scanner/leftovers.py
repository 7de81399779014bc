"""Support files an application leaves behind in ~/Library."""

import glob
import logging
from pathlib import Path

from sweepctl.policy.gate import PolicyGate

logger = logging.getLogger(__name__)

# {id} is the bundle identifier, {name} the display name
LEFTOVER_LOCATIONS: tuple[str, ...] = (
    "Application Support/{id}",
    "Application Support/{name}",
    "Caches/{id}",
    "Caches/{name}",
    "Preferences/{id}.plist",
    "Preferences/ByHost/{id}.*.plist",
    "Logs/{id}",
    "Logs/{name}",
    "Saved Application State/{id}.savedState",
    "HTTPStorages/{id}",
    "HTTPStorages/{id}.binarycookies",
    "WebKit/{id}",
    "Cookies/{id}.binarycookies",
    "LaunchAgents/{id}*.plist",
    "Containers/{id}",
    "Group Containers/*.{id}",
    "Application Scripts/{id}",
)


def find_app_leftovers(
    gate: PolicyGate,
    bundle_id: str | None,
    display_name: str,
    library: Path | None = None,
) -> list[str]:
    """Find support files that belong to an application.

    Locations keyed by the display name are only searched when the name
    passes the identity rules, so short or system names never match
    shared folders.

    Args:
        gate: Policy gate; every match must be allowed for the app's identity.
        bundle_id: Bundle identifier, if known.
        display_name: Display name of the application.
        library: User library directory. Default: ~/Library of the gate's home.

    Returns:
        Sorted list of existing, deletable paths.
    """
    base = library or Path(gate.home_dir) / "Library"
    identity = bundle_id or display_name
    if not gate.decide_identity(identity).allowed:
        logger.debug("Not searching leftovers of protected identity %s", identity)
        return []
    use_name = gate.decide_identity(display_name).allowed

    found: set[str] = set()
    for location in LEFTOVER_LOCATIONS:
        if "{id}" in location and not bundle_id:
            continue
        if "{name}" in location and not use_name:
            continue
        pattern = location.replace("{id}", glob.escape(bundle_id or "")).replace(
            "{name}", glob.escape(display_name)
        )
        for match in glob.glob(str(base / pattern)):
            if gate.decide(match, identity=identity).allowed:
                found.add(match)
            else:
                logger.debug("Skipping protected leftover %s", match)
    return sorted(found)
