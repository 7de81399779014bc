"""Static protection rule tables.

This module defines the rules consulted by the policy gate. Path
patterns are plain strings: a pattern ending in ``/**`` covers the
directory and everything beneath it, any other pattern covers exactly
that path. Patterns starting with ``~`` are expanded to the user's home
directory at evaluation time.

Three tiers exist:

- CRITICAL_RULES: filesystem roots that are always denied. No exception
  table, override file or privilege level can change this.
- TREE_RULES: protected trees plus allow-list exceptions nested inside
  them. The most specific matching pattern wins.
- IDENTITY_RULES: application bundle identifiers and login-item names
  that must never be cleaned (system components, security, VPN and AI
  tools).
"""

from dataclasses import dataclass
from enum import Enum


class RuleScope(str, Enum):
    """What a protection rule is matched against.

    Attributes:
        PATH: Absolute filesystem path (exact or subtree).
        IDENTITY: Bundle identifier, matched exactly or on a dot boundary.
        NAME_GLOB: Whole-identity glob pattern.
    """

    PATH = "path"
    IDENTITY = "identity"
    NAME_GLOB = "name_glob"


class DenyReason(str, Enum):
    """Reason the policy gate refused a path or identity."""

    INVALID_INPUT = "invalid_input"
    CRITICAL_PATH = "critical_path"
    PROTECTED_PATH = "protected_path"
    USER_OVERRIDE = "user_override"
    SYSTEM_IDENTITY = "system_identity"
    PROTECTED_IDENTITY = "protected_identity"
    SHORT_NAME = "short_name"


@dataclass(frozen=True, slots=True)
class ProtectionRule:
    """A single entry of a protection table.

    Attributes:
        scope: What the pattern is matched against.
        pattern: Path, identifier or glob pattern.
        reason: Why the rule exists (shown to the user on denial).
        allow: True for an exception carved out of a protected tree.
    """

    scope: RuleScope
    pattern: str
    reason: str
    allow: bool = False


def _path(pattern: str, reason: str, *, allow: bool = False) -> ProtectionRule:
    return ProtectionRule(scope=RuleScope.PATH, pattern=pattern, reason=reason, allow=allow)


def _ident(pattern: str, reason: str) -> ProtectionRule:
    return ProtectionRule(scope=RuleScope.IDENTITY, pattern=pattern, reason=reason)


def _glob(pattern: str, reason: str) -> ProtectionRule:
    return ProtectionRule(scope=RuleScope.NAME_GLOB, pattern=pattern, reason=reason)


_ROOT = "filesystem root"
_SYSTEM = "operating system tree"
_KEXT = "kernel extensions"

CRITICAL_RULES: tuple[ProtectionRule, ...] = (
    _path("/", _ROOT),
    _path("/bin/**", _SYSTEM),
    _path("/sbin/**", _SYSTEM),
    _path("/usr", _SYSTEM),
    _path("/usr/bin/**", _SYSTEM),
    _path("/usr/sbin/**", _SYSTEM),
    _path("/usr/lib/**", _SYSTEM),
    _path("/etc", _SYSTEM),
    _path("/var", _SYSTEM),
    _path("/private", _SYSTEM),
    _path("/boot/**", _SYSTEM),
    _path("/dev/**", _SYSTEM),
    _path("/proc/**", _SYSTEM),
    _path("/sys/**", _SYSTEM),
    _path("/System/**", _SYSTEM),
    _path("/Library/Extensions/**", _KEXT),
    _path("/lib/modules/**", _KEXT),
)

TREE_RULES: tuple[ProtectionRule, ...] = (
    # System configuration and libraries
    _path("/etc/**", "system configuration"),
    _path("/usr/**", "system software"),
    _path("/lib/**", "system libraries"),
    _path("/lib64/**", "system libraries"),
    _path("/opt/**", "installed software"),
    _path("/Applications", "application folder"),
    _path("/Users", "user homes"),
    _path("/home", "user homes"),
    _path("/Volumes", "mount points"),
    # /var with its known-safe caches, logs and temp trees
    _path("/var/**", "system state"),
    _path("/var/log/**", "system logs", allow=True),
    _path("/var/tmp/**", "temporary files", allow=True),
    _path("/var/cache/**", "system caches", allow=True),
    _path("/var/folders/**", "per-user temp", allow=True),
    _path("/private/**", "system state"),
    _path("/private/tmp/**", "temporary files", allow=True),
    _path("/private/var/log/**", "system logs", allow=True),
    _path("/private/var/tmp/**", "temporary files", allow=True),
    _path("/private/var/folders/**", "per-user temp", allow=True),
    # /Library is protected except caches, logs and stale updates
    _path("/Library/**", "system library"),
    _path("/Library/Caches/**", "system caches", allow=True),
    _path("/Library/Logs/**", "system logs", allow=True),
    _path("/Library/Updates/**", "downloaded updates", allow=True),
    # Home directory and its top-level user folders
    _path("~", "home directory"),
    _path("~/Desktop", "user folder"),
    _path("~/Documents", "user folder"),
    _path("~/Downloads", "user folder"),
    _path("~/Pictures", "user folder"),
    _path("~/Music", "user folder"),
    _path("~/Movies", "user folder"),
    _path("~/Library", "user library"),
    _path("~/.config", "user configuration"),
    _path("~/.local/share", "user data"),
    # Credentials and security material
    _path("~/.ssh/**", "SSH keys"),
    _path("~/.gnupg/**", "GPG keys"),
    _path("~/.gpg/**", "GPG keys"),
    _path("~/Library/Keychains/**", "keychains"),
    _path("~/.local/share/keyrings/**", "keyrings"),
    _path("~/Library/Mobile Documents/**", "iCloud Drive"),
    _path("~/Library/Application Support/MobileSync/**", "device backups"),
    # sweepctl itself
    _path("~/.config/sweepctl/**", "sweepctl configuration"),
    _path("~/.local/state/sweepctl/**", "sweepctl state"),
    _path("~/.cache/sweepctl/**", "sweepctl cache"),
)

_SYS_ID = "system component"
_VPN = "VPN or network tool"
_SECURITY = "security tool"
_PASSWORDS = "password manager"
_AI = "AI tool"

SYSTEM_IDENTITY_RULES: tuple[ProtectionRule, ...] = (
    _ident("com.apple", _SYS_ID),
    _ident("org.freedesktop", _SYS_ID),
    _ident("org.gnome.shell", _SYS_ID),
    _ident("org.kde.plasma", _SYS_ID),
    _ident("com.system76", _SYS_ID),
)

PROTECTED_IDENTITY_RULES: tuple[ProtectionRule, ...] = (
    # VPN and network
    _ident("com.wireguard", _VPN),
    _ident("io.tailscale", _VPN),
    _ident("net.mullvad", _VPN),
    _ident("com.nordvpn", _VPN),
    _ident("com.expressvpn", _VPN),
    _ident("ch.protonvpn", _VPN),
    _ident("com.protonvpn", _VPN),
    _ident("com.privateinternetaccess", _VPN),
    _ident("net.tunnelblick", _VPN),
    _ident("com.cisco.anyconnect", _VPN),
    _ident("com.cisco.secureclient", _VPN),
    _ident("com.paloaltonetworks.globalprotect", _VPN),
    _ident("com.fortinet", _VPN),
    _ident("com.surfshark", _VPN),
    _ident("com.cloudflare.1dot1dot1dot1", _VPN),
    _ident("at.obdev.littlesnitch", _VPN),
    # Security
    _ident("com.objective-see", _SECURITY),
    _ident("com.crowdstrike", _SECURITY),
    _ident("com.sentinelone", _SECURITY),
    _ident("com.malwarebytes", _SECURITY),
    _ident("com.sophos", _SECURITY),
    _ident("com.jamf", _SECURITY),
    _ident("com.kandji", _SECURITY),
    _ident("com.yubico", _SECURITY),
    # Password managers
    _ident("com.1password", _PASSWORDS),
    _ident("com.agilebits", _PASSWORDS),
    _ident("com.bitwarden", _PASSWORDS),
    _ident("com.lastpass", _PASSWORDS),
    _ident("com.dashlane", _PASSWORDS),
    _ident("org.keepassxc", _PASSWORDS),
    # AI tools
    _ident("com.openai", _AI),
    _ident("com.anthropic", _AI),
    _ident("ai.perplexity", _AI),
    _ident("com.exafunction.windsurf", _AI),
    _ident("com.todesktop.230313mzl4w4u92", _AI),
    _ident("ai.elementlabs.lmstudio", _AI),
    _ident("com.electron.ollama", _AI),
    # Login-item display names (no reverse-DNS form)
    _ident("1password", _PASSWORDS),
    _ident("bitwarden", _PASSWORDS),
    _ident("tailscale", _VPN),
    _ident("wireguard", _VPN),
    _ident("little snitch", _VPN),
    _ident("chatgpt", _AI),
    _ident("claude", _AI),
    _ident("ollama", _AI),
)

GLOB_IDENTITY_RULES: tuple[ProtectionRule, ...] = (
    _glob("*.networkextension", "network extension"),
    _glob("*.systemextension", "system extension"),
    _glob("*.vpn", _VPN),
    _glob("*.vpn.*", _VPN),
)

# Names shorter than this are never matched against anything.
MIN_IDENTITY_LENGTH = 3
