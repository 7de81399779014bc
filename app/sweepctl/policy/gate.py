"""Protection policy gate.

The gate is the single place that decides whether a path (and the
application identity behind it) may be cleaned. It is pure: apart from
reading the home directory it performs no I/O, so it is safe to call
from any worker thread.

Evaluation order for a path:

1. Input validation (empty, relative, ``..`` segments, control characters).
2. Critical roots. Always denied, nothing overrides them.
3. Protected trees and their nested exceptions. The most specific
   matching pattern decides.
4. User override list (can only deny).
5. Identity checks, if an identity was supplied.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from sweepctl.policy.overrides import UserOverride
from sweepctl.policy.rules import (
    CRITICAL_RULES,
    GLOB_IDENTITY_RULES,
    MIN_IDENTITY_LENGTH,
    PROTECTED_IDENTITY_RULES,
    SYSTEM_IDENTITY_RULES,
    TREE_RULES,
    DenyReason,
    ProtectionRule,
)

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    """Gate verdict."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True, slots=True)
class Decision:
    """Result of a policy evaluation.

    Attributes:
        verdict: ALLOW or DENY.
        reason: Why the path was denied, None when allowed.
        detail: Human-readable explanation (matched rule or validation error).
    """

    verdict: Verdict
    reason: DenyReason | None = None
    detail: str = ""

    @property
    def allowed(self) -> bool:
        return self.verdict == Verdict.ALLOW

    @classmethod
    def allow(cls) -> "Decision":
        return cls(verdict=Verdict.ALLOW)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str = "") -> "Decision":
        return cls(verdict=Verdict.DENY, reason=reason, detail=detail)


def _expand(pattern: str, home: str) -> str:
    if pattern == "~":
        return home
    if pattern.startswith("~/"):
        return home + pattern[1:]
    return pattern


def match_path_rule(rule: ProtectionRule, path: str, home: str) -> int | None:
    """Match a path rule against a normalized absolute path.

    Args:
        rule: Path-scoped rule.
        path: Normalized absolute path.
        home: Home directory used to expand ``~`` patterns.

    Returns:
        Specificity of the match (length of the expanded pattern base),
        or None if the rule does not match.
    """
    pattern = _expand(rule.pattern, home)
    if pattern.endswith("/**"):
        base = pattern[:-3] or "/"
        if path == base or path.startswith(base.rstrip("/") + "/"):
            return len(base)
        return None
    return len(pattern) if path == pattern else None


def match_identity_rule(rule: ProtectionRule, identity: str) -> bool:
    """Match an identity rule on an exact or dot-boundary prefix basis.

    ``com.foo`` matches ``com.foo`` and ``com.foo.helper`` but never
    ``com.foobar``. Matching is case-insensitive.
    """
    ident = identity.lower()
    pattern = rule.pattern.lower()
    return ident == pattern or ident.startswith(pattern + ".")


def validate_path(path: str) -> str | None:
    """Return an error message if the path is not acceptable input."""
    if not path:
        return "empty path"
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in path):
        return "path contains control characters"
    if not path.startswith("/"):
        return "path is not absolute"
    if ".." in path.split("/"):
        return "path contains a parent-directory segment"
    return None


def normalize_path(path: str) -> str:
    """Collapse duplicate separators, ``.`` segments and trailing slashes."""
    normalized = os.path.normpath(path)
    # POSIX keeps a leading double slash
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


class PolicyGate:
    """Allow/deny decisions for paths and application identities.

    Example:
        >>> gate = PolicyGate()
        >>> gate.decide("/usr").allowed
        False
        >>> gate.decide_identity("com.apple.Safari").reason
        <DenyReason.SYSTEM_IDENTITY: 'system_identity'>
    """

    def __init__(
        self,
        override: UserOverride | None = None,
        *,
        home: Path | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            override: User-protected paths (additive only).
            home: Home directory for ``~`` rules. Default: Path.home()
                  resolved at each call.
        """
        self._override = override or UserOverride()
        self._home = home

    @property
    def override(self) -> UserOverride:
        return self._override

    @property
    def home_dir(self) -> str:
        """Normalized home directory used for ~ rules."""
        home = self._home if self._home is not None else Path.home()
        return normalize_path(str(home))

    def decide(
        self,
        path: str,
        identity: str | None = None,
        *,
        elevated: bool = False,
    ) -> Decision:
        """Decide whether a path may be cleaned.

        Args:
            path: Absolute path to evaluate.
            identity: Optional bundle identifier or login-item name of the
                      application that owns the path.
            elevated: Whether the caller would act with elevated
                      privileges. Critical roots are denied either way.

        Returns:
            Decision with verdict and reason.
        """
        error = validate_path(path)
        if error is not None:
            return Decision.deny(DenyReason.INVALID_INPUT, error)

        normalized = normalize_path(path)
        home = self.home_dir

        for rule in CRITICAL_RULES:
            if match_path_rule(rule, normalized, home) is not None:
                logger.debug("Critical path denied (elevated=%s): %s", elevated, normalized)
                return Decision.deny(DenyReason.CRITICAL_PATH, rule.reason)

        best: ProtectionRule | None = None
        best_score = -1
        for rule in TREE_RULES:
            score = match_path_rule(rule, normalized, home)
            if score is not None and score > best_score:
                best, best_score = rule, score

        if best is not None and not best.allow:
            return Decision.deny(DenyReason.PROTECTED_PATH, best.reason)

        if self._override.covers(normalized):
            return Decision.deny(DenyReason.USER_OVERRIDE, "listed in whitelist")

        if identity is not None:
            return self.decide_identity(identity)

        return Decision.allow()

    def decide_identity(self, identity: str) -> Decision:
        """Decide whether an application identity may be cleaned.

        Args:
            identity: Bundle identifier or login-item name.

        Returns:
            Decision with verdict and reason.
        """
        ident = identity.strip()
        if not ident:
            return Decision.deny(DenyReason.INVALID_INPUT, "empty identity")
        if any(ord(ch) < 32 or ord(ch) == 127 for ch in ident):
            return Decision.deny(DenyReason.INVALID_INPUT, "identity contains control characters")
        if len(ident) < MIN_IDENTITY_LENGTH:
            return Decision.deny(
                DenyReason.SHORT_NAME,
                f"identity shorter than {MIN_IDENTITY_LENGTH}",
            )

        for rule in SYSTEM_IDENTITY_RULES:
            if match_identity_rule(rule, ident):
                return Decision.deny(DenyReason.SYSTEM_IDENTITY, rule.reason)

        for rule in PROTECTED_IDENTITY_RULES:
            if match_identity_rule(rule, ident):
                return Decision.deny(DenyReason.PROTECTED_IDENTITY, rule.reason)

        lowered = ident.lower()
        for rule in GLOB_IDENTITY_RULES:
            if fnmatch.fnmatchcase(lowered, rule.pattern.lower()):
                return Decision.deny(DenyReason.PROTECTED_IDENTITY, rule.reason)

        return Decision.allow()

    def is_allowed(self, path: str, identity: str | None = None) -> bool:
        """Shorthand for ``decide(path, identity).allowed``."""
        return self.decide(path, identity).allowed
