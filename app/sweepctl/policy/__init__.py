"""Protection policy for sweepctl.

This package decides which paths and application identities may be
cleaned. Critical system roots are always denied, protected trees can
carry nested exceptions, and the user whitelist can only add protection.
"""

from sweepctl.policy.gate import Decision, PolicyGate, Verdict
from sweepctl.policy.overrides import (
    UserOverride,
    add_override,
    load_user_override,
    remove_override,
    save_user_override,
)
from sweepctl.policy.rules import DenyReason, ProtectionRule, RuleScope

__all__ = [
    "Decision",
    "DenyReason",
    "PolicyGate",
    "ProtectionRule",
    "RuleScope",
    "UserOverride",
    "Verdict",
    "add_override",
    "load_user_override",
    "remove_override",
    "save_user_override",
]
