"""sweepctl - Safety-gated disk cleanup.

Finds regenerable disk artifacts (build outputs, dependency caches,
stale application data) and removes only what the protection policy
allows.
"""

__version__ = "0.1.0"
