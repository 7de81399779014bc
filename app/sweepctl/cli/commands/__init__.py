"""CLI commands for sweepctl.

This package contains all subcommand implementations.
"""

from sweepctl.cli.commands import apps, cache, config, history, purge, scan, whitelist

__all__ = ["apps", "cache", "config", "history", "purge", "scan", "whitelist"]
