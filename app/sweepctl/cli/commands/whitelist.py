"""Whitelist commands for managing user-protected paths.

Whitelisted paths (and everything beneath them) are never offered for
deletion. The whitelist can only add protection; it cannot unlock a
path the built-in rules protect.
"""

from typing import Annotated

import typer

from sweepctl.core.paths import contract_user_path, expand_user_path, get_whitelist_path
from sweepctl.policy.gate import PolicyGate
from sweepctl.policy.overrides import (
    add_override,
    load_user_override,
    remove_override,
    save_user_override,
)
from sweepctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage paths that are never deleted.",
    no_args_is_help=True,
)


@app.command("list")
def list_paths() -> None:
    """Show whitelisted paths."""
    override = load_user_override()
    if not override.paths:
        print_info(f"Whitelist is empty ({get_whitelist_path()}).")
        return

    for path in sorted(override.paths):
        console.print(contract_user_path(path))


@app.command()
def add(
    path: Annotated[str, typer.Argument(help="Absolute path or ~/path to protect.")],
) -> None:
    """Protect a path and everything beneath it."""
    expanded = expand_user_path(path)
    if not expanded.startswith("/"):
        print_error(f"Whitelist entries must be absolute paths: {path}")
        raise typer.Exit(code=1)

    override = load_user_override()
    if expanded in override.paths:
        print_info(f"Already whitelisted: {contract_user_path(expanded)}")
        return

    decision = PolicyGate(override).decide(expanded)
    if not decision.allowed and decision.reason is not None:
        print_info(f"Note: already protected by built-in rules ({decision.reason.value}).")

    try:
        save_user_override(add_override(override, expanded))
    except OSError as e:
        print_error(f"Failed to write whitelist: {e}")
        raise typer.Exit(code=1) from e
    print_success(f"Whitelisted {contract_user_path(expanded)}")


@app.command()
def remove(
    path: Annotated[str, typer.Argument(help="Path to remove from the whitelist.")],
) -> None:
    """Remove a path from the whitelist."""
    expanded = expand_user_path(path)
    override = load_user_override()
    if expanded not in override.paths:
        print_error(f"Not whitelisted: {path}")
        raise typer.Exit(code=1)

    try:
        save_user_override(remove_override(override, expanded))
    except OSError as e:
        print_error(f"Failed to write whitelist: {e}")
        raise typer.Exit(code=1) from e
    print_success(f"Removed {contract_user_path(expanded)} from whitelist")
