"""Main CLI application entry point.

Defines the Typer application, global options and logging setup.
"""

import logging
import os
from typing import Annotated

import typer
from rich.logging import RichHandler

from sweepctl import __version__
from sweepctl.cli.commands import apps, cache, clean, config, history, purge, scan, whitelist
from sweepctl.utils.formatting import err_console

DEBUG_ENV_VAR = "SWEEPCTL_DEBUG"

# Create main Typer app
app = typer.Typer(
    name="sweepctl",
    help="Find and remove regenerable build artifacts safely.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sweepctl version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool = False) -> None:
    """Route library logging to stderr through Rich.

    DEBUG when verbose or SWEEPCTL_DEBUG=1, ERROR when quiet, WARNING otherwise.
    """
    debug = verbose or os.environ.get(DEBUG_ENV_VAR) == "1"
    level = logging.DEBUG if debug else logging.ERROR if quiet else logging.WARNING
    root = logging.getLogger("sweepctl")
    root.setLevel(level)
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(
        RichHandler(console=err_console, show_path=debug, rich_tracebacks=debug, markup=False)
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """sweepctl - Find and remove regenerable build artifacts safely.

    Scans your project directories for node_modules, target, .venv and
    similar build output, and deletes what you confirm. System paths,
    credentials and whitelisted entries are never touched.
    """
    configure_logging(verbose, quiet)
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(purge.app, name="purge")
app.add_typer(scan.app, name="scan")
app.add_typer(apps.app, name="apps")
app.add_typer(clean.app, name="clean")
app.add_typer(whitelist.app, name="whitelist")
app.add_typer(cache.app, name="cache")
app.add_typer(history.app, name="history")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
