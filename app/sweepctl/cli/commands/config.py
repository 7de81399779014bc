"""Config commands for viewing and creating config.toml."""

from typing import Annotated

import tomli_w
import typer

from sweepctl.core.config import ConfigError, SweepConfig, load_config, save_config
from sweepctl.core.paths import get_config_path
from sweepctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="View or create the engine configuration.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the effective configuration."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            config = load_config(config_path)
        except ConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        print_info(f"Loaded from {config_path}")
    else:
        config = SweepConfig()
        print_info(f"No config file at {config_path}, showing defaults.")

    console.print(tomli_w.dumps(config.model_dump()), markup=False, highlight=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config.toml with the default settings."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        print_error(f"Config already exists: {config_path} (use --force to overwrite)")
        raise typer.Exit(code=1)

    try:
        path = save_config(SweepConfig(), config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Config written to {path}")
