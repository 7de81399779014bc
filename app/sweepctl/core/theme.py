"""Console colors.

The bundled ``sweepctl.data/theme.toml`` defines every color; a user
``theme.toml`` in the config directory may override any subset of them.
"""

import logging
import re
import tomllib
from functools import cache
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from sweepctl.core.paths import get_config_dir

logger = logging.getLogger(__name__)

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

# Styles derived from a base color; every other style is the color itself
_DERIVED_STYLES = {
    "error": "bold {error}",
    "protected": "bold {protected}",
    "bold_header": "bold {header}",
    "dim": "{muted}",
}


class ThemeColors(BaseModel):
    """Hex colors (#RGB or #RRGGBB) for listings and messages."""

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"
    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"
    # Candidate states
    selected: str = "#c1ff62"
    recent: str = "#faf870"
    protected: str = "#d44ebc"
    size: str = "#0e8ac8"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError("color must be a string")
        color = value.strip()
        if not color.startswith("#"):
            raise ValueError(f"color {color!r} must start with '#'")
        digits = color[1:]
        if len(digits) not in (3, 6):
            raise ValueError(f"color {color!r} must be #RGB or #RRGGBB")
        if not _HEX_DIGITS.fullmatch(digits):
            raise ValueError(f"invalid hex color {color!r}")
        return color


def get_user_theme_path() -> Path:
    return get_config_dir() / "theme.toml"


def read_theme_colors(data: bytes, source: str) -> dict[str, str] | None:
    """Parse the ``[colors]`` table of a theme file.

    Non-string values are dropped.

    Returns:
        Color mapping, or None if the content is not valid TOML.
    """
    try:
        document = tomllib.loads(data.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        logger.warning("Ignoring theme %s: %s", source, e)
        return None
    colors = document.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme %s: [colors] is not a table", source)
        return None
    return {name: value for name, value in colors.items() if isinstance(value, str)}


def load_theme(user_path: Path | None = None) -> ThemeColors:
    """Merge the user theme over the bundled one.

    Args:
        user_path: User theme file. Default: config dir/theme.toml.

    Returns:
        Validated colors; the built-in defaults if validation fails.
    """
    bundled = resources.files("sweepctl.data").joinpath("theme.toml")
    colors = read_theme_colors(bundled.read_bytes(), "bundled theme") or {}

    path = user_path or get_user_theme_path()
    try:
        overrides = read_theme_colors(path.read_bytes(), str(path))
    except FileNotFoundError:
        overrides = None
    except OSError as e:
        logger.warning("Cannot read theme %s: %s", path, e)
        overrides = None
    if overrides:
        logger.debug("Applying %d theme overrides from %s", len(overrides), path)
        colors.update(overrides)

    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Invalid theme colors, using defaults: %s", e)
        return ThemeColors()


def to_rich_theme(colors: ThemeColors) -> Theme:
    """Build the Rich styles used by the CLI from a color set."""
    styles = colors.model_dump()
    styles.update({name: t.format(**styles) for name, t in _DERIVED_STYLES.items()})
    return Theme(styles)


@cache
def get_theme() -> Theme:
    """Rich theme of this process, loaded on first use."""
    return to_rich_theme(load_theme())
