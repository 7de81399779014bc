"""Engine configuration and settings.

This module provides the configuration model and I/O functions for the
scan-and-cache engine: cache staleness, scan depth, worker pool caps,
lock behaviour and external-call timeouts.

Configuration is stored in ~/.config/sweepctl/config.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from sweepctl.core.paths import get_config_path
from sweepctl.scanner.targets import DEFAULT_TARGETS

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class SweepConfig(BaseModel):
    """Tuning parameters for scanning, caching and deletion.

    Attributes:
        cache_ttl_days: Maximum age of a cached metadata fact.
        min_age_days: Artifacts modified more recently are shown unselected.
        clean_age_days: Minimum age of cache and log files removed by clean.
        scan_min_depth: Minimum match depth relative to the scan root.
        scan_max_depth: Maximum traversal depth relative to the scan root.
        find_max_depth: Depth bound for bulk delete-by-pattern.
        size_timeout_seconds: Wall-clock budget for a single size probe.
        command_timeout_seconds: Wall-clock budget for maintenance commands.
        lock_attempts: Lease acquisition attempts before giving up.
        lock_retry_interval: Sleep between lease attempts (seconds).
        lock_stale_seconds: Lease age after which it is force-broken.
        refresh_workers: Worker cap for background metadata refresh.
        identity_workers: Worker cap for application identity resolution.
        inline_metadata_limit: Stale items probed synchronously per scan.
        inline_metadata_timeout: Per-item budget for the inline probe.
        targets: Artifact directory names the scanner looks for.
    """

    model_config = ConfigDict(extra="forbid")

    cache_ttl_days: Annotated[int, Field(ge=1, le=365, description="Cache TTL in days")] = 7
    min_age_days: Annotated[int, Field(ge=0, le=3650, description="Default-select age")] = 7
    clean_age_days: Annotated[int, Field(ge=0, le=3650, description="Clean file age")] = 7
    scan_min_depth: Annotated[int, Field(ge=1, le=10)] = 1
    scan_max_depth: Annotated[int, Field(ge=1, le=20)] = 6
    find_max_depth: Annotated[int, Field(ge=1, le=10)] = 5
    size_timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 15.0
    command_timeout_seconds: Annotated[float, Field(gt=0, le=3600)] = 120.0
    lock_attempts: Annotated[int, Field(ge=1, le=1000)] = 40
    lock_retry_interval: Annotated[float, Field(gt=0, le=10)] = 0.1
    lock_stale_seconds: Annotated[int, Field(ge=1, le=86400)] = 300
    refresh_workers: Annotated[int, Field(ge=1, le=4, description="Metadata probe cap")] = 4
    identity_workers: Annotated[int, Field(ge=1, le=32, description="Identity probe cap")] = 32
    inline_metadata_limit: Annotated[int, Field(ge=0, le=100)] = 8
    inline_metadata_timeout: Annotated[float, Field(gt=0, le=30)] = 0.5
    targets: Annotated[
        list[str],
        Field(default_factory=lambda: list(DEFAULT_TARGETS), description="Artifact names"),
    ]

    @model_validator(mode="after")
    def validate_depths(self) -> "SweepConfig":
        """Clamp max depth so it never falls below min depth."""
        if self.scan_max_depth < self.scan_min_depth:
            self.scan_max_depth = self.scan_min_depth
        return self

    @property
    def cache_ttl_seconds(self) -> int:
        """Cache TTL expressed in seconds."""
        return self.cache_ttl_days * SECONDS_PER_DAY


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> SweepConfig:
    """Load engine configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated SweepConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return SweepConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> SweepConfig:
    """Load configuration, falling back to defaults.

    A missing file is the normal first-run case and is silent. A broken
    file is logged as a warning so the run can still proceed.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Loaded SweepConfig, or defaults.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        return SweepConfig()
    except ConfigError as e:
        logger.warning("Ignoring invalid configuration, using defaults: %s", e)
        return SweepConfig()


def save_config(config: SweepConfig, path: Path | None = None) -> Path:
    """Save engine configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The SweepConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump()

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        # os.replace() is atomic on POSIX
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
