"""Engine configuration and settings.

This module provides the configuration model and I/O functions for the
cleanup engine: per-category size floors, age thresholds and the bounds
placed on every external query.

Configuration is stored in ~/.config/moleguard/config.toml. Every value
has a default, so a missing file simply means "use the defaults".
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from moleguard.core.errors import ConfigError, ConfigNotFoundError, ConfigParseError
from moleguard.core.paths import get_config_path
from moleguard.models.candidate import Category

MB = 1_000_000


class Thresholds(BaseModel):
    """Per-category floors and age limits.

    Sizes are inclusive floors in bytes; items below a floor are omitted.
    """

    model_config = ConfigDict(extra="forbid")

    user_cache_min_bytes: Annotated[int, Field(ge=0)] = 5 * MB
    browser_cache_min_bytes: Annotated[int, Field(ge=0)] = 1 * MB
    developer_cache_min_bytes: Annotated[int, Field(ge=0)] = 10 * MB
    system_log_min_bytes: Annotated[int, Field(ge=0)] = 1 * MB
    temp_file_min_bytes: Annotated[int, Field(ge=0)] = 1 * MB
    trash_min_bytes: Annotated[int, Field(ge=0)] = 0
    orphaned_app_min_bytes: Annotated[int, Field(ge=0)] = 0
    failed_backup_min_bytes: Annotated[int, Field(ge=0)] = 0
    orphan_min_age_days: Annotated[
        int,
        Field(ge=1, description="Days without modification/access before app data is orphaned"),
    ] = 60
    temp_min_age_days: Annotated[
        int,
        Field(ge=0, description="Days a temporary entry must be untouched"),
    ] = 1

    def floor_for(self, category: Category) -> int:
        """Return the size floor in bytes for a category."""
        value: int = getattr(self, f"{category.value}_min_bytes")
        return value


class Timeouts(BaseModel):
    """Bounds on every query with unbounded latency."""

    model_config = ConfigDict(extra="forbid")

    scan_item_seconds: Annotated[
        float,
        Field(gt=0, description="Budget for measuring a single candidate"),
    ] = 30.0
    enumeration_seconds: Annotated[
        float,
        Field(gt=0, description="Budget for listing a directory"),
    ] = 10.0
    probe_seconds: Annotated[
        float,
        Field(gt=0, le=120, description="Budget for one OS introspection command"),
    ] = 10.0
    swap_unload_attempts: Annotated[int, Field(ge=1, le=60)] = 5
    swap_unload_interval_seconds: Annotated[float, Field(gt=0, le=60)] = 2.0


class EngineConfig(BaseModel):
    """Configuration for the cleanup engine.

    Attributes:
        thresholds: Per-category size floors and age limits.
        timeouts: Bounds on external queries and the swap-unload poll.
        network_interface: Interface cycled by the network reset action.
    """

    model_config = ConfigDict(extra="forbid")

    thresholds: Annotated[Thresholds, Field(default_factory=Thresholds)]
    timeouts: Annotated[Timeouts, Field(default_factory=Timeouts)]
    network_interface: Annotated[
        str,
        Field(min_length=1, description="Interface cycled by the network reset"),
    ] = "en0"


def load_config(path: Path | None = None, *, missing_ok: bool = True) -> EngineConfig:
    """Load engine configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.
        missing_ok: If True, a missing file yields the default configuration.

    Returns:
        Validated EngineConfig object.

    Raises:
        ConfigNotFoundError: If the file doesn't exist and missing_ok is False.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        if missing_ok:
            return EngineConfig()
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return EngineConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def save_config(config: EngineConfig, path: Path | None = None) -> Path:
    """Save engine configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename. Only values that differ
    from the defaults are written.

    Args:
        config: The EngineConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(exclude_defaults=True)

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
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
