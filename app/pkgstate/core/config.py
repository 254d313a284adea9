"""Agent configuration.

Tunables of the reconciliation core, stored in
~/.config/pkgstate/config.toml. Every setting has a default, so a missing
file is not an error for :func:`load_config_or_default`.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pkgstate.core.cache import DEFAULT_CACHE_TTL
from pkgstate.core.paths import get_config_path

logger = logging.getLogger(__name__)


class AgentConfig(BaseModel):
    """Configuration of the reconciliation core.

    Attributes:
        cache_ttl_seconds: Seconds an installed-package listing stays fresh.
        command_timeout_seconds: Maximum run time of a package manager command.
        download_timeout_seconds: Network timeout for remote artifacts.
    """

    model_config = ConfigDict(extra="forbid")

    cache_ttl_seconds: Annotated[
        int,
        Field(ge=1, le=3600, description="Installed-package cache TTL (1-3600)"),
    ] = int(DEFAULT_CACHE_TTL)
    command_timeout_seconds: Annotated[
        float,
        Field(gt=0, description="Package manager command timeout"),
    ] = 600.0
    download_timeout_seconds: Annotated[
        float,
        Field(gt=0, description="Remote artifact download timeout"),
    ] = 120.0


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when a configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when a configuration file cannot be parsed."""


def load_config(path: Path | None = None) -> AgentConfig:
    """Load agent configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated AgentConfig object.

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
        return AgentConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> AgentConfig:
    """Load agent configuration, falling back to defaults if the file is missing.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        logger.debug("No config file found, using defaults")
        return AgentConfig()


def save_config(config: AgentConfig, path: Path | None = None) -> Path:
    """Save agent configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        config: The AgentConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(config.model_dump(mode="json"), f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
