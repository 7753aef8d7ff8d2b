"""
Configuration loading for cryptenv.

Reads the TOML configuration file and validates it into a CryptenvConfig.

Location:
1. ``$CRYPTENV_CONFIG``
2. ``~/.config/cryptenv.toml``
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cryptenv.any.exceptions import ConfigError
from cryptenv.config.schemas import CryptenvConfig

LOGGER = logging.getLogger("cryptenv.config.loaders")

DEFAULT_CONFIG_PATH = Path("~/.config/cryptenv.toml")


def get_config_path() -> Path:
    """Get the configuration file path (``$CRYPTENV_CONFIG`` or ``~/.config/cryptenv.toml``)."""
    override = os.environ.get("CRYPTENV_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH.expanduser()


def parse_config(data: dict[str, Any], source: str = "<config>") -> CryptenvConfig:
    """
    Validate an already parsed configuration mapping.

    Args:
    ----
        data: Mapping as produced by a TOML parser
        source: Name used in error messages

    Returns:
    -------
        Validated CryptenvConfig

    Raises:
    ------
        ConfigError: If the mapping does not match the schema
        UnknownProfileError: If a project references a missing profile

    """
    try:
        return CryptenvConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {source}:\n{e}") from e


def load_config(path: Path | None = None) -> CryptenvConfig:
    """
    Load and validate the configuration file.

    Args:
    ----
        path: Config file path (defaults to ``get_config_path()``)

    Returns:
    -------
        Validated CryptenvConfig

    Raises:
    ------
        ConfigError: If the file is missing, is not valid TOML or fails validation

    Example:
    -------
        ```python
        config = load_config()
        resolved = config.resolve_project("api")
        ```

    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}\n"
            "Create it with at least:\n"
            '  dirs = ["~/code"]\n'
            "or point CRYPTENV_CONFIG at an existing file."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_path}: {e}") from e

    config = parse_config(data, source=str(config_path))
    LOGGER.debug(
        f"Loaded config from {config_path}: {len(config.dirs)} dirs, "
        f"{len(config.profile)} profiles, {len(config.project)} projects"
    )
    return config
