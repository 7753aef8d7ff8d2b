"""Cryptenv configuration: schemas, loading and directory matching."""

from cryptenv.config.loaders import get_config_path, load_config, parse_config
from cryptenv.config.matcher import current_project, match_project
from cryptenv.config.schemas import CryptenvConfig, ProjectConfig, ResolvedEnvironment

__all__ = [
    "CryptenvConfig",
    "ProjectConfig",
    "ResolvedEnvironment",
    "get_config_path",
    "load_config",
    "parse_config",
    "match_project",
    "current_project",
]
