"""
Directory to project matching.

A project is active when the working directory is inside ``<watched root>/<project name>``.
Matching is pure path comparison; nothing is read from the filesystem.
"""

import logging
import os
from pathlib import Path, PurePath

from cryptenv.config.schemas import CryptenvConfig

LOGGER = logging.getLogger("cryptenv.config.matcher")


def _normalize(path: PurePath | str) -> PurePath:
    return PurePath(os.path.normpath(os.path.expanduser(str(path))))


def match_project(cwd: PurePath | str, config: CryptenvConfig) -> str | None:
    """
    Get the project active in ``cwd``.

    The most specific (longest) watched root containing ``cwd`` is used, and the project
    name is the first path segment below it. Being in the root itself, outside every root,
    or in a directory that names no configured project all mean no project is active.

    Args:
    ----
        cwd: Working directory
        config: Loaded configuration

    Returns:
    -------
        Project name, or None

    Example:
    -------
        >>> # dirs = ["/home/u", "/home/u/work"]
        >>> match_project("/home/u/work/api/src", config)
        'api'

    """
    current = _normalize(cwd)
    roots = sorted((_normalize(d) for d in config.dirs), key=lambda p: len(p.parts), reverse=True)

    for root in roots:
        try:
            relative = current.relative_to(root)
        except ValueError:
            continue

        if not relative.parts:
            LOGGER.debug(f"{current} is the watched root {root} itself; no project")
            return None

        name = relative.parts[0]
        if name not in config.project:
            LOGGER.debug(f"Directory '{name}' under {root} is not a configured project")
            return None

        LOGGER.debug(f"Matched project '{name}' (root {root})")
        return name

    LOGGER.debug(f"{current} is not under any watched directory")
    return None


def current_project(config: CryptenvConfig) -> str | None:
    """Get the project active in the process working directory."""
    return match_project(Path.cwd(), config)
