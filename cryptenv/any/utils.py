"""Utility functions for cryptenv."""

import logging
import os
import subprocess
import sys
from pathlib import Path

LOGGER = logging.getLogger("cryptenv.utils")

APP_NAME = "cryptenv"


def user_data_dir() -> Path:
    """
    Get the per-user data directory that holds the store and the fallback key file.

    Resolution order:
    1. ``$CRYPTENV_DATA_DIR``
    2. ``$XDG_DATA_HOME``
    3. Platform default (``%APPDATA%``, ``~/Library/Application Support``, ``~/.local/share``)

    Returns
    -------
        Path to ``<data dir>/cryptenv``

    """
    override = os.environ.get("CRYPTENV_DATA_DIR")
    if override:
        return Path(override).expanduser()

    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        base = Path(xdg).expanduser()
    elif sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".local" / "share"

    return base / APP_NAME


def run_command(
    cmd: list[str],
    check: bool = False,
    capture: bool = False,
    env: dict[str, str] | None = None,
    timeout: int | None = None,
) -> subprocess.CompletedProcess:
    """
    Run a command with consistent handling.

    Args:
    ----
        cmd: Command and arguments as a list
        check: If True, raise CalledProcessError on non-zero exit
        capture: If True, capture stdout/stderr instead of inheriting them
        env: Optional environment variables (overlaid on os.environ)
        timeout: Optional timeout in seconds

    Returns:
    -------
        CompletedProcess instance with returncode, stdout, stderr

    Raises:
    ------
        FileNotFoundError: If the executable does not exist
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded

    Example:
    -------
        ```python
        from cryptenv.any.utils import run_command

        result = run_command(["printenv", "AWS_REGION"], env={"AWS_REGION": "eu-west-1"}, capture=True)
        print(result.stdout)
        ```

    """
    command_env = os.environ.copy()
    if env:
        command_env.update(env)

    LOGGER.debug(f"Running command: {' '.join(cmd)}")

    return subprocess.run(
        cmd,
        capture_output=capture,
        text=True,
        check=check,
        env=command_env,
        timeout=timeout,
    )
