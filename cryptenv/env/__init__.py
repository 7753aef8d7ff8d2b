"""Environment composition and shell output."""

from cryptenv.env.composer import ComposedEnvironment, compose
from cryptenv.env.shell import (
    TRACKING_VARIABLE,
    Shell,
    diff_environment,
    hook_script,
    render_dotenv,
    render_load,
)

__all__ = [
    "ComposedEnvironment",
    "compose",
    "Shell",
    "TRACKING_VARIABLE",
    "diff_environment",
    "hook_script",
    "render_dotenv",
    "render_load",
]
