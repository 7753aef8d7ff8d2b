"""
Shell directive rendering for ``load``, ``project export`` and ``init``.

``load`` runs from a directory-change hook and its output is evaluated by the shell. It
unsets variables a previous ``load`` exported but the new project does not set, exports
the new values, and records the exported names in ``CRYPTENV_ACTIVE_VARS`` so the next
invocation knows what it is replacing.
"""

import re
import shlex
from collections.abc import Iterable, Mapping
from enum import Enum

TRACKING_VARIABLE = "CRYPTENV_ACTIVE_VARS"
TRACKING_SEPARATOR = ":"

_DOTENV_SAFE = re.compile(r"^[A-Za-z0-9_./:@+,=-]*$")


class Shell(str, Enum):
    """Shells that ``load`` and ``init`` can target."""

    ZSH = "zsh"
    BASH = "bash"
    FISH = "fish"


def _fish_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def export_directive(shell: Shell, name: str, value: str) -> str:
    """Render a directive that exports ``name=value`` globally in ``shell``."""
    if shell is Shell.FISH:
        return f"set -gx {name} {_fish_quote(value)};"
    return f"export {name}={shlex.quote(value)}"


def unset_directive(shell: Shell, name: str) -> str:
    """Render a directive that removes ``name`` from the environment of ``shell``."""
    if shell is Shell.FISH:
        return f"set -e {name};"
    return f"unset {name}"


def parse_tracked_names(raw: str | None) -> list[str]:
    """Parse the value of ``CRYPTENV_ACTIVE_VARS`` into variable names."""
    if not raw:
        return []
    return [name for name in raw.split(TRACKING_SEPARATOR) if name]


def diff_environment(previous_names: Iterable[str], values: Mapping[str, str]) -> list[str]:
    """
    Get the previously exported names that the new mapping no longer sets.

    Args:
    ----
        previous_names: Names exported by the last ``load``
        values: Newly composed variables

    Returns:
    -------
        Sorted names to unset

    """
    return sorted(set(previous_names) - set(values))


def render_load(shell: Shell, previous_names: Iterable[str], values: Mapping[str, str]) -> str:
    """
    Render the full output of ``load``.

    Args:
    ----
        shell: Target shell
        previous_names: Names exported by the last ``load`` (from ``CRYPTENV_ACTIVE_VARS``)
        values: Newly composed variables (empty when no project is active)

    Returns:
    -------
        Newline-separated directives (empty string when there is nothing to do)

    Example:
    -------
        >>> print(render_load(Shell.ZSH, ["OLD"], {"NEW": "v"}))
        unset OLD
        export NEW=v
        export CRYPTENV_ACTIVE_VARS=NEW

    """
    previous = list(previous_names)
    lines = [unset_directive(shell, name) for name in diff_environment(previous, values)]
    lines.extend(export_directive(shell, name, value) for name, value in values.items())

    if values:
        lines.append(export_directive(shell, TRACKING_VARIABLE, TRACKING_SEPARATOR.join(values)))
    elif previous:
        lines.append(unset_directive(shell, TRACKING_VARIABLE))

    return "\n".join(lines)


def render_dotenv(values: Mapping[str, str]) -> str:
    """
    Render ``KEY=VALUE`` lines in .env format.

    Values that need quoting are double-quoted and escaped, except values holding a ``$``:
    dotenv loaders expand ``${...}`` inside double quotes, so those are single-quoted when
    they contain no single quote or newline.
    """
    lines = []
    for name, value in values.items():
        if not _DOTENV_SAFE.match(value):
            if "$" in value and "'" not in value and "\n" not in value:
                value = f"'{value}'"
            else:
                value = '"' + value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'
        lines.append(f"{name}={value}")
    return "\n".join(lines)


HOOKS: dict[Shell, str] = {
    Shell.ZSH: """\
_cryptenv_hook() {
  eval "$(cryptenv load --shell zsh)"
}
typeset -ag chpwd_functions
if (( ! ${chpwd_functions[(I)_cryptenv_hook]} )); then
  chpwd_functions+=(_cryptenv_hook)
fi
_cryptenv_hook
""",
    Shell.BASH: """\
_cryptenv_hook() {
  if [[ "$PWD" != "${_CRYPTENV_LAST_PWD:-}" ]]; then
    _CRYPTENV_LAST_PWD="$PWD"
    eval "$(cryptenv load --shell bash)"
  fi
}
if [[ ";${PROMPT_COMMAND:-};" != *";_cryptenv_hook;"* ]]; then
  PROMPT_COMMAND="_cryptenv_hook${PROMPT_COMMAND:+;$PROMPT_COMMAND}"
fi
""",
    Shell.FISH: """\
function __cryptenv_hook --on-variable PWD
    cryptenv load --shell fish | source
end
__cryptenv_hook
""",
}


def hook_script(shell: Shell) -> str:
    """Get the script that installs the directory-change hook for ``shell``."""
    return HOOKS[shell]
