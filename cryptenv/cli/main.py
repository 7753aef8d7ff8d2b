"""
Command line interface for cryptenv.

Standard output is reserved for what the command produces (shell directives for ``load``,
values for ``get``); messages and logs go to standard error.
"""

import logging
import os
import sys

import click

from cryptenv.any.container import get_config, get_secret_store
from cryptenv.any.exceptions import ConfigError, CryptenvError
from cryptenv.any.utils import run_command
from cryptenv.config.matcher import current_project
from cryptenv.env.composer import compose
from cryptenv.env.shell import (
    TRACKING_VARIABLE,
    Shell,
    hook_script,
    parse_tracked_names,
    render_dotenv,
    render_load,
)

LOGGER = logging.getLogger("cryptenv.cli")

SHELL_CHOICE = click.Choice([shell.value for shell in Shell])


def _configure_logging(verbose: bool) -> None:
    level_name = "DEBUG" if verbose else os.environ.get("CRYPTENV_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING

    logging.basicConfig(format="%(name)s %(levelname)s: %(message)s", stream=sys.stderr)
    logging.getLogger("cryptenv").setLevel(level)


class CryptenvGroup(click.Group):
    """Click group that reports CryptenvError as ``cryptenv: <message>`` and exits 1."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except CryptenvError as e:
            LOGGER.debug(f"Command failed: {e!r}")
            click.echo(f"cryptenv: {e}", err=True)
            ctx.exit(1)


@click.group(cls=CryptenvGroup)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.version_option(package_name="cryptenv")
def cli(verbose):
    """Encrypted, per-directory environment variables."""
    _configure_logging(verbose)


# --- Secret store ---


@cli.command()
@click.argument("secret_key")
@click.argument("value", required=False)
@click.option("--tag", default=None, help="Optional note stored in clear next to the secret.")
def add(secret_key, value, tag):
    """Encrypt VALUE and store it as SECRET_KEY (prompts when VALUE is omitted)."""
    store = get_secret_store()

    if value is None:
        value = click.prompt(f"Value for {secret_key}", hide_input=True, confirmation_prompt=True)

    if store.contains(secret_key):
        click.echo(f"Overwriting value for {secret_key}", err=True)

    store.set(secret_key, value, tag=tag)


@cli.command()
@click.argument("secret_key")
def get(secret_key):
    """Print the decrypted value of SECRET_KEY."""
    value = get_secret_store().get(secret_key)
    if value is None:
        raise CryptenvError(f"Secret '{secret_key}' not found in store")
    click.echo(value)


@cli.command(name="list")
@click.option("-d", "--decrypt", is_flag=True, help="Show decrypted values as well.")
def list_secrets(decrypt):
    """List the secret keys in the store."""
    store = get_secret_store()

    for secret_key, tag in store.tags().items():
        if decrypt:
            click.echo(f"{secret_key}={store.get(secret_key)}")
        elif tag:
            click.echo(f"{secret_key}  # {tag}")
        else:
            click.echo(secret_key)


@cli.command()
def check():
    """Verify that every secret referenced by the config is in the store."""
    config = get_config()
    stored = get_secret_store().list_keys()

    missing = {key: owners for key, owners in config.referenced_secret_keys().items() if key not in stored}
    if missing:
        for secret_key, owners in sorted(missing.items()):
            click.echo(f"cryptenv: secret {secret_key} used by {', '.join(sorted(owners))} not found in store")
        sys.exit(1)

    click.echo("the config is correct!")


# --- Environment activation ---


@cli.command()
@click.option("--shell", "shell_name", type=SHELL_CHOICE, default=Shell.ZSH.value, show_default=True)
def load(shell_name):
    """Print shell directives for the project in the current directory (used by the hook)."""
    shell = Shell(shell_name)
    config = get_config()
    previous = parse_tracked_names(os.environ.get(TRACKING_VARIABLE))

    project = current_project(config)
    resolved = config.resolve_project(project) if project else None
    composed = compose(resolved, get_secret_store(), strict=False)

    for name, secret_key in composed.missing:
        click.echo(f"cryptenv: secret {secret_key} for {name} not found in store, skipping", err=True)
    for name, secret_key, reason in composed.undecryptable:
        click.echo(f"cryptenv: could not decrypt secret {secret_key} for {name} ({reason}), skipping", err=True)

    if project is None:
        # Outside every project, any managed variable still exported is stale too
        previous.extend(
            sorted(name for name in config.managed_variable_names() if name in os.environ and name not in previous)
        )

    output = render_load(shell, previous, composed.values)
    if output:
        click.echo(output)


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("profile")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, profile, command):
    """Run COMMAND with the variables of PROFILE (cryptenv run PROFILE -- COMMAND [ARGS]...)."""
    # Options after PROFILE are left untouched, so the separator arrives as an argument
    if command[0] == "--":
        command = command[1:]
    if not command:
        raise click.UsageError("Missing command after '--'.", ctx=ctx)

    config = get_config()

    resolved = config.resolve_profile(profile)
    if resolved is None:
        raise ConfigError(f"Unknown profile '{profile}'. Available: {', '.join(config.list_profiles()) or 'none'}")

    composed = compose(resolved, get_secret_store()).require()

    try:
        result = run_command(list(command), env=composed.values)
    except FileNotFoundError:
        click.echo(f"cryptenv: command not found: {command[0]}", err=True)
        ctx.exit(127)

    returncode = result.returncode
    if returncode < 0:
        # Killed by signal N: exit with 128 + N like a shell
        returncode = 128 - returncode
    ctx.exit(returncode)


@cli.command()
@click.argument("shell_name", metavar="SHELL", type=SHELL_CHOICE)
def init(shell_name):
    """Print the hook script for SHELL (add `eval "$(cryptenv init zsh)"` to your rc file)."""
    click.echo(hook_script(Shell(shell_name)), nl=False)


# --- Configuration introspection ---


@cli.command()
def profiles():
    """List configured profiles."""
    for name in get_config().list_profiles():
        click.echo(name)


@cli.command(name="profile-vars")
@click.argument("name")
def profile_vars(name):
    """List the variables of profile NAME and the secret keys they map to."""
    config = get_config()
    if config.resolve_profile(name) is None:
        raise ConfigError(f"Unknown profile '{name}'")

    for variable, secret_key in config.profile_vars(name).items():
        click.echo(f"{variable} -> {secret_key}")


@cli.group()
def project():
    """Inspect projects."""


@project.command(name="name")
def project_name():
    """Print the project for the current directory (exit 1 if none)."""
    name = current_project(get_config())
    if name is None:
        sys.exit(1)
    click.echo(name)


@project.command(name="list")
@click.argument("name")
def project_list(name):
    """List the resolved variables of project NAME and their secret keys."""
    resolved = get_config().resolve_project(name)
    if resolved is None:
        raise ConfigError(f"Unknown project '{name}'")

    for variable, secret_key in resolved.items():
        click.echo(f"{variable} -> {secret_key}")


@project.command(name="export")
@click.argument("name")
def project_export(name):
    """Print the decrypted variables of project NAME in .env format."""
    resolved = get_config().resolve_project(name)
    if resolved is None:
        raise ConfigError(f"Unknown project '{name}'")

    composed = compose(resolved, get_secret_store()).require()
    output = render_dotenv(composed.values)
    if output:
        click.echo(output)


def main() -> None:
    """Console script entry point."""
    cli(prog_name="cryptenv")
