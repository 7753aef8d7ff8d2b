"""
Environment composition.

Turns a ResolvedEnvironment (variable name -> secret key) into plaintext values by looking
each secret key up in the store. Secrets that are not in the store are reported rather than
raised, so the caller decides whether to abort (``run``) or warn and continue (``load``).
Records that fail to decrypt abort composition unless ``strict=False``, in which case they
are reported alongside the missing ones and the other variables are still composed.
"""

import logging
from typing import Annotated

from pydantic import BaseModel, Field

from cryptenv.any.exceptions import DecryptionError, MissingSecretError
from cryptenv.any.protocols import SecretStore
from cryptenv.config.schemas import ResolvedEnvironment

LOGGER = logging.getLogger("cryptenv.env.composer")


class ComposedEnvironment(BaseModel):
    """
    Plaintext variables ready to export, plus what could not be composed.

    ``missing`` holds (variable, secret key) pairs absent from the store. ``undecryptable``
    holds (variable, secret key, reason) for records that failed to decrypt; it is only
    filled by a non-strict ``compose``.
    """

    values: Annotated[dict[str, str], Field(default_factory=dict)]
    missing: Annotated[list[tuple[str, str]], Field(default_factory=list)]
    undecryptable: Annotated[list[tuple[str, str, str]], Field(default_factory=list)]

    def require(self) -> "ComposedEnvironment":
        """
        Fail if any secret was missing.

        Returns
        -------
            self, for chaining

        Raises
        ------
            MissingSecretError: Listing every missing (variable, secret key) pair

        """
        if self.missing:
            raise MissingSecretError(self.missing)
        return self

    def __repr__(self) -> str:
        """Return string representation without secret values."""
        return (
            f"ComposedEnvironment(names={sorted(self.values)}, missing={self.missing}, "
            f"undecryptable={[(name, key) for name, key, _ in self.undecryptable]})"
        )

    __str__ = __repr__


def compose(resolved: ResolvedEnvironment | None, store: SecretStore, strict: bool = True) -> ComposedEnvironment:
    """
    Decrypt the secrets for a resolved environment.

    Args:
    ----
        resolved: Variable name -> secret key mapping (None means nothing is active)
        store: Store to read secret values from
        strict: Raise on the first record that fails to decrypt; when False, record it in
            ``undecryptable`` and keep composing the other variables

    Returns:
    -------
        ComposedEnvironment with values in resolution order and the pairs that were left out

    Raises:
    ------
        DecryptionError: If a stored record fails authentication (strict mode only)
        KeyVaultError: If the master key is unavailable

    Example:
    -------
        ```python
        resolved = config.resolve_profile("aws")
        env = compose(resolved, store).require()
        run_command(["terraform", "plan"], env=env.values)
        ```

    """
    composed = ComposedEnvironment()
    if resolved is None:
        return composed

    for name, secret_key in resolved.items():
        try:
            value = store.get(secret_key)
        except DecryptionError as e:
            if strict:
                raise
            LOGGER.debug(f"Skipping {name}: {e}")
            composed.undecryptable.append((name, secret_key, e.reason))
            continue

        if value is None:
            LOGGER.debug(f"Secret '{secret_key}' for {name} not found in store")
            composed.missing.append((name, secret_key))
            continue
        composed.values[name] = value

    LOGGER.debug(f"Composed {len(composed.values)} variables for {resolved.source} '{resolved.name}'")
    return composed
