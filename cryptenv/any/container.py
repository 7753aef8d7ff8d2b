"""
Dependency injection container for cryptenv.

This container wires the key vault, the secret store and the configuration for the CLI.
Uses dependency-injector so tests can override any of them with fakes.
"""

import os

from dependency_injector import containers, providers

from cryptenv.any.protocols import KeyVault, SecretStore
from cryptenv.config.loaders import load_config
from cryptenv.config.schemas import CryptenvConfig


def _key_backend_selector() -> str:
    """Return 'keyring' or 'file' for the key vault Selector provider (``$CRYPTENV_KEY_BACKEND``)."""
    backend = os.environ.get("CRYPTENV_KEY_BACKEND", "keyring").strip().lower()
    return backend if backend in {"keyring", "file"} else "keyring"


class CryptenvIoCContainer(containers.DeclarativeContainer):
    """
    Inversion of Control (IoC) container for cryptenv.

    Example:
    -------
        ```python
        from cryptenv.any.container import CryptenvIoCContainer

        container = CryptenvIoCContainer()

        # Secret store (singleton), using the configured key vault
        store = container.secret_store()
        store.set("aws_key", "AKIA...")

        # Configuration (singleton, loaded on first access)
        config = container.config()
        ```

    """

    # Singleton: Key vault
    # keyring (with key file fallback) unless CRYPTENV_KEY_BACKEND=file
    key_vault = providers.Singleton(
        providers.Selector(
            _key_backend_selector,
            keyring=providers.Factory(
                lambda: __import__(
                    "cryptenv.local.security.vault",
                    fromlist=["ChainedKeyVault"],
                ).ChainedKeyVault()
            ),
            file=providers.Factory(
                lambda: __import__(
                    "cryptenv.local.security.vault",
                    fromlist=["FileKeyVault"],
                ).FileKeyVault()
            ),
        )
    )

    # Singleton: Encrypted secret store backed by the key vault
    secret_store = providers.Singleton(
        providers.Callable(
            lambda vault: __import__(
                "cryptenv.local.security.store",
                fromlist=["EncryptedSecretStore"],
            ).EncryptedSecretStore(key_vault=vault),
            vault=key_vault,
        )
    )

    # Singleton: Parsed configuration file
    config = providers.Singleton(load_config)


# Global singleton container instance
container = CryptenvIoCContainer()


def get_key_vault() -> KeyVault:
    """Get the key vault (singleton)."""
    return container.key_vault()


def get_secret_store() -> SecretStore:
    """
    Get the secret store (singleton).

    Example:
    -------
        ```python
        from cryptenv.any.container import get_secret_store

        store = get_secret_store()
        store.get("aws_key")
        ```

    """
    return container.secret_store()


def get_config() -> CryptenvConfig:
    """
    Get the configuration (singleton).

    Raises
    ------
        ConfigError: If the configuration file is missing or invalid

    """
    return container.config()
