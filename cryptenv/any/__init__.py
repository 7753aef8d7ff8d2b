"""
Any - Backend-agnostic components for cryptenv.

This module contains the protocols, exceptions, utilities and the DI container used
throughout cryptenv, independent of where secrets and keys are actually kept.
"""

from cryptenv.any.container import (
    CryptenvIoCContainer,
    container,
    get_config,
    get_key_vault,
    get_secret_store,
)
from cryptenv.any.exceptions import (
    ConfigError,
    CryptenvError,
    DecryptionError,
    KeyVaultError,
    KeyVaultUnavailableError,
    MissingSecretError,
    SecretStoreError,
    UnknownProfileError,
)
from cryptenv.any.protocols import KeyVault, SecretStore
from cryptenv.any.utils import run_command, user_data_dir

__all__ = [
    # Exceptions
    "CryptenvError",
    "ConfigError",
    "UnknownProfileError",
    "KeyVaultError",
    "KeyVaultUnavailableError",
    "DecryptionError",
    "MissingSecretError",
    "SecretStoreError",
    # Protocols
    "KeyVault",
    "SecretStore",
    # Utils
    "run_command",
    "user_data_dir",
    # DI Container
    "CryptenvIoCContainer",
    "container",
    "get_config",
    "get_key_vault",
    "get_secret_store",
]
