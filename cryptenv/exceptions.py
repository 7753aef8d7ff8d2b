"""
Exception definitions for cryptenv.

This module re-exports exceptions from cryptenv.any.exceptions so callers can import them
from a short path.
"""

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

__all__ = [
    "CryptenvError",
    "ConfigError",
    "UnknownProfileError",
    "KeyVaultError",
    "KeyVaultUnavailableError",
    "DecryptionError",
    "MissingSecretError",
    "SecretStoreError",
]
