"""
Cryptenv - Encrypted, per-directory environment variables.

This library provides the secret-storage and resolution engine behind the ``cryptenv`` CLI:
- Encrypted secret store: one AES-GCM record per secret, master key in the OS keychain
- Configuration model: reusable profiles merged into per-project variable mappings
- Directory matching: the working directory selects at most one active project
- Environment composition: decrypted variables for the shell hook or a child process
"""

# ============================================================================
# CORE EXPORTS (from any/)
# ============================================================================

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
from cryptenv.any.utils import run_command

__version__ = "0.3.0"

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
    # Utils
    "run_command",
    # Version
    "__version__",
]
