"""
Local - Components that touch this machine's keychain and filesystem.

Includes master key storage (keyring or key file) and the encrypted store file.
"""

from cryptenv.local.security.store import EncryptedSecretStore, SecretRecord, get_store_path
from cryptenv.local.security.vault import ChainedKeyVault, FileKeyVault, KeyringKeyVault, get_key_file_path

__all__ = [
    "EncryptedSecretStore",
    "SecretRecord",
    "get_store_path",
    "KeyringKeyVault",
    "FileKeyVault",
    "ChainedKeyVault",
    "get_key_file_path",
]
