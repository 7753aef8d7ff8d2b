"""
Master key storage for the encrypted store (LOCAL-ONLY).

The master key lives in the OS credential store through ``keyring``. Hosts without a usable
keyring backend (headless Linux, containers) fall back to an owner-only key file in the
cryptenv data directory.
"""

import base64
import binascii
import logging
import os
from pathlib import Path

import keyring
import keyring.errors

from cryptenv.any.exceptions import KeyVaultError, KeyVaultUnavailableError
from cryptenv.any.protocols import KeyVault
from cryptenv.any.utils import user_data_dir

LOGGER = logging.getLogger("cryptenv.local.security.vault")

SERVICE_NAME = "cryptenv"
ACCOUNT_NAME = "key"
KEY_LENGTH = 32

# Errors meaning no keyring backend exists, as opposed to a locked or refusing one
_NO_BACKEND_ERRORS = (keyring.errors.NoKeyringError, keyring.errors.InitError)


def get_key_file_path() -> Path:
    """Get the path of the fallback key file (``<data dir>/cryptenv/key``)."""
    return user_data_dir() / "key"


def _check_length(key: bytes, source: str) -> bytes:
    if len(key) != KEY_LENGTH:
        raise KeyVaultError(f"Master key from {source} has invalid length {len(key)} (expected {KEY_LENGTH} bytes)")
    return key


class KeyringKeyVault:
    """
    Stores the master key in the host credential store via ``keyring``.

    Keyring backends store text, so the key is kept base64-encoded.

    Example:
    -------
        ```python
        vault = KeyringKeyVault()
        key = vault.get_key()  # None on first run
        ```

    """

    def __init__(self, service: str = SERVICE_NAME, account: str = ACCOUNT_NAME):
        self.service = service
        self.account = account

    def get_key(self) -> bytes | None:
        try:
            encoded = keyring.get_password(self.service, self.account)
        except _NO_BACKEND_ERRORS as e:
            raise KeyVaultUnavailableError(f"No usable keyring backend: {e}") from e
        except keyring.errors.KeyringError as e:
            raise KeyVaultError(f"Failed to read master key from keyring: {e}") from e

        if encoded is None:
            return None

        try:
            key = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise KeyVaultError(f"Master key in keyring is not valid base64: {e}") from e

        return _check_length(key, "keyring")

    def set_key(self, key: bytes) -> None:
        try:
            keyring.set_password(self.service, self.account, base64.b64encode(key).decode("ascii"))
        except _NO_BACKEND_ERRORS as e:
            raise KeyVaultUnavailableError(f"No usable keyring backend: {e}") from e
        except keyring.errors.KeyringError as e:
            raise KeyVaultError(f"Failed to store master key in keyring: {e}") from e
        LOGGER.debug(f"Stored master key in keyring ({self.service}/{self.account})")

    def __repr__(self) -> str:
        """Return string representation."""
        return f"KeyringKeyVault(service='{self.service}', account='{self.account}')"


class FileKeyVault:
    """
    Stores the master key as raw bytes in a file readable only by the owner.

    Args:
    ----
        path: Key file path (defaults to ``<data dir>/cryptenv/key``)

    """

    def __init__(self, path: Path | None = None):
        self.path = path or get_key_file_path()

    def get_key(self) -> bytes | None:
        if not self.path.exists():
            return None
        try:
            key = self.path.read_bytes()
        except OSError as e:
            raise KeyVaultError(f"Failed to read key file {self.path}: {e}") from e
        return _check_length(key, str(self.path))

    def set_key(self, key: bytes) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(key)
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise KeyVaultError(f"Failed to write key file {self.path}: {e}") from e
        LOGGER.info(f"Stored master key in {self.path}")

    def __repr__(self) -> str:
        """Return string representation."""
        return f"FileKeyVault(path='{self.path}')"


class ChainedKeyVault:
    """
    Tries the keyring first and falls back to the key file.

    Reads return the first key found. Writes go to the keyring and are verified by reading
    the key back; if that fails, the key is written to the file instead.

    Only a missing keyring backend (KeyVaultUnavailableError) triggers the fallback. A keyring
    that is locked or denies access raises, since it may hold the key the store was written with.
    """

    def __init__(self, primary: KeyVault | None = None, fallback: KeyVault | None = None):
        self.primary = primary or KeyringKeyVault()
        self.fallback = fallback or FileKeyVault()

    def get_key(self) -> bytes | None:
        try:
            key = self.primary.get_key()
        except KeyVaultUnavailableError as e:
            LOGGER.debug(f"Primary key vault unavailable: {e}")
            key = None

        if key is not None:
            return key

        return self.fallback.get_key()

    def set_key(self, key: bytes) -> None:
        try:
            self.primary.set_key(key)
            if self.primary.get_key() == key:
                return
            LOGGER.warning("Master key could not be verified in keyring; using key file instead")
        except KeyVaultUnavailableError as e:
            LOGGER.warning(f"Keyring unavailable ({e}); using key file instead")

        self.fallback.set_key(key)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"ChainedKeyVault(primary={self.primary!r}, fallback={self.fallback!r})"
