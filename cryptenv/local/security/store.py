"""
Encrypted secret store (LOCAL-ONLY).

Secrets live in a single JSON document, one independently encrypted record per secret key:

    {"aws_key": {"nonce": "<b64>", "ciphertext": "<b64>", "tag": null}, ...}

Each record is sealed with AES-256-GCM under the master key, using a fresh random nonce and
the secret key name as associated data, so a record cannot be moved to another name
without failing authentication. Records are validated one at a time, so a corrupted record
only fails when it is requested.
"""

import base64
import binascii
import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from cryptenv.any.exceptions import DecryptionError, KeyVaultError, SecretStoreError
from cryptenv.any.protocols import KeyVault
from cryptenv.any.utils import user_data_dir

LOGGER = logging.getLogger("cryptenv.local.security.store")

NONCE_LENGTH = 12


def get_store_path() -> Path:
    """Get the default store path (``<data dir>/cryptenv/store.json``)."""
    return user_data_dir() / "store.json"


class SecretRecord(BaseModel):
    """One encrypted secret: base64 nonce and ciphertext, plus an optional clear-text tag."""

    nonce: str
    ciphertext: str
    tag: str | None = None

    model_config = ConfigDict(extra="forbid")


# Only the top level is validated on read; records are checked when requested
_DOCUMENT = TypeAdapter(dict[str, Any])


def _record_tag(raw: Any) -> str | None:
    tag = raw.get("tag") if isinstance(raw, dict) else None
    return tag if isinstance(tag, str) else None


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value, validate=True)


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


class EncryptedSecretStore:
    """
    File-backed secret store with per-record authenticated encryption.

    The file is read fresh on every operation; nothing decrypted is cached. Writes take an
    exclusive lock on ``<store>.lock`` for the whole read-modify-write and replace the live
    file atomically.

    Example:
    -------
        ```python
        store = EncryptedSecretStore(key_vault=ChainedKeyVault())
        store.set("aws_key", "AKIA...")
        store.get("aws_key")  # "AKIA..."
        store.get("unknown")  # None
        ```

    """

    def __init__(self, key_vault: KeyVault, path: Path | None = None):
        """
        Initialize the store.

        Args:
        ----
            key_vault: Where the master key is kept
            path: Store file path (defaults to ``<data dir>/cryptenv/store.json``)

        """
        self.key_vault = key_vault
        self.path = path or get_store_path()
        self.lock_path = self.path.with_name(self.path.name + ".lock")

    # --- File handling ---

    def _read_records(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise SecretStoreError(f"Could not read store file {self.path}: {e}") from e

        try:
            return _DOCUMENT.validate_json(raw)
        except ValidationError as e:
            raise SecretStoreError(f"Could not parse store file {self.path}: {e}") from e

    def _write_records(self, records: dict[str, Any]) -> None:
        payload = json.dumps(dict(sorted(records.items())), indent=2)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise SecretStoreError(f"Could not write store file {self.path}: {e}") from e

    @contextmanager
    def _exclusive_lock(self) -> Iterator[None]:
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            f = open(self.lock_path, "a")
        except OSError as e:
            raise SecretStoreError(f"Could not open lock file {self.lock_path}: {e}") from e

        try:
            fcntl.flock(f, fcntl.LOCK_EX)
        except OSError as e:
            f.close()
            raise SecretStoreError(f"Could not lock {self.lock_path}: {e}") from e

        try:
            yield
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)
            f.close()

    # --- Key handling ---

    def _master_key(self) -> bytes:
        key = self.key_vault.get_key()
        if key is None:
            raise KeyVaultError(
                "No master key found. The store was created with a key that is no longer available;\n"
                "restore the keyring entry or key file, or re-add the values."
            )
        return key

    def _get_or_create_master_key(self, record_count: int) -> bytes:
        key = self.key_vault.get_key()
        if key is not None:
            return key

        # A new key would leave the existing records undecryptable
        if record_count:
            raise KeyVaultError(
                f"No master key found but {self.path} already holds {record_count} secret(s);\n"
                "restore the keyring entry or key file before adding values."
            )

        LOGGER.info("No master key found, generating a new one")
        key = AESGCM.generate_key(bit_length=256)
        self.key_vault.set_key(key)
        return key

    # --- Public API ---

    def get(self, secret_key: str) -> str | None:
        """
        Get the decrypted value of a secret.

        Args:
        ----
            secret_key: Name the value is stored under

        Returns:
        -------
            Plaintext value, or None if the key is not in the store

        Raises:
        ------
            DecryptionError: If the record is malformed or fails authentication
            KeyVaultError: If the master key is unavailable
            SecretStoreError: If the store file is unreadable

        """
        raw = self._read_records().get(secret_key)
        if raw is None:
            LOGGER.debug(f"Secret '{secret_key}' not in store")
            return None

        try:
            record = SecretRecord.model_validate(raw)
        except ValidationError as e:
            raise DecryptionError(secret_key, f"record is malformed ({e.error_count()} error(s))") from e

        try:
            nonce = _b64decode(record.nonce)
            ciphertext = _b64decode(record.ciphertext)
        except binascii.Error as e:
            raise DecryptionError(secret_key, f"stored data is not valid base64 ({e})") from e

        if len(nonce) != NONCE_LENGTH:
            raise DecryptionError(secret_key, f"nonce has invalid length {len(nonce)}")

        try:
            plaintext = AESGCM(self._master_key()).decrypt(nonce, ciphertext, secret_key.encode("utf-8"))
        except InvalidTag as e:
            raise DecryptionError(secret_key) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(secret_key, "decrypted value is not valid utf-8") from e

    # list_keys is declared before set() so its annotation still sees the builtin set
    def list_keys(self) -> set[str]:
        """List stored secret keys without decrypting anything."""
        return set(self._read_records())

    def set(self, secret_key: str, plaintext: str, tag: str | None = None) -> None:
        """
        Encrypt and store a secret, overwriting any existing record for the same key.

        Args:
        ----
            secret_key: Name to store the value under
            plaintext: Value to encrypt
            tag: Optional metadata kept in clear next to the record

        Raises:
        ------
            KeyVaultError: If the master key cannot be read, or is missing while records exist
            SecretStoreError: If the store file cannot be read or written

        """
        with self._exclusive_lock():
            records = self._read_records()
            key = self._get_or_create_master_key(record_count=len(records))

            nonce = os.urandom(NONCE_LENGTH)
            ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), secret_key.encode("utf-8"))
            record = SecretRecord(nonce=_b64encode(nonce), ciphertext=_b64encode(ciphertext), tag=tag)

            existed = secret_key in records
            records[secret_key] = record.model_dump()
            self._write_records(records)

        LOGGER.info(f"{'Updated' if existed else 'Added'} secret '{secret_key}' in {self.path}")

    def contains(self, secret_key: str) -> bool:
        """Check whether a record exists for ``secret_key``."""
        return secret_key in self._read_records()

    def tags(self) -> dict[str, str | None]:
        """Get secret key -> metadata tag for every record, sorted by secret key."""
        return {name: _record_tag(raw) for name, raw in sorted(self._read_records().items())}

    def __repr__(self) -> str:
        """Return string representation."""
        return f"EncryptedSecretStore(path='{self.path}', key_vault={self.key_vault!r})"
