"""
Protocol definitions for cryptenv.

These protocols define the contracts that adapters must implement.
They let the store and the CLI receive a key vault or a secret store by injection,
so tests can substitute in-memory fakes for the OS keychain and the store file.

All protocols follow PEP 544 (Structural Subtyping / Protocol).
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyVault(Protocol):
    """
    Protocol for storing the single master key in secure credential storage.

    Implementations:
    - local/security/vault.py - KeyringKeyVault (OS keychain via keyring)
    - local/security/vault.py - FileKeyVault (owner-only key file)
    - local/security/vault.py - ChainedKeyVault (keyring with file fallback)
    """

    def get_key(self) -> bytes | None:
        """
        Get the master key.

        Returns
        -------
            The raw key bytes, or None if no key has been stored yet

        Raises
        ------
            KeyVaultError: If the credential store is unavailable or access is denied

        """
        ...

    def set_key(self, key: bytes) -> None:
        """
        Store the master key, replacing any previous one.

        Args:
        ----
            key: Raw key bytes

        Raises:
        ------
            KeyVaultError: If the key cannot be stored

        """
        ...


@runtime_checkable
class SecretStore(Protocol):
    """
    Protocol for encrypted secret persistence.

    Implementation:
    - local/security/store.py - EncryptedSecretStore (JSON file, AES-GCM records)
    """

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
            DecryptionError: If the record exists but is malformed or fails authentication

        """
        ...

    # list_keys is declared before set() so its annotation still sees the builtin set
    def list_keys(self) -> set[str]:
        """List stored secret keys without decrypting anything."""
        ...

    def set(self, secret_key: str, plaintext: str, tag: str | None = None) -> None:
        """
        Encrypt and store a secret, overwriting any existing record.

        Args:
        ----
            secret_key: Name to store the value under
            plaintext: Value to encrypt
            tag: Optional metadata kept in clear next to the record

        Raises:
        ------
            KeyVaultError: If the master key is unavailable

        """
        ...

    def contains(self, secret_key: str) -> bool:
        """Check whether a record exists for ``secret_key``."""
        ...

    def tags(self) -> dict[str, str | None]:
        """Get secret key -> metadata tag for every record, sorted by secret key."""
        ...
