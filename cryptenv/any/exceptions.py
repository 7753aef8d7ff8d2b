"""
Cryptenv exception classes.

This module defines custom exceptions for cryptenv so that failures in the store,
the configuration or the credential backend can be told apart from built-in Python errors.

All cryptenv exceptions derive from CryptenvError.
"""


class CryptenvError(Exception):
    """
    Base exception for all cryptenv errors.

    The CLI catches this class, prints the message and exits non-zero.
    """

    pass


class ConfigError(CryptenvError):
    """
    Raised when the configuration file cannot be read, parsed or validated.

    Example:
    -------
        >>> load_config(Path("~/.config/cryptenv.toml"))
        ConfigError: Could not parse config file ~/.config/cryptenv.toml: ...

    """

    pass


class UnknownProfileError(ConfigError):
    """
    Raised at load time when a project references a profile that does not exist.

    Example:
    -------
        >>> CryptenvConfig(dirs=[], profile={}, project={"api": ["aws"]})
        UnknownProfileError: Project 'api' references unknown profile 'aws'

    """

    def __init__(self, project: str, profile: str):
        self.project = project
        self.profile = profile
        super().__init__(f"Project '{project}' references unknown profile '{profile}'")


class KeyVaultError(CryptenvError):
    """
    Raised when the master key cannot be read from or written to the credential store.

    This is fatal for every operation that encrypts or decrypts.
    """

    pass


class KeyVaultUnavailableError(KeyVaultError):
    """
    Raised when the credential store has no usable backend at all.

    Unlike a locked or denied keychain, this is the one case where falling back to the
    key file is safe: no key can have been stored there.
    """

    pass


class DecryptionError(CryptenvError):
    """
    Raised when a stored record fails authentication (tampered data or wrong key).

    Only the requested secret is affected; other records remain readable.
    """

    def __init__(self, secret_key: str, reason: str = "wrong key or corrupted data"):
        self.secret_key = secret_key
        self.reason = reason
        super().__init__(f"Failed to decrypt '{secret_key}': {reason}")


class MissingSecretError(CryptenvError):
    """
    Raised when a resolved environment references secret keys that are not in the store.

    Example:
    -------
        >>> composed.require()
        MissingSecretError: Secret 'aws_key' (for AWS_ACCESS_KEY_ID) not found in store

    """

    def __init__(self, missing: list[tuple[str, str]]):
        self.missing = list(missing)
        details = ", ".join(f"'{secret_key}' (for {var})" for var, secret_key in self.missing)
        noun = "Secret" if len(self.missing) == 1 else "Secrets"
        super().__init__(f"{noun} {details} not found in store")


class SecretStoreError(CryptenvError):
    """Raised when the store file cannot be read, parsed or written."""

    pass
