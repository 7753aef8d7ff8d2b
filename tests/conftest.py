"""Pytest configuration and fixtures for cryptenv tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from cryptenv.any.container import container
from cryptenv.config.loaders import parse_config
from cryptenv.config.schemas import CryptenvConfig
from cryptenv.local.security.store import EncryptedSecretStore

SAMPLE_CONFIG = """\
dirs = ["{root}", "{root}/work"]

[profile.aws]
AWS_ACCESS_KEY_ID = "aws_key"
AWS_SECRET_ACCESS_KEY = "aws_secret"

[profile.openai]
OPENAI_API_KEY = "openai_key"

[project.api]
profiles = ["aws", "openai"]
vars = {{ DATABASE_URL = "api_database_url" }}

[project]
web = ["openai"]
"""

MANAGED_VARIABLES = ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "OPENAI_API_KEY", "DATABASE_URL"]


class InMemoryKeyVault:
    """KeyVault fake that keeps the master key in memory."""

    def __init__(self, key: bytes | None = None):
        self.key = key
        self.set_calls = 0

    def get_key(self) -> bytes | None:
        return self.key

    def set_key(self, key: bytes) -> None:
        self.key = key
        self.set_calls += 1


@pytest.fixture
def key_vault() -> InMemoryKeyVault:
    """Empty in-memory key vault (a key is generated on first write)."""
    return InMemoryKeyVault()


@pytest.fixture
def store_path(tmp_path) -> Path:
    """Store file location inside a temporary data directory."""
    return tmp_path / "data" / "store.json"


@pytest.fixture
def store(key_vault, store_path) -> EncryptedSecretStore:
    """Encrypted store backed by a temp file and the in-memory key vault."""
    return EncryptedSecretStore(key_vault=key_vault, path=store_path)


@pytest.fixture
def config() -> CryptenvConfig:
    """Configuration with two profiles, a full project and a shorthand project."""
    return parse_config(
        {
            "dirs": ["/home/u", "/home/u/work"],
            "profile": {
                "aws": {"AWS_ACCESS_KEY_ID": "aws_key", "AWS_SECRET_ACCESS_KEY": "aws_secret"},
                "openai": {"OPENAI_API_KEY": "openai_key"},
            },
            "project": {
                "api": {"profiles": ["aws", "openai"], "vars": {"DATABASE_URL": "api_database_url"}},
                "web": ["openai"],
            },
        }
    )


@pytest.fixture
def cli_env(tmp_path, monkeypatch, key_vault) -> Generator[Path, None, None]:
    """
    Isolated environment for CLI tests.

    Writes a config file whose watched roots live under tmp_path, points the data directory
    at tmp_path, and overrides the container's key vault with the in-memory fake.
    """
    root = (tmp_path / "code").resolve()
    (root / "work" / "api" / "src").mkdir(parents=True)
    (root / "web").mkdir()
    (root / "other").mkdir()

    config_file = tmp_path / "cryptenv.toml"
    config_file.write_text(SAMPLE_CONFIG.format(root=root.as_posix()))

    monkeypatch.setenv("CRYPTENV_CONFIG", str(config_file))
    monkeypatch.setenv("CRYPTENV_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("CRYPTENV_ACTIVE_VARS", raising=False)
    for name in MANAGED_VARIABLES:
        monkeypatch.delenv(name, raising=False)

    container.reset_singletons()
    with container.key_vault.override(key_vault):
        yield root
    container.reset_singletons()
