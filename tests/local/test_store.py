"""Tests for EncryptedSecretStore."""

import base64
import json
import threading

import pytest

from cryptenv.any.exceptions import DecryptionError, KeyVaultError, SecretStoreError
from cryptenv.any.protocols import SecretStore
from cryptenv.local.security.store import EncryptedSecretStore, get_store_path


def _flip_bit(encoded: str, byte_index: int = 0) -> str:
    raw = bytearray(base64.b64decode(encoded))
    raw[byte_index] ^= 0x01
    return base64.b64encode(bytes(raw)).decode("ascii")


class TestGetStorePath:
    """Test get_store_path function."""

    def test_uses_data_dir_override(self, tmp_path, monkeypatch):
        """Test store path honours CRYPTENV_DATA_DIR."""
        monkeypatch.setenv("CRYPTENV_DATA_DIR", str(tmp_path))

        assert get_store_path() == tmp_path / "store.json"


class TestEncryptedSecretStore:
    """Test EncryptedSecretStore class."""

    def test_implements_protocol(self, store):
        """Test the store satisfies the SecretStore protocol."""
        assert isinstance(store, SecretStore)

    def test_list_keys_annotated_with_builtin_set(self):
        """Test list_keys returns set[str] rather than referring to the set() method."""
        assert SecretStore.list_keys.__annotations__["return"] == set[str]
        assert EncryptedSecretStore.list_keys.__annotations__["return"] == set[str]

    def test_missing_file_is_empty_store(self, store, store_path):
        """Test an absent store file behaves as an empty store."""
        assert not store_path.exists()

        assert store.get("anything") is None
        assert store.list_keys() == set()

    def test_round_trip(self, store):
        """Test get returns exactly what set stored."""
        values = ["AKIA123", "", "with spaces and 'quotes'", "ünïcødé ✓", "line1\nline2"]

        for i, value in enumerate(values):
            store.set(f"key{i}", value)

        for i, value in enumerate(values):
            assert store.get(f"key{i}") == value

    def test_get_unknown_key_returns_none(self, store):
        """Test get returns None for keys that were never stored."""
        store.set("aws_key", "AKIA123")

        assert store.get("aws_secret") is None

    def test_overwrite_keeps_single_record(self, store, store_path):
        """Test set on an existing key replaces the record."""
        store.set("aws_key", "v1")
        store.set("aws_key", "v2")

        data = json.loads(store_path.read_text())
        assert list(data) == ["aws_key"]
        assert store.get("aws_key") == "v2"

    def test_nonce_is_fresh_per_call(self, store, store_path):
        """Test storing the same value twice uses different nonces and ciphertexts."""
        store.set("aws_key", "same")
        first = json.loads(store_path.read_text())["aws_key"]

        store.set("aws_key", "same")
        second = json.loads(store_path.read_text())["aws_key"]

        assert first["nonce"] != second["nonce"]
        assert first["ciphertext"] != second["ciphertext"]

    def test_plaintext_not_written_to_disk(self, store, store_path):
        """Test the store file does not contain the plaintext."""
        store.set("aws_key", "super-secret-value")

        assert "super-secret-value" not in store_path.read_text()

    def test_file_format(self, store, store_path):
        """Test records are stored as base64 nonce/ciphertext plus tag."""
        store.set("aws_key", "AKIA123", tag="work account")

        record = json.loads(store_path.read_text())["aws_key"]

        assert set(record) == {"nonce", "ciphertext", "tag"}
        assert len(base64.b64decode(record["nonce"])) == 12
        assert record["tag"] == "work account"

    def test_list_keys(self, store):
        """Test list_keys returns stored names."""
        store.set("b", "2")
        store.set("a", "1")

        assert store.list_keys() == {"a", "b"}

    def test_contains(self, store):
        """Test contains reports presence without decrypting."""
        store.set("aws_key", "AKIA123")

        assert store.contains("aws_key") is True
        assert store.contains("aws_secret") is False

    def test_tags_sorted(self, store):
        """Test tags returns tags sorted by secret key."""
        store.set("b", "2")
        store.set("a", "1", tag="first")

        assert store.tags() == {"a": "first", "b": None}

    def test_generates_master_key_once(self, store, key_vault):
        """Test the master key is generated on first write and then reused."""
        assert key_vault.key is None

        store.set("a", "1")
        store.set("b", "2")

        assert key_vault.set_calls == 1
        assert len(key_vault.key) == 32

    def test_uses_existing_master_key(self, store, key_vault):
        """Test an existing key is never replaced."""
        key_vault.key = b"k" * 32

        store.set("a", "1")

        assert key_vault.set_calls == 0
        assert key_vault.key == b"k" * 32

    def test_get_without_master_key_raises(self, store, key_vault):
        """Test reading a record after the key disappeared raises KeyVaultError."""
        store.set("a", "1")
        key_vault.key = None

        with pytest.raises(KeyVaultError, match="No master key found"):
            store.get("a")

    def test_wrong_key_raises_decryption_error(self, store, key_vault):
        """Test decrypting with a different key fails authentication."""
        store.set("a", "1")
        key_vault.key = b"x" * 32

        with pytest.raises(DecryptionError, match="Failed to decrypt 'a'"):
            store.get("a")

    def test_tampered_ciphertext_raises(self, store, store_path):
        """Test flipping a ciphertext bit is detected."""
        store.set("a", "secret-value")
        data = json.loads(store_path.read_text())
        data["a"]["ciphertext"] = _flip_bit(data["a"]["ciphertext"])
        store_path.write_text(json.dumps(data))

        with pytest.raises(DecryptionError):
            store.get("a")

    def test_tampered_nonce_raises(self, store, store_path):
        """Test flipping a nonce bit is detected."""
        store.set("a", "secret-value")
        data = json.loads(store_path.read_text())
        data["a"]["nonce"] = _flip_bit(data["a"]["nonce"], byte_index=11)
        store_path.write_text(json.dumps(data))

        with pytest.raises(DecryptionError):
            store.get("a")

    def test_swapped_records_raise(self, store, store_path):
        """Test a record moved under another name fails authentication."""
        store.set("a", "value-a")
        store.set("b", "value-b")
        data = json.loads(store_path.read_text())
        data["a"], data["b"] = data["b"], data["a"]
        store_path.write_text(json.dumps(data))

        with pytest.raises(DecryptionError):
            store.get("a")

    def test_corrupted_record_does_not_affect_others(self, store, store_path):
        """Test one corrupted record only fails when requested."""
        store.set("good", "still-readable")
        store.set("bad", "broken")
        data = json.loads(store_path.read_text())
        data["bad"]["ciphertext"] = "!!not base64!!"
        store_path.write_text(json.dumps(data))

        assert store.get("good") == "still-readable"
        assert store.list_keys() == {"good", "bad"}
        with pytest.raises(DecryptionError, match="not valid base64"):
            store.get("bad")

    def test_structurally_broken_record_does_not_affect_others(self, store, store_path):
        """Test a record with a missing field only fails when requested."""
        store.set("a", "1")
        store.set("b", "2", tag="second")
        data = json.loads(store_path.read_text())
        del data["a"]["ciphertext"]
        store_path.write_text(json.dumps(data))

        assert store.get("b") == "2"
        assert store.list_keys() == {"a", "b"}
        assert store.contains("a")
        assert store.tags() == {"a": None, "b": "second"}
        with pytest.raises(DecryptionError, match="record is malformed"):
            store.get("a")

    def test_record_with_unexpected_shape(self, store, store_path):
        """Test records with extra fields or the wrong type fail individually."""
        store.set("a", "1")
        store.set("b", "2")
        data = json.loads(store_path.read_text())
        data["a"]["extra"] = "x"
        data["c"] = "not a record"
        store_path.write_text(json.dumps(data))

        assert store.get("b") == "2"
        with pytest.raises(DecryptionError, match="Failed to decrypt 'a'"):
            store.get("a")
        with pytest.raises(DecryptionError, match="Failed to decrypt 'c'"):
            store.get("c")

    def test_set_preserves_broken_records(self, store, store_path):
        """Test writing a new secret keeps other records exactly as they were."""
        store.set("a", "1")
        data = json.loads(store_path.read_text())
        del data["a"]["nonce"]
        store_path.write_text(json.dumps(data))

        store.set("b", "2")

        assert json.loads(store_path.read_text())["a"] == data["a"]
        assert store.get("b") == "2"

    def test_set_refuses_new_key_when_records_exist(self, store, key_vault, store_path):
        """Test a lost master key is never silently replaced while records remain."""
        store.set("a", "1")
        before = store_path.read_text()
        key_vault.key = None

        with pytest.raises(KeyVaultError, match="already holds 1 secret"):
            store.set("b", "2")

        assert key_vault.key is None
        assert key_vault.set_calls == 1
        assert store_path.read_text() == before

    def test_short_nonce_raises(self, store, store_path):
        """Test a truncated nonce is reported as a decryption failure."""
        store.set("a", "1")
        data = json.loads(store_path.read_text())
        data["a"]["nonce"] = base64.b64encode(b"short").decode("ascii")
        store_path.write_text(json.dumps(data))

        with pytest.raises(DecryptionError, match="nonce has invalid length"):
            store.get("a")

    def test_malformed_store_file_raises(self, store, store_path):
        """Test an unparsable store file raises SecretStoreError."""
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{ not json")

        with pytest.raises(SecretStoreError, match="Could not parse store file"):
            store.list_keys()

    def test_failed_write_leaves_store_intact(self, store, store_path, monkeypatch):
        """Test an I/O error during set keeps the previous file and no temp files."""
        store.set("a", "1")
        before = store_path.read_text()

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("cryptenv.local.security.store.os.replace", fail_replace)

        with pytest.raises(SecretStoreError, match="disk full"):
            store.set("b", "2")

        assert store_path.read_text() == before
        assert sorted(p.name for p in store_path.parent.iterdir()) == ["store.json", "store.json.lock"]

    def test_store_file_is_owner_only(self, store, store_path):
        """Test the store file is created with 0600 permissions."""
        store.set("a", "1")

        assert store_path.stat().st_mode & 0o777 == 0o600

    def test_concurrent_writes_do_not_lose_updates(self, key_vault, store_path):
        """Test interleaved writers on different keys and a reader on a third key."""
        EncryptedSecretStore(key_vault=key_vault, path=store_path).set("shared", "read-me")
        errors: list[BaseException] = []

        def writer(prefix: str) -> None:
            store = EncryptedSecretStore(key_vault=key_vault, path=store_path)
            try:
                for i in range(10):
                    store.set(f"{prefix}{i}", f"{prefix}-value-{i}")
            except BaseException as e:  # noqa: BLE001 - surfaced through the errors list
                errors.append(e)

        def reader() -> None:
            store = EncryptedSecretStore(key_vault=key_vault, path=store_path)
            try:
                for _ in range(20):
                    assert store.get("shared") == "read-me"
            except BaseException as e:  # noqa: BLE001 - surfaced through the errors list
                errors.append(e)

        threads = [
            threading.Thread(target=writer, args=("x",)),
            threading.Thread(target=writer, args=("y",)),
            threading.Thread(target=reader),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        store = EncryptedSecretStore(key_vault=key_vault, path=store_path)
        assert store.list_keys() == {"shared"} | {f"x{i}" for i in range(10)} | {f"y{i}" for i in range(10)}
        assert store.get("x9") == "x-value-9"
        assert store.get("y0") == "y-value-0"

    def test_repr(self, store, store_path):
        """Test __repr__ method."""
        repr_str = repr(store)

        assert "EncryptedSecretStore" in repr_str
        assert str(store_path) in repr_str
