"""Tests for cryptenv utilities."""

import subprocess
import sys
from pathlib import Path

import pytest

from cryptenv.any.utils import run_command, user_data_dir


class TestUserDataDir:
    """Tests for user_data_dir."""

    def test_override(self, monkeypatch, tmp_path):
        """Test CRYPTENV_DATA_DIR is used verbatim."""
        monkeypatch.setenv("CRYPTENV_DATA_DIR", str(tmp_path / "custom"))

        assert user_data_dir() == tmp_path / "custom"

    def test_xdg_data_home(self, monkeypatch, tmp_path):
        """Test XDG_DATA_HOME gets a cryptenv subdirectory."""
        monkeypatch.delenv("CRYPTENV_DATA_DIR", raising=False)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

        assert user_data_dir() == tmp_path / "cryptenv"

    @pytest.mark.skipif(sys.platform != "linux", reason="Linux default location")
    def test_linux_default(self, monkeypatch, tmp_path):
        """Test the Linux default is ~/.local/share/cryptenv."""
        monkeypatch.delenv("CRYPTENV_DATA_DIR", raising=False)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert user_data_dir() == Path(tmp_path) / ".local" / "share" / "cryptenv"


class TestRunCommand:
    """Tests for run_command."""

    def test_env_overlays_parent(self, monkeypatch):
        """Test given variables override inherited ones and the rest pass through."""
        monkeypatch.setenv("CRYPTENV_TEST_INHERITED", "parent")
        monkeypatch.setenv("CRYPTENV_TEST_OVERRIDDEN", "parent")

        result = run_command(
            [
                sys.executable,
                "-c",
                "import os; print(os.environ['CRYPTENV_TEST_INHERITED'], os.environ['CRYPTENV_TEST_OVERRIDDEN'])",
            ],
            env={"CRYPTENV_TEST_OVERRIDDEN": "child"},
            capture=True,
        )

        assert result.returncode == 0
        assert result.stdout.strip() == "parent child"

    def test_returns_exit_code(self):
        """Test non-zero exit codes are returned when check is False."""
        result = run_command([sys.executable, "-c", "raise SystemExit(5)"])

        assert result.returncode == 5

    def test_check_raises(self):
        """Test check=True raises on failure."""
        with pytest.raises(subprocess.CalledProcessError):
            run_command([sys.executable, "-c", "raise SystemExit(1)"], check=True, capture=True)
