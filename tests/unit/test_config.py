"""Unit tests for YAML configuration loading."""

from __future__ import annotations

import typing as typ

import pytest

from workflow_archiver.config import (
    ConfigError,
    load_config,
    load_config_from_env,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

MINIMAL = """\
github:
  app_id: 12345
  private_key: /etc/workflow-archiver/app.pem
  webhook_secret: s3cret
azure:
  storage_account_name: archivelogs
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for ``load_config``."""

    def test_minimal_file_uses_defaults(self, tmp_path: Path) -> None:
        """Unset values fall back to the documented defaults."""
        config = load_config(_write(tmp_path, MINIMAL))

        assert config.github.app_id == 12345
        assert config.github.api_url == "https://api.github.com"
        assert config.github.timeout_s == 3.0
        assert config.github.caching is True
        assert config.server.address == "0.0.0.0"
        assert config.server.port == 8080
        assert config.azure.storage_account_name == "archivelogs"
        assert config.azure.storage_backend == "azure"
        assert config.azure.fetch_timeout_s == 10.0

    def test_overrides(self, tmp_path: Path) -> None:
        """Every section can be overridden."""
        text = MINIMAL + (
            "server:\n  address: 127.0.0.1\n  port: 9000\n"
        )
        text = text.replace(
            "  webhook_secret: s3cret\n",
            "  webhook_secret: s3cret\n  timeout_s: 5\n  caching: false\n",
        )
        config = load_config(_write(tmp_path, text))

        assert config.server.port == 9000
        assert config.github.timeout_s == 5.0
        assert config.github.caching is False

    def test_memory_backend_needs_no_account(self, tmp_path: Path) -> None:
        """Local development runs without Azure."""
        text = MINIMAL.replace(
            "  storage_account_name: archivelogs\n", "  storage_backend: memory\n"
        )
        assert load_config(_write(tmp_path, text)).azure.storage_backend == "memory"

    def test_azure_backend_needs_account(self, tmp_path: Path) -> None:
        """The Azure backend requires an account name."""
        text = MINIMAL.replace("azure:\n  storage_account_name: archivelogs\n", "")
        with pytest.raises(ConfigError, match="storage_account_name"):
            load_config(_write(tmp_path, text))

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Typos fail loudly."""
        with pytest.raises(ConfigError, match="invalid config file"):
            load_config(_write(tmp_path, MINIMAL + "  storage_acount: typo\n"))

    def test_duplicate_key_rejected(self, tmp_path: Path) -> None:
        """A key repeated in one mapping is an error."""
        with pytest.raises(ConfigError, match="failed reading"):
            load_config(_write(tmp_path, MINIMAL + "github:\n  app_id: 1\n"))

    def test_missing_required_field(self, tmp_path: Path) -> None:
        """``github.webhook_secret`` is required."""
        text = MINIMAL.replace("  webhook_secret: s3cret\n", "")
        with pytest.raises(ConfigError, match="webhook_secret"):
            load_config(_write(tmp_path, text))

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, tmp_path: Path, port: int) -> None:
        """Ports outside 1-65535 are rejected."""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, MINIMAL + f"server:\n  port: {port}\n"))

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file is invalid."""
        with pytest.raises(ConfigError, match="empty"):
            load_config(_write(tmp_path, ""))

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is reported with its path."""
        with pytest.raises(ConfigError, match="missing.yml"):
            load_config(tmp_path / "missing.yml")


def test_load_config_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """``ARCHIVER_CONFIG_PATH`` selects the file."""
    path = _write(tmp_path, MINIMAL)
    monkeypatch.setenv("ARCHIVER_CONFIG_PATH", str(path))

    assert load_config_from_env().github.webhook_secret == "s3cret"
