"""Service configuration loaded from a YAML file.

The file mirrors the sections operators already know from GitHub App
deployments::

    server:
      address: 0.0.0.0
      port: 8080
    github:
      app_id: 12345
      private_key: /etc/workflow-archiver/app.pem
      webhook_secret: s3cret
    azure:
      storage_account_name: archivelogs

Unknown keys are rejected so typos fail loudly at startup. The loaded
:class:`ArchiverConfig` is immutable and is passed to constructors
explicitly.

Usage
-----
>>> config = load_config("config.yml")
>>> config.github.timeout_s
3.0

"""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

__all__ = [
    "CONFIG_PATH_ENV",
    "ArchiverConfig",
    "AzureConfig",
    "ConfigError",
    "GitHubAppConfig",
    "ServerConfig",
    "load_config",
    "load_config_from_env",
]

CONFIG_PATH_ENV = "ARCHIVER_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "config.yml"
YAML_VERSION = (1, 2)


class ConfigError(ValueError):
    """Raised when the configuration file cannot be read or validated."""

    @classmethod
    def unreadable(cls, path: Path, detail: str) -> ConfigError:
        """Return an error for a missing or unparsable file."""
        return cls(f"failed reading config file {path}: {detail}")

    @classmethod
    def invalid(cls, path: Path, detail: str) -> ConfigError:
        """Return an error for a file that fails schema validation."""
        return cls(f"invalid config file {path}: {detail}")


class ServerConfig(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """HTTP bind settings."""

    address: str = "0.0.0.0"  # noqa: S104 - bind all interfaces for container
    port: typ.Annotated[int, msgspec.Meta(ge=1, le=65535)] = 8080


class GitHubAppConfig(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """GitHub App identity and API client settings.

    Attributes
    ----------
    app_id
        Numeric GitHub App identifier.
    private_key
        PEM text or a path to the App's private key file.
    webhook_secret
        Shared secret used to verify ``X-Hub-Signature-256``.
    api_url
        REST API root; override for GitHub Enterprise Server.
    timeout_s
        Per-request timeout for API calls.
    user_agent
        ``User-Agent`` sent to GitHub.
    caching
        Enable the ETag response cache stage.

    """

    app_id: int
    private_key: str
    webhook_secret: str
    api_url: str = "https://api.github.com"
    timeout_s: typ.Annotated[float, msgspec.Meta(gt=0)] = 3.0
    user_agent: str = "workflow-archiver-bot/1.0.0"
    caching: bool = True


class AzureConfig(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """Object storage target.

    Attributes
    ----------
    storage_account_name
        Azure storage account receiving archives.
    storage_backend
        ``azure`` for Blob Storage, ``memory`` for local development.
    fetch_timeout_s
        Timeout for downloading a log body.

    """

    storage_account_name: str = ""
    storage_backend: typ.Literal["azure", "memory"] = "azure"
    fetch_timeout_s: typ.Annotated[float, msgspec.Meta(gt=0)] = 10.0


class ArchiverConfig(
    msgspec.Struct, kw_only=True, frozen=True, forbid_unknown_fields=True
):
    """Top-level configuration document."""

    github: GitHubAppConfig
    server: ServerConfig = msgspec.field(default_factory=ServerConfig)
    azure: AzureConfig = msgspec.field(default_factory=AzureConfig)


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml


def _check_storage(config: ArchiverConfig, path: Path) -> ArchiverConfig:
    azure = config.azure
    if azure.storage_backend == "azure" and not azure.storage_account_name.strip():
        raise ConfigError.invalid(
            path, "azure.storage_account_name is required for the azure backend"
        )
    return config


def load_config(path: Path | str) -> ArchiverConfig:
    """Parse and validate the YAML configuration file at ``path``.

    Raises
    ------
    ConfigError
        If the file is missing, is not valid YAML, or fails validation.

    """
    path_obj = Path(path)
    try:
        loaded = _yaml().load(path_obj.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        raise ConfigError.unreadable(path_obj, str(exc)) from exc

    if loaded is None:
        raise ConfigError.invalid(path_obj, "file is empty")

    try:
        config = msgspec.convert(loaded, type=ArchiverConfig)
    except msgspec.ValidationError as exc:
        raise ConfigError.invalid(path_obj, str(exc)) from exc

    return _check_storage(config, path_obj)


def load_config_from_env() -> ArchiverConfig:
    """Load the file named by ``ARCHIVER_CONFIG_PATH`` (default ``config.yml``)."""
    raw = os.environ.get(CONFIG_PATH_ENV, "").strip()
    return load_config(raw or DEFAULT_CONFIG_PATH)
