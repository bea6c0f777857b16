"""Workflow archiver runtime entrypoint.

This module wires the configuration file into the archive pipeline and
exposes the ``workflow_archiver.runtime:create_app`` Granian entrypoint.

Configuration is driven by a YAML file (see :mod:`workflow_archiver.config`)
plus environment variables:

- ``ARCHIVER_CONFIG_PATH``: Path to the YAML config (default ``config.yml``)
- ``ARCHIVER_HOST``: Bind address overriding ``server.address``
- ``ARCHIVER_PORT``: Listen port overriding ``server.port``
- ``ARCHIVER_LOG_LEVEL``: Log level (default ``INFO``)

Run the service directly with ``python -m workflow_archiver.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from workflow_archiver.api.app import AppDependencies
from workflow_archiver.archive import (
    AzureBlobObjectStore,
    InMemoryObjectStore,
    LogArchiver,
    LogFetcher,
    WorkflowEventProcessor,
)
from workflow_archiver.config import ConfigError, load_config_from_env
from workflow_archiver.github import (
    CachingStage,
    ClientMetrics,
    GitHubAppAuth,
    GitHubClientBuilder,
    GitHubConfigError,
    InstallationClientFactory,
    MetricsStage,
    TimeoutStage,
)
from workflow_archiver.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from workflow_archiver.webhooks import HandlerRegistry, WorkflowRunHandler

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import falcon.asgi
    import httpx

    from workflow_archiver.archive import LogSource, ObjectStore
    from workflow_archiver.config import ArchiverConfig
    from workflow_archiver.github.middleware import ClientStage

__all__ = ["build_dependencies", "create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid ARCHIVER_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def _client_stages(config: ArchiverConfig, metrics: ClientMetrics) -> list[ClientStage]:
    stages: list[ClientStage] = [
        TimeoutStage(config.github.timeout_s),
        MetricsStage(metrics),
    ]
    if config.github.caching:
        stages.append(CachingStage())
    return stages


def _build_store(
    config: ArchiverConfig,
) -> tuple[ObjectStore, AzureBlobObjectStore | None]:
    if config.azure.storage_backend == "memory":
        log_warning(logger, "Using in-memory storage; archives are not persisted")
        return InMemoryObjectStore(), None
    store = AzureBlobObjectStore.from_account_name(config.azure.storage_account_name)
    return store, store


def _metrics_reporter(
    metrics: ClientMetrics,
) -> cabc.Callable[[], cabc.Awaitable[None]]:
    async def report() -> None:
        log_info(
            logger,
            "GitHub client totals: requests=%d transport_errors=%d "
            "status_classes=%s total_latency_seconds=%.3f",
            metrics.requests,
            metrics.transport_errors,
            dict(metrics.status_classes),
            metrics.total_latency_s,
        )

    return report


def build_dependencies(
    config: ArchiverConfig,
    *,
    github_transport: httpx.AsyncBaseTransport | None = None,
    store: ObjectStore | None = None,
    fetcher: LogSource | None = None,
) -> AppDependencies:
    """Construct the shared clients and handler registry for ``config``.

    Parameters
    ----------
    config
        Loaded service configuration.
    github_transport
        Innermost transport for the GitHub API client; tests pass an
        ``httpx.MockTransport``.
    store
        Object store override; defaults to the configured backend.
    fetcher
        Log source override; defaults to a :class:`LogFetcher` using
        ``azure.fetch_timeout_s``.

    Returns
    -------
    AppDependencies
        Registry, webhook secret and shutdown callbacks for
        :func:`workflow_archiver.api.create_app`.

    """
    metrics = ClientMetrics()
    builder = GitHubClientBuilder(
        base_url=config.github.api_url,
        user_agent=config.github.user_agent,
        stages=_client_stages(config, metrics),
    )
    api_client = builder.build(transport=github_transport)
    github = config.github
    app_auth = GitHubAppAuth(github.app_id, github.private_key, api_client)
    clients = InstallationClientFactory(app_auth, api_client)
    closers: list[cabc.Callable[[], cabc.Awaitable[None]]] = [
        _metrics_reporter(metrics),
        clients.aclose,
    ]
    if fetcher is None:
        owned_fetcher = LogFetcher(timeout_s=config.azure.fetch_timeout_s)
        closers.append(owned_fetcher.aclose)
        fetcher = owned_fetcher
    if store is None:
        store, owned = _build_store(config)
        if owned is not None:
            closers.append(owned.aclose)

    processor = WorkflowEventProcessor(clients, LogArchiver(fetcher, store))
    log_info(
        logger,
        "GitHub client stages: %s",
        ", ".join(builder.stage_names),
    )
    return AppDependencies(
        registry=HandlerRegistry([WorkflowRunHandler(processor)]),
        webhook_secret=config.github.webhook_secret,
        closers=tuple(closers),
    )


def create_app() -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Loads the configuration named by ``ARCHIVER_CONFIG_PATH`` and builds the
    full webhook pipeline.

    Raises
    ------
    SystemExit
        If the configuration or the App private key cannot be loaded.

    """
    from workflow_archiver.api.app import create_app as _create_api_app

    try:
        dependencies = build_dependencies(load_config_from_env())
    except (ConfigError, GitHubConfigError) as exc:
        log_error(logger, "Cannot start: %s", exc)
        raise SystemExit(1) from exc

    return _create_api_app(dependencies)


def main() -> None:
    """Start the workflow archiver server using Granian.

    The bind address and port come from the config file's ``server``
    section unless ``ARCHIVER_HOST`` or ``ARCHIVER_PORT`` override them.
    """
    from granian import Granian
    from granian.constants import Interfaces

    log_level_str = os.environ.get("ARCHIVER_LOG_LEVEL", "INFO")
    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid ARCHIVER_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    try:
        config = load_config_from_env()
    except ConfigError as exc:
        log_error(logger, "Cannot start: %s", exc)
        raise SystemExit(1) from exc

    host = os.environ.get("ARCHIVER_HOST", config.server.address)
    port = _parse_port(os.environ.get("ARCHIVER_PORT", str(config.server.port)))

    log_info(
        logger,
        "Starting workflow archiver on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "workflow_archiver.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
