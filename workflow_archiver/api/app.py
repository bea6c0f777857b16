"""Application factory for the workflow archiver Falcon ASGI application.

This module provides ``create_app()`` which builds the Falcon ASGI
application with health endpoints and, when webhook dependencies are
available, the GitHub webhook endpoint.

Usage
-----
Create a health-only app::

    app = create_app()

Create a full app with the webhook endpoint::

    from workflow_archiver.api.app import AppDependencies, create_app

    deps = AppDependencies(registry=registry, webhook_secret=secret)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from workflow_archiver.api.errors import (
    handle_archive_error,
    handle_invalid_signature,
    handle_malformed_event,
)
from workflow_archiver.api.health.resources import HealthResource, ReadyResource
from workflow_archiver.api.middleware import ResourceCloser
from workflow_archiver.archive.errors import ArchiveError, MalformedEventError
from workflow_archiver.webhooks import (
    WEBHOOK_ROUTE,
    InvalidSignatureError,
    WebhookResource,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from workflow_archiver.webhooks import HandlerRegistry

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    registry
        Event-type dispatch table for webhook deliveries.
    webhook_secret
        Shared secret for verifying delivery signatures.
    closers
        Coroutine functions that release shared clients at shutdown.

    """

    registry: HandlerRegistry
    webhook_secret: str
    closers: tuple[cabc.Callable[[], cabc.Awaitable[None]], ...] = ()


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional webhook dependencies. When ``None``, only ``/health`` and
        ``/ready`` are registered and ``/ready`` reports unavailable.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = []
    if dependencies is not None and dependencies.closers:
        middleware.append(ResourceCloser(dependencies.closers))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(ready=lambda: dependencies is not None))

    if dependencies is not None:
        app.add_route(
            WEBHOOK_ROUTE,
            WebhookResource(dependencies.registry, dependencies.webhook_secret),
        )

    app.add_error_handler(ArchiveError, handle_archive_error)
    app.add_error_handler(MalformedEventError, handle_malformed_event)
    app.add_error_handler(InvalidSignatureError, handle_invalid_signature)

    return app
