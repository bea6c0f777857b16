"""Health probe resources for liveness and readiness checks.

Usage
-----
Register health endpoints on the Falcon app::

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(ready=lambda: True))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Reports ``ready`` only when webhook handling is wired up; an app built
    without dependencies answers 503 so a load balancer keeps traffic away.

    Parameters
    ----------
    ready
        Returns whether the service can accept deliveries.

    """

    def __init__(self, ready: cabc.Callable[[], bool]) -> None:
        """Store the readiness check."""
        self._ready = ready

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        if self._ready():
            resp.media = {"status": "ready"}
            resp.status = HTTPStatus.OK
        else:
            resp.media = {"status": "unavailable"}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
