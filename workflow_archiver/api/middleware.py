"""Lifespan middleware closing shared clients on shutdown.

The GitHub API client, log fetcher and blob service client are created once
per process and shared across deliveries. Falcon's ASGI lifespan hooks give
a single place to release their connection pools.

Usage
-----
Register the middleware when creating the Falcon app::

    closer = ResourceCloser([factory.aclose, fetcher.aclose, store.aclose])
    app = falcon.asgi.App(middleware=[closer])

"""

from __future__ import annotations

import typing as typ

from workflow_archiver.logging import get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["ResourceCloser"]

logger = get_logger(__name__)


class ResourceCloser:
    """Await each close callback once when the server shuts down.

    A failing callback is logged and the remaining callbacks still run.

    Parameters
    ----------
    closers
        Zero-argument coroutine functions, awaited in order.

    """

    def __init__(
        self, closers: cabc.Iterable[cabc.Callable[[], cabc.Awaitable[None]]]
    ) -> None:
        """Store the close callbacks."""
        self._closers = tuple(closers)
        self.closed = False

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Close shared resources during ASGI lifespan shutdown."""
        if self.closed:
            return
        self.closed = True
        for close in self._closers:
            try:
                await close()
            except Exception as exc:  # noqa: BLE001 - keep closing the rest
                log_exception(logger, "Failed to close shared resource", exc)
        log_info(logger, "Closed %d shared resources", len(self._closers))
