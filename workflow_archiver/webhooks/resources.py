"""Falcon resource receiving GitHub webhook deliveries.

Usage
-----
Register the resource on the Falcon app::

    app.add_route(WEBHOOK_ROUTE, WebhookResource(registry, webhook_secret))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon

from workflow_archiver.logging import get_logger, log_debug, log_info

from .signature import verify_signature

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from .registry import HandlerRegistry

__all__ = [
    "DELIVERY_HEADER",
    "EVENT_HEADER",
    "SIGNATURE_HEADER",
    "WEBHOOK_ROUTE",
    "WebhookResource",
]

logger = get_logger(__name__)

WEBHOOK_ROUTE = "/api/github/hook"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
SIGNATURE_HEADER = "X-Hub-Signature-256"


class WebhookResource:
    """Verify, classify and dispatch GitHub deliveries.

    Parameters
    ----------
    registry
        Maps ``X-GitHub-Event`` values to handlers.
    webhook_secret
        Shared secret for ``X-Hub-Signature-256`` verification.

    """

    def __init__(self, registry: HandlerRegistry, webhook_secret: str) -> None:
        """Store the dispatch table and secret."""
        self._registry = registry
        self._secret = webhook_secret

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle ``POST /api/github/hook``.

        Responds 200 with the archive location, or 202 when the event type
        is not handled or the delivery needed no action. Errors raised by
        handlers are mapped by the app's error handlers.

        Parameters
        ----------
        req
            Falcon request carrying the raw delivery body.
        resp
            Falcon response populated with the outcome.

        """
        body = await req.stream.read()
        verify_signature(self._secret, req.get_header(SIGNATURE_HEADER), body)

        event_type = req.get_header(EVENT_HEADER)
        if not event_type:
            raise falcon.HTTPBadRequest(
                title="Missing event type",
                description=f"{EVENT_HEADER} header is required",
            )
        delivery_id = req.get_header(DELIVERY_HEADER)

        handler = self._registry.resolve(event_type)
        if handler is None:
            log_debug(
                logger,
                "Ignoring unhandled event %s (delivery %s)",
                event_type,
                delivery_id,
            )
            resp.status = HTTPStatus.ACCEPTED
            resp.media = {"status": "ignored", "event": event_type}
            return

        log_info(logger, "Handling %s delivery %s", event_type, delivery_id)
        outcome = await handler.handle(event_type, delivery_id, body)
        if outcome is None:
            resp.status = HTTPStatus.ACCEPTED
            resp.media = {"status": "ignored", "event": event_type}
            return

        resp.status = HTTPStatus.OK
        resp.media = {"status": "archived", **outcome}
