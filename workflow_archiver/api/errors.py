"""Falcon error handlers for webhook deliveries.

Archive failures surface to GitHub as HTTP errors so the delivery is
recorded as failed and can be redelivered. Malformed payloads get a 400
because redelivery would fail the same way.

Usage
-----
Register error handlers on the Falcon app::

    app.add_error_handler(ArchiveError, handle_archive_error)
    app.add_error_handler(MalformedEventError, handle_malformed_event)
    app.add_error_handler(InvalidSignatureError, handle_invalid_signature)

Falcon selects the handler registered for the most specific class, so the
order of registration does not matter.

"""

from __future__ import annotations

import typing as typ

import falcon

from workflow_archiver.archive.errors import ArchiveError, UpstreamError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from workflow_archiver.archive.errors import MalformedEventError
    from workflow_archiver.webhooks.signature import InvalidSignatureError

__all__ = [
    "handle_archive_error",
    "handle_invalid_signature",
    "handle_malformed_event",
]


async def handle_invalid_signature(
    _req: Request,
    resp: Response,
    ex: InvalidSignatureError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidSignatureError`` to an HTTP 401 JSON response."""
    resp.status = falcon.HTTP_401
    resp.media = {"title": "Invalid signature", "description": str(ex)}


async def handle_malformed_event(
    _req: Request,
    resp: Response,
    ex: MalformedEventError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``MalformedEventError`` to an HTTP 400 JSON response.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The decoding failure.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_400
    resp.media = {"title": "Malformed event", "description": str(ex)}


def _archive_error_media(ex: ArchiveError) -> dict[str, typ.Any]:
    media: dict[str, typ.Any] = {
        "title": "Archive failed",
        "description": str(ex),
        "error_type": type(ex).__name__,
    }
    if ex.stage is not None:
        media["stage"] = str(ex.stage)
    if ex.repo_slug is not None:
        media["repository"] = ex.repo_slug
    if ex.run_id is not None:
        media["run_id"] = ex.run_id
    if isinstance(ex, UpstreamError) and ex.status_code is not None:
        media["upstream_status"] = ex.status_code
    return media


async def handle_archive_error(
    _req: Request,
    resp: Response,
    ex: ArchiveError,
    _params: dict[str, typ.Any],
) -> None:
    """Map any other ``ArchiveError`` to an HTTP 502 JSON response.

    The body names the failing stage and repository so the GitHub
    delivery log is enough to see what went wrong.
    """
    resp.status = falcon.HTTP_502
    resp.media = _archive_error_media(ex)
