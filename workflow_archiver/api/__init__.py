"""Workflow archiver HTTP API layer.

Public API
----------
create_app
    Application factory that configures the Falcon ASGI app with health
    endpoints and, when dependencies are provided, the webhook endpoint.
AppDependencies
    Wiring passed to :func:`create_app`.
"""

from workflow_archiver.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
