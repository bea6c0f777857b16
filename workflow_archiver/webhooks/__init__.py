"""Inbound GitHub webhook handling.

Deliveries arrive at :class:`WebhookResource`, are authenticated with
:func:`verify_signature`, and are dispatched by event type through a
:class:`HandlerRegistry`.
"""

from __future__ import annotations

from .handler import WORKFLOW_RUN_EVENT, WorkflowRunHandler
from .registry import DuplicateHandlerError, EventHandler, HandlerRegistry
from .resources import (
    DELIVERY_HEADER,
    EVENT_HEADER,
    SIGNATURE_HEADER,
    WEBHOOK_ROUTE,
    WebhookResource,
)
from .signature import InvalidSignatureError, sign, verify_signature

__all__ = [
    "DELIVERY_HEADER",
    "EVENT_HEADER",
    "SIGNATURE_HEADER",
    "WEBHOOK_ROUTE",
    "WORKFLOW_RUN_EVENT",
    "DuplicateHandlerError",
    "EventHandler",
    "HandlerRegistry",
    "InvalidSignatureError",
    "WebhookResource",
    "WorkflowRunHandler",
    "sign",
    "verify_signature",
]
