"""Webhook handler that archives completed workflow run logs."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from workflow_archiver.archive import WorkflowEventProcessor

__all__ = ["WORKFLOW_RUN_EVENT", "WorkflowRunHandler"]

WORKFLOW_RUN_EVENT = "workflow_run"


class WorkflowRunHandler:
    """Route ``workflow_run`` deliveries to a :class:`WorkflowEventProcessor`."""

    handles: tuple[str, ...] = (WORKFLOW_RUN_EVENT,)

    def __init__(self, processor: WorkflowEventProcessor) -> None:
        """Wrap ``processor``."""
        self._processor = processor

    async def handle(
        self, event_type: str, delivery_id: str | None, payload: bytes
    ) -> dict[str, str] | None:
        """Archive the run's log and describe where it was written.

        Returns ``None`` when the event was not a completed run. Archive
        errors propagate for the HTTP layer to translate.
        """
        del event_type, delivery_id
        result = await self._processor.process(payload)
        if result is None:
            return None
        return {
            "namespace": result.target.namespace,
            "object_key": result.target.object_key,
        }
