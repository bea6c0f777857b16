"""Dispatch table from GitHub event types to handlers.

The registry is built once at startup from a fixed list of handlers and is
read-only afterwards, so concurrent deliveries can resolve handlers without
locking.

Usage
-----
>>> registry = HandlerRegistry([WorkflowRunHandler(processor)])
>>> registry.resolve("workflow_run")
<WorkflowRunHandler ...>
>>> registry.resolve("ping") is None
True

"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["DuplicateHandlerError", "EventHandler", "HandlerRegistry"]


class EventHandler(typ.Protocol):
    """Handler for one or more webhook event types.

    ``handle`` returns a JSON-serialisable mapping describing the work done,
    or ``None`` when the delivery required no action.
    """

    handles: tuple[str, ...]

    async def handle(
        self, event_type: str, delivery_id: str | None, payload: bytes
    ) -> cabc.Mapping[str, typ.Any] | None:
        """Process one delivery."""
        ...


class DuplicateHandlerError(ValueError):
    """Raised when two handlers claim the same event type."""

    def __init__(self, event_type: str) -> None:
        """Record the contested event type."""
        self.event_type = event_type
        super().__init__(f"more than one handler registered for {event_type!r}")


class HandlerRegistry:
    """Immutable mapping of event type to :class:`EventHandler`."""

    def __init__(self, handlers: cabc.Iterable[EventHandler]) -> None:
        """Index ``handlers`` by the event types they declare.

        Raises
        ------
        DuplicateHandlerError
            If an event type is claimed more than once.

        """
        table: dict[str, EventHandler] = {}
        for handler in handlers:
            for event_type in handler.handles:
                if event_type in table:
                    raise DuplicateHandlerError(event_type)
                table[event_type] = handler
        self._handlers = table

    @property
    def event_types(self) -> frozenset[str]:
        """Return the event types with a registered handler."""
        return frozenset(self._handlers)

    def resolve(self, event_type: str) -> EventHandler | None:
        """Return the handler for ``event_type``, or ``None`` if unhandled."""
        return self._handlers.get(event_type)
