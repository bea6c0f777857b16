"""Unit tests for ``ResourceCloser`` lifespan middleware."""

from __future__ import annotations

import pytest

from workflow_archiver.api.middleware import ResourceCloser
from tests.helpers.femtologging_capture import capture_femto_logs


class TestResourceCloser:
    """Tests for shutdown handling."""

    @pytest.mark.asyncio
    async def test_closes_each_resource_once(self) -> None:
        """Callbacks run in order and a second shutdown is a no-op."""
        closed: list[str] = []

        async def close_api() -> None:
            closed.append("api")

        async def close_store() -> None:
            closed.append("store")

        closer = ResourceCloser([close_api, close_store])

        await closer.process_shutdown({}, {})
        await closer.process_shutdown({}, {})

        assert closed == ["api", "store"]
        assert closer.closed

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_remaining_closers(self) -> None:
        """A failing close is logged and the rest still run."""
        closed: list[str] = []

        async def broken() -> None:
            msg = "already closed"
            raise RuntimeError(msg)

        async def close_store() -> None:
            closed.append("store")

        closer = ResourceCloser([broken, close_store])

        with capture_femto_logs("workflow_archiver.api.middleware") as capture:
            await closer.process_shutdown({}, {})
            capture.wait_for_count(2)

        assert closed == ["store"]
        assert capture.records[0].level == "ERROR"
        assert "Failed to close shared resource" in capture.records[0].message
