"""Unit tests for archive lifecycle log events."""

from __future__ import annotations

import datetime as dt

import pytest

from workflow_archiver.archive import (
    ArchiveEventLogger,
    ArchiveEventType,
    FetchError,
    WorkflowCompletionEvent,
)
from workflow_archiver.archive.models import ArchiveResult, ArchiveTarget
from tests.helpers.femtologging_capture import capture_femto_logs

LOGGER_NAME = "workflow_archiver.archive.observability"


class TestArchiveEventLogger:
    """Tests for ``ArchiveEventLogger`` structured log events."""

    @pytest.fixture
    def events(self) -> ArchiveEventLogger:
        """Return a fresh archive event logger."""
        return ArchiveEventLogger()

    def test_event_ignored(self, events: ArchiveEventLogger) -> None:
        """Ignored deliveries log the action at INFO."""
        event = WorkflowCompletionEvent(
            action="requested", owner="acme", repo="widgets", workflow_run_id=42
        )
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_event_ignored(event)
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "INFO"
        assert record.message == (
            "[archive.event.ignored] repo_slug=acme/widgets run_id=42 action=requested"
        )

    def test_archive_completed(self, events: ArchiveEventLogger) -> None:
        """Completion events carry the location, sizes and duration."""
        result = ArchiveResult(
            target=ArchiveTarget(namespace="acme-widgets", object_key="k.log.gz"),
            original_size=11,
            compressed_size=31,
        )
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_archive_completed(
                "acme/widgets", 42, result, dt.timedelta(milliseconds=1500)
            )
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "INFO"
        assert ArchiveEventType.ARCHIVE_COMPLETED in record.message
        assert "namespace=acme-widgets object_key=k.log.gz" in record.message
        assert "original_bytes=11 compressed_bytes=31" in record.message
        assert "duration_seconds=1.500" in record.message

    def test_archive_failed(self, events: ArchiveEventLogger) -> None:
        """Failures log at ERROR with the stage and error details."""
        error = FetchError.timeout()
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_archive_failed(
                repo_slug="acme/widgets",
                run_id=42,
                stage="log_url_resolved",
                error=error,
            )
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "ERROR"
        assert "stage=log_url_resolved" in record.message
        assert "error_type=FetchError" in record.message
        assert "error_message=log download timed out" in record.message

    def test_archive_failed_before_decode(self, events: ArchiveEventLogger) -> None:
        """Failures before decoding log unknown identifiers as ``None``."""
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_archive_failed(
                repo_slug=None, run_id=None, stage="received", error=ValueError("x")
            )
            capture.wait_for_count(1)

        assert "repo_slug=None run_id=None stage=received" in capture.records[0].message
