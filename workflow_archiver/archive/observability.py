"""Structured log events for the archive pipeline.

Each event is a single femtologging line in ``[event] key=value`` form so
log aggregators can parse it without a schema.
"""

from __future__ import annotations

import enum
import typing as typ

from workflow_archiver.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    import datetime as dt

    from .models import ArchiveResult, WorkflowCompletionEvent

logger = get_logger(__name__)


class ArchiveEventType(enum.StrEnum):
    """Structured log event types for archive invocations."""

    EVENT_IGNORED = "archive.event.ignored"
    RUN_NOT_SUCCESSFUL = "archive.run.not_successful"
    NAMESPACE_EXISTS = "archive.namespace.exists"
    ARCHIVE_COMPLETED = "archive.completed"
    ARCHIVE_FAILED = "archive.failed"


class ArchiveEventLogger:
    """Emit archive lifecycle events via femtologging."""

    def log_event_ignored(self, event: WorkflowCompletionEvent) -> None:
        """Log a delivery whose action is not ``completed``."""
        log_info(
            logger,
            "[%s] repo_slug=%s run_id=%d action=%s",
            ArchiveEventType.EVENT_IGNORED,
            event.repo_slug,
            event.workflow_run_id,
            event.action,
        )

    def log_run_not_successful(
        self, repo_slug: str, run_id: int, conclusion: str | None
    ) -> None:
        """Log that a run did not succeed; archiving continues regardless."""
        log_info(
            logger,
            "[%s] repo_slug=%s run_id=%d conclusion=%s",
            ArchiveEventType.RUN_NOT_SUCCESSFUL,
            repo_slug,
            run_id,
            conclusion,
        )

    def log_namespace_exists(self, namespace: str) -> None:
        """Log that the target namespace was already present."""
        log_info(
            logger,
            "[%s] namespace=%s",
            ArchiveEventType.NAMESPACE_EXISTS,
            namespace,
        )

    def log_archive_completed(
        self,
        repo_slug: str,
        run_id: int,
        result: ArchiveResult,
        duration: dt.timedelta,
    ) -> None:
        """Log a successful upload with sizes and timing."""
        log_info(
            logger,
            "[%s] repo_slug=%s run_id=%d namespace=%s object_key=%s "
            "original_bytes=%d compressed_bytes=%d duration_seconds=%.3f",
            ArchiveEventType.ARCHIVE_COMPLETED,
            repo_slug,
            run_id,
            result.target.namespace,
            result.target.object_key,
            result.original_size,
            result.compressed_size,
            duration.total_seconds(),
        )

    def log_archive_failed(
        self,
        *,
        repo_slug: str | None,
        run_id: int | None,
        stage: str,
        error: BaseException,
    ) -> None:
        """Log a failed invocation with the stage it reached."""
        log_error(
            logger,
            "[%s] repo_slug=%s run_id=%s stage=%s error_type=%s error_message=%s",
            ArchiveEventType.ARCHIVE_FAILED,
            repo_slug,
            run_id,
            stage,
            type(error).__name__,
            str(error),
            exc_info=error,
        )
