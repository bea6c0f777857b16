"""Turn a ``workflow_run`` delivery into a compressed log in object storage.

One call to :meth:`WorkflowEventProcessor.process` walks the stages below in
strict order. The first failure aborts the call; nothing is retried, and
because the upload is the final stage no partial object is ever written::

    RECEIVED -> VALIDATED -> AUTH_RESOLVED -> RUN_FETCHED -> LOG_URL_RESOLVED
      -> LOG_FETCHED -> COMPRESSED -> NAMESPACE_ENSURED -> UPLOADED -> DONE

Any stage may move to ``FAILED`` instead. A redelivered event restarts from
``RECEIVED``.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import enum
import time
import typing as typ

from workflow_archiver.github.errors import GitHubError

from .compression import compress
from .errors import (
    ArchiveError,
    AuthResolutionError,
    LogURLResolutionError,
    RunLookupError,
)
from .models import (
    ArchiveResult,
    ArchiveTarget,
    WorkflowCompletionEvent,
    build_archive_target,
)
from .observability import ArchiveEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from workflow_archiver.github.client import WorkflowRunClient

    from .fetcher import LogSource
    from .storage import ObjectStore

__all__ = [
    "ArchiveStage",
    "InstallationClientResolver",
    "LogArchiver",
    "WorkflowEventProcessor",
]


class ArchiveStage(enum.StrEnum):
    """Stages of one archive invocation, in execution order."""

    RECEIVED = "received"
    VALIDATED = "validated"
    AUTH_RESOLVED = "auth_resolved"
    RUN_FETCHED = "run_fetched"
    LOG_URL_RESOLVED = "log_url_resolved"
    LOG_FETCHED = "log_fetched"
    COMPRESSED = "compressed"
    NAMESPACE_ENSURED = "namespace_ensured"
    UPLOADED = "uploaded"
    DONE = "done"
    FAILED = "failed"


class InstallationClientResolver(typ.Protocol):
    """Source of installation-scoped GitHub clients."""

    async def client_for(self, installation_id: int) -> WorkflowRunClient:
        """Return a client authenticated as ``installation_id``."""
        ...


class _StageTracker:
    """Remember the last stage an invocation reached."""

    def __init__(self) -> None:
        self.reached = ArchiveStage.RECEIVED

    def reach(self, stage: ArchiveStage) -> None:
        self.reached = stage


def _noop_stage(stage: ArchiveStage) -> None:
    del stage


class LogArchiver:
    """Fetch, compress and upload one workflow log.

    Parameters
    ----------
    fetcher
        Downloads the raw log from its pre-authorised URL.
    store
        Object store receiving the compressed log.
    event_logger
        Structured event sink; defaults to :class:`ArchiveEventLogger`.
    target_factory
        Derives the namespace and a fresh object key from ``owner`` and
        ``repo``. Tests override it to pin keys.

    """

    def __init__(
        self,
        fetcher: LogSource,
        store: ObjectStore,
        *,
        event_logger: ArchiveEventLogger | None = None,
        target_factory: cabc.Callable[[str, str], ArchiveTarget] = (
            build_archive_target
        ),
    ) -> None:
        """Wire the archiver to its collaborators."""
        self._fetcher = fetcher
        self._store = store
        self._events = event_logger or ArchiveEventLogger()
        self._target_factory = target_factory

    async def archive(
        self,
        log_url: str,
        *,
        owner: str,
        repo: str,
        on_stage: cabc.Callable[[ArchiveStage], None] = _noop_stage,
    ) -> ArchiveResult:
        """Archive the log at ``log_url`` for ``owner/repo``.

        Parameters
        ----------
        log_url
            Pre-authorised log download URL.
        owner
            Repository owner; part of the namespace.
        repo
            Repository name; part of the namespace.
        on_stage
            Called after each stage completes.

        Returns
        -------
        ArchiveResult
            Where the log was written and its sizes.

        Raises
        ------
        FetchError
            If the download fails.
        CompressionError
            If gzip compression fails.
        StorageError
            If the namespace or upload is rejected.

        """
        target = self._target_factory(owner, repo)

        raw = await self._fetcher.fetch(log_url)
        on_stage(ArchiveStage.LOG_FETCHED)

        compressed = await asyncio.to_thread(compress, raw)
        on_stage(ArchiveStage.COMPRESSED)

        namespace = await self._store.ensure_namespace(target.namespace)
        if not namespace.created:
            self._events.log_namespace_exists(target.namespace)
        on_stage(ArchiveStage.NAMESPACE_ENSURED)

        await self._store.put_object(target.namespace, target.object_key, compressed)
        on_stage(ArchiveStage.UPLOADED)

        return ArchiveResult(
            target=target,
            original_size=len(raw),
            compressed_size=len(compressed),
        )


class WorkflowEventProcessor:
    """Handle ``workflow_run`` payloads end to end.

    Parameters
    ----------
    clients
        Resolves installation-scoped GitHub clients.
    archiver
        Runs the fetch, compress and upload stages.
    event_logger
        Structured event sink; defaults to :class:`ArchiveEventLogger`.

    Examples
    --------
    >>> processor = WorkflowEventProcessor(factory, LogArchiver(fetcher, store))
    >>> result = await processor.process(body)
    >>> result.target.namespace
    'acme-widgets'

    """

    def __init__(
        self,
        clients: InstallationClientResolver,
        archiver: LogArchiver,
        *,
        event_logger: ArchiveEventLogger | None = None,
    ) -> None:
        """Store collaborators; no network calls happen here."""
        self._clients = clients
        self._archiver = archiver
        self._events = event_logger or ArchiveEventLogger()

    async def process(self, payload: bytes) -> ArchiveResult | None:
        """Archive the log of the run described by ``payload``.

        Returns
        -------
        ArchiveResult | None
            The archive location, or ``None`` when the event is not a
            completed run and was ignored.

        Raises
        ------
        MalformedEventError
            If the payload fails validation. No network call is made.
        AuthResolutionError, RunLookupError, LogURLResolutionError, FetchError
            If GitHub or the log host fails.
        CompressionError, StorageError
            If compression or storage fails.
        asyncio.CancelledError
            If the surrounding task is cancelled; logged as a failure.

        """
        tracker = _StageTracker()
        started = time.perf_counter()
        event: WorkflowCompletionEvent | None = None
        try:
            event = WorkflowCompletionEvent.from_json(payload)
            tracker.reach(ArchiveStage.VALIDATED)
            if not event.is_completed:
                self._events.log_event_ignored(event)
                return None
            result = await self._archive_event(event, tracker)
        except ArchiveError as exc:
            exc.with_context(
                stage=tracker.reached,
                owner=event.owner if event else None,
                repo=event.repo if event else None,
                run_id=event.workflow_run_id if event else None,
            )
            self._log_failure(event, tracker, exc)
            raise
        except asyncio.CancelledError as exc:
            self._log_failure(event, tracker, exc)
            raise

        tracker.reach(ArchiveStage.DONE)
        self._events.log_archive_completed(
            event.repo_slug,
            event.workflow_run_id,
            result,
            dt.timedelta(seconds=time.perf_counter() - started),
        )
        return result

    async def _archive_event(
        self, event: WorkflowCompletionEvent, tracker: _StageTracker
    ) -> ArchiveResult:
        client = await self._resolve_client(event)
        tracker.reach(ArchiveStage.AUTH_RESOLVED)

        await self._confirm_run(client, event)
        tracker.reach(ArchiveStage.RUN_FETCHED)

        log_url = await self._resolve_log_url(client, event)
        tracker.reach(ArchiveStage.LOG_URL_RESOLVED)

        return await self._archiver.archive(
            log_url,
            owner=event.owner,
            repo=event.repo,
            on_stage=tracker.reach,
        )

    async def _resolve_client(
        self, event: WorkflowCompletionEvent
    ) -> WorkflowRunClient:
        if event.installation_id is None:
            raise AuthResolutionError.missing_installation()
        try:
            return await self._clients.client_for(event.installation_id)
        except GitHubError as exc:
            raise AuthResolutionError.for_installation(
                event.installation_id,
                str(exc),
                status_code=getattr(exc, "status_code", None),
            ) from exc

    async def _confirm_run(
        self, client: WorkflowRunClient, event: WorkflowCompletionEvent
    ) -> None:
        run_id = event.workflow_run_id
        try:
            run = await client.get_workflow_run(event.owner, event.repo, run_id)
        except GitHubError as exc:
            raise RunLookupError.for_run(
                run_id, str(exc), status_code=getattr(exc, "status_code", None)
            ) from exc

        if run.id != run_id:
            raise RunLookupError.for_run(run_id, f"GitHub returned run {run.id}")
        # Failed runs are archived too; their logs matter most.
        if not run.succeeded:
            self._events.log_run_not_successful(
                event.repo_slug, run_id, run.conclusion
            )

    async def _resolve_log_url(
        self, client: WorkflowRunClient, event: WorkflowCompletionEvent
    ) -> str:
        run_id = event.workflow_run_id
        try:
            return await client.get_workflow_run_logs_url(
                event.owner, event.repo, run_id
            )
        except GitHubError as exc:
            raise LogURLResolutionError.for_run(
                run_id, str(exc), status_code=getattr(exc, "status_code", None)
            ) from exc

    def _log_failure(
        self,
        event: WorkflowCompletionEvent | None,
        tracker: _StageTracker,
        error: BaseException,
    ) -> None:
        self._events.log_archive_failed(
            repo_slug=event.repo_slug if event else None,
            run_id=event.workflow_run_id if event else None,
            stage=tracker.reached,
            error=error,
        )
