"""Event-to-archive pipeline for workflow run logs."""

from __future__ import annotations

from .compression import compress, decompress
from .errors import (
    ArchiveError,
    AuthResolutionError,
    CompressionError,
    FetchError,
    LogURLResolutionError,
    MalformedEventError,
    RunLookupError,
    StorageError,
    UpstreamError,
)
from .fetcher import LogFetcher, LogSource
from .models import (
    ArchiveResult,
    ArchiveTarget,
    WorkflowCompletionEvent,
    build_archive_target,
    namespace_for,
    object_key_for,
)
from .observability import ArchiveEventLogger, ArchiveEventType
from .processor import (
    ArchiveStage,
    InstallationClientResolver,
    LogArchiver,
    WorkflowEventProcessor,
)
from .storage import AzureBlobObjectStore, InMemoryObjectStore, ObjectStore

__all__ = [
    "ArchiveError",
    "ArchiveEventLogger",
    "ArchiveEventType",
    "ArchiveResult",
    "ArchiveStage",
    "ArchiveTarget",
    "AuthResolutionError",
    "AzureBlobObjectStore",
    "CompressionError",
    "FetchError",
    "InMemoryObjectStore",
    "InstallationClientResolver",
    "LogArchiver",
    "LogFetcher",
    "LogSource",
    "LogURLResolutionError",
    "MalformedEventError",
    "ObjectStore",
    "RunLookupError",
    "StorageError",
    "UpstreamError",
    "WorkflowCompletionEvent",
    "WorkflowEventProcessor",
    "build_archive_target",
    "compress",
    "decompress",
    "namespace_for",
    "object_key_for",
]
