"""Error taxonomy for the event-to-archive pipeline.

Every failure raised by the pipeline derives from :class:`ArchiveError`.
The processor attaches the pipeline stage that failed and the identifying
``owner/repo`` and run id so a single log line is enough to diagnose a
failed delivery.

Usage
-----
Handle any archive failure in one place::

    try:
        await processor.process(payload)
    except MalformedEventError:
        ...  # discard, redelivery will not help
    except ArchiveError as exc:
        ...  # surface to the event source so it can redeliver

"""

from __future__ import annotations

__all__ = [
    "ArchiveError",
    "AuthResolutionError",
    "CompressionError",
    "FetchError",
    "LogURLResolutionError",
    "MalformedEventError",
    "RunLookupError",
    "StorageError",
    "UpstreamError",
]

# Body preview length for error messages
_PREVIEW_LIMIT = 100


class ArchiveError(Exception):
    """Base class for archive pipeline failures.

    Attributes
    ----------
    stage
        Last pipeline stage reached before the failure, set by the
        processor.
    owner
        Repository owner, when known.
    repo
        Repository name, when known.
    run_id
        Workflow run identifier, when known.

    """

    def __init__(self, message: str) -> None:
        """Initialise with a message and empty context."""
        super().__init__(message)
        self.stage: str | None = None
        self.owner: str | None = None
        self.repo: str | None = None
        self.run_id: int | None = None

    def with_context(
        self,
        *,
        stage: str,
        owner: str | None = None,
        repo: str | None = None,
        run_id: int | None = None,
    ) -> ArchiveError:
        """Attach pipeline context and return ``self`` for re-raising."""
        self.stage = stage
        self.owner = owner if owner is not None else self.owner
        self.repo = repo if repo is not None else self.repo
        self.run_id = run_id if run_id is not None else self.run_id
        return self

    @property
    def repo_slug(self) -> str | None:
        """Return ``owner/repo`` when both parts are known."""
        if self.owner is None or self.repo is None:
            return None
        return f"{self.owner}/{self.repo}"


class MalformedEventError(ArchiveError):
    """Raised when a payload is not valid JSON or lacks required fields."""

    @classmethod
    def invalid_payload(cls, detail: str) -> MalformedEventError:
        """Return an error for a payload that failed to decode."""
        return cls(f"malformed workflow_run event: {detail}")


class UpstreamError(ArchiveError):
    """Base class for GitHub API and network failures.

    Attributes
    ----------
    status_code
        HTTP status returned by the upstream service, if any.

    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        super().__init__(message)
        self.status_code = status_code


class AuthResolutionError(UpstreamError):
    """Raised when no installation-scoped client can be obtained."""

    @classmethod
    def missing_installation(cls) -> AuthResolutionError:
        """Return an error for events that carry no installation id."""
        return cls("event has no installation id; cannot resolve credentials")

    @classmethod
    def for_installation(
        cls, installation_id: int, detail: str, *, status_code: int | None = None
    ) -> AuthResolutionError:
        """Return an error for a failed installation token exchange."""
        return cls(
            f"failed to resolve client for installation {installation_id}: {detail}",
            status_code=status_code,
        )


class RunLookupError(UpstreamError):
    """Raised when the workflow run record cannot be fetched."""

    @classmethod
    def for_run(
        cls, run_id: int, detail: str, *, status_code: int | None = None
    ) -> RunLookupError:
        """Return an error for a failed workflow run lookup."""
        return cls(
            f"failed to get workflow run {run_id}: {detail}", status_code=status_code
        )


class LogURLResolutionError(UpstreamError):
    """Raised when the log-download URL cannot be resolved."""

    @classmethod
    def for_run(
        cls, run_id: int, detail: str, *, status_code: int | None = None
    ) -> LogURLResolutionError:
        """Return an error for a failed log URL request."""
        return cls(
            f"failed to get log URL for workflow run {run_id}: {detail}",
            status_code=status_code,
        )


class FetchError(UpstreamError):
    """Raised when the log body cannot be downloaded."""

    @classmethod
    def http_status(cls, status_code: int, body: str = "") -> FetchError:
        """Return an error for a non-success download response."""
        preview = body[:_PREVIEW_LIMIT]
        msg = f"log download returned HTTP {status_code}"
        if preview:
            msg = f"{msg}: {preview}"
        return cls(msg, status_code=status_code)

    @classmethod
    def timeout(cls) -> FetchError:
        """Return an error for a download that exceeded its timeout."""
        return cls("log download timed out")

    @classmethod
    def network_error(cls, detail: str) -> FetchError:
        """Return an error for DNS, connection or TLS failures."""
        return cls(f"log download network error: {detail}")


class CompressionError(ArchiveError):
    """Raised when gzip compression of the log fails."""


class StorageError(ArchiveError):
    """Raised when the object store rejects a namespace or upload.

    Attributes
    ----------
    error_code
        Store-specific error code, e.g. ``BlobAlreadyExists``.

    """

    def __init__(self, message: str, *, error_code: str | None = None) -> None:
        """Initialise with a message and the store's error code."""
        super().__init__(message)
        self.error_code = error_code

    @classmethod
    def namespace_failed(
        cls, namespace: str, detail: str, *, error_code: str | None = None
    ) -> StorageError:
        """Return an error for a failed namespace create."""
        return cls(
            f"failed to create namespace {namespace!r}: {detail}",
            error_code=error_code,
        )

    @classmethod
    def upload_failed(
        cls, namespace: str, key: str, detail: str, *, error_code: str | None = None
    ) -> StorageError:
        """Return an error for a failed object upload."""
        return cls(
            f"failed to upload {namespace}/{key}: {detail}", error_code=error_code
        )

    @classmethod
    def invalid_namespace(cls, owner: str, repo: str) -> StorageError:
        """Return an error when owner/repo cannot form a valid namespace."""
        return cls(f"cannot derive a storage namespace from {owner!r}/{repo!r}")
