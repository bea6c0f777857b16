"""Typed models for workflow events and archive targets."""

from __future__ import annotations

import dataclasses
import datetime as dt
import re
import uuid

import msgspec

from .errors import MalformedEventError, StorageError

COMPLETED_ACTION = "completed"
OBJECT_KEY_SUFFIX = ".log.gz"

# Azure container names: 3-63 chars of [a-z0-9-], no leading, trailing
# or doubled hyphens.
_NAMESPACE_MIN_LENGTH = 3
_NAMESPACE_MAX_LENGTH = 63
_INVALID_NAMESPACE_CHARS = re.compile(r"[^a-z0-9-]+")
_REPEATED_HYPHENS = re.compile(r"-{2,}")


class _Owner(msgspec.Struct, kw_only=True):
    login: str


class _Repository(msgspec.Struct, kw_only=True):
    name: str
    owner: _Owner


class _WorkflowRun(msgspec.Struct, kw_only=True):
    id: int
    conclusion: str | None = None


class _Installation(msgspec.Struct, kw_only=True):
    id: int


class _WorkflowRunPayload(msgspec.Struct, kw_only=True):
    """Subset of the GitHub ``workflow_run`` webhook body we rely on."""

    action: str
    repository: _Repository
    workflow_run: _WorkflowRun
    installation: _Installation | None = None


_PAYLOAD_DECODER = msgspec.json.Decoder(_WorkflowRunPayload)


@dataclasses.dataclass(frozen=True, slots=True)
class WorkflowCompletionEvent:
    """A decoded ``workflow_run`` delivery.

    Attributes
    ----------
    action
        Webhook action, ``completed`` for finished runs.
    owner
        Repository owner login.
    repo
        Repository name.
    workflow_run_id
        Numeric workflow run identifier.
    conclusion
        Run conclusion as reported in the event, if present.
    installation_id
        GitHub App installation that sent the event, if present.

    """

    action: str
    owner: str
    repo: str
    workflow_run_id: int
    conclusion: str | None = None
    installation_id: int | None = None

    @property
    def repo_slug(self) -> str:
        """Return the ``owner/repo`` identifier."""
        return f"{self.owner}/{self.repo}"

    @property
    def is_completed(self) -> bool:
        """Return True when the run has finished."""
        return self.action == COMPLETED_ACTION

    @classmethod
    def from_json(cls, payload: bytes) -> WorkflowCompletionEvent:
        """Decode and validate a raw webhook body.

        Raises
        ------
        MalformedEventError
            If the body is not JSON or a required field is absent or has the
            wrong type.

        """
        try:
            decoded = _PAYLOAD_DECODER.decode(payload)
        except msgspec.DecodeError as exc:
            raise MalformedEventError.invalid_payload(str(exc)) from exc

        installation = decoded.installation
        return cls(
            action=decoded.action,
            owner=decoded.repository.owner.login,
            repo=decoded.repository.name,
            workflow_run_id=decoded.workflow_run.id,
            conclusion=decoded.workflow_run.conclusion,
            installation_id=installation.id if installation is not None else None,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class ArchiveTarget:
    """Where a compressed log is written in the object store."""

    namespace: str
    object_key: str


@dataclasses.dataclass(frozen=True, slots=True)
class ArchiveResult:
    """Outcome of a successful archive operation."""

    target: ArchiveTarget
    original_size: int
    compressed_size: int


def namespace_for(owner: str, repo: str) -> str:
    """Return the storage namespace for a repository.

    The name is ``{owner}-{repo}`` lowercased and reduced to the characters
    blob containers accept.

    Examples
    --------
    >>> namespace_for("Acme", "Widgets")
    'acme-widgets'
    >>> namespace_for("acme", "my_repo.js")
    'acme-my-repo-js'

    """
    raw = f"{owner}-{repo}".lower()
    cleaned = _INVALID_NAMESPACE_CHARS.sub("-", raw)
    cleaned = _REPEATED_HYPHENS.sub("-", cleaned).strip("-")
    cleaned = cleaned[:_NAMESPACE_MAX_LENGTH].rstrip("-")
    if len(cleaned) < _NAMESPACE_MIN_LENGTH:
        raise StorageError.invalid_namespace(owner, repo)
    return cleaned


def object_key_for(
    timestamp: dt.datetime | None = None, key_id: uuid.UUID | None = None
) -> str:
    """Return a fresh ``{YYYYMMDDHHMMSS}-{uuid}.log.gz`` key.

    The timestamp is rendered in UTC; the UUID suffix keeps keys distinct
    for archives created within the same second.
    """
    moment = (timestamp or dt.datetime.now(dt.UTC)).astimezone(dt.UTC)
    suffix = key_id or uuid.uuid4()
    return f"{moment:%Y%m%d%H%M%S}-{suffix}{OBJECT_KEY_SUFFIX}"


def build_archive_target(
    owner: str,
    repo: str,
    *,
    timestamp: dt.datetime | None = None,
    key_id: uuid.UUID | None = None,
) -> ArchiveTarget:
    """Derive the namespace and a new object key for one archive."""
    return ArchiveTarget(
        namespace=namespace_for(owner, repo),
        object_key=object_key_for(timestamp, key_id),
    )
