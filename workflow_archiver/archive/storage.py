r"""Object store port and adapters for compressed workflow logs.

``ObjectStore`` is the port the archive pipeline writes through. Two
adapters implement it:

- :class:`AzureBlobObjectStore` writes to Azure Blob Storage, one container
  per repository namespace.
- :class:`InMemoryObjectStore` keeps objects in a dictionary for local
  development and tests.

Both treat an existing namespace as success and refuse to overwrite an
existing object.

Usage
-----
Build the Azure adapter once at process start and share it:

>>> store = AzureBlobObjectStore.from_account_name("archivelogs")
>>> await store.ensure_namespace("acme-widgets")
>>> await store.put_object("acme-widgets", "20240708120000-<uuid>.log.gz", data)
>>> await store.aclose()

"""

from __future__ import annotations

import typing as typ

from azure.core.exceptions import AzureError, HttpResponseError, ResourceExistsError
from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob import ContentSettings, StorageErrorCode
from azure.storage.blob.aio import BlobServiceClient

from workflow_archiver.logging import get_logger, log_info

from .errors import StorageError

if typ.TYPE_CHECKING:
    from azure.core.credentials_async import AsyncTokenCredential

__all__ = [
    "AzureBlobObjectStore",
    "InMemoryObjectStore",
    "NamespaceState",
    "ObjectStore",
    "blob_account_url",
]

logger = get_logger(__name__)

ARCHIVE_CONTENT_TYPE = "application/gzip"


class NamespaceState(typ.NamedTuple):
    """Result of ``ensure_namespace``: whether it was created just now."""

    name: str
    created: bool


@typ.runtime_checkable
class ObjectStore(typ.Protocol):
    """Protocol for write-once object storage grouped into namespaces."""

    async def ensure_namespace(self, name: str) -> NamespaceState:
        """Create ``name`` unless it already exists.

        Raises
        ------
        StorageError
            If the store rejects the create for any reason other than the
            namespace already existing.

        """
        ...

    async def put_object(self, namespace: str, key: str, data: bytes) -> None:
        """Write ``data`` under ``key`` without overwriting.

        Raises
        ------
        StorageError
            If the store reports a failure, including an existing key.

        """
        ...


def blob_account_url(account_name: str) -> str:
    """Return the blob endpoint for a storage account."""
    return f"https://{account_name}.blob.core.windows.net/"


def _error_code(exc: AzureError) -> str | None:
    # The SDK sets a StorageErrorCode member for unmapped statuses.
    code = getattr(exc, "error_code", None)
    return None if code is None else str(getattr(code, "value", code))


def _is_container_already_exists(exc: ResourceExistsError) -> bool:
    return _error_code(exc) == StorageErrorCode.CONTAINER_ALREADY_EXISTS


class AzureBlobObjectStore:
    """Azure Blob Storage adapter for :class:`ObjectStore`.

    Parameters
    ----------
    service_client
        Shared async ``BlobServiceClient``. Its connection pool is safe for
        concurrent archives.
    credential
        Credential owned by this store, closed by :meth:`aclose`. ``None``
        when the caller manages the credential.

    """

    def __init__(
        self,
        service_client: BlobServiceClient,
        *,
        credential: AsyncTokenCredential | None = None,
    ) -> None:
        """Wrap an existing service client."""
        self._client = service_client
        self._credential = credential

    @classmethod
    def from_account_name(cls, account_name: str) -> AzureBlobObjectStore:
        """Authenticate with ``DefaultAzureCredential`` and build a store.

        The credential and client are created once here and reused for
        every request.
        """
        credential = DefaultAzureCredential()
        url = blob_account_url(account_name)
        client = BlobServiceClient(url, credential=credential)
        return cls(client, credential=credential)

    async def aclose(self) -> None:
        """Close the service client and any owned credential."""
        await self._client.close()
        if self._credential is not None:
            await self._credential.close()

    async def ensure_namespace(self, name: str) -> NamespaceState:
        """Create the container ``name``, accepting one that already exists."""
        try:
            await self._client.create_container(name)
        except ResourceExistsError as exc:
            if _is_container_already_exists(exc):
                return NamespaceState(name=name, created=False)
            raise StorageError.namespace_failed(
                name, exc.message or str(exc), error_code=_error_code(exc)
            ) from exc
        except HttpResponseError as exc:
            raise StorageError.namespace_failed(
                name, exc.message or str(exc), error_code=_error_code(exc)
            ) from exc
        except AzureError as exc:
            raise StorageError.namespace_failed(name, str(exc)) from exc

        log_info(logger, "Created storage container %s", name)
        return NamespaceState(name=name, created=True)

    async def put_object(self, namespace: str, key: str, data: bytes) -> None:
        """Upload ``data`` as blob ``key`` in container ``namespace``."""
        container = self._client.get_container_client(namespace)
        try:
            await container.upload_blob(
                name=key,
                data=data,
                overwrite=False,
                content_settings=ContentSettings(content_type=ARCHIVE_CONTENT_TYPE),
            )
        except HttpResponseError as exc:
            raise StorageError.upload_failed(
                namespace, key, exc.message or str(exc), error_code=_error_code(exc)
            ) from exc
        except AzureError as exc:
            raise StorageError.upload_failed(namespace, key, str(exc)) from exc


class InMemoryObjectStore:
    """Dictionary-backed :class:`ObjectStore` for development and tests.

    Examples
    --------
    >>> import asyncio
    >>> store = InMemoryObjectStore()
    >>> asyncio.run(store.ensure_namespace("acme-widgets")).created
    True
    >>> asyncio.run(store.ensure_namespace("acme-widgets")).created
    False

    """

    def __init__(self) -> None:
        """Start with no namespaces."""
        self._namespaces: dict[str, dict[str, bytes]] = {}

    @property
    def namespaces(self) -> tuple[str, ...]:
        """Return the names of all namespaces created so far."""
        return tuple(self._namespaces)

    def objects(self, namespace: str) -> dict[str, bytes]:
        """Return a copy of the objects stored in ``namespace``."""
        return dict(self._namespaces.get(namespace, {}))

    async def ensure_namespace(self, name: str) -> NamespaceState:
        """Create ``name`` if it does not exist yet."""
        if name in self._namespaces:
            return NamespaceState(name=name, created=False)
        self._namespaces[name] = {}
        return NamespaceState(name=name, created=True)

    async def put_object(self, namespace: str, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``; existing keys are rejected."""
        objects = self._namespaces.get(namespace)
        if objects is None:
            raise StorageError.upload_failed(
                namespace,
                key,
                "namespace does not exist",
                error_code="ContainerNotFound",
            )
        if key in objects:
            raise StorageError.upload_failed(
                namespace, key, "object already exists", error_code="BlobAlreadyExists"
            )
        objects[key] = bytes(data)
