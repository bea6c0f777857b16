"""Explicitly composed HTTP client stages for GitHub API access.

:class:`GitHubClientBuilder` takes a list of named stages and applies them
in one fixed order, whatever order they were passed in:

1. ``timeout``: bounds every request made by the client.
2. ``metrics``: wraps the network transport and counts real requests.
3. ``caching``: wraps the metrics layer and answers conditional GETs from
   an ETag cache, so cache hits never reach the metrics counters.

Usage
-----
>>> metrics = ClientMetrics()
>>> client = GitHubClientBuilder(
...     base_url="https://api.github.com",
...     user_agent="workflow-archiver/1.0.0",
...     stages=[CachingStage(), TimeoutStage(3.0), MetricsStage(metrics)],
... ).build()

"""

from __future__ import annotations

import collections
import dataclasses
import time
import typing as typ

import httpx

__all__ = [
    "STAGE_ORDER",
    "CachingStage",
    "ClientMetrics",
    "ClientStage",
    "ETagCache",
    "GitHubClientBuilder",
    "MetricsStage",
    "TimeoutStage",
]

STAGE_ORDER = ("timeout", "metrics", "caching")

_HTTP_NOT_MODIFIED = 304
_HTTP_OK = 200


class ClientMetrics:
    """In-process request counters for one HTTP client.

    Attributes
    ----------
    requests
        Requests that reached the network.
    transport_errors
        Requests that failed before a response arrived.
    status_classes
        Response counts keyed by class, e.g. ``"2xx"``.
    total_latency_s
        Summed wall-clock latency of completed requests.

    """

    def __init__(self) -> None:
        """Start all counters at zero."""
        self.requests = 0
        self.transport_errors = 0
        self.status_classes: collections.Counter[str] = collections.Counter()
        self.total_latency_s = 0.0

    def record_response(self, status_code: int, latency_s: float) -> None:
        """Count a completed request."""
        self.requests += 1
        self.status_classes[f"{status_code // 100}xx"] += 1
        self.total_latency_s += latency_s

    def record_error(self) -> None:
        """Count a request that failed at the transport level."""
        self.requests += 1
        self.transport_errors += 1


class _MetricsTransport(httpx.AsyncBaseTransport):
    def __init__(self, inner: httpx.AsyncBaseTransport, metrics: ClientMetrics) -> None:
        self._inner = inner
        self._metrics = metrics

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        started = time.perf_counter()
        try:
            response = await self._inner.handle_async_request(request)
        except httpx.TransportError:
            self._metrics.record_error()
            raise
        self._metrics.record_response(
            response.status_code, time.perf_counter() - started
        )
        return response

    async def aclose(self) -> None:
        await self._inner.aclose()


@dataclasses.dataclass(frozen=True, slots=True)
class _CachedResponse:
    etag: str
    headers: tuple[tuple[str, str], ...]
    content: bytes


class ETagCache:
    """Bounded LRU store of GET responses keyed by URL and credentials."""

    def __init__(self, max_entries: int = 256) -> None:
        """Create an empty cache holding at most ``max_entries`` responses."""
        self._max_entries = max_entries
        self._entries: collections.OrderedDict[tuple[str, str], _CachedResponse] = (
            collections.OrderedDict()
        )

    def __len__(self) -> int:
        """Return the number of cached responses."""
        return len(self._entries)

    def get(self, key: tuple[str, str]) -> _CachedResponse | None:
        """Return the cached entry for ``key`` and mark it recently used."""
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: tuple[str, str], entry: _CachedResponse) -> None:
        """Store ``entry``, evicting the least recently used one if full."""
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)


class _CachingTransport(httpx.AsyncBaseTransport):
    def __init__(self, inner: httpx.AsyncBaseTransport, cache: ETagCache) -> None:
        self._inner = inner
        self._cache = cache

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method != "GET":
            return await self._inner.handle_async_request(request)

        key = (str(request.url), request.headers.get("Authorization", ""))
        cached = self._cache.get(key)
        if cached is not None:
            request.headers["If-None-Match"] = cached.etag

        response = await self._inner.handle_async_request(request)
        if cached is not None and response.status_code == _HTTP_NOT_MODIFIED:
            await response.aclose()
            return httpx.Response(
                _HTTP_OK,
                headers=list(cached.headers),
                content=cached.content,
                request=request,
            )

        etag = response.headers.get("ETag")
        if response.status_code == _HTTP_OK and etag:
            content = await response.aread()
            headers = tuple(
                (name, value)
                for name, value in response.headers.items()
                if name.lower() not in {"content-encoding", "content-length"}
            )
            self._cache.put(
                key, _CachedResponse(etag=etag, headers=headers, content=content)
            )
        return response

    async def aclose(self) -> None:
        await self._inner.aclose()


@dataclasses.dataclass(frozen=True, slots=True)
class TimeoutStage:
    """Bound every request to ``seconds``."""

    seconds: float
    name: typ.ClassVar[str] = "timeout"


@dataclasses.dataclass(frozen=True, slots=True)
class MetricsStage:
    """Record request counts and latency into ``metrics``."""

    metrics: ClientMetrics
    name: typ.ClassVar[str] = "metrics"


@dataclasses.dataclass(frozen=True, slots=True)
class CachingStage:
    """Serve repeated GETs from an ETag cache."""

    cache: ETagCache = dataclasses.field(default_factory=ETagCache)
    name: typ.ClassVar[str] = "caching"


ClientStage = TimeoutStage | MetricsStage | CachingStage


class GitHubClientBuilder:
    """Compose an ``httpx.AsyncClient`` from named stages.

    Parameters
    ----------
    base_url
        GitHub REST API root.
    user_agent
        ``User-Agent`` header sent with every request.
    stages
        Stages to apply; each name may appear at most once. They are applied
        in :data:`STAGE_ORDER` regardless of list order.

    Raises
    ------
    ValueError
        If a stage name is repeated.

    """

    def __init__(
        self,
        *,
        base_url: str,
        user_agent: str,
        stages: typ.Sequence[ClientStage] = (),
    ) -> None:
        """Validate and order the requested stages."""
        by_name: dict[str, ClientStage] = {}
        for stage in stages:
            if stage.name in by_name:
                msg = f"duplicate client stage: {stage.name}"
                raise ValueError(msg)
            by_name[stage.name] = stage
        self._base_url = base_url
        self._user_agent = user_agent
        self._stages = tuple(by_name[name] for name in STAGE_ORDER if name in by_name)

    @property
    def stage_names(self) -> tuple[str, ...]:
        """Return the stage names in the order they are applied."""
        return tuple(stage.name for stage in self._stages)

    def build(
        self, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> httpx.AsyncClient:
        """Return a new client with every stage applied.

        Parameters
        ----------
        transport
            Innermost transport; defaults to the real network transport.
            Tests pass an ``httpx.MockTransport`` here.

        """
        timeout: httpx.Timeout | None = None
        layered: httpx.AsyncBaseTransport = transport or httpx.AsyncHTTPTransport()
        for stage in self._stages:
            match stage:
                case TimeoutStage(seconds=seconds):
                    timeout = httpx.Timeout(seconds)
                case MetricsStage(metrics=metrics):
                    layered = _MetricsTransport(layered, metrics)
                case CachingStage(cache=cache):
                    layered = _CachingTransport(layered, cache)

        if timeout is None:
            return httpx.AsyncClient(
                base_url=self._base_url,
                headers={"User-Agent": self._user_agent},
                transport=layered,
            )
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": self._user_agent},
            transport=layered,
            timeout=timeout,
        )
