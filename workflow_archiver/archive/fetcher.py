"""Download workflow run logs from pre-authorised URLs."""

from __future__ import annotations

import typing as typ

import httpx

from .errors import FetchError

DEFAULT_FETCH_TIMEOUT_S = 10.0


@typ.runtime_checkable
class LogSource(typ.Protocol):
    """Anything that can turn a log URL into the raw log bytes."""

    async def fetch(self, url: str) -> bytes:
        """Return the full body behind ``url``."""
        ...


class LogFetcher:
    """Fetch a log body with one unauthenticated GET.

    The log URL returned by GitHub already embeds a short-lived token, so no
    credentials are sent. Bodies are buffered whole; CI logs are small enough
    for that.

    Parameters
    ----------
    timeout_s
        httpx timeout applied to each request phase separately; it is
        not a deadline for the whole download.
    http_client
        Optional shared client, mainly for tests. When omitted the fetcher
        creates and owns its own client.

    """

    def __init__(
        self,
        *,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create the fetcher and, if needed, its HTTP client."""
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s, follow_redirects=True
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url: str) -> bytes:
        """Return the raw log bytes behind ``url``.

        Raises
        ------
        FetchError
            On timeout, transport failure, or a non-success status.

        """
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as exc:
            raise FetchError.timeout() from exc
        except httpx.RequestError as exc:
            raise FetchError.network_error(str(exc)) from exc

        if not response.is_success:
            raise FetchError.http_status(response.status_code, response.text)
        return response.content
