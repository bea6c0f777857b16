"""GitHub App authentication and installation-scoped client creation.

A GitHub App authenticates as itself with a short-lived RS256 JWT, then
exchanges that JWT for an installation access token. Tokens are cached per
installation until shortly before they expire.

Usage
-----
>>> factory = InstallationClientFactory(app_auth, http_client)
>>> client = await factory.client_for(installation_id)
>>> run = await client.get_workflow_run("acme", "widgets", 42)

"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import time
import typing as typ
from pathlib import Path

import httpx
import msgspec
from jose import jwt
from jose.exceptions import JOSEError

from .client import GITHUB_ACCEPT, GITHUB_API_VERSION, GitHubActionsClient
from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .models import InstallationToken

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["GitHubAppAuth", "InstallationClientFactory", "load_private_key"]

# GitHub rejects app JWTs valid for more than ten minutes; backdate the
# issue time to tolerate clock drift.
_JWT_BACKDATE_S = 60
_JWT_LIFETIME_S = 540
_TOKEN_REFRESH_MARGIN = dt.timedelta(seconds=60)
_PEM_MARKER = "-----BEGIN"


def load_private_key(raw: str) -> str:
    """Return PEM text from an inline key or a path to a key file.

    Raises
    ------
    GitHubConfigError
        If ``raw`` is neither PEM text nor an existing file.

    """
    if _PEM_MARKER in raw:
        return raw.replace("\\n", "\n")
    path = Path(raw.strip().strip('"'))
    if path.is_file():
        return path.read_text(encoding="utf-8")
    raise GitHubConfigError.invalid_private_key()


def _parse_expiry(value: str) -> dt.datetime:
    return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(dt.UTC)


@dataclasses.dataclass(frozen=True, slots=True)
class _CachedToken:
    token: str
    expires_at: dt.datetime


class GitHubAppAuth:
    """Mint app JWTs and installation access tokens.

    Parameters
    ----------
    app_id
        Numeric GitHub App identifier.
    private_key
        PEM text, or a path to a PEM file.
    http_client
        Client whose ``base_url`` is the GitHub REST API.
    clock
        Returns the current UTC time; injectable for tests.

    """

    def __init__(
        self,
        app_id: int,
        private_key: str,
        http_client: httpx.AsyncClient,
        *,
        clock: cabc.Callable[[], dt.datetime] | None = None,
    ) -> None:
        """Load the signing key and prepare the token cache."""
        self._app_id = app_id
        self._private_key = load_private_key(private_key)
        self._client = http_client
        self._clock = clock or (lambda: dt.datetime.now(dt.UTC))
        self._tokens: dict[int, _CachedToken] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def app_jwt(self) -> str:
        """Return a freshly signed JWT identifying the app."""
        now = int(time.time())
        claims = {
            "iat": now - _JWT_BACKDATE_S,
            "exp": now + _JWT_LIFETIME_S,
            "iss": str(self._app_id),
        }
        try:
            return jwt.encode(claims, self._private_key, algorithm="RS256")
        except JOSEError as exc:
            raise GitHubConfigError.signing_failed(str(exc)) from exc

    async def installation_token(self, installation_id: int) -> str:
        """Return a valid access token for ``installation_id``.

        Cached tokens are reused until they are within a minute of expiry.

        Raises
        ------
        GitHubAPIError
            If GitHub refuses the token exchange or cannot be reached.
        GitHubResponseShapeError
            If the response lacks ``token`` or ``expires_at``.

        """
        lock = self._locks.setdefault(installation_id, asyncio.Lock())
        async with lock:
            cached = self._tokens.get(installation_id)
            if cached is not None and cached.expires_at - self._clock() > (
                _TOKEN_REFRESH_MARGIN
            ):
                return cached.token

            fresh = await self._request_token(installation_id)
            self._tokens[installation_id] = fresh
            return fresh.token

    async def _request_token(self, installation_id: int) -> _CachedToken:
        operation = "create installation token"
        try:
            response = await self._client.post(
                f"/app/installations/{installation_id}/access_tokens",
                headers={
                    "Authorization": f"Bearer {self.app_jwt()}",
                    "Accept": GITHUB_ACCEPT,
                    "X-GitHub-Api-Version": GITHUB_API_VERSION,
                },
            )
        except httpx.TimeoutException as exc:
            raise GitHubAPIError.timeout(operation) from exc
        except httpx.RequestError as exc:
            raise GitHubAPIError.network_error(operation, str(exc)) from exc

        if not response.is_success:
            raise GitHubAPIError.http_error(response.status_code, operation)
        try:
            body = msgspec.json.decode(response.content, type=InstallationToken)
            expires_at = _parse_expiry(body.expires_at)
        except (msgspec.DecodeError, ValueError) as exc:
            raise GitHubResponseShapeError.invalid(operation, str(exc)) from exc
        return _CachedToken(token=body.token, expires_at=expires_at)


class InstallationClientFactory:
    """Build :class:`GitHubActionsClient` instances per installation.

    Every client shares ``http_client`` and its connection pool; only the
    installation token differs.
    """

    def __init__(self, app_auth: GitHubAppAuth, http_client: httpx.AsyncClient) -> None:
        """Store the app credentials and the shared API client."""
        self._auth = app_auth
        self._client = http_client

    async def client_for(self, installation_id: int) -> GitHubActionsClient:
        """Return a client authenticated as ``installation_id``."""
        token = await self._auth.installation_token(installation_id)
        return GitHubActionsClient(self._client, token)

    async def aclose(self) -> None:
        """Close the shared API client."""
        await self._client.aclose()
