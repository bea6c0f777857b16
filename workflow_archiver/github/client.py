"""GitHub Actions REST client scoped to one App installation."""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from .errors import GitHubAPIError, GitHubResponseShapeError
from .models import WorkflowRun

GITHUB_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"

_HTTP_MOVED_PERMANENTLY = 301
_HTTP_FOUND = 302
_MAX_RENAME_REDIRECTS = 3

_RUN_DECODER = msgspec.json.Decoder(WorkflowRun)


class WorkflowRunClient(typ.Protocol):
    """Operations the archive pipeline needs from the GitHub API."""

    async def get_workflow_run(self, owner: str, repo: str, run_id: int) -> WorkflowRun:
        """Return the workflow run record."""
        ...

    async def get_workflow_run_logs_url(
        self, owner: str, repo: str, run_id: int
    ) -> str:
        """Return the short-lived download URL for the run's logs."""
        ...


class GitHubActionsClient:
    """Installation-authenticated client for the Actions REST endpoints.

    The underlying ``httpx.AsyncClient`` is shared by every installation; only
    the token differs, so building one of these per delivery is cheap.

    Parameters
    ----------
    http_client
        Shared client whose ``base_url`` points at the GitHub REST API.
    token
        Installation access token.

    """

    def __init__(self, http_client: httpx.AsyncClient, token: str) -> None:
        """Bind the shared client to one installation token."""
        self._client = http_client
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": GITHUB_ACCEPT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def get_workflow_run(self, owner: str, repo: str, run_id: int) -> WorkflowRun:
        """Fetch ``GET /repos/{owner}/{repo}/actions/runs/{run_id}``.

        Raises
        ------
        GitHubAPIError
            On timeout, transport failure, or a non-2xx response.
        GitHubResponseShapeError
            If the body is not a workflow run record.

        """
        operation = "get workflow run"
        response = await self._get(
            f"/repos/{owner}/{repo}/actions/runs/{run_id}", operation=operation
        )
        if not response.is_success:
            raise GitHubAPIError.http_error(response.status_code, operation)
        try:
            return _RUN_DECODER.decode(response.content)
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.invalid(operation, str(exc)) from exc

    async def get_workflow_run_logs_url(
        self, owner: str, repo: str, run_id: int
    ) -> str:
        """Resolve the log archive URL for a workflow run.

        GitHub answers ``GET .../actions/runs/{run_id}/logs`` with ``302 Found``
        whose ``Location`` is a pre-signed download URL. ``301`` responses
        (renamed or transferred repositories) are followed.

        Raises
        ------
        GitHubAPIError
            On timeout, transport failure, or any other status.

        """
        operation = "get workflow run logs"
        url = f"/repos/{owner}/{repo}/actions/runs/{run_id}/logs"
        for _ in range(_MAX_RENAME_REDIRECTS):
            response = await self._get(url, operation=operation)
            if response.status_code not in {_HTTP_MOVED_PERMANENTLY, _HTTP_FOUND}:
                raise GitHubAPIError.http_error(response.status_code, operation)

            location = response.headers.get("Location")
            if not location:
                raise GitHubAPIError.missing_location(response.status_code)
            if response.status_code == _HTTP_FOUND:
                return location
            url = location

        raise GitHubAPIError.http_error(_HTTP_MOVED_PERMANENTLY, operation)

    async def _get(self, url: str, *, operation: str) -> httpx.Response:
        try:
            return await self._client.get(
                url, headers=self._headers, follow_redirects=False
            )
        except httpx.TimeoutException as exc:
            raise GitHubAPIError.timeout(operation) from exc
        except httpx.RequestError as exc:
            raise GitHubAPIError.network_error(operation, str(exc)) from exc
