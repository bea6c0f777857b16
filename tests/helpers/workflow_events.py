"""Builders for ``workflow_run`` payloads and a fake GitHub REST API.

Examples
--------
>>> from tests.helpers.workflow_events import WorkflowRunEventSpec
>>> body = WorkflowRunEventSpec(owner="acme", repo="widgets", run_id=42).build()

A fake API served through ``httpx.MockTransport``:

>>> api = FakeGitHubAPI(log_url="https://logs.example/42")
>>> client = httpx.AsyncClient(
...     base_url="https://api.github.com", transport=httpx.MockTransport(api)
... )

"""

from __future__ import annotations

import dataclasses as dc
import json
import typing as typ

import httpx

LOG_URL = "https://pipelines.actions.githubusercontent.com/logs/42?sig=abc"


@dc.dataclass(frozen=True, slots=True, kw_only=True)
class WorkflowRunEventSpec:
    """Parameters for a ``workflow_run`` webhook body."""

    owner: str = "acme"
    repo: str = "widgets"
    run_id: int = 42
    action: str = "completed"
    conclusion: str | None = "success"
    installation_id: int | None = 7

    def as_dict(self) -> dict[str, typ.Any]:
        """Return the payload as a JSON-ready dictionary."""
        payload: dict[str, typ.Any] = {
            "action": self.action,
            "repository": {
                "name": self.repo,
                "full_name": f"{self.owner}/{self.repo}",
                "owner": {"login": self.owner, "type": "Organization"},
            },
            "workflow_run": {
                "id": self.run_id,
                "name": "CI",
                "status": "completed" if self.action == "completed" else "in_progress",
                "conclusion": self.conclusion,
            },
        }
        if self.installation_id is not None:
            payload["installation"] = {"id": self.installation_id}
        return payload

    def build(self) -> bytes:
        """Return the encoded webhook body."""
        return json.dumps(self.as_dict()).encode("utf-8")


@dc.dataclass(slots=True)
class FakeGitHubAPI:
    """Answer the three Actions and App endpoints the archiver calls.

    Attributes
    ----------
    log_url
        ``Location`` returned for the logs endpoint.
    run_status
        Status code for the workflow run lookup.
    logs_status
        Status code for the logs endpoint.
    token_status
        Status code for the installation token exchange.
    run_conclusion
        Conclusion reported on the run record.
    requests
        Every request received, in order.

    """

    log_url: str = LOG_URL
    run_status: int = 200
    logs_status: int = 302
    token_status: int = 201
    run_conclusion: str | None = "success"
    run_id_override: int | None = None
    requests: list[httpx.Request] = dc.field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        """Route ``request`` to the matching canned response."""
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/access_tokens"):
            return httpx.Response(
                self.token_status,
                json={"token": "ghs_installation", "expires_at": "2999-01-01T00:00:00Z"},
            )
        if path.endswith("/logs"):
            headers = {"Location": self.log_url} if self.logs_status < 400 else {}
            return httpx.Response(self.logs_status, headers=headers)
        if "/actions/runs/" in path:
            run_id = int(path.rsplit("/", 1)[-1])
            return httpx.Response(
                self.run_status,
                json={
                    "id": self.run_id_override or run_id,
                    "name": "CI",
                    "status": "completed",
                    "conclusion": self.run_conclusion,
                },
            )
        return httpx.Response(404, json={"message": "Not Found"})

    def paths(self) -> list[str]:
        """Return the request paths seen so far."""
        return [request.url.path for request in self.requests]
