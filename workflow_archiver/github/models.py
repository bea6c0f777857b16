"""Typed GitHub REST API records."""

from __future__ import annotations

import msgspec

SUCCESS_CONCLUSION = "success"


class WorkflowRun(msgspec.Struct, kw_only=True):
    """Authoritative workflow run record from the Actions API.

    Only the fields the archiver reads are declared; everything else in the
    response is ignored on decode.
    """

    id: int
    name: str | None = None
    status: str | None = None
    conclusion: str | None = None
    html_url: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return True when the run concluded successfully."""
        return self.conclusion == SUCCESS_CONCLUSION


class InstallationToken(msgspec.Struct, kw_only=True):
    """Response body of ``POST /app/installations/{id}/access_tokens``."""

    token: str
    expires_at: str
