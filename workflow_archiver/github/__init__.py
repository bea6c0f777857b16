"""GitHub App authentication and Actions API client."""

from __future__ import annotations

from .app_auth import GitHubAppAuth, InstallationClientFactory, load_private_key
from .client import GitHubActionsClient, WorkflowRunClient
from .errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubError,
    GitHubResponseShapeError,
)
from .middleware import (
    CachingStage,
    ClientMetrics,
    GitHubClientBuilder,
    MetricsStage,
    TimeoutStage,
)
from .models import WorkflowRun

__all__ = [
    "CachingStage",
    "ClientMetrics",
    "GitHubAPIError",
    "GitHubActionsClient",
    "GitHubAppAuth",
    "GitHubClientBuilder",
    "GitHubConfigError",
    "GitHubError",
    "GitHubResponseShapeError",
    "InstallationClientFactory",
    "MetricsStage",
    "TimeoutStage",
    "WorkflowRun",
    "WorkflowRunClient",
    "load_private_key",
]
