"""GitHub client errors."""

from __future__ import annotations


class GitHubError(RuntimeError):
    """Base class for GitHub client failures."""


class GitHubAPIError(GitHubError):
    """Raised when GitHub returns an error response or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, operation: str) -> GitHubAPIError:
        """Return an error for an unexpected HTTP status."""
        return cls(f"GitHub {operation} HTTP {status_code}", status_code=status_code)

    @classmethod
    def timeout(cls, operation: str) -> GitHubAPIError:
        """Return an error for a request that exceeded the client timeout."""
        return cls(f"GitHub {operation} timed out")

    @classmethod
    def network_error(cls, operation: str, detail: str) -> GitHubAPIError:
        """Return an error for DNS, connection or TLS failures."""
        return cls(f"GitHub {operation} network error: {detail}")

    @classmethod
    def missing_location(cls, status_code: int) -> GitHubAPIError:
        """Return an error for a redirect without a ``Location`` header."""
        return cls(
            f"GitHub redirect {status_code} has no Location header",
            status_code=status_code,
        )


class GitHubResponseShapeError(GitHubError):
    """Raised when a GitHub response body lacks expected fields."""

    @classmethod
    def invalid(cls, operation: str, detail: str) -> GitHubResponseShapeError:
        """Return an error for a response that failed to decode."""
        return cls(f"GitHub {operation} response invalid: {detail}")


class GitHubConfigError(GitHubError):
    """Raised when GitHub App configuration is invalid."""

    @classmethod
    def invalid_private_key(cls) -> GitHubConfigError:
        """Return an error for a private key that is neither PEM nor a file."""
        return cls("github.private_key must be a PEM string or a path to a PEM file")

    @classmethod
    def signing_failed(cls, detail: str) -> GitHubConfigError:
        """Return an error when the app JWT cannot be signed."""
        return cls(f"failed to sign GitHub App JWT: {detail}")
