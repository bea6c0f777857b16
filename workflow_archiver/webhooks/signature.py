"""Verify GitHub webhook ``X-Hub-Signature-256`` headers.

GitHub signs each delivery body with HMAC-SHA256 keyed by the App's webhook
secret and sends the hex digest as ``sha256=<digest>``.
"""

from __future__ import annotations

import hashlib
import hmac

__all__ = ["SIGNATURE_PREFIX", "InvalidSignatureError", "sign", "verify_signature"]

SIGNATURE_PREFIX = "sha256="


class InvalidSignatureError(Exception):
    """Raised when a delivery's signature is missing or does not match."""

    @classmethod
    def missing(cls) -> InvalidSignatureError:
        """Return an error for a request without a usable signature header."""
        return cls("missing or malformed X-Hub-Signature-256 header")

    @classmethod
    def mismatch(cls) -> InvalidSignatureError:
        """Return an error for a signature that does not match the body."""
        return cls("webhook signature mismatch")


def sign(secret: str, body: bytes) -> str:
    """Return the ``sha256=`` signature GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256)
    return f"{SIGNATURE_PREFIX}{digest.hexdigest()}"


def verify_signature(secret: str, signature_header: str | None, body: bytes) -> None:
    """Check ``signature_header`` against the HMAC of ``body``.

    Raises
    ------
    InvalidSignatureError
        If the header is absent, lacks the ``sha256=`` prefix, or does not
        match.

    """
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        raise InvalidSignatureError.missing()
    if not hmac.compare_digest(sign(secret, body), signature_header):
        raise InvalidSignatureError.mismatch()
