"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tests.helpers.workflow_events import FakeGitHubAPI


@pytest.fixture(scope="session")
def private_key_pem() -> str:
    """Return a throwaway RSA private key in PEM form for App JWT signing."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def fake_github() -> FakeGitHubAPI:
    """Return a fake GitHub API with successful defaults."""
    return FakeGitHubAPI()
