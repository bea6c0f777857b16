"""Unit tests for the workflow_archiver.runtime module."""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon.asgi
import falcon.testing
import httpx
import pytest

from workflow_archiver.api import create_app as create_api_app
from workflow_archiver.archive import InMemoryObjectStore, decompress
from workflow_archiver.config import load_config
from workflow_archiver.runtime import _parse_port, build_dependencies, create_app
from workflow_archiver.webhooks import sign
from tests.helpers.workflow_events import WorkflowRunEventSpec

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tests.helpers.workflow_events import FakeGitHubAPI


@pytest.fixture
def config_path(tmp_path: Path, private_key_pem: str) -> Path:
    """Write a memory-backed config whose key lives next to it."""
    key_path = tmp_path / "app.pem"
    key_path.write_text(private_key_pem, encoding="utf-8")
    path = tmp_path / "config.yml"
    path.write_text(
        "github:\n"
        "  app_id: 1\n"
        f"  private_key: {key_path}\n"
        "  webhook_secret: s3cret\n"
        "azure:\n"
        "  storage_backend: memory\n",
        encoding="utf-8",
    )
    return path


class TestParsePort:
    """Tests for ``_parse_port``."""

    def test_valid(self) -> None:
        """Numeric ports in range are accepted."""
        assert _parse_port("8080") == 8080

    @pytest.mark.parametrize("raw", ["http", "0", "65536", ""])
    def test_invalid_exits(self, raw: str) -> None:
        """Anything else stops the process."""
        with pytest.raises(SystemExit):
            _parse_port(raw)


class TestCreateApp:
    """Tests for the Granian entrypoint factory."""

    def test_builds_app_from_config_file(
        self, config_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The app is wired from ``ARCHIVER_CONFIG_PATH``."""
        monkeypatch.setenv("ARCHIVER_CONFIG_PATH", str(config_path))

        app = create_app()

        assert isinstance(app, falcon.asgi.App)
        client = falcon.testing.TestClient(app)
        assert client.simulate_get("/ready").status_code == HTTPStatus.OK

    def test_missing_config_exits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Startup fails fast without a readable config."""
        monkeypatch.setenv("ARCHIVER_CONFIG_PATH", str(tmp_path / "absent.yml"))

        with pytest.raises(SystemExit):
            create_app()

    def test_bad_private_key_exits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unusable App key is a startup failure."""
        path = tmp_path / "config.yml"
        path.write_text(
            "github:\n  app_id: 1\n  private_key: nowhere.pem\n  webhook_secret: s\n"
            "azure:\n  storage_backend: memory\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("ARCHIVER_CONFIG_PATH", str(path))

        with pytest.raises(SystemExit):
            create_app()


class TestBuildDependencies:
    """Tests for ``build_dependencies``."""

    def test_end_to_end_delivery(
        self, config_path: Path, fake_github: FakeGitHubAPI
    ) -> None:
        """A signed delivery flows through the composed GitHub client."""
        store = InMemoryObjectStore()
        deps = build_dependencies(
            load_config(config_path),
            github_transport=httpx.MockTransport(fake_github),
            store=store,
            fetcher=_StaticFetcher(),
        )
        client = falcon.testing.TestClient(create_api_app(deps))
        body = WorkflowRunEventSpec().build()

        result = client.simulate_post(
            "/api/github/hook",
            body=body,
            headers={
                "X-GitHub-Event": "workflow_run",
                "X-Hub-Signature-256": sign("s3cret", body),
            },
        )

        assert result.status_code == HTTPStatus.OK
        key = result.json["object_key"]
        assert decompress(store.objects("acme-widgets")[key]) == b"hello world"
        assert fake_github.requests[0].headers["User-Agent"] == (
            "workflow-archiver-bot/1.0.0"
        )

    def test_shutdown_callbacks(self, config_path: Path) -> None:
        """The API client and owned log fetcher are closed at shutdown."""
        deps = build_dependencies(load_config(config_path), store=InMemoryObjectStore())
        assert len(deps.closers) == 3

    def test_memory_backend_from_config(self, config_path: Path) -> None:
        """The configured in-memory store needs no closing."""
        deps = build_dependencies(load_config(config_path), fetcher=_StaticFetcher())
        assert len(deps.closers) == 2


class _StaticFetcher:
    async def fetch(self, url: str) -> bytes:
        del url
        return b"hello world"
