"""Shared fixtures: a recording logger and an in-process mock upstream."""

from collections.abc import Callable

import httpx
import pytest

import ui.log_utils
from app import create_app
from core.state import ProxyState, create_http_client

UPSTREAM_URL = "http://upstream.test"


class RecordingLogger:
    """RequestLogger that keeps every event for assertions."""

    def __init__(self) -> None:
        self.forwarded: list[tuple[str, str, int]] = []
        self.rejected: list[tuple[str, str, int, str]] = []
        self.errors: list[tuple[str, int, str]] = []
        self.warnings: list[str] = []

    def log_forwarded(self, method: str, path: str, status: int) -> None:
        self.forwarded.append((method, path, status))

    def log_rejected(self, method: str, path: str, status: int, reason: str) -> None:
        self.rejected.append((method, path, status, reason))

    def log_error(self, route: str, status: int, message: str) -> None:
        self.errors.append((route, status, message))

    def log_warning(self, message: str) -> None:
        self.warnings.append(message)


class MockUpstream:
    """Records upstream-bound requests and answers with a fixed response."""

    def __init__(
        self,
        *,
        status_code: int = 200,
        body: bytes = b"ok",
        headers: list[tuple[bytes, bytes]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.body = body
        self.headers = headers or [(b"content-type", b"text/plain")]
        self.error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        # An unread stream, like a real network response, so the raw body
        # can be relayed.
        headers = [*self.headers, (b"content-length", str(len(self.body)).encode())]
        return httpx.Response(
            self.status_code, headers=headers, stream=httpx.ByteStream(self.body)
        )

    def client(self) -> httpx.AsyncClient:
        return create_http_client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def cli_log_file(tmp_path, monkeypatch):
    """Keep the rolling log file out of the working directory."""
    log_file = tmp_path / "logs" / "proxy.log"
    monkeypatch.setattr(ui.log_utils, "CLI_LOG_FILE", log_file)
    return log_file


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream()


@pytest.fixture
def make_state(upstream) -> Callable[..., ProxyState]:
    def _make(keys=("secret",), mock: MockUpstream | None = None) -> ProxyState:
        return ProxyState(
            keys=tuple(keys),
            upstream_url=UPSTREAM_URL,
            client=(mock or upstream).client(),
        )

    return _make


@pytest.fixture
def make_client(make_state, logger):
    """Build an httpx client that drives the proxy app in-process."""
    def _make(keys=("secret",), mock: MockUpstream | None = None, app_hook=None):
        app = create_app(make_state(keys, mock), logger)
        if app_hook is not None:
            app_hook(app)
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://proxy.test",
        )

    return _make
