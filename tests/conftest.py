import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from awx_client.api.client import AirwallexClient  # noqa: E402
from awx_client.config.settings import Settings  # noqa: E402

TEST_BASE_URL = "https://api.test.airwallex.com"
LOGIN_PATH = "/api/v1/authentication/login"


def pytest_configure(config):
    # Register the asyncio marker so pytest doesn't warn when it's used.
    config.addinivalue_line(
        "markers", "asyncio: mark test to run in an asyncio event loop"
    )
    # Add custom markers for test organization
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line("markers", "auth: mark test as testing authentication")


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Isolate tests from AWX_* variables set in the real environment."""
    for name in list(os.environ):
        if name.upper().startswith("AWX_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    yield


Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class MockAPI:
    """Tiny request router backing ``httpx.MockTransport``.

    Login is served by default with a far-future token. Other routes are
    registered with :meth:`add`; queued responses are served in order and
    the last one repeats.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Handler]] = {}
        self.requests: List[httpx.Request] = []
        self.login_count = 0
        self.token = "test-access-token"
        self.expires_at = "2099-01-01T00:00:00Z"
        self.login_status = 201

    def add(self, method: str, path: str, *responses: Handler) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]

    def _login(self, request: httpx.Request) -> httpx.Response:
        self.login_count += 1
        return httpx.Response(
            self.login_status,
            json={"token": self.token, "expires_at": self.expires_at},
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes and key == ("POST", LOGIN_PATH):
            return self._login(request)
        queue = self.routes.get(key)
        if not queue:
            return httpx.Response(404, json={"code": "not_found", "message": "no route"})
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(entry):
            return entry(request)
        # Fresh copy so repeated entries never share response state
        return httpx.Response(
            entry.status_code, headers=entry.headers, content=entry.content
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def mock_api():
    return MockAPI()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def client_settings():
    """Settings with test credentials and default tunables."""
    return Settings(
        _env_file=None,
        AWX_CLIENT_ID="test-client-id",
        AWX_API_KEY="test-api-key",
    )


@pytest.fixture
def make_client(mock_api, client_settings, sleep_recorder):
    """Factory for clients wired to the mock API with recorded backoff."""

    def _make(**kwargs) -> AirwallexClient:
        kwargs.setdefault("base_url", TEST_BASE_URL)
        kwargs.setdefault("settings", client_settings)
        client = AirwallexClient(
            "test-client-id", "test-api-key", transport=mock_api.transport, **kwargs
        )
        client.retry_executor.sleep = sleep_recorder
        return client

    return _make
