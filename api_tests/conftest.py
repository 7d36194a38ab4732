import socket
import sys
import threading
import time
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from werkzeug.serving import make_server

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api_tests.auth_setup import authenticate
from api_tests.auth_state import CredentialStore
from api_tests.config import settings
from api_tests.mock_toolshop_api import create_mock_api_app, reset_mock_state
from api_tests.playwright_client import PlaywrightClient
from api_tests.session_manager import AuthSessionManager, AuthStrategy


def pytest_collection_modifyitems(config, items):
    """Skip tests marked ``live`` unless API_TARGET=live."""
    if settings.is_live:
        return
    skip_live = pytest.mark.skip(reason="needs the real API (set API_TARGET=live)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ============================================================================
# Mock Toolshop API
# ============================================================================

class MockToolshopAPIServer:
    """Wrapper for running the mock Toolshop API in a background thread."""

    def __init__(self, host='127.0.0.1', port=0):
        self.host = host
        self.port = port
        self.app = create_mock_api_app()
        self.server = None
        self.thread = None

    def start(self):
        """Start the mock API server in a background thread."""
        self.server = make_server(self.host, self.port, self.app, threaded=True)
        self.port = self.server.port
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()

        # Wait for server to be ready
        for _ in range(50):  # 5 seconds max
            try:
                httpx.get(f"{self.url}/", timeout=0.5)
                break
            except httpx.HTTPError:
                time.sleep(0.1)

    def stop(self):
        """Stop the mock API server."""
        if self.server:
            self.server.shutdown()
            self.thread.join(timeout=5)

    @property
    def url(self):
        return f"http://{self.host}:{self.port}"


@pytest.fixture(scope='session')
def mock_toolshop_api_server():
    """Provide a running mock Toolshop API for the whole session."""
    reset_mock_state()
    server = MockToolshopAPIServer()
    server.start()

    yield server

    server.stop()
    reset_mock_state()


@pytest.fixture()
def closed_port_url() -> str:
    """URL of a local port nothing listens on."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


@pytest.fixture(scope='session')
def api_base_url(request) -> str:
    """Base URL of the API under test (mock server unless API_TARGET=live)."""
    if settings.is_live:
        return settings.base_url
    return request.getfixturevalue('mock_toolshop_api_server').url


# ============================================================================
# Playwright request layer
# ============================================================================

@pytest_asyncio.fixture(scope='session')
async def playwright_client():
    """One Playwright driver for the session."""
    async with PlaywrightClient() as client:
        yield client


@pytest_asyncio.fixture()
async def api_request(playwright_client, api_base_url):
    """Unauthenticated request context bound to the API base URL."""
    context = await playwright_client.new_request_context(base_url=api_base_url)
    yield context
    await playwright_client.dispose_context(context)


# ============================================================================
# Token lifecycle
# ============================================================================

@pytest.fixture(scope='session')
def credential_store() -> CredentialStore:
    return CredentialStore(settings.auth_file)


@pytest_asyncio.fixture(scope='session')
async def auth_setup(playwright_client, api_base_url, credential_store) -> str:
    """Setup phase: log in once and persist the token.

    Tests that read the persisted token depend on this fixture, so the
    write is finished before any of them runs. A login failure errors
    every dependent test.
    """
    return await authenticate(
        playwright_client,
        api_base_url,
        settings.email,
        settings.password,
        credential_store,
    )


@pytest.fixture()
def storage_state_token(auth_setup, credential_store) -> str:
    """Token read back from the persisted credential file."""
    return credential_store.load()


@pytest_asyncio.fixture(scope='session')
async def shared_auth_manager(playwright_client, api_base_url, credential_store):
    """Session-wide manager holding the shared-memory token."""
    async with AuthSessionManager(
        playwright_client,
        api_base_url,
        settings.email,
        settings.password,
        strategy=AuthStrategy.SHARED_MEMORY,
        store=credential_store,
    ) as manager:
        yield manager


@pytest_asyncio.fixture(scope='session')
async def shared_api_token(shared_auth_manager) -> str:
    """Token acquired once per session and passed on by return value."""
    return await shared_auth_manager.get_token()


@pytest.fixture()
def auth_strategy(request) -> AuthStrategy:
    """Strategy selected by API_AUTH_STRATEGY.

    For ``persisted`` the setup phase is pulled in first.
    """
    strategy = AuthStrategy.parse(settings.auth_strategy)
    if strategy is AuthStrategy.PERSISTED:
        request.getfixturevalue('auth_setup')
    return strategy


@pytest_asyncio.fixture()
async def auth_session_manager(
    auth_strategy, shared_auth_manager, playwright_client, api_base_url, credential_store
):
    """Manager for the configured strategy.

    shared-memory reuses the session manager; the other strategies get a
    manager scoped to the test.
    """
    if auth_strategy is AuthStrategy.SHARED_MEMORY:
        yield shared_auth_manager
        return

    async with AuthSessionManager(
        playwright_client,
        api_base_url,
        settings.email,
        settings.password,
        strategy=auth_strategy,
        store=credential_store,
    ) as manager:
        yield manager


@pytest_asyncio.fixture()
async def authenticated_api_request(auth_session_manager):
    """Request context sending ``Authorization: Bearer <token>``."""
    context = await auth_session_manager.authenticated_session()
    yield context
    await auth_session_manager.close_session(context)
