"""
Pytest configuration and fixtures for the Calcufy MCP server

Provides fixtures to:
1. Build the calculator tool registry and a fresh session store
2. Build an MCP transport around them
3. Build the FastAPI application and a TestClient for HTTP-level tests
"""
import pytest
import sys
from pathlib import Path
from typing import Dict, List, Optional

from fastapi.testclient import TestClient
from starlette.datastructures import Headers

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from error_handling import ErrorHandlingConfig
from mcp_servers.calculator_server import create_calculator_registry
from mcp_http_servers.calculator_http_server import ServerSettings, create_app
from mcp_http_servers.sessions import SessionStore
from mcp_http_servers.transport import MCPTransport


TEST_BASE_URL = "https://calcufy.test"


@pytest.fixture(autouse=True)
def base_url(monkeypatch):
    """Pin the public base URL so widget URLs are predictable."""
    monkeypatch.setenv("BASE_URL", TEST_BASE_URL)
    return TEST_BASE_URL


@pytest.fixture
def registry(base_url):
    return create_calculator_registry()


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def transport(registry, session_store):
    """Transport with an immediate keep-alive so stream tests do not wait."""
    return MCPTransport(registry, session_store, keepalive_interval=0)


@pytest.fixture
def app(base_url):
    settings = ServerSettings()
    config = ErrorHandlingConfig(environment="test", enable_tracing=False, log_level="WARNING")
    return create_app(settings, config)


@pytest.fixture
def client(app):
    """Create test client for FastAPI app with lifespan context."""
    with TestClient(app) as c:
        yield c


class FakeRequest:
    """Just enough of a Starlette Request for the GET stream."""

    def __init__(self, headers: Optional[Dict[str, str]] = None, disconnects: Optional[List[bool]] = None):
        self.headers = Headers(headers or {})
        self._disconnects = list(disconnects or [])

    async def is_disconnected(self) -> bool:
        if self._disconnects:
            return self._disconnects.pop(0)
        return True


@pytest.fixture
def fake_request():
    return FakeRequest

