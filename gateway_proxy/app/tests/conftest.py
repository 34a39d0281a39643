"""
Shared fixtures for the gateway proxy tests.

The upstream API gateway is replaced by ``FakeUpstream`` behind an
``httpx.MockTransport``, injected through ``create_app(upstream_client=...)``.
"""

import inspect
from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from gateway_proxy.app.config import Settings
from gateway_proxy.app.main import create_app


UPSTREAM_BASE = "http://upstream.test"


def upstream_response(
    status_code: int = 200,
    body: bytes = b"",
    headers: Optional[list] = None,
) -> httpx.Response:
    """Build a streamed upstream response, as a real transport returns."""
    return httpx.Response(
        status_code,
        headers=headers or [],
        stream=httpx.ByteStream(body),
    )


class FakeUpstream:
    """Records every request it receives and answers with ``responder``."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.bodies: List[bytes] = []
        self.responses: List[httpx.Response] = []
        self.responder: Callable = lambda request: upstream_response()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(await request.aread())
        self.requests.append(request)

        response = self.responder(request)
        if inspect.isawaitable(response):
            response = await response

        self.responses.append(response)
        return response


def make_settings(**overrides) -> Settings:
    """Settings isolated from the process environment and any .env file."""
    values = {
        "API_GATEWAY_URL": UPSTREAM_BASE,
        "SERVER_PORT": 8080,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def mock_settings():
    """Default proxy settings pointing at the fake upstream"""
    return make_settings()


@pytest.fixture
def upstream():
    """Fake API gateway"""
    return FakeUpstream()


@pytest.fixture
def upstream_client(upstream):
    """HTTP client whose transport is the fake upstream"""
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def app(mock_settings, upstream_client):
    """Create test FastAPI application"""
    return create_app(mock_settings, upstream_client=upstream_client)


@pytest.fixture
def client(app):
    """Create test client with lifespan events"""
    with TestClient(app) as test_client:
        yield test_client
