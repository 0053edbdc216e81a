"""Pytest fixtures for storefront tests.

Async scenarios talk to the mock retailer API in-process through
FaultyTransport, which can fail, drop or delay selected requests.
"""

import asyncio
import json
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from storefront.api.client import RetailerApiClient
from storefront.mockapi.core.auth import create_session_token
from storefront.mockapi.core.config import settings as mock_settings
from storefront.mockapi.main import app
from storefront.mockapi.store import memory_store
from storefront.notifications import Notifier

EMAIL = mock_settings.RETAILER_EMAIL
BASE_URL = "http://testserver"
SIGN_IN_URL = "/signin"


class FaultyTransport(httpx.AsyncBaseTransport):
    def __init__(self, asgi_app):
        self._inner = httpx.ASGITransport(app=asgi_app)
        self.requests: List[Tuple[str, str]] = []
        # (method, path, status, headers, body); status None drops the connection
        self._faults: List[Tuple[str, str, Optional[int], Dict[str, str], bytes]] = []
        self._delays: Dict[Tuple[str, str], float] = {}

    def fail_next(self, method: str, path: str, status: int = 500, error: str = "Server error"):
        body = json.dumps({"error": error}).encode()
        self._faults.append((method, path, status, {"content-type": "application/json"}, body))

    def respond_next(self, method: str, path: str, status: int, body: str, content_type: str = "text/html"):
        """Next matching request gets this raw response instead of reaching the app."""
        self._faults.append((method, path, status, {"content-type": content_type}, body.encode()))

    def drop_next(self, method: str, path: str):
        """Next matching request fails without a response."""
        self._faults.append((method, path, None, {}, b""))

    def delay(self, method: str, path: str, seconds: float):
        self._delays[(method, path)] = seconds

    def count(self, method: Optional[str] = None, path: Optional[str] = None) -> int:
        return sum(
            1 for m, p in self.requests
            if (method is None or m == method) and (path is None or p == path)
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))
        for fault in self._faults:
            if fault[0] == method and fault[1] == path:
                self._faults.remove(fault)
                if fault[2] is None:
                    raise httpx.ConnectError("connection refused", request=request)
                return httpx.Response(fault[2], headers=fault[3], content=fault[4], request=request)
        seconds = self._delays.get((method, path))
        if seconds:
            await asyncio.sleep(seconds)
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


@pytest.fixture(autouse=True)
def fresh_store():
    """Every test starts from the seed catalog, empty carts and seed orders."""
    memory_store.reset()
    yield
    memory_store.reset()


@pytest.fixture
def transport():
    return FaultyTransport(app)


@pytest.fixture
def session_token():
    return create_session_token(EMAIL)


@pytest.fixture
def notifier():
    return Notifier(limit=20)


@pytest.fixture
def make_client(transport, session_token):
    """Factory for clients bound to the mock API; pass token=None for an anonymous one."""

    def _make(token: Optional[str] = session_token) -> RetailerApiClient:
        return RetailerApiClient(
            BASE_URL,
            session_token=token,
            session_cookie=mock_settings.SESSION_COOKIE,
            sign_in_url=SIGN_IN_URL,
            transport=transport,
        )

    return _make
