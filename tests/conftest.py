"""Shared fixtures: an HttpClient wired to an in-memory transport."""

import httpx
import pytest

from fluenthttp.core import HttpClient


@pytest.fixture
def reply():
    """Build a streamed response the way a real transport would return it."""

    def _reply(status: int = 200, body: bytes = b"", headers: dict | None = None) -> httpx.Response:
        return httpx.Response(status, headers=headers or {}, stream=httpx.ByteStream(body))

    return _reply


@pytest.fixture
def make_client():
    """HttpClient factory whose requests are answered by handler."""

    def _make_client(handler) -> HttpClient:
        return HttpClient().with_transport(httpx.MockTransport(handler))

    return _make_client
