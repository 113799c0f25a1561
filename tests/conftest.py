"""Shared fixtures for the Strapi MCP bridge tests."""

from typing import Callable, Optional

import httpx
import pytest

from shared.models import ServerProfile


class RecordingBackend:
    """
    Mock HTTP backend.

    Records every request it receives and answers with ``handler``.
    """

    def __init__(self, handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.requests: list[httpx.Request] = []
        self.handler = handler or (lambda request: httpx.Response(200, json={"data": []}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def profile() -> ServerProfile:
    return ServerProfile(name="prod", api_url="https://x.test", api_key="t1")


@pytest.fixture
def config_document() -> dict:
    return {"prod": {"api_url": "https://x.test", "api_key": "t1"}}
