"""Shared pytest fixtures for the Bitrise provider tests."""

import json
from collections.abc import Callable
from typing import Any, Optional

import httpx
import pytest

from bitrise_provider.config import ProviderConfig
from bitrise_provider.context import ProviderContext

TEST_ENDPOINT = "https://api.test.bitrise.io"
TEST_TOKEN = "test-token"


class MockBitriseAPI:
    """Fake Bitrise API.

    Routes ``(method, path)`` pairs to canned responses or handler callables
    and records every request. Unrouted requests get a 500.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json_data: Any = None,
        text: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if json_data is not None:
                    return httpx.Response(status_code, json=json_data, headers=headers)
                return httpx.Response(status_code, text=text or "", headers=headers)

        self.routes[(method.upper(), path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(
                500,
                json={"message": f"unexpected request {request.method} {request.url.path}"},
            )
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self) -> Any:
        return json_body(self.last_request)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


def json_body(request: httpx.Request) -> Any:
    """Decode the JSON body of a recorded request."""
    return json.loads(request.content)


@pytest.fixture
def mock_api():
    """Create an empty fake Bitrise API."""
    return MockBitriseAPI()


@pytest.fixture
def provider_config():
    """Create a test provider configuration."""
    return ProviderConfig(endpoint=TEST_ENDPOINT, token=TEST_TOKEN)


@pytest.fixture
def context(provider_config, mock_api):
    """Create a provider context whose clients talk to the fake API."""
    return ProviderContext.from_config(provider_config, transport=mock_api.transport)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove Bitrise variables from the environment."""
    for name in ("BITRISE_ENDPOINT", "BITRISE_TOKEN", "BITRISE_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
