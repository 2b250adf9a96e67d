"""
Pytest configuration and shared fixtures for Status Matrix tests.

The backend is replaced by an httpx.MockTransport router so client,
service and API tests never touch the network.
"""
import json
from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest

from status_matrix.client import StatusApiClient
from status_matrix.config import Settings
from status_matrix.models import Session
from tests.fixtures.mock_data import create_mock_status_dataset


class FakeBackend:
    """Route table for httpx.MockTransport that records every request."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, status_code: int = 200, content: bytes = None):
        def handler(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status_code, content=content)
            return httpx.Response(status_code, json=body)

        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"no route for {request.url.path}"})
        return handler(request)

    def last(self, path: str) -> httpx.Request:
        matches = [r for r in self.requests if r.url.path == path]
        assert matches, f"no request made to {path}"
        return matches[-1]

    def json_body(self, path: str) -> Any:
        return json.loads(self.last(path).content)


@pytest.fixture
def settings():
    """Provide settings pointing at the fake backend."""
    return Settings(api_url="http://backend.test", api_token="service-token", teams_per_page=4)


@pytest.fixture
def backend():
    """Provide a fake backend with the directory and status routes wired."""
    fake = FakeBackend()
    fake.add("GET", "/api/teams", [{"_id": "t1", "name": "Alpha"}, {"_id": "t2", "name": "Beta"}])
    fake.add("GET", "/api/teams/t1/members", [
        {"_id": "u1", "name": "Bob", "email": "bob@example.com"},
        {"_id": "u2", "name": "Carol", "email": "carol@example.com"},
    ])
    fake.add("GET", "/api/teams/t2/members", [{"_id": "u3", "name": "Dave"}])
    fake.add("GET", "/api/status", create_mock_status_dataset())
    return fake


@pytest.fixture
def client(backend):
    """Provide a StatusApiClient bound to the fake backend."""
    return StatusApiClient("http://backend.test", transport=httpx.MockTransport(backend))


@pytest.fixture
def session():
    return Session(token="user-token")
