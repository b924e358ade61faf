"""Shared fixtures for connection tests.

Provides:
  - A ClientContext for a fixed test project and region
  - FakeAPI, an httpx.MockTransport handler routing requests by method and path
  - An HttpClient wired to FakeAPI
  - Sample connection files
"""
import json
from typing import Any, Callable, Dict, List, Tuple, Union
from unittest import mock

import httpx
import pytest

from appint_toolkit.connections.domains.context import ClientContext
from appint_toolkit.connections.domains.http_client import HttpClient

PROJECT = "test-project"
REGION = "us-central1"
CONNECTIONS_PATH = f"/v1/projects/{PROJECT}/locations/{REGION}/connections"
OPERATIONS_PATH = f"/v1/projects/{PROJECT}/locations/{REGION}/operations"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeAPI:
    """Answers requests from routes registered per (method, path).

    A route holds a list of replies used in order; the last one repeats.
    Unrouted requests get a 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> None:
        self.routes[(method, path)] = list(replies)

    def json(self, method: str, path: str, *payloads: Dict[str, Any], status: int = 200) -> None:
        self.add(method, path, *[httpx.Response(status, json=p) for p in payloads])

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"error": {"code": 404, "message": "not found"}})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if callable(reply):
            return reply(request)
        return httpx.Response(reply.status_code, content=reply.content, headers=reply.headers)


@pytest.fixture
def ctx():
    return ClientContext(project_id=PROJECT, region=REGION, token="test-token", print_response=False)


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
def http(ctx, api):
    return HttpClient(ctx, transport=httpx.MockTransport(api.handler))


@pytest.fixture
def secret_store():
    store = mock.MagicMock()
    store.create_secret.return_value = f"projects/{PROJECT}/secrets/db-password/versions/4"
    return store


@pytest.fixture
def iam():
    client = mock.MagicMock()
    client.get_compute_default_service_account.return_value = "123-compute@developer.gserviceaccount.com"
    return client


def connection_file(connector="mysql", provider="gcp", version=1, **extra) -> Dict[str, Any]:
    doc = {
        "description": "test connection",
        "connectorDetails": {"name": connector, "provider": provider, "version": version},
        "configVariables": [
            {"key": "project_id", "stringValue": "$PROJECT_ID$"},
            {"key": "database_region", "stringValue": "$REGION$"},
            {"key": "port", "intValue": "3306"},
            {"key": "ssl", "boolValue": True},
        ],
    }
    doc.update(extra)
    return doc


@pytest.fixture
def user_password_file(tmp_path):
    secret_file = tmp_path / "password.txt"
    secret_file.write_text("s3cr3t")
    doc = connection_file(authConfig={
        "authType": "USER_PASSWORD",
        "userPassword": {
            "username": "admin",
            "passwordDetails": {"secretName": "db-password", "reference": str(secret_file)},
        },
    })
    return json.dumps(doc)
