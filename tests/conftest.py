"""Shared fixtures: an in-memory Realtime Database behind httpx.MockTransport."""

import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from chargefn.common.config import FunctionsSettings
from chargefn.common.error_reporting import ErrorReporter
from chargefn.common.gateway import PaymentGateway
from chargefn.common.store import ChargeRecordStore, CustomerDirectory, RealtimeDatabase
from chargefn.services.functions.service import ChargeFunctionsService


DATABASE_URL = "https://demo.firebaseio.com"


class FakeRealtimeDatabase:
    """Hierarchical JSON tree answering the REST calls `RealtimeDatabase` makes."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail_on: set[tuple[str, str]] = set()

    def get(self, path: str) -> Any:
        node: Any = self.data
        for part in filter(None, path.split("/")):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def put(self, path: str, value: Any) -> None:
        parts = [part for part in path.split("/") if part]
        node = self.data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [(method, path) for method, path in self.requests if method in ("PUT", "DELETE")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removesuffix(".json").strip("/")
        self.requests.append((request.method, path))
        if (request.method, path) in self.fail_on:
            return httpx.Response(503, json={"error": "unavailable"})
        if request.method == "GET":
            return httpx.Response(200, content=json.dumps(self.get(path)).encode())
        if request.method == "PUT":
            value = json.loads(request.content)
            self.put(path, value)
            return httpx.Response(200, json=value)
        if request.method == "DELETE":
            self.put(path, None)
            return httpx.Response(200, content=b"null")
        return httpx.Response(405)


@pytest.fixture
def fake_db() -> FakeRealtimeDatabase:
    return FakeRealtimeDatabase()


@pytest_asyncio.fixture
async def http_client(fake_db):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_db.handler)) as client:
        yield client


@pytest.fixture
def gateway():
    return AsyncMock(spec=PaymentGateway)


@pytest.fixture
def reporter():
    return AsyncMock(spec=ErrorReporter)


@pytest.fixture
def service(http_client, gateway, reporter) -> ChargeFunctionsService:
    db = RealtimeDatabase(http_client, DATABASE_URL)
    return ChargeFunctionsService(
        directory=CustomerDirectory(db),
        charges=ChargeRecordStore(db),
        gateway=gateway,
        reporter=reporter,
        currency="USD",
    )


@pytest.fixture
def settings() -> FunctionsSettings:
    return FunctionsSettings(
        _env_file=None,
        stripe_token="sk_test_123",
        firebase_database_url=DATABASE_URL,
        gcp_project_id="demo-project",
        function_name="charge-functions-test",
    )


@pytest.fixture
def wired(fake_db):
    """Service over the fake database, built outside any event loop for TestClient use."""

    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_db.handler))
    db = RealtimeDatabase(client, DATABASE_URL)
    gateway = AsyncMock(spec=PaymentGateway)
    reporter = AsyncMock(spec=ErrorReporter)
    service = ChargeFunctionsService(
        directory=CustomerDirectory(db),
        charges=ChargeRecordStore(db),
        gateway=gateway,
        reporter=reporter,
    )
    return fake_db, gateway, reporter, service
