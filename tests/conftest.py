"""Fixtures for the test suite."""

import io
from typing import Any

import httpx
import pytest
from rich.console import Console

from fabricwall.schemas.deployment import DeploymentConfig
from fabricwall.schemas.results import ResultSet
from fabricwall.services.checks.context import CheckContext
from fabricwall.services.fabric_client import FabricClient
from fabricwall.services.recorder import CheckRecorder

FABRIC = "https://api.fabric.microsoft.com/v1"
POWERBI = "https://api.powerbi.com/v1.0/myorg"

PROVIDER_WS = "11111111-aaaa-4000-8000-000000000001"
CONSUMER_WS = "22222222-bbbb-4000-8000-000000000002"
PROVIDER_ITEM = "33333333-aaaa-4000-8000-000000000003"
CONSUMER_ITEM = "44444444-bbbb-4000-8000-000000000004"


class FakeApi:
    """Route table for httpx.MockTransport: (method, url) -> (status, body)."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method, url)] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?")[0]
        status, body = self.routes.get(
            (request.method, url),
            (404, {"errorCode": "EntityNotFound", "message": f"No route for {request.method} {url}"}),
        )
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def sent(self, method: str, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and str(r.url).split("?")[0] == url]


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def client(api: FakeApi):
    c = FabricClient("test-token", transport=httpx.MockTransport(api.handler))
    yield c
    c.close()


@pytest.fixture
def deployment() -> DeploymentConfig:
    return DeploymentConfig(
        provider_workspace_id=PROVIDER_WS,
        consumer_workspace_id=CONSUMER_WS,
        provider_item_id=PROVIDER_ITEM,
        consumer_item_id=CONSUMER_ITEM,
        entity_a_admins="ga-admins",
        entity_a_engineers="ga-engineers",
        entity_a_analysts="ga-analysts",
        entity_b_admins="gb-admins",
        entity_b_engineers="gb-engineers",
        entity_b_analysts="gb-analysts",
        entity_b_marketdata_readers="gb-readers",
        tenant_id="tenant-1",
    )


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), highlight=False, width=200)


@pytest.fixture
def result_set() -> ResultSet:
    return ResultSet()


@pytest.fixture
def recorder(result_set: ResultSet, console: Console) -> CheckRecorder:
    return CheckRecorder(result_set, console)


@pytest.fixture
def ctx(deployment: DeploymentConfig, client: FabricClient) -> CheckContext:
    return CheckContext(deployment=deployment, token="test-token", client=client)
