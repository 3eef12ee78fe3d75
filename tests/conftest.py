import pytest
from typing import List, Optional

from opensearch_notebook.common.errors import TransportError
from opensearch_notebook.configs.connection import AuthConfig, AuthType, ConnectionConfig
from opensearch_notebook.execution.connection import ConnectionManager
from opensearch_notebook.execution.engine import QueryExecutionEngine
from opensearch_notebook.execution.schemas import TransportRequest, TransportResponse


class FakeTransport:
    """Records every request and replays scripted responses or errors."""

    def __init__(self, responses: Optional[list] = None):
        self.responses = list(responses or [])
        self.requests: List[TransportRequest] = []

    def queue(self, item) -> None:
        self.responses.append(item)

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        item = self.responses.pop(0) if self.responses else TransportResponse(status=200, status_text="OK", data={})
        if isinstance(item, TransportError):
            if item.request is None:
                item.request = request
            raise item
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def base_config():
    """Returns a base connection with basic auth."""
    return ConnectionConfig(
        endpoint="http://localhost:9200",
        auth=AuthConfig(type=AuthType.BASIC, username="admin", password="admin"),
        timeout=30000,
    )


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def connection_manager(base_config, fake_transport):
    return ConnectionManager(base_config, fake_transport)


@pytest.fixture
def engine(connection_manager):
    return QueryExecutionEngine(connection_manager)
