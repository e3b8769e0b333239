"""
Fixtures for driving the application in-process.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_recall.api.main import create_app
from chat_recall.services.log_store import LogStore


@pytest.fixture
def make_api_client(config_manager, mongo_server):
    """
    Build a TestClient whose provider traffic goes to ``handler`` and whose
    MongoDB is the in-memory fake.
    """
    clients = []

    def _make(handler=None) -> TestClient:
        transport = httpx.MockTransport(handler or (lambda request: httpx.Response(500)))
        app = create_app(
            config_manager=config_manager,
            log_store=LogStore(client_factory=mongo_server.client_factory),
            httpx_client=httpx.AsyncClient(transport=transport),
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
