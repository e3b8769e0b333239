"""
Pytest configuration and fixtures for the chat-recall test suite.
"""

import os

# File logging is pointless under test; must be set before chat_recall is imported.
os.environ.setdefault("LOG_DIR", "")

import copy
import json
import re
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from chat_recall.core.config_manager import ConfigManager


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Environment fallbacks must come from the test, never from the host."""
    for name in ("OPENAI_API_KEY", "MONGO_URI", "MONGO_DB", "CHAT_RECALL_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_manager(tmp_path) -> ConfigManager:
    """ConfigManager backed by a test YAML file."""
    config_path = tmp_path / "service.yaml"
    config_path.write_text(
        "providers:\n"
        "  openai:\n"
        "    base_url: https://hosted.test/v1\n"
        "log_store:\n"
        "  history_limit: 50\n"
    )
    return ConfigManager(config_path=str(config_path))


# In-memory stand-in for the part of the MongoClient API the log store uses.

def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    if not query:
        return True
    if "$or" in query:
        return any(_matches(document, clause) for clause in query["$or"])
    for field_name, condition in query.items():
        value = document.get(field_name)
        if isinstance(condition, dict) and "$regex" in condition:
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(condition["$regex"], value, flags):
                return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    def sort(self, key: str, direction: int):
        self._documents = sorted(self._documents, key=lambda d: d[key], reverse=direction < 0)
        return self

    def limit(self, count: int):
        self._documents = self._documents[:count]
        return self

    def __iter__(self):
        return iter(self._documents)


class FakeCollection:
    def __init__(self, server: "FakeMongoServer"):
        self.server = server
        self.documents: List[Dict[str, Any]] = []

    def insert_one(self, document: Dict[str, Any]):
        if "insert" in self.server.failures:
            raise OperationFailure("not authorized to insert")
        self.server.next_id += 1
        document["_id"] = self.server.next_id
        self.documents.append(copy.deepcopy(document))

    def find(self, query: Dict[str, Any], projection: Optional[Dict[str, int]] = None):
        if "find" in self.server.failures:
            raise ServerSelectionTimeoutError("No servers found yet")
        hidden = {key for key, flag in (projection or {}).items() if not flag}
        found = [
            {key: value for key, value in document.items() if key not in hidden}
            for document in self.documents
            if _matches(document, query)
        ]
        return FakeCursor(found)


class FakeDatabase:
    def __init__(self, server: "FakeMongoServer", name: str):
        self.server = server
        self.name = name

    def __getitem__(self, collection_name: str) -> FakeCollection:
        return self.server.databases[self.name][collection_name]

    def command(self, name: str):
        if "ping" in self.server.failures:
            raise ServerSelectionTimeoutError("connection refused")
        self.server.commands.append((self.name, name))
        return {"ok": 1.0}


class FakeMongoClient:
    def __init__(self, server: "FakeMongoServer", uri: str, **kwargs):
        self.server = server
        self.uri = uri
        self.kwargs = kwargs
        self.closed = False

    def __getitem__(self, db_name: str) -> FakeDatabase:
        return FakeDatabase(self.server, db_name)

    @property
    def admin(self) -> FakeDatabase:
        return FakeDatabase(self.server, "admin")

    def close(self):
        self.closed = True


class FakeMongoServer:
    """
    Shared state behind every FakeMongoClient it hands out.

    Add "connect", "insert", "find" or "ping" to ``failures`` to make the
    matching operation raise the error pymongo would raise. "bad_uri" makes
    client construction fail the way MongoClient does for an out-of-range
    port, with a plain ValueError.
    """

    def __init__(self):
        self.databases = defaultdict(lambda: defaultdict(lambda: FakeCollection(self)))
        self.clients: List[FakeMongoClient] = []
        self.commands: List[tuple] = []
        self.failures = set()
        self.next_id = 0

    def client_factory(self, uri: str, **kwargs) -> FakeMongoClient:
        if "bad_uri" in self.failures:
            raise ValueError("Port must be an integer between 0 and 65535: 99999")
        if "connect" in self.failures:
            raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")
        client = FakeMongoClient(self, uri, **kwargs)
        self.clients.append(client)
        return client

    def collection(self, db_name: str, collection_name: str = "logs") -> FakeCollection:
        return self.databases[db_name][collection_name]


@pytest.fixture
def mongo_server() -> FakeMongoServer:
    return FakeMongoServer()


# Provider traffic

def completion_body(content: Optional[str] = "Hi there!", prompt_tokens: int = 12,
                    completion_tokens: int = 5, total_tokens: int = 17) -> Dict[str, Any]:
    """OpenAI-shaped non-streamed chat completion body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": total_tokens,
        },
    }


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a canned response."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_handler():
    def _make(responder=None, status_code: int = 200, body: Any = None) -> RecordingHandler:
        if responder is None:
            payload = completion_body() if body is None else body

            def responder(request):
                return httpx.Response(status_code, json=payload)

        return RecordingHandler(responder)

    return _make


@pytest.fixture
def completion():
    """Factory for OpenAI-shaped completion bodies."""
    return completion_body
