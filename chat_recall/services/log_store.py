"""
Log Store

Best-effort persistence and retrieval of chat exchanges in MongoDB.

The connection target arrives with each call because users can change it
from one request to the next, so every operation opens its own client,
does its work, and closes the client on every exit path. pymongo is
synchronous; the blocking part of each operation runs in a worker thread.
"""

import asyncio
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from pymongo import DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from ..core.exceptions import LogStoreConnectionError, LogStoreWriteError
from ..core.logging import logger

DEFAULT_COLLECTION = "logs"
DEFAULT_LIMIT = 50

# MongoClient rejects some malformed URIs (bad port, bad option types) with
# plain ValueError/TypeError before any PyMongoError can be raised.
DRIVER_ERRORS = (PyMongoError, ValueError, TypeError)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LogRecord:
    """
    One persisted question/answer exchange.

    The stored document uses exactly the camelCase keys produced by
    ``to_document``; there is no schema version field, so they must stay
    stable.
    """

    question: str
    answer: str
    model: str
    session_id: Optional[str] = None
    created_at: datetime = field(default_factory=_utc_now)

    def to_document(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "question": self.question,
            "answer": self.answer,
            "model": self.model,
            "createdAt": self.created_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form returned by the history endpoints."""
        document = self.to_document()
        document["createdAt"] = self.created_at.isoformat()
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "LogRecord":
        created_at = document.get("createdAt")
        if not isinstance(created_at, datetime):
            created_at = datetime.fromtimestamp(0, tz=timezone.utc)
        elif created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            question=str(document.get("question") or ""),
            answer=str(document.get("answer") or ""),
            model=str(document.get("model") or ""),
            session_id=document.get("sessionId"),
            created_at=created_at,
        )


def build_search_filter(term: Optional[str]) -> Dict[str, Any]:
    """
    Case-insensitive literal substring match on question OR answer.

    A missing or blank term means no filter at all.
    """
    if not isinstance(term, str) or not term.strip():
        return {}
    pattern = re.escape(term.strip())
    return {
        "$or": [
            {"question": {"$regex": pattern, "$options": "i"}},
            {"answer": {"$regex": pattern, "$options": "i"}},
        ]
    }


class LogStore:
    """
    MongoDB-backed log of chat exchanges.

    Args:
        collection_name: Collection that holds the records
        server_selection_timeout_ms: How long a call waits for a reachable server
        client_factory: Callable building a client from a URI; ``MongoClient``
            unless a test substitutes its own
    """

    def __init__(
        self,
        collection_name: str = DEFAULT_COLLECTION,
        server_selection_timeout_ms: int = 5000,
        client_factory: Callable[..., Any] = MongoClient,
    ):
        self.collection_name = collection_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.client_factory = client_factory

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "LogStore":
        return cls(
            collection_name=settings.get("collection", DEFAULT_COLLECTION),
            server_selection_timeout_ms=int(settings.get("server_selection_timeout_ms", 5000)),
        )

    @contextmanager
    def _client(self, uri: str) -> Iterator[Any]:
        client = self.client_factory(
            uri,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            tz_aware=True,
        )
        try:
            yield client
        finally:
            client.close()

    # Blocking halves, run through asyncio.to_thread

    def _ping(self, uri: str, db_name: Optional[str]) -> None:
        with self._client(uri) as client:
            database = client[db_name] if db_name else client.admin
            database.command("ping")

    def _insert(self, uri: str, db_name: str, document: Dict[str, Any]) -> None:
        with self._client(uri) as client:
            client[db_name][self.collection_name].insert_one(document)

    def _find(self, uri: str, db_name: str, query: Dict[str, Any], limit: int) -> List[LogRecord]:
        with self._client(uri) as client:
            cursor = (
                client[db_name][self.collection_name]
                .find(query, projection={"_id": 0})
                .sort("createdAt", DESCENDING)
                .limit(limit)
            )
            return [LogRecord.from_document(document) for document in cursor]

    # Public API

    async def ping(self, uri: str, db_name: Optional[str] = None) -> None:
        """Open a connection, issue the no-op ping command, close it."""
        try:
            await asyncio.to_thread(self._ping, uri, db_name)
        except DRIVER_ERRORS as e:
            raise LogStoreConnectionError(str(e) or "MongoDB ping failed", original_exception=e) from e

    async def write(self, uri: str, db_name: str, record: LogRecord) -> None:
        # insert_one mutates its argument (adds _id); hand it a throwaway dict.
        document = record.to_document()
        try:
            await asyncio.to_thread(self._insert, uri, db_name, document)
        except DRIVER_ERRORS as e:
            raise LogStoreWriteError(str(e) or "MongoDB insert failed", original_exception=e) from e

        logger.debug(
            "Log record written",
            db_name=db_name,
            collection=self.collection_name,
            session_id=record.session_id,
        )

    async def read_recent(self, uri: str, db_name: str, limit: int = DEFAULT_LIMIT) -> List[LogRecord]:
        """Newest records first, at most ``limit`` of them."""
        return await self.search(uri, db_name, None, limit)

    async def search(self, uri: str, db_name: str, term: Optional[str], limit: int = DEFAULT_LIMIT) -> List[LogRecord]:
        """Newest records whose question or answer contains ``term``, ignoring case."""
        if limit <= 0:
            raise ValueError("limit must be a positive integer")
        query = build_search_filter(term)
        try:
            return await asyncio.to_thread(self._find, uri, db_name, query, limit)
        except DRIVER_ERRORS as e:
            raise LogStoreConnectionError(str(e) or "MongoDB query failed", original_exception=e) from e
