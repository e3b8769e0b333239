"""
History Service

Read side of the log store: recent/search listings for the history sidebar
and the explicit connection test.

Listings degrade to an empty list when no database is configured or the
store cannot be reached. The connection test does the opposite and surfaces
every failure, since reporting it is its whole purpose.
"""

import time
from typing import Any, List, Mapping, Optional

from ..core.config_manager import ConfigManager
from ..core.exceptions import LogStoreConnectionError, ValidationError
from ..core.logging import logger
from ..core.settings_resolver import resolve
from .log_store import LogRecord, LogStore


class HistoryService:
    def __init__(self, config_manager: ConfigManager, log_store: LogStore):
        self.config_manager = config_manager
        self.log_store = log_store

    async def list_logs(
        self,
        raw_settings: Optional[Mapping[str, Any]] = None,
        search: Optional[Any] = None,
        request_id: str = "unknown",
    ) -> List[LogRecord]:
        effective_config = resolve(raw_settings, self.config_manager.env_defaults())
        if not effective_config.persistence_configured:
            logger.debug("History requested without a MongoDB configuration", request_id=request_id)
            return []

        term = search if isinstance(search, str) else None
        start_time = time.time()
        try:
            logs = await self.log_store.search(
                effective_config.database_uri,
                effective_config.database_name,
                term,
                limit=self.config_manager.history_limit,
            )
        except LogStoreConnectionError as e:
            logger.warning(
                f"History unavailable, returning no logs: {e.message}",
                request_id=request_id,
                db_name=effective_config.database_name
            )
            return []

        logger.performance(
            "History query",
            start_time,
            request_id=request_id,
            searched=term is not None,
            results=len(logs)
        )
        return logs

    async def test_connection(self, payload: Any, request_id: str = "unknown") -> None:
        """
        Ping the database described by ``{mongoUri, mongoDb?}``.

        Raises:
            ValidationError: mongoUri is missing or not a string
            LogStoreConnectionError: the server could not be reached
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Missing or invalid mongoUri")
        mongo_uri = payload.get("mongoUri")
        if not isinstance(mongo_uri, str) or not mongo_uri:
            raise ValidationError("Missing or invalid mongoUri")

        mongo_db = payload.get("mongoDb")
        if not isinstance(mongo_db, str) or not mongo_db.strip():
            mongo_db = None

        await self.log_store.ping(mongo_uri, mongo_db)
        logger.info("MongoDB connection test succeeded", request_id=request_id, db_name=mongo_db)
