"""
Chat Service Module

The request pipeline behind ``POST /api/chat``:

    validate -> resolve settings -> select + invoke provider
             -> compute stats -> persist (best-effort) -> respond

The provider call and the log write each happen at most once per request.
A failed or skipped write only flips ``logged`` to False; it never changes
the answer returned to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import httpx

from ...core.config_manager import ConfigManager
from ...core.exceptions import ValidationError
from ...core.logging import logger
from ...core.settings_resolver import EffectiveConfig, resolve
from ...providers import BaseProvider, get_provider_instance
from ..log_store import LogRecord, LogStore
from .statistics_collector import ChatStats, StatisticsCollector


class PersistOutcome(Enum):
    PERSISTED = "persisted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatResponse:
    answer: str
    stats: ChatStats
    persist_outcome: PersistOutcome

    @property
    def logged(self) -> bool:
        return self.persist_outcome is PersistOutcome.PERSISTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "logged": self.logged,
            "stats": self.stats.to_dict(),
        }


def validate_chat_payload(payload: Any) -> Tuple[str, Optional[str], Optional[Mapping[str, Any]]]:
    """Return (message, session_id, raw_settings) or raise ValidationError."""
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")

    message = payload.get("message")
    if not isinstance(message, str) or not message:
        raise ValidationError("Missing 'message'")

    # The session id is the caller's correlation tag; only a non-empty string is kept.
    session_id = payload.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        session_id = None
    raw_settings = payload.get("settings")
    if not isinstance(raw_settings, Mapping):
        raw_settings = None
    return message, session_id, raw_settings


class ChatService:
    """
    Orchestrates one chat exchange.

    Attributes:
        config_manager (ConfigManager): Service configuration and environment fallbacks
        httpx_client (httpx.AsyncClient): Client shared by the provider calls
        log_store (LogStore): Where exchanges are recorded
        provider_factory: Builds the provider variant for a resolved config
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        httpx_client: httpx.AsyncClient,
        log_store: LogStore,
        provider_factory: Callable[[EffectiveConfig, httpx.AsyncClient, ConfigManager], BaseProvider] = get_provider_instance,
    ):
        self.config_manager = config_manager
        self.httpx_client = httpx_client
        self.log_store = log_store
        self.provider_factory = provider_factory

    async def chat(self, payload: Any, request_id: str = "unknown") -> ChatResponse:
        """
        Run the full pipeline for one inbound chat payload.

        Raises:
            ValidationError: the payload has no usable message
            ConfigError: the hosted provider was selected without an API key
            UpstreamError: the provider call failed or timed out
        """
        message, session_id, raw_settings = validate_chat_payload(payload)

        effective_config = resolve(raw_settings, self.config_manager.env_defaults())
        provider_label = effective_config.provider.value

        logger.debug_data(
            title="Chat request",
            data={
                "message_length": len(message),
                "session_id": session_id,
                "provider": provider_label,
                "model": effective_config.model,
                "persistence_configured": effective_config.persistence_configured,
            },
            request_id=request_id,
            component="chat_service",
            data_flow="incoming"
        )

        provider = self.provider_factory(effective_config, self.httpx_client, self.config_manager)
        collector = StatisticsCollector()

        with logger.request_context(
            operation="Chat Completion",
            request_id=request_id,
            model_id=effective_config.model,
            provider_name=provider_label
        ):
            collector.start_llm()
            result = await provider.complete(effective_config.system_instruction, message)
            collector.mark_llm_complete()

        record = LogRecord(
            question=message,
            answer=result.answer_text,
            model=result.model_identifier,
            session_id=session_id,
        )
        outcome = await self._persist(effective_config, record, collector, request_id)

        stats = collector.get_statistics(result, provider_label)
        logger.info(
            f"Chat exchange complete | provider={provider_label} | logged={outcome is PersistOutcome.PERSISTED}",
            request_id=request_id,
            llm_latency_ms=stats.llm_latency_ms,
            db_latency_ms=stats.db_latency_ms,
            total_tokens=stats.total_tokens,
            persist_outcome=outcome.value
        )
        return ChatResponse(answer=result.answer_text, stats=stats, persist_outcome=outcome)

    async def _persist(
        self,
        effective_config: EffectiveConfig,
        record: LogRecord,
        collector: StatisticsCollector,
        request_id: str,
    ) -> PersistOutcome:
        if not effective_config.persistence_configured:
            logger.warning("Mongo logging skipped: no MongoDB configuration provided.", request_id=request_id)
            return PersistOutcome.SKIPPED

        collector.start_db()
        try:
            await self.log_store.write(effective_config.database_uri, effective_config.database_name, record)
        except Exception as e:
            # Whatever goes wrong here, the answer is already in hand.
            logger.error(
                f"Mongo logging failed: {e}",
                request_id=request_id,
                db_name=effective_config.database_name,
                error_type=type(e).__name__
            )
            return PersistOutcome.FAILED
        collector.mark_db_complete()
        return PersistOutcome.PERSISTED
