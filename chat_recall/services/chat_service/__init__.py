"""
Chat Service Package

Components behind the chat endpoint:

- statistics_collector: latency marks and throughput metrics
- chat_service: the validate / resolve / invoke / persist pipeline

Usage:
    from chat_recall.services.chat_service import ChatService

    chat_service = ChatService(config_manager, httpx_client, log_store)
    response = await chat_service.chat({"message": "Hello"})
"""

from .statistics_collector import ChatStats, StatisticsCollector, compute_stats
from .chat_service import ChatResponse, ChatService, PersistOutcome

__all__ = [
    "ChatStats",
    "StatisticsCollector",
    "compute_stats",
    "ChatResponse",
    "ChatService",
    "PersistOutcome",
]
