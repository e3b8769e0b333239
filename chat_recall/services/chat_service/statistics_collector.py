"""
Statistics Collector Module

Timing and throughput metrics for one chat exchange.

``StatisticsCollector`` marks the phases of a request (provider call, log
write) and ``compute_stats`` turns raw timings and token counts into an
immutable ``ChatStats``. The write to the log store is timed separately and
never included in the provider latency.
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...providers.base import ProviderResult


@dataclass(frozen=True)
class ChatStats:
    """
    Metrics returned with every chat answer. Never persisted.

    Attributes:
        provider (str): Provider label, "openai" or "lmstudio"
        model (str): Model id that served the request
        llm_latency_ms (int): Wall time of the provider call
        db_latency_ms (Optional[int]): Wall time of the log write, None when skipped
        prompt_tokens (int): Provider-reported prompt tokens
        completion_tokens (int): Provider-reported completion tokens
        total_tokens (int): Provider-reported total tokens
        tokens_per_second (Optional[float]): Completion throughput, one decimal
    """

    provider: str
    model: str
    llm_latency_ms: int
    db_latency_ms: Optional[int]
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    tokens_per_second: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "llmLatencyMs": self.llm_latency_ms,
            "dbLatencyMs": self.db_latency_ms,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
            "tokensPerSecond": self.tokens_per_second,
        }


def tokens_per_second(completion_tokens: int, llm_latency_ms: int) -> Optional[float]:
    """
    Completion throughput rounded half-up to one decimal.

    Returns None for replies without completion tokens or with no measurable
    latency, so instant or empty replies never report a rate.
    """
    if completion_tokens <= 0 or llm_latency_ms <= 0:
        return None
    rate = completion_tokens / (llm_latency_ms / 1000)
    return math.floor(rate * 10 + 0.5) / 10


def compute_stats(
    result: ProviderResult,
    provider: str,
    llm_latency_ms: int,
    db_latency_ms: Optional[int] = None,
) -> ChatStats:
    llm_latency_ms = max(int(llm_latency_ms), 0)
    if db_latency_ms is not None:
        db_latency_ms = max(int(db_latency_ms), 0)

    return ChatStats(
        provider=provider,
        model=result.model_identifier,
        llm_latency_ms=llm_latency_ms,
        db_latency_ms=db_latency_ms,
        prompt_tokens=result.prompt_tokens,
        completion_tokens=result.completion_tokens,
        total_tokens=result.total_tokens,
        tokens_per_second=tokens_per_second(result.completion_tokens, llm_latency_ms),
    )


def _elapsed_ms(start: float, end: float) -> int:
    return max(int(round((end - start) * 1000)), 0)


class StatisticsCollector:
    """
    Collector for the timing marks of one chat exchange.

    Usage::

        collector = StatisticsCollector()
        collector.start_llm()
        result = await provider.complete(...)
        collector.mark_llm_complete()
        collector.start_db()
        await log_store.write(...)
        collector.mark_db_complete()
        stats = collector.get_statistics(result, "openai")

    Attributes:
        llm_start_time (float): perf_counter value when the provider call started
        llm_end_time (float): perf_counter value when the provider call returned
        db_start_time (float): perf_counter value when the log write started
        db_end_time (float): perf_counter value when the log write finished
    """

    def __init__(self):
        self.llm_start_time = None
        self.llm_end_time = None
        self.db_start_time = None
        self.db_end_time = None

    def start_llm(self):
        self.llm_start_time = time.perf_counter()

    def mark_llm_complete(self):
        self.llm_end_time = time.perf_counter()

    def start_db(self):
        self.db_start_time = time.perf_counter()

    def mark_db_complete(self):
        self.db_end_time = time.perf_counter()

    @property
    def llm_latency_ms(self) -> int:
        if self.llm_start_time is None or self.llm_end_time is None:
            return 0
        return _elapsed_ms(self.llm_start_time, self.llm_end_time)

    @property
    def db_latency_ms(self) -> Optional[int]:
        """None unless a log write was both started and finished."""
        if self.db_start_time is None or self.db_end_time is None:
            return None
        return _elapsed_ms(self.db_start_time, self.db_end_time)

    def get_statistics(self, result: ProviderResult, provider: str) -> ChatStats:
        return compute_stats(result, provider, self.llm_latency_ms, self.db_latency_ms)
