import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..core.exceptions import UpstreamError
from ..core.logging import logger


@dataclass(frozen=True)
class ProviderResult:
    """
    Normalised outcome of one chat-completion call.

    ``total_tokens`` is whatever the provider reported; it is not recomputed
    from the other two counts.
    """

    answer_text: str
    model_identifier: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


def _token_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(int(value), 0)


def build_messages(system_instruction: str, user_message: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system_instruction},
        {"role": "user", "content": user_message},
    ]


class BaseProvider:
    """
    Capability shared by every provider variant: one non-streamed
    chat-completion call in, one ``ProviderResult`` out.

    Subclasses set ``name`` and implement ``complete()``.
    """

    name = "base"

    def __init__(self, model: str, client: httpx.AsyncClient, timeout: Optional[httpx.Timeout] = None):
        self.model = model
        self.client = client
        self.timeout = timeout or httpx.Timeout(connect=10.0, read=60.0, write=10.0, pool=10.0)
        self.headers: Dict[str, str] = {"Content-Type": "application/json"}

    async def complete(self, system_instruction: str, user_message: str) -> ProviderResult:
        raise NotImplementedError

    def _error_message(self, response: httpx.Response) -> str:
        return f"Provider API error: {response.status_code} {response.reason_phrase}"

    async def _post_chat_completion(self, url: str, request_body: Dict[str, Any], request_id: str = "unknown") -> Dict[str, Any]:
        """POST a chat-completion body and return the decoded JSON object."""
        logger.debug_data(
            title=f"{self.name} request",
            data={"url": url, "request_body": request_body},
            request_id=request_id,
            component=f"{self.name}_provider",
            data_flow="to_provider"
        )

        try:
            response = await self.client.post(url, headers=self.headers, json=request_body, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"{self.name} request timed out: {e.__class__.__name__}",
                provider_name=self.name,
                is_timeout=True,
                original_exception=e
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(
                f"Network error communicating with {self.name}: {e}",
                provider_name=self.name,
                original_exception=e
            ) from e

        if not response.is_success:
            raise UpstreamError(
                self._error_message(response),
                provider_name=self.name,
                status_code=response.status_code
            )

        try:
            response_json = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise UpstreamError(
                f"{self.name} returned a non-JSON response",
                provider_name=self.name,
                status_code=response.status_code,
                original_exception=e
            ) from e

        if not isinstance(response_json, dict):
            raise UpstreamError(
                f"{self.name} returned an unexpected payload",
                provider_name=self.name,
                status_code=response.status_code
            )

        logger.debug_data(
            title=f"{self.name} response",
            data=response_json,
            request_id=request_id,
            component=f"{self.name}_provider",
            data_flow="from_provider"
        )
        return response_json

    def _to_result(self, response_json: Dict[str, Any]) -> ProviderResult:
        """Map an OpenAI-shaped completion body onto a ProviderResult."""
        choices = response_json.get("choices")
        content = ""
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                content = message["content"]

        usage = response_json.get("usage")
        if not isinstance(usage, dict):
            usage = {}

        return ProviderResult(
            answer_text=content,
            model_identifier=self.model,
            prompt_tokens=_token_count(usage.get("prompt_tokens")),
            completion_tokens=_token_count(usage.get("completion_tokens")),
            total_tokens=_token_count(usage.get("total_tokens")),
        )
