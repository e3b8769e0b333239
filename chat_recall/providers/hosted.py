from typing import Optional

import httpx

from .base import BaseProvider, ProviderResult, build_messages
from ..core.exceptions import ConfigError

MISSING_KEY_MESSAGE = "OpenAI API key not provided and not found in environment variables"


class HostedProvider(BaseProvider):
    """OpenAI chat-completions API, authenticated with a bearer key."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        client: httpx.AsyncClient,
        timeout: Optional[httpx.Timeout] = None,
    ):
        # Fail before anything touches the network.
        if not api_key:
            raise ConfigError(MISSING_KEY_MESSAGE)
        super().__init__(model, client, timeout)
        self.base_url = base_url.rstrip("/")
        self.headers["Authorization"] = f"Bearer {api_key}"

    def _error_message(self, response: httpx.Response) -> str:
        error_message = f"OpenAI API error: {response.status_code} {response.reason_phrase}"
        try:
            error_json = response.json()
        except ValueError:
            return error_message
        if isinstance(error_json, dict):
            error = error_json.get("error")
            if isinstance(error, dict) and error.get("message"):
                return f"{error_message}: {error['message']}"
            if error_json.get("message"):
                return f"{error_message}: {error_json['message']}"
        return error_message

    async def complete(self, system_instruction: str, user_message: str) -> ProviderResult:
        request_body = {
            "model": self.model,
            "messages": build_messages(system_instruction, user_message),
        }
        response_json = await self._post_chat_completion(f"{self.base_url}/chat/completions", request_body)
        return self._to_result(response_json)
