from typing import Optional

import httpx

from .base import BaseProvider, ProviderResult, build_messages


class LocalProvider(BaseProvider):
    """
    LM Studio (or any OpenAI wire-compatible server) on a local endpoint.
    No authentication; streaming is always disabled.
    """

    name = "lmstudio"

    def __init__(self, url: str, model: str, client: httpx.AsyncClient, timeout: Optional[httpx.Timeout] = None):
        super().__init__(model, client, timeout)
        self.url = url.rstrip("/")

    def _error_message(self, response: httpx.Response) -> str:
        return f"LM Studio API error: {response.status_code} {response.reason_phrase}"

    async def complete(self, system_instruction: str, user_message: str) -> ProviderResult:
        request_body = {
            "model": self.model,
            "messages": build_messages(system_instruction, user_message),
            "stream": False,
        }
        response_json = await self._post_chat_completion(f"{self.url}/v1/chat/completions", request_body)
        return self._to_result(response_json)
