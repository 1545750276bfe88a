"""OpenAI-compatible chat completions provider (streaming only)."""

import logging
from typing import AsyncIterator

import httpx

from chat_relay.services.llm.base import BaseLLMProvider, ChatRequest, UpstreamError
from chat_relay.services.llm.stream import iter_stream_deltas

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 200


class OpenAIProvider(BaseLLMProvider):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else httpx.Timeout(300.0, connect=10.0)
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: ChatRequest) -> dict:
        return {
            "model": request.model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "stream": True,
        }

    async def chat_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        url = f"{self.base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream(
                    "POST",
                    url,
                    headers=self._headers(),
                    json=self.build_payload(request),
                ) as response:
                    if response.status_code != 200:
                        body = (await response.aread()).decode("utf-8", errors="replace").strip()
                        message = f"openai api error: {response.status_code} {response.reason_phrase}"
                        if body:
                            message += f": {body[:_ERROR_BODY_LIMIT]}"
                        logger.warning(message)
                        raise UpstreamError(message, status_code=response.status_code)

                    async for text in iter_stream_deltas(response.aiter_lines()):
                        yield text
        except httpx.HTTPError as e:
            logger.warning(f"Upstream request to {url} failed: {e!r}")
            raise UpstreamError(str(e) or type(e).__name__) from e
