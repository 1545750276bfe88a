"""Tests for the OpenAI-compatible streaming provider."""

import asyncio

import httpx
import pytest

from chat_relay.services.llm.base import ChatRequest, UpstreamError
from chat_relay.services.llm.openai import OpenAIProvider


def _request(**overrides) -> ChatRequest:
    data = {
        "provider": "openai",
        "model": "gpt-4",
        "conversationId": "c1",
        "messages": [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "look", "images": ["data:image/png;base64,AAAA"]},
        ],
    }
    data.update(overrides)
    return ChatRequest.model_validate(data)


def _drain(provider, request) -> list[str]:
    async def run():
        return [text async for text in provider.chat_stream(request)]

    return asyncio.run(run())


def test_streams_fragments(openai_provider, upstream):
    upstream.stream("Hel", "lo")
    assert _drain(openai_provider, _request()) == ["Hel", "lo"]


def test_outbound_request_shape(openai_provider, upstream):
    upstream.stream("x")
    _drain(openai_provider, _request())

    sent = upstream.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "https://upstream.test/v1/chat/completions"
    assert sent.headers["Authorization"] == "Bearer test-key"
    assert sent.headers["Content-Type"] == "application/json"
    assert upstream.request_json() == {
        "model": "gpt-4",
        "messages": [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "look"},
        ],
        "stream": True,
    }


def test_trailing_slash_in_base_url(upstream):
    provider = OpenAIProvider(
        api_key="k",
        base_url="https://upstream.test/v1/",
        transport=httpx.MockTransport(upstream.handler),
    )
    upstream.stream("x")
    _drain(provider, _request())
    assert str(upstream.requests[0].url) == "https://upstream.test/v1/chat/completions"


def test_non_200_raises_upstream_error(openai_provider, upstream):
    upstream.status_code = 401

    with pytest.raises(UpstreamError) as exc_info:
        _drain(openai_provider, _request())

    assert exc_info.value.status_code == 401
    assert str(exc_info.value).startswith("openai api error: 401 Unauthorized")
    assert "invalid api key" in str(exc_info.value)


def test_mid_stream_read_error_becomes_upstream_error(openai_provider, upstream):
    upstream.stream("a", "b", "c")
    upstream.fail_after = 2

    seen = []

    async def run():
        async for text in openai_provider.chat_stream(_request()):
            seen.append(text)

    with pytest.raises(UpstreamError, match="connection reset"):
        asyncio.run(run())
    assert seen == ["a", "b"]


def test_connect_error_becomes_upstream_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = OpenAIProvider(api_key="k", transport=httpx.MockTransport(refuse))
    with pytest.raises(UpstreamError, match="connection refused"):
        _drain(provider, _request())
