import logging
from contextlib import aclosing

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from chat_relay.services.llm import ProviderRegistry, get_provider_registry
from chat_relay.services.llm.base import ChatRequest, UnsupportedProviderError
from chat_relay.services.relay import ChatRelay
from chat_relay.services.sse import SSE_HEADERS
from chat_relay.services.store import ConversationStore, get_conversation_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/stream")
async def chat_stream(
    chat_request: ChatRequest,
    request: Request,
    store: ConversationStore = Depends(get_conversation_store),
    providers: ProviderRegistry = Depends(get_provider_registry),
):
    try:
        provider = providers.get(chat_request.provider)
    except UnsupportedProviderError:
        raise HTTPException(status_code=400, detail="Unsupported provider")

    relay = ChatRelay(store, provider, is_disconnected=request.is_disconnected)
    await relay.prepare(chat_request)

    async def event_stream():
        async with aclosing(relay.stream(chat_request)) as events:
            async for event in events:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected from conversation {chat_request.conversation_id}")
                    return
                yield event.encode()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
