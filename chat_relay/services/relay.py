"""Relay one chat turn from the upstream provider to a push channel.

The user turn is persisted before the upstream call is opened. Fragments are
forwarded in provider order while being accumulated, and the assistant turn
is persisted only once the upstream stream has been consumed to its end.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, TypeVar

import httpx
from starlette.concurrency import run_in_threadpool

from chat_relay.services.llm.base import BaseLLMProvider, ChatRequest, ProviderError
from chat_relay.services.sse import SSEEvent, normalize_newlines
from chat_relay.services.store import ConversationStore, title_from_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


def assistant_content_on_failure(partial: str, error: Exception) -> str | None:
    """Content to persist for an assistant turn whose stream failed.

    Partial output is discarded; return the text instead to keep it.
    """
    return None


class ChatRelay:
    """Owns one in-flight chat request."""

    def __init__(
        self,
        store: ConversationStore,
        provider: BaseLLMProvider,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ):
        self.store = store
        self.provider = provider
        self.is_disconnected = is_disconnected

    async def _persist(self, what: str, fn: Callable[..., T], *args) -> T | None:
        """Run a store write off the event loop. Failures are logged, never raised."""
        try:
            return await run_in_threadpool(fn, *args)
        except Exception:
            logger.exception(f"Failed to persist {what}")
            return None

    async def prepare(self, request: ChatRequest) -> None:
        """Upsert the conversation and save the inbound user turn, if any."""
        await self._persist(
            f"conversation {request.conversation_id}",
            self.store.upsert_conversation,
            request.conversation_id,
            request.provider,
            request.model,
            title_from_text(request.first_user_content()),
        )

        user_msg = request.last_user_message()
        if user_msg is not None:
            await self._persist(
                "user message",
                self.store.add_message,
                request.conversation_id,
                "user",
                user_msg.content,
            )

    async def stream(self, request: ChatRequest) -> AsyncIterator[SSEEvent]:
        """Yield message events per fragment, an optional error event, then end.

        Closing this generator early (client gone) stops the upstream read and
        skips assistant persistence, as does a disconnect seen once the
        upstream stream has ended. Line endings are normalized to LF so the
        relayed text and the stored text stay identical.
        """
        logger.info(
            f"Relaying turn for conversation {request.conversation_id} "
            f"via {self.provider.name}/{request.model} ({len(request.messages)} messages)"
        )
        fragments: list[str] = []
        error: Exception | None = None

        try:
            async with aclosing(self.provider.chat_stream(request)) as upstream:
                after_cr = False
                async for raw in upstream:
                    text = normalize_newlines(raw, after_cr)
                    after_cr = raw.endswith("\r")
                    if not text:
                        continue
                    fragments.append(text)
                    yield SSEEvent.message(text)
        except (ProviderError, httpx.HTTPError) as e:
            logger.warning(f"Upstream stream failed for {request.conversation_id}: {e}")
            error = e
        except Exception as e:
            logger.exception(f"Provider {self.provider.name} raised unexpectedly for {request.conversation_id}")
            error = e

        if self.is_disconnected is not None and await self.is_disconnected():
            logger.info(f"Client left conversation {request.conversation_id} before the reply was stored")
            return

        full_response = "".join(fragments)
        if error is None:
            await self._persist(
                "assistant message",
                self.store.add_message,
                request.conversation_id,
                "assistant",
                full_response,
            )
        else:
            yield SSEEvent.error(str(error) or type(error).__name__)
            content = assistant_content_on_failure(full_response, error)
            if content is not None:
                await self._persist(
                    "partial assistant message",
                    self.store.add_message,
                    request.conversation_id,
                    "assistant",
                    content,
                )

        yield SSEEvent.end()
