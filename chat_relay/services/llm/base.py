"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from pydantic import BaseModel, Field


class Message(BaseModel):
    role: str  # "user" | "assistant" | "system"
    content: str
    images: list[str] | None = None  # base64 data URIs, accepted but not forwarded


class ChatRequest(BaseModel):
    provider: str
    model: str
    conversation_id: str = Field(alias="conversationId", min_length=1)
    messages: list[Message]

    model_config = {"populate_by_name": True}

    def last_user_message(self) -> Message | None:
        """The new turn, if the final message was written by the user."""
        if self.messages and self.messages[-1].role == "user":
            return self.messages[-1]
        return None

    def first_user_content(self) -> str | None:
        for msg in self.messages:
            if msg.role == "user":
                return msg.content
        return None


class ProviderError(Exception):
    """Raised when an upstream provider cannot produce a completion."""


class UpstreamError(ProviderError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UnsupportedProviderError(ValueError):
    pass


class BaseLLMProvider(ABC):
    name: str

    @abstractmethod
    def chat_stream(self, request: ChatRequest) -> AsyncIterator[str]:
        """Stream a chat completion fragment by fragment.

        Closing the returned iterator early must release the upstream connection.
        """
        ...
