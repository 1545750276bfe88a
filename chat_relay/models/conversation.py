"""Conversation and message models for chat history persistence."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(value: datetime) -> int:
    # SQLite hands datetimes back naive; they were written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class Conversation(SQLModel, table=True):
    id: str = Field(primary_key=True)  # generated by the client
    title: str = Field(default="New Chat")
    provider: str = ""
    model: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    messages: list["ChatMessage"] = Relationship(back_populates="conversation")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "provider": self.provider,
            "model": self.model,
            "createdAt": to_millis(self.created_at),
            "updatedAt": to_millis(self.updated_at),
        }


class ChatMessage(SQLModel, table=True):
    id: str = Field(primary_key=True)
    conversation_id: str = Field(foreign_key="conversation.id", index=True)
    role: str  # "user" | "assistant"
    content: str
    timestamp: int = Field(sa_column=Column(BigInteger, nullable=False))  # epoch ms
    created_at: datetime = Field(default_factory=utcnow)  # tiebreak within one ms

    conversation: Optional[Conversation] = Relationship(back_populates="messages")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
