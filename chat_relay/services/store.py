"""Conversation persistence: message inserts and conversation upserts."""

import logging
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from chat_relay.core import database
from chat_relay.models.conversation import ChatMessage, Conversation

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Chat"
TITLE_LENGTH = 50


def new_id() -> str:
    return uuid.uuid4().hex


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def title_from_text(text: str | None) -> str:
    """First 50 characters of the opening user message, '...' when truncated."""
    if not text:
        return DEFAULT_TITLE
    title = text[:TITLE_LENGTH]
    return f"{title}..." if len(title) < len(text) else title


class ConversationStore:
    """Thin adapter over the relational store. One session per operation."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def add_message(self, conversation_id: str, role: str, content: str) -> ChatMessage:
        with Session(self.engine) as session:
            msg = ChatMessage(
                id=new_id(),
                conversation_id=conversation_id,
                role=role,
                content=content,
                timestamp=now_millis(),
            )
            session.add(msg)
            session.commit()
            session.refresh(msg)
            return msg

    def upsert_conversation(
        self,
        conversation_id: str,
        provider: str,
        model: str,
        title: str | None = None,
    ) -> Conversation:
        now = datetime.now(timezone.utc)
        with Session(self.engine) as session:
            conv = session.get(Conversation, conversation_id)
            if conv is None:
                conv = Conversation(
                    id=conversation_id,
                    title=title or DEFAULT_TITLE,
                    provider=provider,
                    model=model,
                    created_at=now,
                    updated_at=now,
                )
                logger.debug(f"Creating conversation {conversation_id}")
            else:
                conv.model = model
                conv.updated_at = now
            session.add(conv)
            session.commit()
            session.refresh(conv)
            return conv

    def get_conversation(self, conversation_id: str, include_deleted: bool = False) -> Conversation | None:
        with Session(self.engine) as session:
            conv = session.get(Conversation, conversation_id)
            if conv is None or (conv.deleted_at is not None and not include_deleted):
                return None
            return conv

    def list_conversations(self) -> list[Conversation]:
        with Session(self.engine) as session:
            return list(session.exec(
                select(Conversation)
                .where(Conversation.deleted_at == None)  # noqa: E711
                .order_by(Conversation.updated_at.desc())  # type: ignore
            ).all())

    def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        with Session(self.engine) as session:
            return list(session.exec(
                select(ChatMessage)
                .where(ChatMessage.conversation_id == conversation_id)
                .order_by(ChatMessage.timestamp, ChatMessage.created_at)  # type: ignore
            ).all())

    def soft_delete(self, conversation_id: str) -> bool:
        with Session(self.engine) as session:
            conv = session.get(Conversation, conversation_id)
            if conv is None or conv.deleted_at is not None:
                return False
            conv.deleted_at = datetime.now(timezone.utc)
            session.add(conv)
            session.commit()
            logger.debug(f"Soft-deleted conversation {conversation_id}")
            return True


def get_conversation_store() -> ConversationStore:
    """FastAPI dependency bound to the application engine."""
    return ConversationStore(database.engine)
