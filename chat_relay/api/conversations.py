"""REST API for reading and deleting persisted conversation history."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from chat_relay.services.store import ConversationStore, get_conversation_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def list_conversations(store: ConversationStore = Depends(get_conversation_store)):
    return [c.to_dict() for c in store.list_conversations()]


@router.get("/{conversation_id}")
async def get_conversation(conversation_id: str, store: ConversationStore = Depends(get_conversation_store)):
    conv = store.get_conversation(conversation_id)
    if not conv:
        logger.debug(f"Conversation {conversation_id} not found")
        raise HTTPException(status_code=404, detail="Conversation not found")

    data = conv.to_dict()
    data["messages"] = [m.to_dict() for m in store.list_messages(conversation_id)]
    return data


@router.delete("/{conversation_id}")
async def delete_conversation(conversation_id: str, store: ConversationStore = Depends(get_conversation_store)):
    if not store.soft_delete(conversation_id):
        logger.debug(f"Delete: conversation {conversation_id} not found")
        raise HTTPException(status_code=404, detail="Conversation not found")

    return {"status": "deleted"}
