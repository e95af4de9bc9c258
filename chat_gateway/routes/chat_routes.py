from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends

from chat_gateway.database.mongodb import get_conversations_collection
from chat_gateway.models.chat_model import ChatReply, ChatSendBody
from chat_gateway.services.chat_service import ChatService
from chat_gateway.services.conversation_store import ConversationStore
from chat_gateway.services.llm_services import LLMGateway
from chat_gateway.services.personas import PersonaRegistry
from chat_gateway.utils.jwt_handler import require_user

logger = logging.getLogger("chat_routes")

router = APIRouter(prefix="/chat", tags=["chat"])

_SERVICE: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Shared ChatService wired to Mongo and Groq; overridden in tests."""
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = ChatService(
            store=ConversationStore(get_conversations_collection()),
            gateway=LLMGateway(),
            personas=PersonaRegistry.default(),
        )
    return _SERVICE


# ---------------- Chat ----------------
# Sync handlers run in the threadpool; the upstream wait
# holds no lock.
@router.post("/send", response_model=ChatReply)
def chat_send(
    body: ChatSendBody,
    user: Dict[str, str] = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
):
    """Send one user message and get the assistant reply."""
    logger.info(f"Chat send from user {user['user_id']} "
                f"(conversation={body.conversation_id}, use_case={body.use_case})")
    return service.send(
        user_id=user["user_id"],
        message=body.message,
        conversation_id=body.conversation_id,
        use_case=body.use_case,
    )


# -- Conversations List ---- newest activity first --#
@router.get("/conversations")
def list_conversations(
    user: Dict[str, str] = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
):
    return [c.to_public() for c in service.list_conversations(user["user_id"])]


# -- One Conversation ---- full message list, owner only --#
@router.get("/conversation/{conversation_id}")
def get_conversation(
    conversation_id: str,
    user: Dict[str, str] = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
):
    return service.get_conversation(user["user_id"], conversation_id).to_public()
