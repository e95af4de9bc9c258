import logging
from typing import List, Optional

from chat_gateway.models.chat_model import ChatReply, Conversation, Message, Role, UseCase
from chat_gateway.models.exceptions import InvalidInputError
from chat_gateway.services.conversation_store import ConversationStore
from chat_gateway.services.llm_services import LLMGateway
from chat_gateway.services.personas import PersonaRegistry

logger = logging.getLogger("chat_service")


class ChatService:
    """Runs one chat turn: validate, resolve, ask the model, store the pair.

    Holds no per-request state. The store is written only after the model has
    answered, and then with the user and assistant messages together, so a
    failed upstream call never leaves a user message without its reply.
    """

    def __init__(self, store: ConversationStore, gateway: LLMGateway, personas: PersonaRegistry):
        self.store = store
        self.gateway = gateway
        self.personas = personas

    def send(
        self,
        user_id: str,
        message: Optional[str],
        conversation_id: Optional[str] = None,
        use_case: Optional[str] = None,
    ) -> ChatReply:
        # 1. validate
        if not isinstance(message, str) or not message.strip():
            raise InvalidInputError("Message content is required")

        # 2. resolve conversation
        if conversation_id:
            conversation = self.store.find_owned(conversation_id, user_id)
        else:
            conversation = self.store.create(user_id, UseCase.parse(use_case))
            logger.info(f"New {conversation.use_case.value} conversation {conversation.id} for user {user_id}")

        # 3. user turn, in memory only
        turn: List[Message] = [Message(role=Role.USER, content=message)]

        # 4./5. full history + scoped persona; AIServiceError propagates untouched
        answer = self.gateway.complete(
            conversation.history(turn),
            self.personas.prompt_for(conversation.use_case),
        )

        # 6./7. assistant turn, then one conditional write for the pair
        turn.append(Message(role=Role.ASSISTANT, content=answer))
        saved = self.store.append_and_persist(conversation, turn)

        return ChatReply(message=answer, conversation_id=saved.id)

    def list_conversations(self, user_id: str) -> List[Conversation]:
        return self.store.list_for_user(user_id)

    def get_conversation(self, user_id: str, conversation_id: str) -> Conversation:
        return self.store.find_owned(conversation_id, user_id)
