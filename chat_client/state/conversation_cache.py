"""Client-side state for one chat session.

One ``ClientConversationCache`` per UI session (browser tab, test, ...). It
holds the active conversation, its visible messages and the selected use
case, and reconciles optimistic user messages with the server's answer.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from chat_client.services.api import ChatAPI, ChatClientError

logger = logging.getLogger("chat_client")

DEFAULT_USE_CASE = "Default"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return _now()


@dataclass(frozen=True)
class CorrelationToken:
    """Local handle for an optimistic message; never sent to the server."""

    value: str

    @classmethod
    def new(cls) -> "CorrelationToken":
        return cls(uuid.uuid4().hex)


@dataclass(frozen=True)
class ClientMessage:
    role: str
    content: str
    timestamp: datetime
    token: Optional[CorrelationToken] = None

    @property
    def optimistic(self) -> bool:
        return self.token is not None


class SendInProgressError(ChatClientError):
    def __init__(self):
        super().__init__("A message is already being sent")


class ClientConversationCache:
    """
    Optimistic chat state with rollback.

    Only one send may be in flight at a time; a second ``send_message`` while
    one is pending raises ``SendInProgressError``. Switching use case, opening
    another conversation or clearing bumps an internal generation counter, and
    any reply that arrives for an older generation is dropped.
    """

    def __init__(self, api: ChatAPI, use_case: str = DEFAULT_USE_CASE):
        self._api = api
        self._lock = threading.Lock()
        self._use_case = use_case or DEFAULT_USE_CASE
        self._conversation_id: Optional[str] = None
        self._messages: List[ClientMessage] = []
        self._conversations: List[Dict[str, Any]] = []
        self._error: Optional[str] = None
        self._generation = 0
        self._pending_generation: Optional[int] = None

    # -----------------------------
    # Read-only views
    # -----------------------------
    @property
    def messages(self) -> Tuple[ClientMessage, ...]:
        with self._lock:
            return tuple(self._messages)

    @property
    def conversations(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._conversations)

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    @property
    def use_case(self) -> str:
        return self._use_case

    @property
    def loading(self) -> bool:
        return self._pending_generation is not None

    @property
    def error(self) -> Optional[str]:
        return self._error

    # -----------------------------
    # Sending
    # -----------------------------
    def send_message(self, text: str) -> Optional[ClientMessage]:
        """Send ``text`` and return the assistant reply.

        Returns None when the reply arrived after the active conversation
        changed and was therefore discarded. On failure the optimistic
        message is removed, ``error`` is set and the exception is re-raised.
        """
        if not isinstance(text, str) or not text.strip():
            raise ChatClientError("Message content is required", 400)

        token = CorrelationToken.new()
        with self._lock:
            if self._pending_generation is not None:
                raise SendInProgressError()
            generation = self._generation
            conversation_id = self._conversation_id
            use_case = self._use_case
            optimistic = ClientMessage(role="user", content=text, timestamp=_now(), token=token)
            self._messages.append(optimistic)
            self._pending_generation = generation
            self._error = None

        try:
            data = self._api.send_message(text, conversation_id=conversation_id, use_case=use_case)
        except Exception as exc:
            with self._lock:
                if self._generation == generation:
                    self._messages = [m for m in self._messages if m.token != token]
                    self._error = getattr(exc, "message", None) or "Failed to send message"
                    self._pending_generation = None
            raise

        adopted = False
        with self._lock:
            if self._generation != generation:
                logger.info("Discarding chat reply for a conversation that is no longer active")
                return None
            confirmed = replace(optimistic, token=None)
            self._messages = [confirmed if m.token == token else m for m in self._messages]
            reply = ClientMessage(role="assistant", content=str(data["message"]), timestamp=_now())
            self._messages.append(reply)
            if self._conversation_id is None:
                self._conversation_id = str(data["conversationId"])
                adopted = True
            self._pending_generation = None

        if adopted:
            self.load_conversations()
        return reply

    # -----------------------------
    # Conversation switching
    # -----------------------------
    def _reset(self, conversation_id: Optional[str] = None, messages: Optional[List[ClientMessage]] = None):
        # caller holds the lock
        self._generation += 1
        self._pending_generation = None
        self._conversation_id = conversation_id
        self._messages = list(messages or [])

    def change_use_case(self, use_case: str):
        """Select a persona; the next send starts a fresh conversation."""
        with self._lock:
            self._use_case = use_case or DEFAULT_USE_CASE
            self._reset()

    def clear_conversation(self):
        with self._lock:
            self._reset()

    def clear_error(self):
        self._error = None

    def load_conversations(self) -> List[Dict[str, Any]]:
        """Refresh the conversation list; failures are recorded in ``error``."""
        try:
            items = self._api.list_conversations()
        except ChatClientError as exc:
            logger.warning(f"Could not refresh conversations: {exc.message}")
            self._error = exc.message
            return self.conversations
        with self._lock:
            self._conversations = list(items)
            return list(self._conversations)

    def open_conversation(self, conversation_id: str) -> Tuple[ClientMessage, ...]:
        """Load a stored conversation and make it the active one."""
        with self._lock:
            generation = self._generation
        try:
            record = self._api.get_conversation(conversation_id)
        except ChatClientError as exc:
            self._error = exc.message
            raise

        messages = [
            ClientMessage(role=m["role"], content=m["content"], timestamp=_parse_ts(m.get("timestamp")))
            for m in record.get("messages", [])
        ]
        with self._lock:
            if self._generation != generation:
                logger.info(f"Discarding load of conversation {conversation_id}: active state changed")
                return tuple(self._messages)
            self._use_case = record.get("useCase") or DEFAULT_USE_CASE
            self._reset(str(record.get("id") or conversation_id), messages)
            return tuple(self._messages)
