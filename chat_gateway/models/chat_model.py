# models/chat_model.py
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UseCase(str, Enum):
    """Closed set of personas a conversation can be pinned to."""

    DEFAULT = "Default"
    HEALTHCARE = "Healthcare"
    BANKING = "Banking"
    EDUCATION = "Education"
    ECOMMERCE = "E-commerce"
    LEAD_GENERATION = "Lead Generation"

    @classmethod
    def parse(cls, value: Optional[str]) -> "UseCase":
        """Map a raw tag to a member; anything unknown falls back to DEFAULT."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.DEFAULT


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Conversation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str = Field(frozen=True)
    use_case: UseCase = Field(default=UseCase.DEFAULT, frozen=True)
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    # 0 means "not stored yet"; bumped by every successful append
    version: int = 0

    def history(self, pending: Optional[List[Message]] = None) -> List[Dict[str, str]]:
        """Ordered {role, content} pairs, optionally followed by unsaved messages."""
        items = list(self.messages) + list(pending or [])
        return [{"role": m.role.value, "content": m.content} for m in items]

    def to_public(self) -> dict:
        """JSON shape returned to API callers."""
        return self.model_dump(by_alias=True, mode="json", exclude={"version"})


# ---------------- API bodies ----------------
class ChatSendBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: Optional[str] = None
    conversation_id: Optional[str] = None
    use_case: Optional[str] = None


class ChatReply(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    conversation_id: str
