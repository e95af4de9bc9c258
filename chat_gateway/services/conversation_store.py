import logging
from datetime import datetime, timezone
from typing import List, Sequence

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from chat_gateway.models.chat_model import Conversation, Message, UseCase, utcnow
from chat_gateway.models.exceptions import ConflictError, NotFoundError

logger = logging.getLogger("conversation_store")


# ---------------- Indexes mongo db optimized index for list queries ----------------
def ensure_indexes(conversations: Collection):
    conversations.create_index([("user_id", ASCENDING), ("updated_at", DESCENDING)])


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _message_doc(message: Message) -> dict:
    return {"role": message.role.value, "content": message.content, "timestamp": message.timestamp}


def _to_conversation(doc: dict) -> Conversation:
    return Conversation(
        id=str(doc["_id"]),
        user_id=str(doc["user_id"]),
        use_case=UseCase.parse(doc.get("use_case")),
        messages=[
            Message(role=m["role"], content=m["content"], timestamp=_as_utc(m["timestamp"]))
            for m in doc.get("messages", [])
        ],
        created_at=_as_utc(doc["created_at"]),
        updated_at=_as_utc(doc["updated_at"]),
        version=int(doc.get("version", 1)),
    )


class ConversationStore:
    """Conversation documents in MongoDB, one document per conversation.

    Messages live in an embedded array that only ever grows through
    ``append_and_persist``. Each write is a single-document operation guarded
    by the ``version`` read earlier, so concurrent turns on the same
    conversation cannot overwrite each other: the loser gets ``ConflictError``.
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    # -------- lookups --------
    def find_owned(self, conversation_id: str, user_id: str) -> Conversation:
        if not conversation_id or not ObjectId.is_valid(conversation_id):
            raise NotFoundError()
        doc = self.collection.find_one({"_id": ObjectId(conversation_id), "user_id": str(user_id)})
        if not doc:
            logger.info(f"Conversation {conversation_id} not found for user {user_id}")
            raise NotFoundError()
        return _to_conversation(doc)

    def list_for_user(self, user_id: str) -> List[Conversation]:
        cur = self.collection.find({"user_id": str(user_id)}).sort(
            [("updated_at", DESCENDING), ("_id", DESCENDING)]
        )
        return [_to_conversation(doc) for doc in cur]

    # -------- writes --------
    def create(self, user_id: str, use_case: UseCase = UseCase.DEFAULT) -> Conversation:
        """Build a new, empty conversation.

        Nothing is written here: the document is inserted together with its
        first turn, so a failed first turn leaves no empty conversation behind.
        """
        now = utcnow()
        return Conversation(
            id=str(ObjectId()),
            user_id=str(user_id),
            use_case=UseCase.parse(use_case),
            messages=[],
            created_at=now,
            updated_at=now,
            version=0,
        )

    def append_and_persist(self, conversation: Conversation, new_messages: Sequence[Message]) -> Conversation:
        """Append ``new_messages`` to the stored conversation in one write.

        ``conversation`` is the record as it was read (or created); its
        ``version`` is the precondition for the write.
        """
        if not new_messages:
            return conversation

        now = utcnow()
        docs = [_message_doc(m) for m in new_messages]
        oid = ObjectId(conversation.id)

        try:
            if conversation.version == 0:
                self.collection.insert_one({
                    "_id": oid,
                    "user_id": conversation.user_id,
                    "use_case": conversation.use_case.value,
                    "messages": docs,
                    "created_at": conversation.created_at,
                    "updated_at": now,
                    "version": 1,
                })
                logger.info(f"Created conversation {conversation.id} ({conversation.use_case.value}) "
                            f"for user {conversation.user_id}")
            else:
                res = self.collection.update_one(
                    {"_id": oid, "user_id": conversation.user_id, "version": conversation.version},
                    {
                        "$push": {"messages": {"$each": docs}},
                        "$set": {"updated_at": now},
                        "$inc": {"version": 1},
                    },
                )
                if res.matched_count == 0:
                    logger.warning(f"Version conflict on conversation {conversation.id} "
                                   f"(expected version {conversation.version})")
                    raise ConflictError()
        except DuplicateKeyError as e:
            logger.warning(f"Conversation {conversation.id} was inserted concurrently: {e}")
            raise ConflictError() from e
        except PyMongoError as e:
            logger.error(f"Failed to persist conversation {conversation.id}: {e}")
            raise

        return conversation.model_copy(update={
            "messages": [*conversation.messages, *new_messages],
            "updated_at": now,
            "version": conversation.version + 1,
        })
