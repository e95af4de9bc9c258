# chat_gateway/database/mongodb.py
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from chat_gateway.config import MONGO_URI, MONGO_DB

# Single shared client, created on first use
_CLIENT: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = MongoClient(MONGO_URI, tz_aware=True)
    return _CLIENT


def get_db() -> Database:
    """Return the shared database object."""
    return get_client()[MONGO_DB]


def get_conversations_collection() -> Collection:
    return get_db()["conversations"]
