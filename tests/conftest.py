"""Shared fixtures: in-memory Mongo, a stubbed LLM gateway and an API client."""
from unittest.mock import Mock

import mongomock
import pytest
from fastapi.testclient import TestClient

from chat_gateway.main import app
from chat_gateway.routes.chat_routes import get_chat_service
from chat_gateway.services.chat_service import ChatService
from chat_gateway.services.conversation_store import ConversationStore
from chat_gateway.services.llm_services import LLMGateway
from chat_gateway.services.personas import PersonaRegistry
from chat_gateway.utils.jwt_handler import require_user


@pytest.fixture
def collection():
    """Fresh in-memory conversations collection per test."""
    return mongomock.MongoClient().db.conversations


@pytest.fixture
def store(collection):
    return ConversationStore(collection)


@pytest.fixture
def gateway():
    gw = Mock(spec=LLMGateway)
    gw.complete.return_value = "Assistant reply"
    return gw


@pytest.fixture
def personas():
    return PersonaRegistry.default()


@pytest.fixture
def service(store, gateway, personas):
    return ChatService(store=store, gateway=gateway, personas=personas)


@pytest.fixture
def current_user():
    """Mutable identity returned by the auth dependency."""
    return {"user_id": "user-a", "username": "alice"}


@pytest.fixture
def client(service, current_user):
    """TestClient with the service and auth dependencies overridden."""
    app.dependency_overrides[get_chat_service] = lambda: service
    app.dependency_overrides[require_user] = lambda: dict(current_user)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
