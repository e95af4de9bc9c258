import os
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger("chat_client")

# Your backend URL (update if needed)
BASE_URL = os.getenv("CHAT_API_URL", "http://127.0.0.1:8000")
# Longer than the server's upstream deadline so the server reports timeouts first
REQUEST_TIMEOUT = 60


class ChatClientError(Exception):
    """A chat API call failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# -----------------------------
# APIResponse wrapper
# -----------------------------
class APIResponse:
    def __init__(self, response: Optional[requests.Response] = None, error: Optional[Exception] = None):
        self._resp = response
        self.error = error

    @property
    def ok(self) -> bool:
        return self._resp is not None and getattr(self._resp, "ok", False)

    @property
    def status_code(self) -> Optional[int]:
        return self._resp.status_code if self._resp is not None else None

    def json(self):
        if self._resp is None:
            return None
        try:
            return self._resp.json()
        except ValueError:
            return None

    def error_message(self, fallback: str) -> str:
        data = self.json()
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        if self.error is not None:
            return f"{fallback}: {self.error}"
        return fallback


class ChatAPI:
    """Thin client for the ``/chat`` endpoints."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    # -----------------------------
    # Helpers
    # -----------------------------
    def _headers(self) -> Dict[str, str]:
        hdrs = {"Accept": "application/json"}
        if self.token:
            hdrs["Authorization"] = f"Bearer {self.token}"
        return hdrs

    def _absolute(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> APIResponse:
        try:
            response = self.session.request(
                method, self._absolute(path), json=json, headers=self._headers(), timeout=self.timeout
            )
            return APIResponse(response)
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            return APIResponse(error=e)

    def _checked(self, resp: APIResponse, fallback: str):
        if not resp.ok:
            raise ChatClientError(resp.error_message(fallback), resp.status_code)
        return resp.json()

    # -----------------------------
    # Endpoints
    # -----------------------------
    def send_message(self, message: str, conversation_id: Optional[str] = None,
                     use_case: Optional[str] = None) -> Dict[str, Any]:
        """POST /chat/send -> {"message", "conversationId"}"""
        body: Dict[str, Any] = {"message": message, "useCase": use_case}
        if conversation_id:
            body["conversationId"] = conversation_id
        data = self._checked(self._request("POST", "/chat/send", json=body), "Failed to send message")
        if not isinstance(data, dict) or "message" not in data or "conversationId" not in data:
            raise ChatClientError("Unexpected response from chat service")
        return data

    def list_conversations(self) -> List[Dict[str, Any]]:
        data = self._checked(self._request("GET", "/chat/conversations"), "Failed to fetch conversations")
        return data or []

    def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        return self._checked(
            self._request("GET", f"/chat/conversation/{conversation_id}"), "Failed to fetch conversation"
        )
