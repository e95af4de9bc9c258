"""Error taxonomy for the chat gateway.

Every error carries a caller-safe ``message`` and the HTTP status it maps to.
The API layer renders them as ``{"message": ...}``; nothing else about the
failure (upstream bodies, headers, tracebacks) reaches the caller.
"""


class ChatError(Exception):
    http_status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(ChatError):
    """Message empty or malformed; raised before any side effect."""

    http_status = 400


class NotFoundError(ChatError):
    """Conversation missing or owned by another user; both look the same to the caller."""

    http_status = 404

    def __init__(self, message: str = "Conversation not found"):
        super().__init__(message)


class AIServiceError(ChatError):
    """Upstream completion call failed.

    Attributes:
        reason: one of ``timeout``, ``network``, ``status``, ``malformed``, ``config``.
            Only timeouts and network failures are worth retrying as-is.
    """

    http_status = 500
    RETRYABLE = frozenset({"timeout", "network"})

    def __init__(self, message: str, reason: str = "status"):
        self.reason = reason
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.reason in self.RETRYABLE


class ConflictError(ChatError):
    """A concurrent turn was stored first; the caller should retry the whole turn."""

    http_status = 409

    def __init__(self, message: str = "Conversation was updated concurrently, please retry"):
        super().__init__(message)
