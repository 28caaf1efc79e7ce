"""Exceptions for the Conversation feature."""
from api.shared.exceptions import NotFoundError


class SessionNotFoundError(NotFoundError):
    """Raised when no chat session exists for a session key."""

    def __init__(self, session_key: str):
        super().__init__("Chat session", session_key)


class MessageNotFoundError(NotFoundError):
    """Raised when a pagination cursor does not name a message of the session."""

    def __init__(self, message_id: str):
        super().__init__("Chat message", message_id)
