"""DTOs for the Conversation feature."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from api.features.conversation.entities import MessageRole
from api.shared.dtos import BaseDTO


class SendMessageRequest(BaseDTO):
    """Request to send a user message and receive the assistant reply."""

    id: Optional[str] = Field(default=None, description="Client-generated message id")
    client_id: str = Field(description="Client identifier")
    session_id: str = Field(min_length=1, max_length=255, description="Session key")
    role: str = Field(default=MessageRole.USER.value, description="Message role")
    content: str = Field(min_length=1, description="Message text")
    timestamp: Optional[datetime] = Field(default=None, description="Client timestamp")


class SendMessageResponse(BaseDTO):
    content: str = Field(description="Assistant reply text")
    user_message_id: str = Field(description="Persisted user message id")
    ai_message_id: str = Field(description="Persisted assistant message id")
    updated_at: datetime = Field(description="Session last update after this turn")


class MessageDTO(BaseDTO):
    """Chat message DTO."""

    id: str = Field(description="Message identifier")
    session_id: str = Field(description="Session key")
    role: MessageRole = Field(description="Message author")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(description="Message timestamp")


class SessionDTO(BaseDTO):
    """Chat session DTO with its most recent messages."""

    id: str = Field(description="Session identifier")
    title: str = Field(description="Session title")
    client_id: str = Field(description="Owning client identifier")
    session_id: str = Field(description="Session key")
    created_at: datetime
    updated_at: datetime
    is_active: bool = True
    messages: List[MessageDTO] = Field(default_factory=list)


class SessionListResponse(BaseDTO):
    sessions: List[SessionDTO] = Field(default_factory=list)
    total: int = Field(default=0)


class PaginatedMessagesResponse(BaseDTO):
    """One page of messages, oldest first."""

    messages: List[MessageDTO] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(default=None, description="Cursor for older messages")
    has_next_page: bool = Field(default=False)


class CreateSessionRequest(BaseDTO):
    client_id: str = Field(description="Client identifier")
    session_id: str = Field(min_length=1, max_length=255, description="Session key")
    title: str = Field(min_length=1, max_length=255, description="Session title")


class UpdateSessionTitleRequest(BaseDTO):
    title: str = Field(min_length=1, max_length=255, description="New title")


class UpdateSessionActivityRequest(BaseDTO):
    is_active: bool = Field(description="Active flag")


class DeleteSessionResponse(BaseDTO):
    success: bool
    session_id: str


class SessionCountResponse(BaseDTO):
    count: int = Field(ge=0)


class ClearSessionsResponse(BaseDTO):
    success: bool
    deleted_count: int = Field(ge=0)
