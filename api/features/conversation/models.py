"""Models for the Conversation feature."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.features.conversation.entities import ChatMessage, ChatSession, MessageRole
from api.shared.utils import as_utc


class ChatMessageModel(BaseModel):
    """Domain model for a chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Message identifier")
    session_id: str = Field(description="Owning session key")
    role: MessageRole = Field(description="Message author")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(description="Message timestamp (UTC)")

    @classmethod
    def from_entity(cls, entity: ChatMessage) -> "ChatMessageModel":
        """Create model from database entity."""
        return cls(
            id=str(entity.id),
            session_id=entity.session_id,
            role=MessageRole(entity.role),
            content=entity.content,
            timestamp=as_utc(entity.timestamp),
        )


class ChatSessionModel(BaseModel):
    """Domain model for a chat session, optionally carrying recent messages."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Session identifier")
    title: str = Field(description="Display title")
    client_id: str = Field(description="Owning client identifier")
    session_id: str = Field(description="Session key")
    created_at: datetime = Field(description="Creation timestamp (UTC)")
    updated_at: datetime = Field(description="Last update timestamp (UTC)")
    is_active: bool = Field(default=True, description="Active flag")
    messages: List[ChatMessageModel] = Field(
        default_factory=list, description="Messages in chronological order"
    )

    @classmethod
    def from_entity(
        cls,
        entity: ChatSession,
        messages: Optional[List[ChatMessageModel]] = None,
    ) -> "ChatSessionModel":
        """Create model from database entity."""
        return cls(
            id=str(entity.id),
            title=entity.title,
            client_id=str(entity.client_id),
            session_id=entity.session_id,
            created_at=as_utc(entity.created_at),
            updated_at=as_utc(entity.updated_at),
            is_active=entity.is_active,
            messages=messages or [],
        )


class SendMessageResult(BaseModel):
    """Outcome of one conversation turn."""

    content: str = Field(description="Assistant reply text")
    user_message_id: str = Field(description="Persisted user message id")
    ai_message_id: str = Field(description="Persisted assistant message id")
    updated_at: datetime = Field(description="Session updated_at after the turn")


class MessagePage(BaseModel):
    """One page of messages, oldest first."""

    messages: List[ChatMessageModel] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(
        default=None, description="Cursor for the next (older) page"
    )
    has_next_page: bool = Field(default=False)


class DeleteSessionResult(BaseModel):
    success: bool
    session_id: str
