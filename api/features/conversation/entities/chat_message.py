"""Chat message entity."""
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity
from api.shared.utils import utc_now


class MessageRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseEntity):
    """A single immutable turn within a chat session."""

    __tablename__ = "chat_messages"

    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    chat_session_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[MessageRole] = mapped_column(
        SQLEnum(
            MessageRole,
            name="chat_role",
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_chat_messages_session_id", "session_id"),
        Index("ix_chat_messages_chat_session_id", "chat_session_id"),
        Index("ix_chat_messages_timestamp", "timestamp"),
    )
