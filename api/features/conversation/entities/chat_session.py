"""Chat session entity."""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity
from api.shared.utils import utc_now

DEFAULT_SESSION_TITLE = "New Career Chat"


class ChatSession(BaseEntity):
    """A conversation owned by one client, addressed externally by its session key."""

    __tablename__ = "chat_sessions"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False)
    # Stable external handle, distinct from the primary key
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_chat_sessions_client_id", "client_id"),
        Index("ix_chat_sessions_session_id", "session_id", unique=True),
        Index("ix_chat_sessions_updated_at", "updated_at"),
    )

    def has_default_title(self) -> bool:
        """Check if the session still carries the placeholder title."""
        return self.title == DEFAULT_SESSION_TITLE
