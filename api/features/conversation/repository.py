"""Repositories for chat session and message persistence."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import and_, or_, select

from api.features.conversation.entities import ChatMessage, ChatSession
from api.shared.base import BaseRepository


class ChatSessionRepository(BaseRepository[ChatSession]):
    """Persistence operations for chat sessions."""

    model = ChatSession

    async def get_by_key(self, session_key: str) -> Optional[ChatSession]:
        stmt = select(ChatSession).where(ChatSession.session_id == session_key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_client(self, client_id: str) -> List[ChatSession]:
        """Sessions owned by a client, most recently updated first."""
        stmt = (
            select(ChatSession)
            .where(ChatSession.client_id == client_id)
            .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ChatMessageRepository(BaseRepository[ChatMessage]):
    """Persistence operations for chat messages.

    Message order is (timestamp, id); every query here is newest-first and
    callers reverse to chronological order.
    """

    model = ChatMessage

    async def fetch_recent(
        self, chat_session_id: str, limit: int
    ) -> List[ChatMessage]:
        return await self.fetch_page(chat_session_id, limit=limit)

    async def fetch_page(
        self,
        chat_session_id: str,
        *,
        limit: int,
        before: Optional[ChatMessage] = None,
    ) -> List[ChatMessage]:
        """Fetch up to `limit` messages newest-first, optionally older than `before`."""
        stmt = select(ChatMessage).where(
            ChatMessage.chat_session_id == chat_session_id
        )
        if before is not None:
            stmt = stmt.where(
                or_(
                    ChatMessage.timestamp < before.timestamp,
                    and_(
                        ChatMessage.timestamp == before.timestamp,
                        ChatMessage.id < before.id,
                    ),
                )
            )
        stmt = stmt.order_by(
            ChatMessage.timestamp.desc(), ChatMessage.id.desc()
        ).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_for_sessions(self, chat_session_ids: List[str]) -> int:
        if not chat_session_ids:
            return 0
        return await self.delete_by_field("chat_session_id", chat_session_ids)
