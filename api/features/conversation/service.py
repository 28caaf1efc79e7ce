"""Service layer for the Conversation feature.

Coordinates the session/message store and the response generator. Writes for
one turn are sequential and best-effort: the user message is committed before
generation, the assistant message and session bump afterwards.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, NoReturn, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.entities import ChatMessage, ChatSession, MessageRole
from api.features.conversation.exceptions import (
    MessageNotFoundError,
    SessionNotFoundError,
)
from api.features.conversation.models import (
    ChatMessageModel,
    ChatSessionModel,
    DeleteSessionResult,
    MessagePage,
    SendMessageResult,
)
from api.features.conversation.repository import (
    ChatMessageRepository,
    ChatSessionRepository,
)
from api.features.conversation.titles import generate_session_title
from api.shared.base import ids_of
from api.shared.exceptions import ConflictError, DatabaseError, ValidationError
from api.shared.utils import as_utc, is_valid_uuid, utc_now
from counselor.context import HistoryEntry, to_history
from counselor.generator import APOLOGY_MESSAGE, ResponseGenerator

logger = logging.getLogger("career_chat.conversation.service")

TITLE_MAX_LENGTH = 255


class ConversationService:
    """Service for chat session and message operations."""

    def __init__(
        self,
        generator: ResponseGenerator,
        *,
        history_limit: int = 20,
        preview_limit: int = 20,
        default_page_size: int = 50,
        max_page_size: int = 100,
    ):
        self.generator = generator
        self.history_limit = history_limit
        self.preview_limit = preview_limit
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # Validation

    @staticmethod
    def _validate_content(content: str) -> None:
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty")

    @staticmethod
    def _validate_title(title: str) -> str:
        if not title or not title.strip():
            raise ValidationError("Session title cannot be empty")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(
                "Title too long", {"max_length": TITLE_MAX_LENGTH, "length": len(title)}
            )
        return title

    @staticmethod
    def _validate_client_id(client_id: str) -> str:
        if not is_valid_uuid(str(client_id)):
            raise ValidationError("Client id must be a UUID", {"client_id": str(client_id)})
        return str(client_id)

    @staticmethod
    async def _fail(db_session: AsyncSession, action: str, error: Exception) -> NoReturn:
        await db_session.rollback()
        logger.error(f"Failed to {action}: {str(error)}")
        raise DatabaseError(f"Failed to {action}, please retry") from error

    @staticmethod
    async def _require_session(
        sessions: ChatSessionRepository, session_key: str
    ) -> ChatSession:
        session = await sessions.get_by_key(session_key)
        if session is None:
            raise SessionNotFoundError(session_key)
        return session

    # Messages

    async def send_message(
        self,
        *,
        session_key: str,
        client_id: str,
        content: str,
        db_session: AsyncSession,
        role: str = MessageRole.USER.value,
        timestamp: Optional[datetime] = None,
        message_id: Optional[str] = None,
    ) -> SendMessageResult:
        """Persist a user message, generate the reply and persist it."""
        self._validate_content(content)
        if role != MessageRole.USER.value:
            raise ValidationError("Only user messages can be sent", {"role": role})
        client_id = self._validate_client_id(client_id)
        if message_id is not None and not is_valid_uuid(message_id):
            raise ValidationError("Message id must be a UUID", {"id": message_id})

        sessions = ChatSessionRepository(db_session)
        messages = ChatMessageRepository(db_session)

        try:
            session = await sessions.get_by_key(session_key)
            if session is None:
                session = await sessions.create(
                    ChatSession(
                        title=generate_session_title(content)[:TITLE_MAX_LENGTH],
                        client_id=client_id,
                        session_id=session_key,
                    )
                )
                logger.info(f"Session created on first message: {session_key}")

            chat_session_pk = session.id
            # Keep the new turn strictly after everything already in the session
            user_ts = max(
                as_utc(timestamp) or utc_now(),
                as_utc(session.updated_at) + timedelta(microseconds=1),
            )
            user_message = await messages.create(
                ChatMessage(
                    id=message_id or str(uuid4()),
                    session_id=session_key,
                    chat_session_id=chat_session_pk,
                    role=MessageRole.USER,
                    content=content,
                    timestamp=user_ts,
                )
            )
            user_message_id = str(user_message.id)
            await db_session.commit()

            recent = await messages.fetch_recent(chat_session_pk, self.history_limit)
        except SQLAlchemyError as e:
            await self._fail(db_session, "save message", e)

        history = to_history(reversed(recent))
        reply = await self._generate_reply(content, history)

        try:
            ai_ts = max(utc_now(), user_ts + timedelta(microseconds=1))
            ai_message = await messages.create(
                ChatMessage(
                    id=str(uuid4()),
                    session_id=session_key,
                    chat_session_id=chat_session_pk,
                    role=MessageRole.ASSISTANT,
                    content=reply,
                    timestamp=ai_ts,
                )
            )
            ai_message_id = str(ai_message.id)

            updates = {"updated_at": ai_ts}
            if len(history) == 1 and session.has_default_title():
                updates["title"] = generate_session_title(content)[:TITLE_MAX_LENGTH]
            await sessions.update(session, **updates)
            await db_session.commit()
        except SQLAlchemyError as e:
            await self._fail(db_session, "save assistant reply", e)

        logger.info(f"Turn completed for session {session_key}")
        return SendMessageResult(
            content=reply,
            user_message_id=user_message_id,
            ai_message_id=ai_message_id,
            updated_at=ai_ts,
        )

    async def _generate_reply(self, content: str, history: List[HistoryEntry]) -> str:
        try:
            if len(history) <= 1:
                reply = await self.generator.generate(content)
            else:
                reply = await self.generator.generate_with_context(content, history)
        except Exception:
            logger.exception("Response generation raised; substituting apology")
            return APOLOGY_MESSAGE
        return reply if reply and reply.strip() else APOLOGY_MESSAGE

    async def get_paginated_messages(
        self,
        *,
        session_key: str,
        db_session: AsyncSession,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> MessagePage:
        """Return one page of messages older than `cursor`, oldest first."""
        limit = self.default_page_size if limit is None else limit
        if not 1 <= limit <= self.max_page_size:
            raise ValidationError(
                f"Limit must be between 1 and {self.max_page_size}", {"limit": limit}
            )

        sessions = ChatSessionRepository(db_session)
        messages = ChatMessageRepository(db_session)
        try:
            session = await self._require_session(sessions, session_key)

            before = None
            if cursor:
                if is_valid_uuid(cursor):
                    before = await messages.get_by_id(cursor)
                if before is None or str(before.chat_session_id) != str(session.id):
                    raise MessageNotFoundError(cursor)

            # One extra row tells us whether an older page exists
            rows = await messages.fetch_page(session.id, limit=limit + 1, before=before)
        except SQLAlchemyError as e:
            await self._fail(db_session, "fetch messages", e)

        has_next_page = len(rows) > limit
        page = [ChatMessageModel.from_entity(m) for m in reversed(rows[:limit])]
        return MessagePage(
            messages=page,
            next_cursor=page[0].id if has_next_page else None,
            has_next_page=has_next_page,
        )

    # Sessions

    async def get_sessions(
        self, *, client_id: str, db_session: AsyncSession
    ) -> List[ChatSessionModel]:
        """Sessions owned by the client, newest first, with recent messages."""
        client_id = self._validate_client_id(client_id)
        sessions = ChatSessionRepository(db_session)
        messages = ChatMessageRepository(db_session)
        try:
            owned = await sessions.list_for_client(client_id)
            result = []
            for session in owned:
                recent = await messages.fetch_recent(session.id, self.preview_limit)
                preview = [ChatMessageModel.from_entity(m) for m in reversed(recent)]
                result.append(ChatSessionModel.from_entity(session, preview))
            return result
        except SQLAlchemyError as e:
            await self._fail(db_session, "fetch sessions", e)

    async def create_session(
        self,
        *,
        client_id: str,
        session_key: str,
        title: str,
        db_session: AsyncSession,
    ) -> ChatSessionModel:
        client_id = self._validate_client_id(client_id)
        title = self._validate_title(title)
        sessions = ChatSessionRepository(db_session)
        try:
            if await sessions.get_by_key(session_key) is not None:
                raise ConflictError(
                    f"Chat session '{session_key}' already exists",
                    {"session_id": session_key},
                )
            session = await sessions.create(
                ChatSession(title=title, client_id=client_id, session_id=session_key)
            )
            await db_session.commit()
        except SQLAlchemyError as e:
            await self._fail(db_session, "create session", e)

        logger.info(f"Session created: {session_key}")
        return ChatSessionModel.from_entity(session)

    async def delete_session(
        self, *, session_key: str, db_session: AsyncSession
    ) -> DeleteSessionResult:
        """Delete a session and all of its messages."""
        sessions = ChatSessionRepository(db_session)
        messages = ChatMessageRepository(db_session)
        try:
            session = await self._require_session(sessions, session_key)
            removed = await messages.delete_for_sessions([session.id])
            await sessions.delete(session.id)
            await db_session.commit()
        except SQLAlchemyError as e:
            await self._fail(db_session, "delete session", e)

        logger.info(f"Session deleted: {session_key} ({removed} messages)")
        return DeleteSessionResult(success=True, session_id=session_key)

    async def update_session_title(
        self, *, session_key: str, title: str, db_session: AsyncSession
    ) -> ChatSessionModel:
        title = self._validate_title(title)
        return await self._update_session(
            session_key, db_session, "rename session", title=title
        )

    async def update_session_activity(
        self, *, session_key: str, is_active: bool, db_session: AsyncSession
    ) -> ChatSessionModel:
        return await self._update_session(
            session_key, db_session, "update session activity", is_active=is_active
        )

    async def _update_session(
        self, session_key: str, db_session: AsyncSession, action: str, **values
    ) -> ChatSessionModel:
        sessions = ChatSessionRepository(db_session)
        try:
            session = await self._require_session(sessions, session_key)
            session = await sessions.update(session, updated_at=utc_now(), **values)
            await db_session.commit()
        except SQLAlchemyError as e:
            await self._fail(db_session, action, e)
        return ChatSessionModel.from_entity(session)

    async def get_session_count(
        self, *, client_id: str, db_session: AsyncSession
    ) -> int:
        """Number of sessions owned by the client; 0 when the lookup fails."""
        try:
            client_id = self._validate_client_id(client_id)
            return await ChatSessionRepository(db_session).count(client_id=client_id)
        except Exception as e:
            logger.warning(f"Session count unavailable for {client_id}: {str(e)}")
            return 0

    async def clear_all_sessions(
        self, *, client_id: str, db_session: AsyncSession
    ) -> int:
        """Delete every session owned by the client. Returns the number removed."""
        client_id = self._validate_client_id(client_id)
        sessions = ChatSessionRepository(db_session)
        messages = ChatMessageRepository(db_session)
        try:
            owned = await sessions.list_for_client(client_id)
            session_ids = ids_of(owned)
            await messages.delete_for_sessions(session_ids)
            if session_ids:
                await sessions.delete_by_field("id", session_ids)
            await db_session.commit()
        except SQLAlchemyError as e:
            await self._fail(db_session, "clear sessions", e)

        logger.info(f"Cleared {len(session_ids)} sessions for client {client_id}")
        return len(session_ids)
