"""Controller for the Conversation feature."""
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import (
    ClearSessionsResponse,
    CreateSessionRequest,
    DeleteSessionResponse,
    MessageDTO,
    PaginatedMessagesResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionCountResponse,
    SessionDTO,
    SessionListResponse,
    UpdateSessionActivityRequest,
    UpdateSessionTitleRequest,
)
from api.features.conversation.service import ConversationService
from api.shared.exceptions import CareerChatException, http_status_for
from api.shared.response import ResponseModel

logger = logging.getLogger("career_chat.conversation")


def _http_error(exc: CareerChatException) -> HTTPException:
    status_code = http_status_for(exc)
    if status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}")
    else:
        logger.warning(f"{exc.error_code}: {exc.message}")
    return HTTPException(status_code=status_code, detail=exc.message)


class ConversationController:
    """Controller for chat session and message operations."""

    def __init__(self, conversation_service: ConversationService):
        self.conversation_service = conversation_service

    async def send_message(
        self,
        request: SendMessageRequest,
        db_session: AsyncSession,
    ) -> ResponseModel[SendMessageResponse]:
        """Send a user message and return the assistant reply."""
        try:
            result = await self.conversation_service.send_message(
                session_key=request.session_id,
                client_id=request.client_id,
                content=request.content,
                role=request.role,
                timestamp=request.timestamp,
                message_id=request.id,
                db_session=db_session,
            )
            return ResponseModel.success(
                data=SendMessageResponse.model_validate(result),
                message="Message sent successfully",
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error sending message")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_paginated_messages(
        self,
        session_key: str,
        limit: Optional[int],
        cursor: Optional[str],
        db_session: AsyncSession,
    ) -> ResponseModel[PaginatedMessagesResponse]:
        try:
            page = await self.conversation_service.get_paginated_messages(
                session_key=session_key,
                limit=limit,
                cursor=cursor,
                db_session=db_session,
            )
            response_data = PaginatedMessagesResponse(
                messages=[MessageDTO.model_validate(m) for m in page.messages],
                next_cursor=page.next_cursor,
                has_next_page=page.has_next_page,
            )
            return ResponseModel.success(
                data=response_data, message="Messages retrieved successfully"
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error retrieving messages")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_sessions(
        self, client_id: str, db_session: AsyncSession
    ) -> ResponseModel[SessionListResponse]:
        try:
            sessions = await self.conversation_service.get_sessions(
                client_id=client_id, db_session=db_session
            )
            response_data = SessionListResponse(
                sessions=[SessionDTO.model_validate(s) for s in sessions],
                total=len(sessions),
            )
            return ResponseModel.success(
                data=response_data, message="Sessions retrieved successfully"
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error listing sessions")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def create_session(
        self, request: CreateSessionRequest, db_session: AsyncSession
    ) -> ResponseModel[SessionDTO]:
        try:
            session = await self.conversation_service.create_session(
                client_id=request.client_id,
                session_key=request.session_id,
                title=request.title,
                db_session=db_session,
            )
            return ResponseModel.success(
                data=SessionDTO.model_validate(session),
                message="Session created successfully",
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error creating session")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def delete_session(
        self, session_key: str, db_session: AsyncSession
    ) -> ResponseModel[DeleteSessionResponse]:
        try:
            result = await self.conversation_service.delete_session(
                session_key=session_key, db_session=db_session
            )
            return ResponseModel.success(
                data=DeleteSessionResponse.model_validate(result),
                message="Session deleted successfully",
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error deleting session")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def update_session_title(
        self,
        session_key: str,
        request: UpdateSessionTitleRequest,
        db_session: AsyncSession,
    ) -> ResponseModel[SessionDTO]:
        try:
            session = await self.conversation_service.update_session_title(
                session_key=session_key, title=request.title, db_session=db_session
            )
            return ResponseModel.success(
                data=SessionDTO.model_validate(session),
                message="Session renamed successfully",
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error renaming session")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def update_session_activity(
        self,
        session_key: str,
        request: UpdateSessionActivityRequest,
        db_session: AsyncSession,
    ) -> ResponseModel[SessionDTO]:
        try:
            session = await self.conversation_service.update_session_activity(
                session_key=session_key,
                is_active=request.is_active,
                db_session=db_session,
            )
            return ResponseModel.success(
                data=SessionDTO.model_validate(session),
                message="Session updated successfully",
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error updating session activity")
            raise HTTPException(status_code=500, detail="Internal server error")

    async def get_session_count(
        self, client_id: str, db_session: AsyncSession
    ) -> ResponseModel[SessionCountResponse]:
        count = await self.conversation_service.get_session_count(
            client_id=client_id, db_session=db_session
        )
        return ResponseModel.success(
            data=SessionCountResponse(count=count),
            message="Session count retrieved successfully",
        )

    async def clear_all_sessions(
        self, client_id: str, db_session: AsyncSession
    ) -> ResponseModel[ClearSessionsResponse]:
        try:
            deleted = await self.conversation_service.clear_all_sessions(
                client_id=client_id, db_session=db_session
            )
            logger.info(f"Cleared {deleted} sessions for client {client_id}")
            return ResponseModel.success(
                data=ClearSessionsResponse(success=True, deleted_count=deleted),
                message="Sessions cleared successfully",
            )
        except CareerChatException as e:
            raise _http_error(e)
        except Exception:
            logger.exception("Unexpected error clearing sessions")
            raise HTTPException(status_code=500, detail="Internal server error")
