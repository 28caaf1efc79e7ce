"""Router for the Conversation feature."""
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from di.container import ApplicationContainer as DependencyContainer
from api.features.conversation.controller import ConversationController
from api.features.conversation.dtos import (
    ClearSessionsResponse,
    CreateSessionRequest,
    DeleteSessionResponse,
    PaginatedMessagesResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionCountResponse,
    SessionDTO,
    SessionListResponse,
    UpdateSessionActivityRequest,
    UpdateSessionTitleRequest,
)
from api.shared.db import get_db_session
from api.shared.dtos import HealthCheckResponse
from api.shared.response import ResponseModel

router = APIRouter()


@router.get("/health", response_model=ResponseModel[HealthCheckResponse])
async def health_check():
    """Health check endpoint for the chat service."""
    return ResponseModel.success(
        data=HealthCheckResponse(status="healthy", dependencies={"database": "ok"}),
        message="Chat service is healthy",
    )


@router.post("/messages", response_model=ResponseModel[SendMessageResponse])
@inject
async def send_message(
    request: SendMessageRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Send a user message and get the counselor's reply."""
    return await controller.send_message(request, db_session)


@router.get(
    "/sessions/count", response_model=ResponseModel[SessionCountResponse]
)
@inject
async def get_session_count(
    client_id: str = Query(..., alias="clientId"),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.get_session_count(client_id, db_session)


@router.get(
    "/sessions/{session_id}/messages",
    response_model=ResponseModel[PaginatedMessagesResponse],
)
@inject
async def get_paginated_messages(
    session_id: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    cursor: Optional[str] = Query(None, description="Id of the oldest loaded message"),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Get one page of messages older than the cursor."""
    return await controller.get_paginated_messages(session_id, limit, cursor, db_session)


@router.get("/sessions", response_model=ResponseModel[SessionListResponse])
@inject
async def get_sessions(
    client_id: str = Query(..., alias="clientId"),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """List the client's sessions, most recently updated first."""
    return await controller.get_sessions(client_id, db_session)


@router.post("/sessions", response_model=ResponseModel[SessionDTO])
@inject
async def create_session(
    request: CreateSessionRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.create_session(request, db_session)


@router.delete(
    "/sessions/{session_id}", response_model=ResponseModel[DeleteSessionResponse]
)
@inject
async def delete_session(
    session_id: str,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Delete a session and all of its messages."""
    return await controller.delete_session(session_id, db_session)


@router.delete("/sessions", response_model=ResponseModel[ClearSessionsResponse])
@inject
async def clear_all_sessions(
    client_id: str = Query(..., alias="clientId"),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Delete every session owned by the client."""
    return await controller.clear_all_sessions(client_id, db_session)


@router.patch("/sessions/{session_id}/title", response_model=ResponseModel[SessionDTO])
@inject
async def update_session_title(
    session_id: str,
    request: UpdateSessionTitleRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.update_session_title(session_id, request, db_session)


@router.patch(
    "/sessions/{session_id}/activity", response_model=ResponseModel[SessionDTO]
)
@inject
async def update_session_activity(
    session_id: str,
    request: UpdateSessionActivityRequest,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.update_session_activity(session_id, request, db_session)
