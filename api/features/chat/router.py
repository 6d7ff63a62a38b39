"""Router for the Chat feature."""
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.controller import ChatController
from api.features.chat.dtos import (
    ChatHistoryResponse,
    ChatReplyDTO,
    ClearHistoryResponse,
    SendMessageRequest,
)
from api.shared.auth import get_current_user_id
from api.shared.db import get_db_session
from api.shared.dtos import HealthCheckResponse
from api.shared.response import ResponseModel
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.get("/health", response_model=ResponseModel[HealthCheckResponse])
async def health_check():
    """Health check endpoint for chat service."""
    return ResponseModel.success(
        data=HealthCheckResponse(
            status="healthy", dependencies={"database": "ok", "llm": "ok"}
        ),
        message="Chat service is healthy",
    )


@router.post("/message", response_model=ResponseModel[ChatReplyDTO])
@inject
async def send_message(
    request: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Send symptoms to the assistant and get formatted guidance back."""
    reply = await controller.send_message(
        user_id=user_id,
        message=request.message,
        language=request.language,
        db_session=db_session,
    )
    return ResponseModel.success(data=reply, message="Response generated")


@router.get("/history", response_model=ResponseModel[ChatHistoryResponse])
@inject
async def get_history(
    user_id: str = Depends(get_current_user_id),
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Return the caller's full chat history."""
    history = await controller.get_history(user_id=user_id, db_session=db_session)
    return ResponseModel.success(data=history, message="Chat history fetched")


@router.delete("/history", response_model=ResponseModel[ClearHistoryResponse])
@inject
async def clear_history(
    user_id: str = Depends(get_current_user_id),
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Delete the caller's chat history."""
    result = await controller.clear_history(user_id=user_id, db_session=db_session)
    return ResponseModel.success(data=result, message="Chat history cleared")
