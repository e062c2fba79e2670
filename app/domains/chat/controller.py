"""Chat API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import get_current_user, validate_token
from app.database import get_db
from app.domains.chat.relay import StreamRelay
from app.domains.chat.service import ChatService
from app.domains.llm.service import LLMService
from app.exceptions.base import NotFoundError, ValidationError
from app.schemas.chat import (
    ChatCreate,
    ChatDeleteResponse,
    ChatListItem,
    ChatResponse,
    ChatUpdate,
    StreamRequest,
)
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/chats",
    tags=["chats"],
    dependencies=[Depends(validate_token)],
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _server_error(action: str, error: SQLAlchemyError) -> HTTPException:
    logger.error("Failed to %s: %s", action, str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.get("", response_model=list[ChatListItem])
async def list_chats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's chats, newest first."""
    try:
        chats = await ChatService(db).list_chats(current_user.id)
    except SQLAlchemyError as e:
        raise _server_error("list chats", e) from e
    return [ChatListItem.model_validate(chat) for chat in chats]


@router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    chat_data: ChatCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a chat from its first messages.

    The title is taken from the first user message.
    """
    try:
        chat = await ChatService(db).create_chat(current_user.id, chat_data.messages)
    except SQLAlchemyError as e:
        raise _server_error("create chat", e) from e
    return ChatResponse.model_validate(chat)


@router.delete("/all", response_model=ChatDeleteResponse)
async def delete_all_chats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete every chat of the current user."""
    try:
        deleted = await ChatService(db).delete_all_chats(current_user.id)
    except SQLAlchemyError as e:
        raise _server_error("delete chats", e) from e
    return ChatDeleteResponse(message="All chats deleted", deleted=deleted)


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a chat with all of its messages."""
    chat = await ChatService(db).get_owned_chat(chat_id, current_user.id)
    return ChatResponse.model_validate(chat)


@router.put("/{chat_id}", response_model=ChatResponse)
async def update_chat(
    update_data: ChatUpdate,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename a chat or save its messages.

    Sending ``version`` makes the write conditional: a chat written since
    that version is left unchanged and 409 is returned.
    """
    try:
        chat = await ChatService(db).update_chat(chat_id, current_user.id, update_data)
    except SQLAlchemyError as e:
        raise _server_error("update chat", e) from e
    return ChatResponse.model_validate(chat)


@router.delete("/{chat_id}", response_model=ChatDeleteResponse)
async def delete_chat(
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a chat."""
    try:
        await ChatService(db).delete_chat(chat_id, current_user.id)
    except SQLAlchemyError as e:
        raise _server_error("delete chat", e) from e
    return ChatDeleteResponse(message="Chat deleted")


@router.post("/{chat_id}/stream")
async def stream_chat(
    stream_request: StreamRequest,
    chat_id: UUID = Path(..., description="Chat ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Stream the assistant reply to ``messages`` as Server-Sent Events.

    The reply is saved to the chat once the provider finishes. Failures
    after the stream has opened arrive as one ``error`` event.
    """
    chat = await ChatService(db).get_chat(chat_id)
    if chat is None or chat.user_id != current_user.id:
        raise NotFoundError("Chat or user not found")

    llm = LLMService.for_user(current_user)
    if stream_request.messages is None:
        await llm.close()
        raise ValidationError("A message history is required.")

    relay = StreamRelay(
        db=db,
        llm=llm,
        chat_id=chat.id,
        history=stream_request.messages,
        model=current_user.selected_model or settings.default_model,
        max_tokens=current_user.max_output_tokens,
        context_length=current_user.context_length,
    )
    logger.info("Streaming reply for chat %s", chat_id)
    return StreamingResponse(relay.stream(), media_type="text/event-stream", headers=SSE_HEADERS)
