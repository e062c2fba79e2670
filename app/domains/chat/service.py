"""Chat service layer for stored conversations."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.exceptions.base import AppPermissionError, ConflictError, NotFoundError, ValidationError
from app.schemas.chat import ChatMessage, ChatUpdate, MessageRole, to_documents
from models.chat import DEFAULT_CHAT_TITLE, Chat

logger = logging.getLogger(__name__)


def derive_title(messages: list[dict[str, Any]]) -> str:
    """Title from the first user message, cut to the configured length with ``...``."""
    limit = settings.chat_title_length
    for message in messages:
        if message.get("role") != MessageRole.USER.value:
            continue
        content = message.get("content") or ""
        if not content:
            return DEFAULT_CHAT_TITLE
        return content[:limit] + ("..." if len(content) > limit else "")
    return DEFAULT_CHAT_TITLE


class ChatService:
    """Service class for chat CRUD and turn persistence."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_chats(self, user_id: UUID) -> list[Chat]:
        """Get the user's chats, most recently updated first."""
        result = await self.db.execute(
            select(Chat).where(Chat.user_id == user_id).order_by(Chat.updated_at.desc(), Chat.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_chat(self, user_id: UUID, messages: list[ChatMessage]) -> Chat:
        """Create a chat from its first messages.

        Raises:
            ValidationError: If none of the messages is from the user
        """
        documents = to_documents(messages)
        if not any(message.get("role") == MessageRole.USER.value for message in documents):
            raise ValidationError("No user message found.")
        self._check_size(documents)

        chat = Chat(user_id=user_id, title=derive_title(documents), messages=documents, version=1)
        try:
            self.db.add(chat)
            await self.db.commit()
            await self.db.refresh(chat)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        logger.info("Created chat %s for user %s", chat.id, user_id)
        return chat

    async def get_chat(self, chat_id: UUID) -> Chat | None:
        """Get a chat by id, reloading it if the session already holds it."""
        result = await self.db.execute(
            select(Chat).where(Chat.id == chat_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_owned_chat(self, chat_id: UUID, user_id: UUID) -> Chat:
        """Get a chat and check that ``user_id`` owns it.

        Raises:
            NotFoundError: If the chat does not exist
            AppPermissionError: If it belongs to another user
        """
        chat = await self.get_chat(chat_id)
        if chat is None:
            raise NotFoundError("Chat not found")
        if chat.user_id != user_id:
            logger.warning("User %s attempted to access chat %s", user_id, chat_id)
            raise AppPermissionError("Not authorized")
        return chat

    async def update_chat(self, chat_id: UUID, user_id: UUID, update_data: ChatUpdate) -> Chat:
        """Rename a chat and/or replace its messages.

        The write only happens if the stored version still equals the
        expected one: ``update_data.version`` when given, else the version
        just read. Waiting placeholders are dropped from the saved messages.

        Raises:
            ConflictError: If the chat was written since the expected version
        """
        chat = await self.get_owned_chat(chat_id, user_id)

        values: dict[str, Any] = {}
        if update_data.title is not None:
            values["title"] = update_data.title
        if update_data.messages is not None:
            documents = to_documents(update_data.messages)
            self._check_size(documents)
            values["messages"] = documents
        if not values:
            return chat

        expected_version = update_data.version or chat.version
        values["version"] = Chat.version + 1
        values["updated_at"] = datetime.utcnow()

        try:
            result = await self.db.execute(
                update(Chat)
                .where(Chat.id == chat_id, Chat.version == expected_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                logger.info("Version conflict on chat %s (expected %s)", chat_id, expected_version)
                raise ConflictError(
                    "Chat was modified by another request",
                    details={"expected_version": expected_version},
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        await self.db.refresh(chat)
        return chat

    async def delete_chat(self, chat_id: UUID, user_id: UUID) -> None:
        chat = await self.get_owned_chat(chat_id, user_id)
        try:
            await self.db.delete(chat)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def delete_all_chats(self, user_id: UUID) -> int:
        """Delete every chat of the user and return how many were removed."""
        try:
            result = await self.db.execute(delete(Chat).where(Chat.user_id == user_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        logger.info("Deleted %d chats for user %s", result.rowcount, user_id)
        return result.rowcount

    async def save_assistant_turn(
        self,
        chat_id: UUID,
        history: list[dict[str, Any]],
        assistant_message: dict[str, Any],
    ) -> Chat | None:
        """Store ``history`` followed by the streamed assistant reply.

        The version is bumped in SQL, so a write that landed while the
        reply was streaming still moves the version forward. The title is
        derived when this completes the first exchange.
        """
        messages = [*history, assistant_message]
        values: dict[str, Any] = {
            "messages": messages,
            "version": Chat.version + 1,
            "updated_at": datetime.utcnow(),
        }
        if len(messages) == 2 and messages[0].get("role") == MessageRole.USER.value:
            values["title"] = derive_title(messages)

        try:
            result = await self.db.execute(
                update(Chat).where(Chat.id == chat_id).values(**values).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                logger.warning("Chat %s was deleted while streaming", chat_id)
                return None
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        return await self.get_chat(chat_id)

    @staticmethod
    def _check_size(documents: list[dict[str, Any]]) -> None:
        if len(documents) > settings.max_messages_per_chat:
            raise ValidationError(
                f"A chat can hold at most {settings.max_messages_per_chat} messages",
                details={"count": len(documents)},
            )
