"""Client-side chat session.

``ChatSession`` holds the state a chat UI renders: the active chat, its
messages and the chat list. It runs one reply stream at a time and folds the
stream into ``messages`` with a ``TurnReducer``.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

import httpx

from app.client.api import ApiClient, ApiError
from app.schemas.chat import MessageState
from app.streaming.reducer import StreamError, TurnReducer, placeholder, strip_placeholders
from app.streaming.sse import StreamProtocolError

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]

GENERIC_STREAM_ERROR = "Something went wrong while generating the response."


class ChatSession:
    """State and actions of one signed-in chat client."""

    def __init__(
        self,
        api: ApiClient,
        notifier: Notifier | None = None,
        metadata_factory: Callable[[], dict[str, Any]] | None = None,
    ):
        self.api = api
        self.notifier = notifier
        self.metadata_factory = metadata_factory

        self.messages: list[dict[str, Any]] = []
        self.chat_list: list[dict[str, Any]] = []
        self.active_chat_id: str | None = None
        self.is_sending = False
        self.is_streaming = False
        self.is_thinking = False
        self.paused_for_client_tool = False

        self._stream_task: asyncio.Task | None = None
        self._stop_requested = False
        self._pending_saves: set[asyncio.Task] = set()

    @property
    def is_busy(self) -> bool:
        return self.is_sending or self.is_streaming

    def _notify(self, message: str) -> None:
        logger.warning("Chat error: %s", message)
        if self.notifier:
            self.notifier(message)

    # Sending

    async def send_message(self, text: str, attachments: Iterable[dict[str, Any]] = ()) -> None:
        """Send a user message and stream the reply.

        Without an active chat one is created first. On failure the messages
        go back to what they were before sending.
        """
        if self.is_busy:
            return
        text = (text or "").strip()
        attachments = list(attachments)
        if not text and not attachments:
            return

        user_message: dict[str, Any] = {"role": "user", "content": text}
        if attachments:
            user_message["attachments"] = attachments

        self.is_sending = True
        previous = list(self.messages)
        try:
            if self.active_chat_id is None:
                self.messages = [user_message, placeholder()]
                try:
                    chat = await self.api.create_chat([user_message])
                except (ApiError, httpx.HTTPError) as e:
                    self.messages = []
                    self.active_chat_id = None
                    self._notify(getattr(e, "message", None) or "Failed to create chat.")
                    return

                self.active_chat_id = str(chat["id"])
                history = list(chat.get("messages") or [user_message])
                self.messages = [*history, placeholder()]
                await self.load_chat_list()
                await self._stream_and_save(history, restore=history)
            else:
                history = [*strip_placeholders(previous), user_message]
                self.messages = [*history, placeholder()]
                await self._stream_and_save(history, restore=previous)
        finally:
            self.is_sending = False

    async def regenerate_response(self) -> None:
        """Drop everything after the last user message and stream a new reply."""
        if self.is_busy or self.active_chat_id is None:
            return

        previous = strip_placeholders(self.messages)
        last_user = next((i for i in range(len(previous) - 1, -1, -1) if previous[i].get("role") == "user"), None)
        if last_user is None:
            return

        history = previous[: last_user + 1]
        await self._resend(history, restore=previous)

    async def save_and_submit_edit(self, index: int, content: str) -> None:
        """Replace the user message at ``index`` and stream a reply to it.

        Messages after the edited one are discarded.
        """
        if self.is_busy or self.active_chat_id is None:
            return

        previous = strip_placeholders(self.messages)
        if not 0 <= index < len(previous) or previous[index].get("role") != "user":
            raise ValueError(f"Message {index} is not a user message")

        edited = {**previous[index], "content": content}
        await self._resend([*previous[:index], edited], restore=previous)

    async def send_tool_result(
        self,
        tool_id: str,
        content: Any,
        state: str = MessageState.COMPLETED.value,
        **extras: Any,
    ) -> None:
        """Send the result of a tool the client ran and stream the continuation.

        The tool request is marked with ``state``, its ``<role>_result``
        message is appended and the turn resumes with ``isContinuation`` set
        in the stream metadata.
        """
        if self.is_busy or self.active_chat_id is None:
            return

        previous = strip_placeholders(self.messages)
        request = next(
            (
                message
                for message in reversed(previous)
                if message.get("tool_id") == tool_id and not str(message.get("role", "")).endswith("_result")
            ),
            None,
        )
        if request is None:
            raise ValueError(f"No tool request with id {tool_id}")

        result_message = {**extras, "role": f"{request['role']}_result", "tool_id": tool_id, "content": content}
        if request.get("tool_name") is not None:
            result_message.setdefault("tool_name", request["tool_name"])

        history = [{**message, "state": state} if message is request else message for message in previous]
        history.append(result_message)
        self.paused_for_client_tool = False
        await self._resend(history, restore=previous, metadata={"isContinuation": True})

    async def _resend(
        self,
        history: list[dict[str, Any]],
        restore: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.is_sending = True
        try:
            self.messages = [*history, placeholder()]
            await self._stream_and_save(history, restore=restore, metadata=metadata)
        finally:
            self.is_sending = False

    async def _stream_and_save(
        self,
        history: list[dict[str, Any]],
        restore: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Stream the reply to ``history`` into ``messages``.

        The server stores the finished turn. A stopped stream is saved here
        instead, without its placeholders. Once another chat is loaded the
        stream no longer touches ``messages``.
        """
        chat_id = self.active_chat_id
        reducer = TurnReducer(self.messages)
        self.is_streaming = True
        self.paused_for_client_tool = False
        self._stop_requested = False
        self._stream_task = asyncio.create_task(self._consume(chat_id, history, reducer, metadata))

        try:
            await self._stream_task
            if self.active_chat_id == chat_id:
                self.messages = strip_placeholders(reducer.display_messages())
                self.paused_for_client_tool = reducer.paused_for_client_tool
            await self.load_chat_list()
        except asyncio.CancelledError:
            if not self._stop_requested:
                raise
            partial = strip_placeholders(reducer.messages)
            if self.active_chat_id == chat_id:
                self.messages = strip_placeholders(reducer.display_messages())
            self._save_in_background(chat_id, partial)
        except (ApiError, StreamError, StreamProtocolError, httpx.HTTPError) as e:
            if self.active_chat_id == chat_id:
                self.messages = list(restore)
            self._notify(getattr(e, "message", None) or GENERIC_STREAM_ERROR)
        finally:
            self.is_streaming = False
            self.is_thinking = False
            self._stream_task = None

    async def _consume(
        self,
        chat_id: str,
        history: list[dict[str, Any]],
        reducer: TurnReducer,
        extra_metadata: dict[str, Any] | None = None,
    ) -> None:
        metadata = self.metadata_factory() if self.metadata_factory else None
        if extra_metadata:
            metadata = {**(metadata or {}), **extra_metadata}
        async with self.api.stream_chat(chat_id, history, metadata) as events:
            async for event in events:
                reducer.apply(event)
                if self.active_chat_id == chat_id:
                    self.messages = reducer.display_messages()
                    self.is_thinking = reducer.is_thinking
                if reducer.finished:
                    break

    # Stopping

    def stop_generation(self) -> None:
        """Cancel the running stream. The partial reply is saved in the background."""
        if self._stream_task is None or self._stream_task.done():
            return
        self._stop_requested = True
        self._stream_task.cancel()

    def _save_in_background(self, chat_id: str | None, messages: list[dict[str, Any]]) -> None:
        if chat_id is None:
            return
        task = asyncio.create_task(self._save_messages(chat_id, messages))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save_messages(self, chat_id: str, messages: list[dict[str, Any]]) -> None:
        try:
            await self.api.update_chat(chat_id, messages=messages)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning("Could not save stopped chat %s: %s", chat_id, str(e))

    async def wait_for_pending_saves(self) -> None:
        if self._pending_saves:
            await asyncio.gather(*self._pending_saves)

    # Chat management

    async def load_chat_list(self) -> list[dict[str, Any]]:
        try:
            self.chat_list = await self.api.list_chats()
        except (ApiError, httpx.HTTPError) as e:
            self._notify(getattr(e, "message", None) or "Failed to load chats.")
        return self.chat_list

    async def load_chat(self, chat_id: str) -> dict[str, Any] | None:
        """Make ``chat_id`` the active chat and load its messages."""
        if self.is_busy:
            self.stop_generation()
        try:
            chat = await self.api.get_chat(chat_id)
        except (ApiError, httpx.HTTPError) as e:
            self._notify(getattr(e, "message", None) or "Failed to load chat.")
            return None

        self.active_chat_id = str(chat["id"])
        self.messages = list(chat.get("messages") or [])
        return chat

    def clear_chat(self) -> None:
        """Start a new, not yet created chat."""
        self.stop_generation()
        self.active_chat_id = None
        self.messages = []
        self.paused_for_client_tool = False

    async def rename_chat(self, chat_id: str, title: str) -> None:
        title = title.strip()
        if not title:
            return
        try:
            await self.api.update_chat(chat_id, title=title)
        except (ApiError, httpx.HTTPError) as e:
            self._notify(getattr(e, "message", None) or "Failed to rename chat.")
            return
        for chat in self.chat_list:
            if str(chat.get("id")) == str(chat_id):
                chat["title"] = title

    async def delete_chat(self, chat_id: str) -> None:
        try:
            await self.api.delete_chat(chat_id)
        except (ApiError, httpx.HTTPError) as e:
            self._notify(getattr(e, "message", None) or "Failed to delete chat.")
            return
        self.chat_list = [chat for chat in self.chat_list if str(chat.get("id")) != str(chat_id)]
        if self.active_chat_id == str(chat_id):
            self.clear_chat()

    async def clear_all_chats(self) -> None:
        try:
            await self.api.delete_all_chats()
        except (ApiError, httpx.HTTPError) as e:
            self._notify(getattr(e, "message", None) or "Failed to delete chats.")
            return
        self.chat_list = []
        self.clear_chat()
