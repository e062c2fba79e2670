"""HTTP client for the Workspark AI API."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from app.streaming.events import StreamEvent
from app.streaming.sse import iter_events

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=None)


class ApiError(Exception):
    """Non-OK response from the API."""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(f"{status_code}: {message}")

    @classmethod
    def from_response(cls, response: httpx.Response, body: bytes | None = None) -> "ApiError":
        raw = body if body is not None else response.content
        try:
            payload = json.loads(raw) if raw else None
        except ValueError:
            payload = None

        message = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error")
            if isinstance(message, dict):
                message = message.get("message")
        if not message:
            message = response.reason_phrase or f"Request failed with status {response.status_code}"
        return cls(response.status_code, str(message), payload)


class ApiClient:
    """Thin async wrapper over the REST endpoints.

    The token returned by ``register`` or ``login`` is kept and sent in the
    auth header of later requests.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        token: str | None = None,
        auth_header: str = "x-auth-token",
        client: httpx.AsyncClient | None = None,
    ):
        self.token = token
        self.auth_header = auth_header
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=DEFAULT_TIMEOUT)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {self.auth_header: self.token} if self.token else {}

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        if response.is_error:
            raise ApiError.from_response(response)
        return response.json() if response.content else None

    # Auth

    async def register(self, email: str, password: str) -> str:
        data = await self._request("POST", "/api/auth/register", json={"email": email, "password": password})
        self.token = data["token"]
        return self.token

    async def login(self, email: str, password: str) -> str:
        data = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return self.token

    # Settings and models

    async def get_settings(self) -> dict[str, Any]:
        return await self._request("GET", "/api/settings")

    async def update_settings(self, **changes: Any) -> dict[str, Any]:
        return await self._request("PUT", "/api/settings", json=changes)

    async def list_models(self) -> list[dict[str, Any]]:
        return await self._request("POST", "/api/models")

    # Chats

    async def list_chats(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/chats")

    async def create_chat(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        return await self._request("POST", "/api/chats", json={"messages": messages})

    async def get_chat(self, chat_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/api/chats/{chat_id}")

    async def update_chat(
        self,
        chat_id: str,
        title: str | None = None,
        messages: list[dict[str, Any]] | None = None,
        version: int | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if title is not None:
            body["title"] = title
        if messages is not None:
            body["messages"] = messages
        if version is not None:
            body["version"] = version
        return await self._request("PUT", f"/api/chats/{chat_id}", json=body)

    async def delete_chat(self, chat_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/api/chats/{chat_id}")

    async def delete_all_chats(self) -> dict[str, Any]:
        return await self._request("DELETE", "/api/chats/all")

    @asynccontextmanager
    async def stream_chat(
        self,
        chat_id: str,
        messages: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> AsyncIterator[AsyncIterator[StreamEvent]]:
        """Open the reply stream of a chat and yield its events.

        Raises:
            ApiError: If the server answers with a non-OK status before streaming
        """
        body: dict[str, Any] = {"messages": messages}
        if metadata:
            body["metadata"] = metadata

        async with self._client.stream(
            "POST",
            f"/api/chats/{chat_id}/stream",
            json=body,
            headers={**self._headers(), "Accept": "text/event-stream"},
        ) as response:
            if response.is_error:
                raise ApiError.from_response(response, await response.aread())
            yield iter_events(response.aiter_text())
