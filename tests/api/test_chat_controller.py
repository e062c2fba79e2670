"""
API tests for Chat controller.

This module contains API endpoint tests for chat listing, creation,
retrieval, conditional updates and deletion.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from factories import ChatFactory


class TestListAndCreate:
    """Test cases for GET and POST /api/chats."""

    @pytest.mark.asyncio
    async def test_list_chats(self, authenticated_client: AsyncClient, test_chat, other_users_chat):
        """Test only the user's own chats are listed, without messages."""
        response = await authenticated_client.get("/api/chats")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [item["id"] for item in data] == [str(test_chat.id)]
        assert data[0]["title"] == "Hello"
        assert "messages" not in data[0]

    @pytest.mark.asyncio
    async def test_list_chats_newest_first(self, authenticated_client: AsyncClient, test_db, test_user, test_chat):
        """Test the most recently updated chat comes first."""
        newer = ChatFactory.build(user_id=test_user.id, title="Newer")
        test_db.add(newer)
        await test_db.commit()

        response = await authenticated_client.get("/api/chats")

        assert [item["title"] for item in response.json()] == ["Newer", "Hello"]

    @pytest.mark.asyncio
    async def test_create_chat(self, authenticated_client: AsyncClient, test_user):
        """Test creation returns 201 with a title from the first user message."""
        response = await authenticated_client.post(
            "/api/chats",
            json={"messages": [{"role": "user", "content": "What is the capital of France?"}]},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["title"] == "What is the capital of France?"
        assert data["user_id"] == str(test_user.id)
        assert data["version"] == 1
        assert data["messages"] == [{"role": "user", "content": "What is the capital of France?"}]

    @pytest.mark.asyncio
    async def test_create_chat_long_title(self, authenticated_client: AsyncClient):
        """Test long first messages are cut to 40 characters plus an ellipsis."""
        content = "x" * 60

        response = await authenticated_client.post("/api/chats", json={"messages": [{"role": "user", "content": content}]})

        assert response.json()["title"] == "x" * 40 + "..."

    @pytest.mark.asyncio
    async def test_create_chat_without_user_message(self, authenticated_client: AsyncClient):
        """Test a chat needs at least one user message."""
        response = await authenticated_client.post(
            "/api/chats", json={"messages": [{"role": "assistant", "content": "Hi"}]}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "No user message found."

    @pytest.mark.asyncio
    async def test_create_chat_empty_messages(self, authenticated_client: AsyncClient):
        """Test an empty message list fails validation."""
        response = await authenticated_client.post("/api/chats", json={"messages": []})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_create_chat_unknown_role(self, authenticated_client: AsyncClient):
        """Test roles outside the known set are rejected."""
        response = await authenticated_client.post("/api/chats", json={"messages": [{"role": "robot", "content": "x"}]})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_chats_require_auth(self, client: AsyncClient):
        """Test the chat endpoints reject requests without a token."""
        response = await client.get("/api/chats")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_chats_with_real_token(self, client: AsyncClient, test_chat, auth_headers):
        """Test a real token reaches the user's chats."""
        response = await client.get("/api/chats", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()[0]["id"] == str(test_chat.id)


class TestGetChat:
    """Test cases for GET /api/chats/{chat_id}."""

    @pytest.mark.asyncio
    async def test_get_chat(self, authenticated_client: AsyncClient, test_chat):
        """Test a chat is returned with all of its messages."""
        response = await authenticated_client.get(f"/api/chats/{test_chat.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["messages"] == test_chat.messages
        assert data["version"] == 1

    @pytest.mark.asyncio
    async def test_get_missing_chat(self, authenticated_client: AsyncClient):
        """Test unknown ids return 404."""
        response = await authenticated_client.get(f"/api/chats/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Chat not found"

    @pytest.mark.asyncio
    async def test_get_other_users_chat(self, authenticated_client: AsyncClient, other_users_chat):
        """Test another user's chat is forbidden."""
        response = await authenticated_client.get(f"/api/chats/{other_users_chat.id}")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "Not authorized"

    @pytest.mark.asyncio
    async def test_get_chat_invalid_id(self, authenticated_client: AsyncClient):
        """Test malformed ids fail validation."""
        response = await authenticated_client.get("/api/chats/not-a-uuid")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestUpdateChat:
    """Test cases for PUT /api/chats/{chat_id}."""

    @pytest.mark.asyncio
    async def test_rename_chat(self, authenticated_client: AsyncClient, test_chat):
        """Test renaming bumps the version and keeps the messages."""
        response = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"title": "Greetings"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["title"] == "Greetings"
        assert data["version"] == 2
        assert len(data["messages"]) == 2

    @pytest.mark.asyncio
    async def test_save_messages_round_trip(self, authenticated_client: AsyncClient, test_chat):
        """Test saved messages come back unchanged, extra keys included."""
        messages = [
            {"role": "user", "content": "Plot sin(x)"},
            {"role": "tool_code", "content": "plot()", "tool_id": "t1", "state": "completed"},
            {"role": "tool_code_result", "content": "ok", "tool_id": "t1", "file_outputs": [{"name": "plot.png"}]},
            {"role": "assistant", "content": "Done.", "thinking": "Plotting first."},
        ]

        put = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"messages": messages})
        get = await authenticated_client.get(f"/api/chats/{test_chat.id}")

        assert put.status_code == status.HTTP_200_OK
        assert get.json()["messages"] == messages

    @pytest.mark.asyncio
    async def test_placeholders_not_saved(self, authenticated_client: AsyncClient, test_chat):
        """Test waiting placeholders are dropped from saved messages."""
        messages = [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "", "is_waiting": True},
        ]

        response = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"messages": messages})

        assert response.json()["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_stale_version_conflict(self, authenticated_client: AsyncClient, test_db, test_chat):
        """Test a write against an old version is refused and changes nothing."""
        first = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"title": "First", "version": 1})
        second = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"title": "Second", "version": 1})

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_409_CONFLICT
        assert second.json()["error_code"] == "CONFLICT"
        await test_db.refresh(test_chat)
        assert test_chat.title == "First"
        assert test_chat.version == 2

    @pytest.mark.asyncio
    async def test_update_other_users_chat(self, authenticated_client: AsyncClient, other_users_chat):
        """Test another user's chat cannot be written."""
        response = await authenticated_client.put(f"/api/chats/{other_users_chat.id}", json={"title": "Mine"})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_update_empty_title(self, authenticated_client: AsyncClient, test_chat):
        """Test empty titles are rejected."""
        response = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"title": ""})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_update_unknown_tool_state(self, authenticated_client: AsyncClient, test_chat):
        """Test tool message states outside the known lifecycle are rejected."""
        messages = [
            {"role": "user", "content": "Run it"},
            {"role": "tool_code", "content": "print(1)", "tool_id": "t1", "state": "finished"},
        ]

        response = await authenticated_client.put(f"/api/chats/{test_chat.id}", json={"messages": messages})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"][0]["loc"][-1] == "state"


class TestDeleteChat:
    """Test cases for DELETE /api/chats/{chat_id} and /api/chats/all."""

    @pytest.mark.asyncio
    async def test_delete_chat(self, authenticated_client: AsyncClient, test_chat):
        """Test a deleted chat is gone."""
        response = await authenticated_client.delete(f"/api/chats/{test_chat.id}")
        follow_up = await authenticated_client.get(f"/api/chats/{test_chat.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Chat deleted"
        assert follow_up.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_other_users_chat(self, authenticated_client: AsyncClient, other_users_chat):
        """Test another user's chat cannot be deleted."""
        response = await authenticated_client.delete(f"/api/chats/{other_users_chat.id}")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_delete_all_chats(self, authenticated_client: AsyncClient, test_db, test_user, test_chat, other_users_chat):
        """Test deleting all chats leaves other users' chats alone."""
        test_db.add(ChatFactory.build(user_id=test_user.id))
        await test_db.commit()

        response = await authenticated_client.delete("/api/chats/all")
        remaining = await authenticated_client.get("/api/chats")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "All chats deleted", "deleted": 2}
        assert remaining.json() == []
        await test_db.refresh(other_users_chat)
        assert other_users_chat.title == "Private"
