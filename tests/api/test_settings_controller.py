"""
API tests for Settings controller.

This module contains API endpoint tests for reading and partially updating
the provider and UI preferences stored on the user.
"""

import pytest
from fastapi import status
from httpx import AsyncClient


class TestSettingsController:
    """Test cases for Settings API endpoints."""

    @pytest.mark.asyncio
    async def test_get_settings_success(self, authenticated_client: AsyncClient, test_user):
        """Test successful retrieval of user settings."""
        response = await authenticated_client.get("/api/settings")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == str(test_user.id)
        assert data["email"] == test_user.email
        assert data["selected_provider"] == "openai"
        assert data["api_keys"] == [{"provider": "openai", "key": "sk-test-key"}]
        assert data["theme"] == "system"
        assert "password_hash" not in data

    @pytest.mark.asyncio
    async def test_update_settings_partial(self, authenticated_client: AsyncClient, test_user):
        """Test fields left out of the request keep their values."""
        response = await authenticated_client.put(
            "/api/settings",
            json={"theme": "dark", "selected_model": "gpt-4o", "context_length": 10},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["theme"] == "dark"
        assert data["selected_model"] == "gpt-4o"
        assert data["context_length"] == 10
        assert data["selected_provider"] == "openai"
        assert data["api_keys"] == [{"provider": "openai", "key": "sk-test-key"}]

    @pytest.mark.asyncio
    async def test_update_api_keys_and_base_url(self, authenticated_client: AsyncClient):
        """Test replacing stored keys and setting a base URL override."""
        response = await authenticated_client.put(
            "/api/settings",
            json={
                "api_keys": [{"provider": " groq ", "key": "gsk-1"}],
                "selected_provider": "groq",
                "base_url": "https://api.groq.com/openai/v1/",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["api_keys"] == [{"provider": "groq", "key": "gsk-1"}]
        assert data["base_url"] == "https://api.groq.com/openai/v1"

    @pytest.mark.asyncio
    async def test_update_settings_persisted(self, authenticated_client: AsyncClient):
        """Test an update is visible on the next read."""
        await authenticated_client.put("/api/settings", json={"quick_access_models": ["a", "b", "a", " "]})

        response = await authenticated_client.get("/api/settings")

        assert response.json()["quick_access_models"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_update_settings_invalid_theme(self, authenticated_client: AsyncClient):
        """Test unknown themes are rejected with 400."""
        response = await authenticated_client.put("/api/settings", json={"theme": "neon"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_update_settings_invalid_base_url(self, authenticated_client: AsyncClient):
        """Test base URLs must be http(s)."""
        response = await authenticated_client.put("/api/settings", json={"base_url": "ftp://example.com"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_settings_require_auth(self, client: AsyncClient):
        """Test settings are not readable without a token."""
        response = await client.get("/api/settings")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
