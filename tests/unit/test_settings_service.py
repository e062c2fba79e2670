# ruff: noqa: SIM117
"""
Unit tests for SettingsService.

This module contains unit tests for reading and partially updating the
settings stored on the user row.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.domains.settings.service import SettingsService
from app.schemas.settings import UserSettingsUpdate


class TestSettingsService:
    """Test cases for SettingsService."""

    @pytest.mark.asyncio
    async def test_get_user_settings(self, test_db, test_user):
        """Test reading the settings document."""
        result = await SettingsService(test_db).get_user_settings(test_user)

        assert result.id == test_user.id
        assert result.selected_model == "gpt-4o-mini"
        assert result.api_keys == [{"provider": "openai", "key": "sk-test-key"}]

    @pytest.mark.asyncio
    async def test_update_only_given_fields(self, test_db, test_user):
        """Test a partial update leaves other fields alone."""
        service = SettingsService(test_db)

        result = await service.update_user_settings(test_user, UserSettingsUpdate(theme="dark"))

        assert result.theme == "dark"
        assert result.selected_model == "gpt-4o-mini"
        assert result.api_keys == [{"provider": "openai", "key": "sk-test-key"}]

    @pytest.mark.asyncio
    async def test_update_provider_settings(self, test_db, test_user):
        """Test updating keys, base URL and model preferences together."""
        update = UserSettingsUpdate(
            api_keys=[{"provider": "openrouter", "key": "or-key"}],
            selected_provider="openrouter",
            base_url="https://openrouter.ai/api/v1/",
            selected_model="meta/llama-3",
            quick_access_models=["a", "b", "a"],
            model_modalities={"meta/llama-3": {"image": False}},
            context_length=20,
            max_output_tokens=1024,
        )

        result = await SettingsService(test_db).update_user_settings(test_user, update)

        assert result.api_keys == [{"provider": "openrouter", "key": "or-key"}]
        assert result.base_url == "https://openrouter.ai/api/v1"
        assert result.quick_access_models == ["a", "b"]
        assert result.model_modalities == {"meta/llama-3": {"image": False}}
        assert result.context_length == 20
        assert result.max_output_tokens == 1024
        assert result.get_api_key() == "or-key"

    @pytest.mark.asyncio
    async def test_update_clears_nullable_limits(self, test_db, test_user):
        """Test explicit nulls clear token limits but not other fields."""
        service = SettingsService(test_db)
        await service.update_user_settings(test_user, UserSettingsUpdate(max_output_tokens=256))

        result = await service.update_user_settings(
            test_user, UserSettingsUpdate(max_output_tokens=None, selected_model=None)
        )

        assert result.max_output_tokens is None
        assert result.selected_model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_update_database_error(self, test_db, test_user):
        """Test database errors propagate."""
        with patch.object(test_db, "commit", side_effect=SQLAlchemyError("Database error")):
            with pytest.raises(SQLAlchemyError):
                await SettingsService(test_db).update_user_settings(test_user, UserSettingsUpdate(theme="light"))


class TestSettingsValidation:
    """Test cases for the update schema."""

    def test_invalid_theme(self):
        """Test themes outside the enum are rejected."""
        with pytest.raises(ValidationError):
            UserSettingsUpdate(theme="neon")

    def test_non_positive_limits(self):
        """Test token limits must be positive."""
        with pytest.raises(ValidationError):
            UserSettingsUpdate(context_length=0)
        with pytest.raises(ValidationError):
            UserSettingsUpdate(max_output_tokens=-5)

    def test_empty_provider(self):
        """Test every key entry needs a provider."""
        with pytest.raises(ValidationError):
            UserSettingsUpdate(api_keys=[{"provider": "  ", "key": "k"}])

    def test_base_url_scheme(self):
        """Test base URL must be empty or http(s)."""
        assert UserSettingsUpdate(base_url="").base_url == ""
        with pytest.raises(ValidationError):
            UserSettingsUpdate(base_url="ftp://example.com")
