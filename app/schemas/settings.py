"""User Settings Pydantic schemas for request/response validation."""

from typing import Any, Literal

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema


ThemeType = Literal["light", "dark", "system"]


class ApiKeyEntry(BaseSchema):
    """One stored provider key."""

    provider: str = Field(..., min_length=1, max_length=100, description="Provider name")
    key: str = Field(..., max_length=500, description="Provider API key")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Provider cannot be empty")
        return v.strip()


class UserSettingsResponse(BaseModelSchema):
    """Schema for user settings response data. Never includes the password hash."""

    email: str
    api_keys: list[ApiKeyEntry]
    base_url: str
    selected_provider: str
    selected_model: str
    quick_access_models: list[str]
    model_modalities: dict[str, Any]
    context_length: int | None
    max_output_tokens: int | None
    theme: ThemeType
    is_active: bool

    @field_validator("api_keys", "quick_access_models", mode="before")
    @classmethod
    def default_list(cls, v):
        return v or []

    @field_validator("model_modalities", mode="before")
    @classmethod
    def default_dict(cls, v):
        return v or {}


class UserSettingsUpdate(BaseSchema):
    """Schema for updating user settings (all fields optional)."""

    api_keys: list[ApiKeyEntry] | None = Field(None, description="Provider API keys")
    base_url: str | None = Field(None, max_length=500, description="Provider base URL override")
    selected_provider: str | None = Field(None, max_length=100, description="Provider to use")
    selected_model: str | None = Field(None, max_length=255, description="Model id to use")
    quick_access_models: list[str] | None = Field(None, description="Pinned model ids")
    model_modalities: dict[str, Any] | None = Field(None, description="Per-model modality configuration")
    context_length: int | None = Field(None, gt=0, description="Most recent messages sent to the provider")
    max_output_tokens: int | None = Field(None, gt=0, description="Maximum tokens in a reply")
    theme: ThemeType | None = Field(None, description="UI theme preference")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Empty clears the override; anything else must be an http(s) URL."""
        if v is None:
            return v
        v = v.strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("quick_access_models")
    @classmethod
    def validate_quick_access(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        # Keep order, drop blanks and duplicates
        seen: list[str] = []
        for model_id in v:
            model_id = model_id.strip()
            if model_id and model_id not in seen:
                seen.append(model_id)
        return seen


class ModelInfo(BaseSchema):
    """A model offered by the provider."""

    id: str


__all__ = [
    "ThemeType",
    "ApiKeyEntry",
    "UserSettingsResponse",
    "UserSettingsUpdate",
    "ModelInfo",
]
