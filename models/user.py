"""
Provides the User model for the application's database schema.

A user document carries both the login credentials and every chat
preference the client can edit through the settings endpoint: provider API
keys, an optional base URL override, the selected provider and model,
quick-access models, per-model modality configuration, context and output
token preferences and the UI theme.

Attributes
----------
email : sqlalchemy.Column
    Login email address, unique across users.
password_hash : sqlalchemy.Column
    bcrypt hash of the user's password. Never returned by the API.
api_keys : sqlalchemy.Column
    JSON list of ``{"provider": str, "key": str}`` entries.
model_modalities : sqlalchemy.Column
    JSON map of model id to modality configuration.

Relationships
-------------
chats : sqlalchemy.orm.relationship
    One-to-many relationship with the `Chat` model. Deleting a user deletes
    their chats.
"""

from sqlalchemy import Boolean, Column, Enum, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel, JSONDocument


class User(BaseModel):
    """
    Represents a registered user and their chat settings.

    :ivar email: Email address of the user. It must be unique.
    :type email: str
    :ivar password_hash: bcrypt hash of the password.
    :type password_hash: str
    :ivar api_keys: Provider API keys as ``[{"provider", "key"}]``.
    :type api_keys: list
    :ivar base_url: Base URL override for the OpenAI-compatible provider.
    :type base_url: str
    :ivar selected_provider: Provider whose key is used for requests.
    :type selected_provider: str
    :ivar selected_model: Model id sent to the provider.
    :type selected_model: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    """

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    # Provider settings
    api_keys = Column(JSONDocument, nullable=False, default=list)
    base_url = Column(String(500), nullable=False, default="")
    selected_provider = Column(String(100), nullable=False, default="")
    selected_model = Column(String(255), nullable=False, default="")
    quick_access_models = Column(JSONDocument, nullable=False, default=list)
    model_modalities = Column(JSONDocument, nullable=False, default=dict)

    # Generation preferences
    context_length = Column(Integer, nullable=True)
    max_output_tokens = Column(Integer, nullable=True)

    theme = Column(
        Enum("light", "dark", "system", name="theme_type"),
        default="system",
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    chats = relationship("Chat", back_populates="user", cascade="all, delete-orphan")

    def get_api_key(self) -> str | None:
        """Return the key for the selected provider, falling back to the first one."""
        keys = [entry for entry in (self.api_keys or []) if entry.get("key")]
        if not keys:
            return None
        for entry in keys:
            if entry.get("provider") == self.selected_provider:
                return entry["key"]
        return keys[0]["key"]
