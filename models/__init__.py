"""
Models package initialization.
"""

from .base import Base, BaseModel
from .chat import DEFAULT_CHAT_TITLE, Chat
from .user import User
from .whitelist import WILDCARD_EMAIL, Whitelist

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Whitelist",
    "WILDCARD_EMAIL",
    "Chat",
    "DEFAULT_CHAT_TITLE",
]
