"""
Chat model for stored conversations.

A chat keeps its messages as one ordered JSON document so that the array the
client saves is exactly the array it reads back. The ``version`` column is
bumped on every write and lets callers make conditional updates.
"""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, JSONDocument

DEFAULT_CHAT_TITLE = "New Chat"


class Chat(BaseModel):
    """
    Represents a chat conversation entity in the application.

    :ivar user_id: Owning user.
    :type user_id: UUID
    :ivar title: Derived from the first user message, or renamed by the user.
    :type title: str
    :ivar messages: Ordered list of message objects.
    :type messages: list
    :ivar version: Write counter used for optimistic concurrency.
    :type version: int
    """

    __tablename__ = "chats"

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default=DEFAULT_CHAT_TITLE)
    messages = Column(JSONDocument, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)

    user = relationship("User", back_populates="chats")
