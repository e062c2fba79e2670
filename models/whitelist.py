"""
Registration whitelist model.

A row with email ``*`` opens registration to every address.
"""

from sqlalchemy import Column, String

from .base import BaseModel

WILDCARD_EMAIL = "*"


class Whitelist(BaseModel):
    """
    Represents an email address allowed to register.
    """

    __tablename__ = "whitelist"

    email = Column(String(255), nullable=False, unique=True)
