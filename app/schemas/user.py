"""Auth-related Pydantic schemas for request/response validation."""

from pydantic import EmailStr, Field, field_validator

from .base import BaseSchema


class RegisterRequest(BaseSchema):
    """Schema for user registration."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, max_length=72, description="Plain password")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """bcrypt only looks at the first 72 bytes."""
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class LoginRequest(BaseSchema):
    """Schema for user login request."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="Plain password")


class TokenResponse(BaseSchema):
    """Schema for a successful register or login."""

    token: str
