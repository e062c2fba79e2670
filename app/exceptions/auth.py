# ruff: noqa: D107
"""Authentication and registration exceptions."""

from typing import Any

from .base import AppPermissionError, ValidationError


class InvalidCredentialsError(ValidationError):
    """Raised on unknown email or wrong password; the message never says which."""

    def __init__(
        self,
        message: str = "Invalid credentials.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.error_code = "INVALID_CREDENTIALS"
        self.detail["error_code"] = self.error_code


class UserAlreadyExistsError(ValidationError):
    """Raised when registering an email that already has an account."""

    def __init__(
        self,
        message: str = "User already exists.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.error_code = "USER_EXISTS"
        self.detail["error_code"] = self.error_code


class RegistrationNotAllowedError(AppPermissionError):
    """Raised when the email is not on the registration whitelist."""

    def __init__(
        self,
        message: str = "This email is not authorized to register.",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.error_code = "REGISTRATION_NOT_ALLOWED"
        self.detail["error_code"] = self.error_code
