# ruff: noqa: D107
"""LLM provider exceptions."""

from typing import Any

from .base import BaseAppException


class LLMServiceError(BaseAppException):
    """Base exception for LLM provider errors."""

    def __init__(
        self,
        message: str = "LLM provider error occurred",
        error_code: str = "LLM_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(message, status_code=status_code, error_code=error_code, details=details)


class LLMConfigurationError(LLMServiceError):
    """Exception raised when the user has not configured an API key."""

    def __init__(
        self,
        message: str = "API key not configured",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "LLM_CONFIGURATION_ERROR", details, status_code=400)


class LLMUpstreamError(LLMServiceError):
    """Exception raised when the provider call itself fails."""

    def __init__(
        self,
        message: str = "Failed to get response from LLM.",
        upstream_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        if details is None:
            details = {}
        if upstream_status:
            details["upstream_status"] = upstream_status
        super().__init__(message, "LLM_UPSTREAM_ERROR", details)


class LLMTimeoutError(LLMUpstreamError):
    """Exception raised when the provider request times out."""

    def __init__(
        self,
        message: str = "LLM provider request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=details)
        self.error_code = "LLM_TIMEOUT"
        self.detail["error_code"] = self.error_code
