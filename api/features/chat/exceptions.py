"""Exceptions for the Chat feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import ChatbotException, ExternalServiceError

UPSTREAM_SERVICE = "OpenAI"


class UpstreamError(ExternalServiceError):
    """Base exception for failures talking to the chat completion provider."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "UPSTREAM_ERROR",
    ):
        super().__init__(UPSTREAM_SERVICE, message, details, error_code)


class UpstreamUnavailableError(UpstreamError):
    """Raised on network, authentication, rate limit or timeout failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, "UPSTREAM_UNAVAILABLE")


class MalformedReplyError(UpstreamError):
    """Raised when the provider answers without usable content."""

    def __init__(self, message: str, model: str):
        super().__init__(message, {"model": model}, "UPSTREAM_MALFORMED_REPLY")


class ChatServiceError(ChatbotException):
    """Raised when a chat turn fails for a reason nobody anticipated."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CHAT_SERVICE_ERROR", details)
