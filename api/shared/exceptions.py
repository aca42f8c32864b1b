"""Shared exceptions for the chatbot API."""
from typing import Any, Dict, Optional


class ChatbotException(Exception):
    """Base exception for the chatbot API."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(ChatbotException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(
            message, "NOT_FOUND", {"resource": resource, "identifier": identifier}
        )


class PersistenceError(ChatbotException):
    """Raised when database operations fail."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PERSISTENCE_ERROR", details)


class ExternalServiceError(ChatbotException):
    """Raised when external service calls fail."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        self.service = service
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, error_code, details)


class ConfigurationError(ChatbotException):
    """Raised at startup when required configuration is missing or invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)
