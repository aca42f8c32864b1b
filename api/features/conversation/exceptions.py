"""Exceptions for the Conversation feature."""
from typing import Any, Dict, Optional
from uuid import UUID

from api.shared.exceptions import NotFoundError, PersistenceError


class ConversationNotFoundError(NotFoundError):
    """Raised when no conversation carries the given public id."""

    def __init__(self, conversation_id: UUID):
        self.conversation_id = conversation_id
        super().__init__("Conversation", str(conversation_id))


class ConversationPersistenceError(PersistenceError):
    """Raised when storing or reading conversations fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
