"""DTOs for the Chat feature."""
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from api.shared.dtos import BaseDTO

MAX_MESSAGE_LENGTH = 4000


class ChatRequest(BaseDTO):
    """A user message, optionally continuing an existing conversation."""

    message: str = Field(
        ...,
        max_length=MAX_MESSAGE_LENGTH,
        description="The user's message",
    )
    conversation_id: Optional[UUID] = Field(
        default=None, description="Conversation to continue; omit to start one"
    )

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Message is required")
        return v


class ChatResponse(BaseDTO):
    """The assistant reply for a chat turn."""

    response: str = Field(description="Assistant reply")
    model: str = Field(description="Model that produced the reply")
    conversation_id: UUID = Field(description="Conversation the turn belongs to")
