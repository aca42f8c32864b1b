"""DTOs for the Conversation feature."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from api.features.conversation.entities.conversation import Conversation, Message
from api.shared.dtos import BaseDTO
from api.shared.entities.base import as_utc


class MessageDTO(BaseDTO):
    """Conversation message DTO."""

    role: str = Field(description="Message role: user or assistant")
    content: str = Field(description="Message content")
    timestamp: datetime = Field(description="When the message was stored")

    @classmethod
    def from_entity(cls, entity: Message) -> "MessageDTO":
        return cls(
            role=entity.role,
            content=entity.content,
            timestamp=as_utc(entity.created_at),
        )


class ConversationSummaryResponse(BaseDTO):
    """Conversation list item, without messages."""

    id: UUID = Field(description="Conversation identifier")
    title: Optional[str] = Field(default=None, description="Conversation title")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")

    @classmethod
    def from_entity(cls, entity: Conversation) -> "ConversationSummaryResponse":
        return cls(
            id=entity.public_id,
            title=entity.title,
            created_at=as_utc(entity.created_at),
            updated_at=as_utc(entity.updated_at),
        )


class ConversationDetailResponse(BaseDTO):
    """Conversation with its full message history."""

    id: UUID = Field(description="Conversation identifier")
    user_id: UUID = Field(description="Owner identifier")
    title: Optional[str] = Field(default=None, description="Conversation title")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")
    messages: List[MessageDTO] = Field(
        default_factory=list, description="Messages in chronological order"
    )

    @classmethod
    def from_entity(cls, entity: Conversation) -> "ConversationDetailResponse":
        """Build from a conversation whose messages were eagerly loaded."""
        return cls(
            id=entity.public_id,
            user_id=entity.user_uuid,
            title=entity.title,
            created_at=as_utc(entity.created_at),
            updated_at=as_utc(entity.updated_at),
            messages=[MessageDTO.from_entity(m) for m in entity.messages],
        )
