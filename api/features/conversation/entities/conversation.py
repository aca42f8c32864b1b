"""Conversation aggregate: a titled thread of user and assistant messages."""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.shared.entities.base import BaseEntity, SurrogateKey, as_utc, utc_now
from api.shared.utils import derive_title

TITLE_MAX_LENGTH = 255


class MessageRole(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Conversation(BaseEntity):
    """Conversation entity, the aggregate root for its messages."""

    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_user_uuid_updated_at", "user_uuid", "updated_at"),
    )

    public_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, unique=True, default=uuid4
    )
    user_uuid: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(TITLE_MAX_LENGTH))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    # Loaded explicitly (selectinload) or not at all.
    messages: Mapped[List["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: (Message.created_at, Message.id),
        lazy="raise",
    )

    def has_title(self) -> bool:
        return bool(self.title and self.title.strip())

    def touch(self, now: Optional[datetime] = None) -> None:
        """Bump updated_at, never moving it before created_at."""
        now = as_utc(now or utc_now())
        if self.created_at is not None and now < as_utc(self.created_at):
            now = as_utc(self.created_at)
        self.updated_at = now

    def generate_title_from_first_message(
        self, first_message: Optional["Message"] = None
    ) -> None:
        """Set the title from the first message in created_at order.

        Uses the eagerly loaded ``messages`` collection unless the first
        message is passed in.
        """
        if first_message is None and "messages" in self.__dict__ and self.messages:
            first_message = self.messages[0]
        self.title = derive_title(first_message.content if first_message else None)


class Message(BaseEntity):
    """A single message. Cannot exist without its conversation."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_id_created_at", "conversation_id", "created_at"),
    )

    conversation_id: Mapped[int] = mapped_column(
        SurrogateKey,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    conversation: Mapped[Conversation] = relationship(
        back_populates="messages", lazy="raise"
    )

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id}, conversation_id={self.conversation_id}, "
            f"role={self.role})>"
        )
