"""Repository for conversation persistence operations."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from api.features.conversation.entities.conversation import (
    Conversation,
    Message,
    MessageRole,
)
from api.shared.base import BaseRepository
from api.shared.entities.base import utc_now


class ConversationRepository(BaseRepository[Conversation]):
    """Data access for conversations and their messages.

    Writes only flush; the surrounding transaction decides whether they stick.
    """

    model = Conversation

    async def insert_conversation(self, user_id: UUID) -> Conversation:
        now = utc_now()
        conversation = Conversation(
            public_id=uuid4(),
            user_uuid=user_id,
            title=None,
            created_at=now,
            updated_at=now,
        )
        return await self.create(conversation)

    async def find_by_public_id(self, public_id: UUID) -> Optional[Conversation]:
        entities = await self.get_by_field("public_id", public_id, limit=1)
        return entities[0] if entities else None

    async def find_by_public_id_with_messages(
        self, public_id: UUID
    ) -> Optional[Conversation]:
        """Lookup with the full message list loaded in created_at order.

        One query for the conversation and one for all of its messages.
        """
        stmt = (
            select(Conversation)
            .where(Conversation.public_id == public_id)
            .options(selectinload(Conversation.messages))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: UUID) -> List[Conversation]:
        """Conversations of a user, most recently updated first."""
        stmt = (
            select(Conversation)
            .where(Conversation.user_uuid == user_id)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    def add_message(
        self,
        conversation: Conversation,
        role: MessageRole,
        content: str,
        created_at: Optional[datetime] = None,
    ) -> Message:
        """Stage a message for the conversation; it is inserted on the next flush.

        Rows are inserted in the order they are staged, so the surrogate key
        breaks created_at ties in insertion order.
        """
        message = Message(
            conversation=conversation,
            role=role.value,
            content=content,
            created_at=created_at or utc_now(),
        )
        self.session.add(message)
        return message

    async def first_message(self, conversation: Conversation) -> Optional[Message]:
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation.id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(self, conversation: Conversation) -> Conversation:
        """Bump updated_at and flush the conversation with any staged messages."""
        conversation.touch()
        self.session.add(conversation)
        await self.session.flush()
        return conversation
