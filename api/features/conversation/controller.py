"""Controller for the Conversation feature."""
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import (
    ConversationDetailResponse,
    ConversationSummaryResponse,
)
from api.features.conversation.service import ConversationService

logger = structlog.get_logger("chatbot.conversation.controller")


class ConversationController:
    """Controller for conversation history reads."""

    def __init__(self, conversation_service: ConversationService, default_user_id: UUID):
        self.conversation_service = conversation_service
        self.default_user_id = default_user_id

    async def list_conversations(
        self, *, user_id: Optional[UUID], db_session: AsyncSession
    ) -> List[ConversationSummaryResponse]:
        """List a user's conversations; no user means the default user."""
        owner = user_id or self.default_user_id
        logger.info("listing_conversations", user_id=str(owner))

        conversations = await self.conversation_service.list_for_user(
            owner, db_session=db_session
        )

        logger.info("conversations_listed", user_id=str(owner), count=len(conversations))
        return conversations

    async def get_conversation(
        self, *, conversation_id: UUID, db_session: AsyncSession
    ) -> ConversationDetailResponse:
        logger.info("retrieving_conversation", conversation_id=str(conversation_id))

        conversation = await self.conversation_service.get_by_id(
            conversation_id, db_session=db_session
        )

        logger.info(
            "conversation_retrieved",
            conversation_id=str(conversation_id),
            message_count=len(conversation.messages),
        )
        return conversation
