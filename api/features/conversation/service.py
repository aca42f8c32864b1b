"""Service layer for the Conversation feature.

Owns the turn persistence rules: a user/assistant pair is appended
atomically, the title is derived once from the first message, and read
DTOs are assembled while the transaction is still open.
"""
from typing import List
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversation.dtos import (
    ConversationDetailResponse,
    ConversationSummaryResponse,
)
from api.features.conversation.entities.conversation import Conversation, MessageRole
from api.features.conversation.exceptions import (
    ConversationNotFoundError,
    ConversationPersistenceError,
)
from api.features.conversation.repository import ConversationRepository
from api.shared.entities.base import utc_now
from api.shared.transaction import transaction

logger = structlog.get_logger("chatbot.conversation.service")


class ConversationService:
    """Business logic for conversations and their messages."""

    async def create_conversation(
        self, user_id: UUID, *, db_session: AsyncSession
    ) -> Conversation:
        """Create an untitled, empty conversation owned by user_id."""
        try:
            async with transaction(db_session):
                repository = ConversationRepository(db_session)
                conversation = await repository.insert_conversation(user_id)
        except SQLAlchemyError as e:
            logger.error(
                "conversation_create_failed", user_id=str(user_id), error=str(e)
            )
            raise ConversationPersistenceError("Failed to create conversation") from e

        logger.info("conversation_created", conversation_id=str(conversation.public_id))
        return conversation

    async def append_message_pair(
        self,
        public_id: UUID,
        user_text: str,
        assistant_text: str,
        *,
        db_session: AsyncSession,
    ) -> Conversation:
        """Append one user message and its assistant reply to a conversation.

        Both messages and the title update are flushed in the same
        transaction. The assistant timestamp is never earlier than the user
        one; equal timestamps are ordered by insertion.
        """
        try:
            async with transaction(db_session):
                repository = ConversationRepository(db_session)
                conversation = await repository.find_by_public_id(public_id)
                if conversation is None:
                    raise ConversationNotFoundError(public_id)

                user_created_at = utc_now()
                repository.add_message(
                    conversation, MessageRole.USER, user_text, user_created_at
                )
                assistant_created_at = max(utc_now(), user_created_at)
                repository.add_message(
                    conversation,
                    MessageRole.ASSISTANT,
                    assistant_text,
                    assistant_created_at,
                )

                if not conversation.has_title():
                    first = await repository.first_message(conversation)
                    conversation.generate_title_from_first_message(first)

                await repository.save(conversation)
        except SQLAlchemyError as e:
            logger.error(
                "message_pair_save_failed",
                conversation_id=str(public_id),
                error=str(e),
            )
            raise ConversationPersistenceError("Failed to save messages") from e

        logger.info("message_pair_saved", conversation_id=str(public_id))
        return conversation

    async def get_by_id(
        self, public_id: UUID, *, db_session: AsyncSession
    ) -> ConversationDetailResponse:
        """Conversation detail with messages in chronological order."""
        try:
            async with transaction(db_session, read_only=True):
                repository = ConversationRepository(db_session)
                conversation = await repository.find_by_public_id_with_messages(
                    public_id
                )
                if conversation is None:
                    raise ConversationNotFoundError(public_id)
                detail = ConversationDetailResponse.from_entity(conversation)
        except SQLAlchemyError as e:
            logger.error(
                "conversation_fetch_failed", conversation_id=str(public_id), error=str(e)
            )
            raise ConversationPersistenceError("Failed to load conversation") from e

        logger.debug(
            "conversation_fetched",
            conversation_id=str(public_id),
            message_count=len(detail.messages),
        )
        return detail

    async def list_for_user(
        self, user_id: UUID, *, db_session: AsyncSession
    ) -> List[ConversationSummaryResponse]:
        """Summaries of a user's conversations, most recently updated first."""
        try:
            async with transaction(db_session, read_only=True):
                repository = ConversationRepository(db_session)
                conversations = await repository.list_by_user(user_id)
                summaries = [
                    ConversationSummaryResponse.from_entity(c) for c in conversations
                ]
        except SQLAlchemyError as e:
            logger.error("conversation_list_failed", user_id=str(user_id), error=str(e))
            raise ConversationPersistenceError("Failed to list conversations") from e

        return summaries

