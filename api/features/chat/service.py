"""Chat orchestration: one user message in, one persisted turn out."""
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.client import ChatCompletionClient
from api.features.chat.exceptions import ChatServiceError, MalformedReplyError
from api.features.conversation.entities.conversation import MessageRole
from api.features.conversation.exceptions import ConversationPersistenceError
from api.features.conversation.service import ConversationService
from api.shared.exceptions import ChatbotException
from api.shared.transaction import transaction

logger = structlog.get_logger("chatbot.chat.service")


@dataclass(frozen=True)
class ChatResult:
    response: str
    model: str
    conversation_id: UUID


class ChatService:
    """Glues the upstream client and the conversation service into a turn.

    The whole turn runs in a single transaction: if the upstream call or
    the persistence step fails, nothing from the turn is stored, including
    a conversation created for it.
    """

    def __init__(
        self,
        conversation_service: ConversationService,
        chat_client: ChatCompletionClient,
        model_name: str,
        default_user_id: UUID,
    ):
        self.conversation_service = conversation_service
        self.chat_client = chat_client
        self.model_name = model_name
        self.default_user_id = default_user_id

    async def chat(
        self,
        user_text: str,
        conversation_id: Optional[UUID] = None,
        *,
        db_session: AsyncSession,
    ) -> ChatResult:
        try:
            async with transaction(db_session):
                if conversation_id is None:
                    conversation = await self.conversation_service.create_conversation(
                        self.default_user_id, db_session=db_session
                    )
                    conversation_id = conversation.public_id

                logger.debug(
                    "sending_chat_completion",
                    model=self.model_name,
                    conversation_id=str(conversation_id),
                )
                # Only the current message goes upstream; history stays local.
                completion = await self.chat_client.create_chat_completion(
                    self.model_name,
                    [{"role": MessageRole.USER.value, "content": user_text}],
                )
                reply = self._extract_reply(completion)

                await self.conversation_service.append_message_pair(
                    conversation_id, user_text, reply, db_session=db_session
                )
        except ChatbotException:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "chat_turn_commit_failed",
                conversation_id=str(conversation_id) if conversation_id else None,
                error=str(e),
            )
            raise ConversationPersistenceError("Failed to save chat turn") from e
        except Exception as e:
            logger.exception(
                "chat_turn_failed",
                conversation_id=str(conversation_id) if conversation_id else None,
            )
            raise ChatServiceError("Failed to process chat request") from e

        return ChatResult(
            response=reply, model=self.model_name, conversation_id=conversation_id
        )

    def _extract_reply(self, completion: Any) -> str:
        choices = getattr(completion, "choices", None) if completion is not None else None
        if not choices:
            logger.error("upstream_returned_no_choices", model=self.model_name)
            raise MalformedReplyError("No response generated", self.model_name)

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None) if message is not None else None
        if content is None:
            logger.error("upstream_returned_invalid_message", model=self.model_name)
            raise MalformedReplyError("Invalid response format", self.model_name)

        return content
